from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from decimal import Decimal

_PAIR_SEPARATORS = ("_", "/", "-")


@dataclass(frozen=True)
class CurrencyPair:
    left: str
    right: str

    def __post_init__(self):
        object.__setattr__(self, "left", self.left.upper())
        object.__setattr__(self, "right", self.right.upper())

    @classmethod
    def parse(cls, value: str) -> "CurrencyPair":
        """Parse 'BTC_USD', 'BTC/USD' or 'BTC-USD'"""
        for separator in _PAIR_SEPARATORS:
            if separator in value:
                left, _, right = value.partition(separator)
                if left and right:
                    return cls(left.strip(), right.strip())
        raise ValueError(f"Invalid currency pair: {value!r}")

    def __str__(self) -> str:
        return f"{self.left}_{self.right}"


@dataclass(frozen=True)
class ExchangeRate:
    pair: CurrencyPair
    rate: Decimal
    source: str


@dataclass(frozen=True)
class ExchangeRates:
    """Immutable set of rates produced by a single fetch"""
    rates: tuple[ExchangeRate, ...] = ()

    def __init__(self, rates: Iterable[ExchangeRate] = ()):
        object.__setattr__(self, "rates", tuple(rates))

    def __iter__(self) -> Iterator[ExchangeRate]:
        return iter(self.rates)

    def __len__(self) -> int:
        return len(self.rates)

    def __bool__(self) -> bool:
        return bool(self.rates)

    def get(self, pair: CurrencyPair | str) -> ExchangeRate | None:
        if isinstance(pair, str):
            pair = CurrencyPair.parse(pair)
        return next((r for r in self.rates if r.pair == pair), None)

    def to_dict(self) -> dict[str, Decimal]:
        return {str(r.pair): r.rate for r in self.rates}


@dataclass(frozen=True)
class CacheEntry:
    rates: ExchangeRates
    fetched_at: float

    def age(self, now: float) -> float:
        return now - self.fetched_at


@dataclass(frozen=True)
class LatestFetch:
    """Outcome of the last fetch attempt made by a background provider"""
    rates: ExchangeRates
    fetched_at: float
    latency: timedelta
    exception: Exception | None = None

    @property
    def is_successful(self) -> bool:
        return self.exception is None


@dataclass(frozen=True)
class ExchangeError:
    exchange_name: str
    exception: Exception

    @property
    def message(self) -> str:
        return str(self.exception)


@dataclass(frozen=True)
class QueryRateResult:
    latency: timedelta
    exchange_rates: ExchangeRates = field(default_factory=ExchangeRates)
    error: ExchangeError | None = None

    @property
    def is_successful(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class SupportedExchange:
    name: str
    display_name: str
    url: str | None = None


def utc_from_timestamp(timestamp: float) -> datetime:
    return datetime.fromtimestamp(timestamp, tz=UTC)
