import json
import math
import uuid
from decimal import Decimal, InvalidOperation

from redis import asyncio as redis

from domain.exceptions.rates import CacheError
from domain.models.rates import CacheEntry, CurrencyPair, ExchangeRate, ExchangeRates


class RedisRateCache:
    """Shared store of the latest rates per exchange, backed by Redis.

    Every instance writes under its own namespace, so replacing the store
    with a new instance discards everything cached by the previous one.
    """

    def __init__(self, redis_client: redis.Redis, namespace: str | None = None):
        self.redis = redis_client
        self.namespace = namespace or uuid.uuid4().hex

    def _make_rates_key(self, exchange_name: str) -> str:
        return f"rates:{self.namespace}:{exchange_name}"

    async def get(self, exchange_name: str) -> CacheEntry | None:
        data = await self.redis.get(self._make_rates_key(exchange_name))
        if not data:
            return None

        try:
            entry_dict = json.loads(data)
            rates = ExchangeRates(
                ExchangeRate(
                    pair=CurrencyPair.parse(item["pair"]),
                    rate=Decimal(item["rate"]),
                    source=item["source"],
                )
                for item in entry_dict["rates"]
            )
            return CacheEntry(rates=rates, fetched_at=float(entry_dict["fetched_at"]))
        except json.JSONDecodeError as e:
            raise CacheError(f"Invalid json data for {exchange_name}") from e
        except (KeyError, TypeError, ValueError, InvalidOperation) as e:
            raise CacheError(f"Malformed cache entry for {exchange_name}: {e}") from e

    async def set(self, exchange_name: str, entry: CacheEntry, ttl_seconds: float) -> None:
        entry_dict = {
            "fetched_at": entry.fetched_at,
            "rates": [
                {"pair": str(rate.pair), "rate": str(rate.rate), "source": rate.source}
                for rate in entry.rates
            ],
        }
        await self.redis.setex(
            self._make_rates_key(exchange_name),
            max(1, math.ceil(ttl_seconds)),
            json.dumps(entry_dict),
        )

    async def close(self) -> None:
        # The client is owned by whoever created it.
        return None
