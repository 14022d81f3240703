"""
Shared test configuration and fixtures.
"""

import asyncio
from decimal import Decimal

import pytest

from domain.exceptions.rates import ProviderError
from domain.models.rates import CurrencyPair, ExchangeRate, ExchangeRates


class FakeClock:
    """Manually advanced replacement for time.time"""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubRateProvider:
    """Counts fetches; returns fixed rates, raises, or waits on a gate"""

    def __init__(self, rates: ExchangeRates | None = None, error: Exception | None = None):
        self.rates = rates if rates is not None else ExchangeRates()
        self.error = error
        self.calls = 0
        self.gate: asyncio.Event | None = None

    async def get_rates(self) -> ExchangeRates:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.rates


def make_rates(source: str = "kraken", **pairs: str) -> ExchangeRates:
    return ExchangeRates(
        ExchangeRate(pair=CurrencyPair.parse(pair), rate=Decimal(rate), source=source)
        for pair, rate in pairs.items()
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def btc_rates():
    return make_rates(BTC_USD="50000")


@pytest.fixture
def stub_provider(btc_rates):
    return StubRateProvider(rates=btc_rates)


@pytest.fixture
def failing_provider():
    return StubRateProvider(error=ProviderError("kraken", "HTTP 503: Service Unavailable"))


@pytest.fixture
def rates_factory():
    return make_rates


@pytest.fixture
def provider_factory():
    return StubRateProvider


async def drain_refresh(provider) -> None:
    """Let a background refresh scheduled by get_rates() run to completion"""
    for _ in range(100):
        if not provider.is_refreshing:
            return
        await asyncio.sleep(0)
    raise AssertionError("background refresh did not complete")


@pytest.fixture
def wait_refreshed():
    return drain_refresh
