from typing import Protocol, runtime_checkable

from domain.models.rates import ExchangeRates


@runtime_checkable
class RateProvider(Protocol):
    """Anything able to fetch the current rates of one source.

    Cancellation is the caller's asyncio task cancellation: implementations
    must let ``asyncio.CancelledError`` unwind without holding resources.
    """

    async def get_rates(self) -> ExchangeRates:
        ...


class NullRateProvider:
    """Stands in for unknown sources: always empty, never fails"""

    async def get_rates(self) -> ExchangeRates:
        return ExchangeRates()

    def __repr__(self):
        return "<NullRateProvider>"


NULL_PROVIDER = NullRateProvider()
