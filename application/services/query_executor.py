import asyncio
import logging
import time
from datetime import timedelta

from domain.models.rates import ExchangeError, ExchangeRates, QueryRateResult
from infrastructure.providers.base import RateProvider

logger = logging.getLogger(__name__)


class QueryExecutor:
    """Runs a provider and turns whatever happens into a QueryRateResult.

    Fetch failures, including the executor's own timeout, are captured and
    tagged with the exchange name. Cancellation of the calling task is not
    a fetch failure and is re-raised.
    """

    def __init__(self, timeout: float | None = None):
        self.timeout = timeout

    async def execute(
        self, provider: RateProvider, exchange_name: str, timeout: float | None = None
    ) -> QueryRateResult:
        timeout = timeout if timeout is not None else self.timeout
        rates = ExchangeRates()
        error: ExchangeError | None = None

        start_time = time.perf_counter()
        try:
            async with asyncio.timeout(timeout):
                rates = await provider.get_rates()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.debug(f"Query to {exchange_name} failed: {e!r}")
            error = ExchangeError(exchange_name=exchange_name, exception=e)
        finally:
            latency = timedelta(seconds=time.perf_counter() - start_time)

        return QueryRateResult(latency=latency, exchange_rates=rates, error=error)
