import asyncio
import logging
from datetime import timedelta

from application.services.query_executor import QueryExecutor
from domain.exceptions.rates import InvalidCacheSpanError
from domain.models.rates import QueryRateResult, SupportedExchange
from infrastructure.providers.base import NULL_PROVIDER
from infrastructure.providers.registry import RateProviderRegistry

logger = logging.getLogger(__name__)


class RateService:
    """Single entry point for rate queries.

    Caching and background refresh live in the registered providers and are
    invisible here. Every query returns a result; failures are reported in
    ``QueryRateResult.error`` instead of being raised.
    """

    def __init__(self, registry: RateProviderRegistry, executor: QueryExecutor | None = None):
        self.registry = registry
        self.executor = executor or QueryExecutor()

    async def query_rates(self, exchange_name: str, timeout: float | None = None) -> QueryRateResult:
        provider = self.registry.get(exchange_name) or NULL_PROVIDER
        result = await self.executor.execute(provider, exchange_name, timeout=timeout)

        if result.error is not None:
            logger.warning(
                f"Rates from {exchange_name} unavailable after "
                f"{result.latency.total_seconds() * 1000:.0f}ms: {result.error.message}"
            )
        return result

    async def query_all(
        self, exchange_names: list[str] | None = None, timeout: float | None = None
    ) -> dict[str, QueryRateResult]:
        """Query several exchanges concurrently, each result independent of the others"""
        names = exchange_names if exchange_names is not None else self.registry.names()
        results = await asyncio.gather(*(self.query_rates(name, timeout) for name in names))
        return dict(zip(names, results, strict=True))

    def set_cache_span(self, cache_span: timedelta) -> None:
        if cache_span <= timedelta(0):
            raise InvalidCacheSpanError(f"Cache span must be positive, got {cache_span}")
        self.registry.cache_span = cache_span

    @property
    def cache_span(self) -> timedelta:
        return self.registry.cache_span

    def supported_exchanges(self) -> list[SupportedExchange]:
        return self.registry.supported_exchanges()
