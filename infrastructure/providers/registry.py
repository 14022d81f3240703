import asyncio
import logging
import time
from collections.abc import Callable
from datetime import timedelta
from threading import RLock

from domain.exceptions.rates import InvalidCacheSpanError
from domain.models.rates import SupportedExchange
from infrastructure.cache.base import RateCacheStore
from infrastructure.cache.memory_cache import MemoryRateCache
from infrastructure.providers.background import BackgroundFetcherRateProvider
from infrastructure.providers.base import RateProvider
from infrastructure.providers.cached import CachedRateProvider

logger = logging.getLogger(__name__)

# Validity of the primary source outlives its refresh rate by this much
PRIMARY_VALIDITY_MARGIN = timedelta(minutes=1)
# 15 minutes, the refresh limit of free-tier aggregator plans
DEFAULT_CACHE_SPAN = timedelta(minutes=15)


class RateProviderRegistry:
    """Name -> provider mapping shared by every request.

    Populated once at startup. ``invalidate_all`` swaps the shared cache
    store and refresh policies in place; the set of names never changes
    after setup.
    """

    def __init__(
        self,
        cache_span: timedelta = DEFAULT_CACHE_SPAN,
        cache_factory: Callable[[], RateCacheStore] = MemoryRateCache,
        primary_source: str | None = None,
        clock: Callable[[], float] = time.time,
    ):
        if cache_span <= timedelta(0):
            raise InvalidCacheSpanError(f"Cache span must be positive, got {cache_span}")
        self._cache_span = cache_span
        self._cache_factory = cache_factory
        self._cache_store = cache_factory()
        self.primary_source = primary_source
        self._clock = clock
        self._providers: dict[str, RateProvider] = {}
        self._exchanges: dict[str, SupportedExchange] = {}
        self._lock = RLock()

    @property
    def cache_store(self) -> RateCacheStore:
        return self._cache_store

    @property
    def cache_span(self) -> timedelta:
        return self._cache_span

    @cache_span.setter
    def cache_span(self, value: timedelta) -> None:
        self.invalidate_all(value)

    def register(
        self, name: str, provider: RateProvider, exchange: SupportedExchange | None = None
    ) -> RateProvider:
        with self._lock:
            if name in self._providers:
                logger.debug(f"Replacing provider registered as {name}")
            self._providers[name] = provider
            self._exchanges[name] = exchange or self._exchanges.get(name) or SupportedExchange(name, name)
        return provider

    def add_cached(
        self, name: str, inner: RateProvider, exchange: SupportedExchange | None = None
    ) -> CachedRateProvider:
        with self._lock:
            provider = CachedRateProvider(
                name, inner, self._cache_store, self._cache_span, clock=self._clock
            )
            self.register(name, provider, exchange)
        return provider

    def add_background(
        self,
        name: str,
        inner: RateProvider,
        refresh_rate: timedelta,
        validity_time: timedelta,
        exchange: SupportedExchange | None = None,
    ) -> BackgroundFetcherRateProvider:
        provider = BackgroundFetcherRateProvider(
            name, inner, refresh_rate, validity_time, clock=self._clock
        )
        return self.register(name, provider, exchange)

    def get(self, name: str) -> RateProvider | None:
        with self._lock:
            return self._providers.get(name)

    def names(self) -> list[str]:
        with self._lock:
            return list(self._providers)

    def supported_exchanges(self) -> list[SupportedExchange]:
        with self._lock:
            return list(self._exchanges.values())

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._providers

    def __len__(self) -> int:
        with self._lock:
            return len(self._providers)

    def primary_refresh_policy(self, cache_span: timedelta | None = None) -> tuple[timedelta, timedelta]:
        span = cache_span if cache_span is not None else self._cache_span
        return span, span + PRIMARY_VALIDITY_MARGIN

    def invalidate_all(self, new_cache_span: timedelta | None = None) -> None:
        """Discard every cached rate and apply ``new_cache_span``.

        Cached providers get a brand new shared store. The background
        provider of the primary source follows the span.
        """
        span = new_cache_span if new_cache_span is not None else self._cache_span
        if span <= timedelta(0):
            raise InvalidCacheSpanError(f"Cache span must be positive, got {span}")

        with self._lock:
            store = self._cache_factory()
            self._cache_store = store
            self._cache_span = span
            for provider in self._providers.values():
                if isinstance(provider, CachedRateProvider):
                    provider.cache_store = store
                    provider.cache_span = span

            primary = self._providers.get(self.primary_source) if self.primary_source else None
            if isinstance(primary, BackgroundFetcherRateProvider):
                primary.set_refresh_policy(*self.primary_refresh_policy(span))
                primary.invalidate_cache()

        logger.info(f"Rate caches invalidated, cache span is now {span}")

    def background_providers(self) -> list[BackgroundFetcherRateProvider]:
        with self._lock:
            return [p for p in self._providers.values() if isinstance(p, BackgroundFetcherRateProvider)]

    def start(self) -> None:
        for provider in self.background_providers():
            provider.start()

    async def aclose(self) -> None:
        await asyncio.gather(*(p.aclose() for p in self.background_providers()))
        await self._cache_store.close()
