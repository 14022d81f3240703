import asyncio
import logging
import time
from collections.abc import Callable
from datetime import timedelta

from domain.models.rates import CacheEntry, ExchangeRates
from infrastructure.cache.base import RateCacheStore
from infrastructure.providers.base import RateProvider

logger = logging.getLogger(__name__)


class CachedRateProvider:
    """Serves the last fetched rates until they are older than ``cache_span``.

    A miss fetches through the wrapped provider on the calling coroutine and
    lets its errors propagate. The store is shared between all cached
    providers and keyed by exchange name, so the registry can swap it for
    all of them at once.
    """

    def __init__(
        self,
        exchange_name: str,
        inner: RateProvider,
        cache_store: RateCacheStore,
        cache_span: timedelta,
        clock: Callable[[], float] = time.time,
    ):
        self.exchange_name = exchange_name
        self.inner = inner
        self.cache_store = cache_store
        self.cache_span = cache_span
        self._clock = clock
        self._fetch_lock = asyncio.Lock()

    async def get_rates(self) -> ExchangeRates:
        cached = await self._get_fresh_entry(self.cache_store)
        if cached is not None:
            return cached.rates

        async with self._fetch_lock:
            # Re-read the current store: it may have been swapped or filled meanwhile
            store = self.cache_store
            cached = await self._get_fresh_entry(store)
            if cached is not None:
                return cached.rates

            rates = await self.inner.get_rates()
            entry = CacheEntry(rates=rates, fetched_at=self._clock())
            await store.set(self.exchange_name, entry, self.cache_span.total_seconds())
            logger.debug(f"Cached {len(rates)} rates for {self.exchange_name}")
            return rates

    async def _get_fresh_entry(self, store: RateCacheStore) -> CacheEntry | None:
        entry = await store.get(self.exchange_name)
        if entry is None:
            return None
        if entry.age(self._clock()) < self.cache_span.total_seconds():
            return entry
        return None

    def __repr__(self):
        return f"<CachedRateProvider(exchange={self.exchange_name}, span={self.cache_span})>"
