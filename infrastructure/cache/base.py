from typing import Protocol

from domain.models.rates import CacheEntry


class RateCacheStore(Protocol):
    async def get(self, exchange_name: str) -> CacheEntry | None:
        ...

    async def set(self, exchange_name: str, entry: CacheEntry, ttl_seconds: float) -> None:
        ...

    async def close(self) -> None:
        ...
