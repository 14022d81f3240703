from threading import Lock

from domain.models.rates import CacheEntry


class MemoryRateCache:
    """In-process store of the latest rates per exchange name"""

    def __init__(self):
        self._entries: dict[str, CacheEntry] = {}
        self._lock = Lock()

    async def get(self, exchange_name: str) -> CacheEntry | None:
        with self._lock:
            return self._entries.get(exchange_name)

    async def set(self, exchange_name: str, entry: CacheEntry, ttl_seconds: float) -> None:
        # Expiry is decided by the reader against its own span.
        with self._lock:
            self._entries[exchange_name] = entry

    async def close(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
