from .base import RateCacheStore
from .memory_cache import MemoryRateCache
from .redis_cache import RedisRateCache

__all__ = ['MemoryRateCache', 'RateCacheStore', 'RedisRateCache']
