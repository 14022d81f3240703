import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum

from redis.asyncio import Redis

from config.settings import Settings
from domain.exceptions.rates import ConfigurationError
from domain.models.rates import SupportedExchange
from infrastructure.cache.base import RateCacheStore
from infrastructure.cache.memory_cache import MemoryRateCache
from infrastructure.cache.redis_cache import RedisRateCache
from infrastructure.providers.base import RateProvider
from infrastructure.providers.registry import RateProviderRegistry

logger = logging.getLogger(__name__)


class ProviderMode(Enum):
    BACKGROUND = "background"
    CACHED = "cached"
    DIRECT = "direct"


@dataclass(frozen=True)
class ProviderConfig:
    """How one rate source is exposed by the registry"""
    name: str
    provider: RateProvider
    mode: ProviderMode = ProviderMode.BACKGROUND
    refresh_rate: timedelta | None = None
    validity_time: timedelta | None = None
    display_name: str | None = None
    url: str | None = None

    @property
    def exchange(self) -> SupportedExchange:
        return SupportedExchange(self.name, self.display_name or self.name, self.url)


def make_cache_factory(
    settings: Settings, redis_client: Redis | None = None
) -> Callable[[], RateCacheStore]:
    if settings.CACHE_BACKEND == "memory":
        return MemoryRateCache
    if redis_client is None:
        raise ConfigurationError("CACHE_BACKEND is 'redis' but no Redis client was provided")
    return lambda: RedisRateCache(redis_client)


def build_registry(
    configs: Iterable[ProviderConfig],
    settings: Settings,
    redis_client: Redis | None = None,
    clock: Callable[[], float] | None = None,
) -> RateProviderRegistry:
    """Assemble the registry once at startup. Any misconfiguration is fatal."""
    registry_kwargs = {"clock": clock} if clock is not None else {}
    registry = RateProviderRegistry(
        cache_span=timedelta(seconds=settings.CACHE_SPAN_SECONDS),
        cache_factory=make_cache_factory(settings, redis_client),
        primary_source=settings.PRIMARY_SOURCE,
        **registry_kwargs,
    )
    default_refresh = timedelta(seconds=settings.BACKGROUND_REFRESH_SECONDS)
    default_validity = timedelta(seconds=settings.BACKGROUND_VALIDITY_SECONDS)

    seen: set[str] = set()
    for config in configs:
        if config.name in seen:
            raise ConfigurationError(f"Exchange {config.name} is configured twice")
        seen.add(config.name)

        if config.mode is ProviderMode.BACKGROUND:
            if config.name == registry.primary_source:
                refresh_rate, validity_time = registry.primary_refresh_policy()
            else:
                refresh_rate = config.refresh_rate or default_refresh
                validity_time = config.validity_time or default_validity
            registry.add_background(
                config.name, config.provider, refresh_rate, validity_time, config.exchange
            )
        elif config.mode is ProviderMode.CACHED:
            registry.add_cached(config.name, config.provider, config.exchange)
        else:
            registry.register(config.name, config.provider, config.exchange)

    logger.info(f"Rate provider registry built with {len(registry)} exchanges")
    return registry
