from .background import BackgroundFetcherRateProvider
from .base import NULL_PROVIDER, NullRateProvider, RateProvider
from .cached import CachedRateProvider
from .registry import RateProviderRegistry

__all__ = [
    'BackgroundFetcherRateProvider',
    'CachedRateProvider',
    'NULL_PROVIDER',
    'NullRateProvider',
    'RateProvider',
    'RateProviderRegistry',
]
