from .provider_setup import ProviderConfig, ProviderMode, build_registry
from .query_executor import QueryExecutor
from .rate_service import RateService

__all__ = ['ProviderConfig', 'ProviderMode', 'QueryExecutor', 'RateService', 'build_registry']
