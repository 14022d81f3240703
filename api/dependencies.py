import logging
from collections.abc import Iterable

from redis.asyncio import Redis

from application.services import ProviderConfig, QueryExecutor, RateService, build_registry
from config.settings import get_settings
from infrastructure.providers import RateProviderRegistry

logger = logging.getLogger(__name__)


class AppDependencies:
	"""Container for application-wide singleton dependencies."""

	redis_client: Redis | None = None
	registry: RateProviderRegistry | None = None
	rate_service: RateService | None = None


deps = AppDependencies()


def init_dependencies(provider_configs: Iterable[ProviderConfig]) -> None:
	"""Initialize all singleton dependencies. Called at app startup."""
	logger.info('Initializing dependencies...')
	settings = get_settings()

	if settings.CACHE_BACKEND == 'redis':
		deps.redis_client = Redis.from_url(settings.REDIS_URL, decode_responses=True)

	deps.registry = build_registry(provider_configs, settings, redis_client=deps.redis_client)
	deps.rate_service = RateService(
		registry=deps.registry,
		executor=QueryExecutor(timeout=settings.QUERY_TIMEOUT_SECONDS),
	)
	logger.info('Dependencies initialized')


def start_background_refresh() -> None:
	if deps.registry is None:
		raise RuntimeError('Dependencies not initialized. Call init_dependencies() first.')
	deps.registry.start()
	logger.info(f'Background refresh started for {len(deps.registry.background_providers())} exchanges')


async def cleanup_dependencies() -> None:
	logger.info('Cleaning up dependencies...')

	if deps.registry:
		await deps.registry.aclose()
	if deps.redis_client:
		await deps.redis_client.aclose()

	deps.registry = None
	deps.rate_service = None
	deps.redis_client = None
	logger.info('Cleanup complete')


def get_rate_service() -> RateService:
	if deps.rate_service is None:
		raise RuntimeError('Rate service not initialized')
	return deps.rate_service
