import logging
from collections.abc import Iterable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from api.dependencies import cleanup_dependencies, init_dependencies, start_background_refresh
from api.error_handlers import register_exception_handlers
from api.routes import rates
from application.services import ProviderConfig
from config.logging_config import configure_logging
from config.settings import get_settings

logger = logging.getLogger(__name__)


def create_app(provider_configs: Iterable[ProviderConfig] = ()) -> FastAPI:
	"""Build the service around the rate sources supplied by the embedding application"""
	settings = get_settings()
	configure_logging(settings.LOG_LEVEL, settings.LOG_JSON)
	provider_configs = list(provider_configs)

	@asynccontextmanager
	async def lifespan(app: FastAPI):
		logger.info(f'Starting {settings.APP_NAME}...')

		init_dependencies(provider_configs)
		start_background_refresh()

		logger.info('Application ready')

		yield

		logger.info('Shutting down...')
		await cleanup_dependencies()

	app = FastAPI(title=settings.APP_NAME, debug=settings.DEBUG, lifespan=lifespan)

	@app.exception_handler(Exception)
	async def global_exception_handler(request: Request, exc: Exception):
		logger.error(f'Unhandled exception: {exc}', exc_info=True)
		return JSONResponse(status_code=500, content={'detail': 'Internal server error'})

	app.include_router(rates.router)
	register_exception_handlers(app)
	return app
