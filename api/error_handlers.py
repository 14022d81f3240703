import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from domain.exceptions.rates import ConfigurationError, InvalidCacheSpanError

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
	@app.exception_handler(InvalidCacheSpanError)
	async def invalid_cache_span_handler(request: Request, exc: InvalidCacheSpanError):
		return JSONResponse(status_code=400, content={'detail': str(exc)})

	@app.exception_handler(ConfigurationError)
	async def configuration_error_handler(request: Request, exc: ConfigurationError):
		logger.error(f'Configuration error: {exc}')
		return JSONResponse(status_code=500, content={'detail': 'Rate service misconfigured'})
