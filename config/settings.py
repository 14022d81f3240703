from functools import lru_cache
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
	# Cache span of on-demand providers, also drives the primary source refresh
	CACHE_SPAN_SECONDS: float = 15 * 60

	BACKGROUND_REFRESH_SECONDS: float = 60
	BACKGROUND_VALIDITY_SECONDS: float = 5 * 60

	PRIMARY_SOURCE: str = 'coinaverage'

	CACHE_BACKEND: Literal['memory', 'redis'] = 'memory'
	REDIS_URL: str = 'redis://localhost:6379'

	QUERY_TIMEOUT_SECONDS: float | None = None

	# Application
	APP_NAME: str = 'Rate Provider Service'
	DEBUG: bool = False
	LOG_LEVEL: str = 'INFO'
	LOG_JSON: bool = False

	model_config = SettingsConfigDict(env_file='.env', case_sensitive=False, extra='ignore')

	@model_validator(mode='after')
	def check_refresh_policy(self) -> 'Settings':
		if self.CACHE_SPAN_SECONDS <= 0:
			raise ValueError('CACHE_SPAN_SECONDS must be positive')
		if self.BACKGROUND_REFRESH_SECONDS <= 0:
			raise ValueError('BACKGROUND_REFRESH_SECONDS must be positive')
		if self.BACKGROUND_REFRESH_SECONDS >= self.BACKGROUND_VALIDITY_SECONDS:
			raise ValueError('BACKGROUND_REFRESH_SECONDS must be lower than BACKGROUND_VALIDITY_SECONDS')
		return self


@lru_cache
def get_settings() -> Settings:
	return Settings()
