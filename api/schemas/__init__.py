from .requests import CacheSpanRequest
from .responses import (
	CacheSpanResponse,
	ExchangeErrorResponse,
	ExchangeResponse,
	QueryRatesResponse,
	RateResponse,
	SupportedExchangesResponse,
)

__all__ = [
	'CacheSpanRequest',
	'CacheSpanResponse',
	'ExchangeErrorResponse',
	'ExchangeResponse',
	'QueryRatesResponse',
	'RateResponse',
	'SupportedExchangesResponse',
]
