from decimal import Decimal

from pydantic import BaseModel, Field

from domain.models.rates import QueryRateResult, SupportedExchange


class RateResponse(BaseModel):
	pair: str = Field(..., description='Currency pair, e.g. BTC_USD')
	rate: Decimal = Field(..., description='Rate quoted by the exchange')


class ExchangeErrorResponse(BaseModel):
	exchange: str = Field(..., description='Exchange that failed')
	type: str = Field(..., description='Error class name')
	message: str = Field(..., description='Error message')


class QueryRatesResponse(BaseModel):
	exchange: str = Field(..., description='Exchange queried')
	latency_ms: float = Field(..., description='Time spent answering the query')
	rates: list[RateResponse] = Field(default_factory=list)
	error: ExchangeErrorResponse | None = None

	class ConfigDict:
		json_schema_extra = {
			'example': {
				'exchange': 'kraken',
				'latency_ms': 0.02,
				'rates': [{'pair': 'BTC_USD', 'rate': 50000}],
				'error': None,
			}
		}

	@classmethod
	def from_result(cls, exchange: str, result: QueryRateResult) -> 'QueryRatesResponse':
		error = None
		if result.error is not None:
			error = ExchangeErrorResponse(
				exchange=result.error.exchange_name,
				type=type(result.error.exception).__name__,
				message=result.error.message,
			)
		return cls(
			exchange=exchange,
			latency_ms=result.latency.total_seconds() * 1000,
			rates=[RateResponse(pair=str(r.pair), rate=r.rate) for r in result.exchange_rates],
			error=error,
		)


class ExchangeResponse(BaseModel):
	name: str
	display_name: str
	url: str | None = None

	@classmethod
	def from_exchange(cls, exchange: SupportedExchange) -> 'ExchangeResponse':
		return cls(name=exchange.name, display_name=exchange.display_name, url=exchange.url)


class SupportedExchangesResponse(BaseModel):
	exchanges: list[ExchangeResponse] = Field(description='Registered exchanges')


class CacheSpanResponse(BaseModel):
	seconds: float = Field(..., description='Cache span now in effect')
