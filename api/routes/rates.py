from datetime import timedelta
from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query, status

from api.dependencies import get_rate_service
from api.schemas import (
	CacheSpanRequest,
	CacheSpanResponse,
	ExchangeResponse,
	QueryRatesResponse,
	SupportedExchangesResponse,
)
from application.services import RateService

router = APIRouter(prefix='/api', tags=['rates'])


@router.get(
	'/rates',
	response_model=list[QueryRatesResponse],
	status_code=status.HTTP_200_OK,
	summary='Query every registered exchange',
)
async def query_all_rates(
	service: Annotated[RateService, Depends(get_rate_service)],
) -> list[QueryRatesResponse]:
	results = await service.query_all()
	return [QueryRatesResponse.from_result(name, result) for name, result in results.items()]


@router.get(
	'/rates/{exchange}',
	response_model=QueryRatesResponse,
	status_code=status.HTTP_200_OK,
	summary='Query the current rates of one exchange',
)
async def query_rates(
	exchange: Annotated[str, Path(min_length=1, max_length=64)],
	service: Annotated[RateService, Depends(get_rate_service)],
	timeout: Annotated[float | None, Query(gt=0, description='Seconds to wait for the exchange')] = None,
) -> QueryRatesResponse:
	result = await service.query_rates(exchange, timeout=timeout)
	return QueryRatesResponse.from_result(exchange, result)


@router.get(
	'/exchanges',
	response_model=SupportedExchangesResponse,
	status_code=status.HTTP_200_OK,
	summary='List registered exchanges',
)
async def get_supported_exchanges(
	service: Annotated[RateService, Depends(get_rate_service)],
) -> SupportedExchangesResponse:
	exchanges = [ExchangeResponse.from_exchange(e) for e in service.supported_exchanges()]
	return SupportedExchangesResponse(exchanges=exchanges)


@router.put(
	'/cache-span',
	response_model=CacheSpanResponse,
	status_code=status.HTTP_200_OK,
	summary='Change the cache span and drop every cached rate',
)
async def set_cache_span(
	request: CacheSpanRequest,
	service: Annotated[RateService, Depends(get_rate_service)],
) -> CacheSpanResponse:
	service.set_cache_span(timedelta(seconds=request.seconds))
	return CacheSpanResponse(seconds=service.cache_span.total_seconds())
