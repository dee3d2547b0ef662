from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..adapters.external.alphavantage_client import AlphaVantageClient
from ..domain.enums import TimeSeriesKind
from ..services.market_cache import CachedMarketData, MarketDataCache
from .deps import DOMAIN_ERRORS, get_alphavantage_client, get_market_cache, get_market_data, http_error

router = APIRouter(prefix="/market", tags=["market"])


@router.get("/series/{symbol}")
async def series(
    symbol: str,
    kind: TimeSeriesKind = Query(TimeSeriesKind.DAILY),
    interval: Optional[str] = Query(None, examples=["5min", "60min"]),
    svc: CachedMarketData = Depends(get_market_data),
):
    try:
        return await svc.time_series(symbol, kind, interval)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc


@router.get("/quote/{symbol}")
async def quote(symbol: str, svc: CachedMarketData = Depends(get_market_data)):
    try:
        return await svc.global_quote(symbol)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc


@router.get("/search")
async def search(keywords: str = Query(..., min_length=1), client: AlphaVantageClient = Depends(get_alphavantage_client)):
    try:
        return await client.symbol_search(keywords)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc


@router.get("/indicator/{function}/{symbol}")
async def indicator(
    function: str,
    symbol: str,
    interval: str = Query("daily"),
    time_period: int = Query(14, ge=1),
    series_type: str = Query("close"),
    svc: CachedMarketData = Depends(get_market_data),
):
    try:
        return await svc.technical_indicator(function, symbol, interval, time_period, series_type)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc


@router.get("/cache/stats")
def cache_stats(cache: MarketDataCache = Depends(get_market_cache)):
    return cache.stats()


@router.post("/cache/cleanup")
def cache_cleanup(cache: MarketDataCache = Depends(get_market_cache)):
    return {"removed": cache.cleanup()}
