"""
FastAPI dependencies: services are wired per request from Settings, long-lived
state (order store, monitor, market cache) comes from app.state.
"""
from fastapi import Depends, HTTPException, Request
from web3 import Web3

from ..adapters.external.alphavantage_client import AlphaVantageClient
from ..adapters.external.oneinch_client import OneInchClient
from ..adapters.index_oracle import IndexOracleAdapter
from ..adapters.limit_order_protocol import LimitOrderProtocolAdapter
from ..config import Settings, get_settings
from ..repositories.order_repository import OrderRepository
from ..services.classic_swap import ClassicSwapService
from ..services.exceptions import (
    CancellationError,
    ConfigurationError,
    FusionOrderError,
    MarketDataError,
    OrderNotFoundError,
    OrderValidationError,
    TransactionBudgetExceededError,
    TransactionRevertedError,
    UnknownTokenError,
    UpstreamApiError,
)
from ..services.fusion import FusionOrderBuilder, FusionService
from ..services.market_cache import CachedMarketData, MarketDataCache
from ..services.oracle_manager import OracleManager
from ..services.order_builder import IndexOrderBuilder
from ..services.order_cancellation import OrderCancellationService
from ..services.order_creator import OrderCreationService
from ..services.order_manager import OrderManager
from ..services.order_monitor import OrderMonitor

# exceptions routes translate with http_error()
DOMAIN_ERRORS = (
    ConfigurationError,
    OrderValidationError,
    UnknownTokenError,
    OrderNotFoundError,
    UpstreamApiError,
    CancellationError,
    MarketDataError,
    FusionOrderError,
    TransactionRevertedError,
    TransactionBudgetExceededError,
)

_CANCEL_STATUS = {
    CancellationError.ORDER_NOT_FOUND: 404,
    CancellationError.NOT_ORDER_MAKER: 403,
    CancellationError.TRANSACTION_REVERTED: 502,
    CancellationError.UNKNOWN_ERROR: 500,
}


def http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, ConfigurationError):
        return HTTPException(status_code=500, detail=str(exc))
    if isinstance(exc, OrderValidationError):
        return HTTPException(status_code=400, detail={"errors": exc.errors})
    if isinstance(exc, UnknownTokenError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, OrderNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, CancellationError):
        return HTTPException(
            status_code=_CANCEL_STATUS.get(exc.code, 500),
            detail={"code": exc.code, "error": exc.msg, "transactionHash": exc.tx_hash},
        )
    if isinstance(exc, UpstreamApiError):
        return HTTPException(status_code=502, detail={"error": str(exc), "upstreamStatus": exc.status_code,
                                                      "upstreamBody": exc.body})
    if isinstance(exc, MarketDataError):
        return HTTPException(status_code=502, detail={"error": exc.msg, "function": exc.function})
    if isinstance(exc, FusionOrderError):
        return HTTPException(status_code=400 if exc.stage == "build" else 502,
                             detail={"stage": exc.stage, "error": exc.msg})
    if isinstance(exc, TransactionRevertedError):
        return HTTPException(status_code=502, detail={"error": exc.msg, "tx_hash": exc.tx_hash})
    if isinstance(exc, TransactionBudgetExceededError):
        return HTTPException(status_code=400, detail={"error": str(exc), "usd_estimated": exc.usd_estimated,
                                                      "usd_budget": exc.usd_budget})
    return HTTPException(status_code=500, detail=str(exc))


# ---------- chain / http clients ----------

def get_web3(s: Settings = Depends(get_settings)) -> Web3:
    return Web3(Web3.HTTPProvider(s.RPC_URL))


def get_oneinch_client(s: Settings = Depends(get_settings)) -> OneInchClient:
    return OneInchClient(s.ONEINCH_API_KEY, chain_id=s.CHAIN_ID, base_url=s.ONEINCH_API_BASE,
                         timeout_sec=s.HTTP_TIMEOUT_SEC)


def get_alphavantage_client(s: Settings = Depends(get_settings)) -> AlphaVantageClient:
    return AlphaVantageClient(s.ALPHAVANTAGE_API_KEY, base_url=s.ALPHAVANTAGE_BASE_URL, timeout_sec=s.HTTP_TIMEOUT_SEC)


def get_oracle_adapter(w3: Web3 = Depends(get_web3), s: Settings = Depends(get_settings)) -> IndexOracleAdapter:
    return IndexOracleAdapter(w3, s.INDEX_ORACLE_ADDRESS)


def get_protocol_adapter(w3: Web3 = Depends(get_web3), s: Settings = Depends(get_settings)) -> LimitOrderProtocolAdapter:
    return LimitOrderProtocolAdapter(w3, s.LIMIT_ORDER_PROTOCOL)


# ---------- app.state ----------

def get_order_repo(request: Request) -> OrderRepository:
    repo = getattr(request.app.state, "order_repo", None)
    if repo is None:
        raise RuntimeError("Order store is not initialized in app.state.order_repo")
    return repo


def get_monitor(request: Request) -> OrderMonitor:
    monitor = getattr(request.app.state, "monitor", None)
    if monitor is None:
        raise RuntimeError("Order monitor is not initialized in app.state.monitor")
    return monitor


def get_market_cache(request: Request) -> MarketDataCache:
    cache = getattr(request.app.state, "market_cache", None)
    if cache is None:
        raise RuntimeError("Market cache is not initialized in app.state.market_cache")
    return cache


# ---------- services ----------

def get_order_creator(
    repo: OrderRepository = Depends(get_order_repo),
    client: OneInchClient = Depends(get_oneinch_client),
    s: Settings = Depends(get_settings),
) -> OrderCreationService:
    builder = IndexOrderBuilder(s.INDEX_ORACLE_ADDRESS, s.ORDER_EXPIRATION_SEC)
    return OrderCreationService(repo, client, builder, s.CHAIN_ID, s.LIMIT_ORDER_PROTOCOL)


def get_order_manager(
    client: OneInchClient = Depends(get_oneinch_client),
    s: Settings = Depends(get_settings),
) -> OrderManager:
    return OrderManager(client, s.INDEX_ORACLE_ADDRESS)


def get_cancellation_service(
    orders: OrderManager = Depends(get_order_manager),
    protocol: LimitOrderProtocolAdapter = Depends(get_protocol_adapter),
) -> OrderCancellationService:
    return OrderCancellationService(orders, protocol)


def get_oracle_manager(
    oracle: IndexOracleAdapter = Depends(get_oracle_adapter),
    s: Settings = Depends(get_settings),
) -> OracleManager:
    return OracleManager(oracle, s.CHAIN_ID)


def get_swap_service(client: OneInchClient = Depends(get_oneinch_client)) -> ClassicSwapService:
    return ClassicSwapService(client)


def get_fusion_service(
    client: OneInchClient = Depends(get_oneinch_client),
    s: Settings = Depends(get_settings),
) -> FusionService:
    return FusionService(client, FusionOrderBuilder(s.CHAIN_ID, s.LIMIT_ORDER_PROTOCOL))


def get_market_data(
    client: AlphaVantageClient = Depends(get_alphavantage_client),
    cache: MarketDataCache = Depends(get_market_cache),
) -> CachedMarketData:
    return CachedMarketData(client, cache)
