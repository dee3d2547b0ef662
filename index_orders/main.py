import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from motor.motor_asyncio import AsyncIOMotorClient
from web3 import Web3

from .adapters.external.oneinch_client import OneInchClient
from .adapters.external.telegram_client import TelegramNotifier
from .adapters.index_oracle import IndexOracleAdapter
from .config import Settings, get_settings
from .repositories.order_repository_file import OrderRepositoryFile
from .repositories.order_repository_mongodb import OrderRepositoryMongoDB
from .routes import fusion, market, monitor, oracle, orders, swap
from .services.market_cache import MarketDataCache
from .services.order_manager import OrderManager
from .services.order_monitor import OrderMonitor
from .workers.monitor_supervisor import MonitorSupervisor


def _setup_logging(level: str):
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def build_monitor(s: Settings) -> OrderMonitor:
    w3 = Web3(Web3.HTTPProvider(s.RPC_URL))
    client = OneInchClient(s.ONEINCH_API_KEY, chain_id=s.CHAIN_ID, base_url=s.ONEINCH_API_BASE,
                           timeout_sec=s.HTTP_TIMEOUT_SEC)
    return OrderMonitor(
        oracle=IndexOracleAdapter(w3, s.INDEX_ORACLE_ADDRESS),
        orders=OrderManager(client, s.INDEX_ORACLE_ADDRESS),
        notifier=TelegramNotifier(s.TELEGRAM_BOT_TOKEN, s.TELEGRAM_CHAT_ID),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Open the order store, wire the monitor and (optionally) start its loop.
    """
    s = get_settings()
    _setup_logging(s.LOG_LEVEL)
    log = logging.getLogger(__name__)
    log.info("Starting index-orders (env=%s, chain=%s, store=%s)", s.ENV, s.CHAIN_ID, s.ORDER_STORE)

    mongo_client = None
    if s.ORDER_STORE == "mongo":
        mongo_client = AsyncIOMotorClient(s.MONGODB_URI)
        app.state.db = mongo_client[s.MONGODB_DB_NAME]
        repo = OrderRepositoryMongoDB(app.state.db)
    else:
        repo = OrderRepositoryFile(s.DATA_ROOT)
    await repo.ensure_indexes()
    app.state.order_repo = repo

    app.state.market_cache = MarketDataCache(s.DATA_ROOT)
    app.state.monitor = build_monitor(s)

    supervisor = None
    if s.MONITOR_ENABLED:
        supervisor = MonitorSupervisor(app.state.monitor, s.MONITOR_INTERVAL_SEC)
        await supervisor.start()

    try:
        yield
    finally:
        log.info("Shutting down index-orders...")
        if supervisor:
            await supervisor.stop()
        if mongo_client:
            mongo_client.close()


app = FastAPI(title="index-orders", version="0.1.0", lifespan=lifespan)
app.include_router(orders.router, prefix="/api")
app.include_router(oracle.router, prefix="/api")
app.include_router(swap.router, prefix="/api")
app.include_router(fusion.router, prefix="/api")
app.include_router(market.router, prefix="/api")
app.include_router(monitor.router, prefix="/api")


@app.get("/healthz")
async def healthz():
    """
    Liveness probe endpoint.
    """
    return {"status": "ok"}
