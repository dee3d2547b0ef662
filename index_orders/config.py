import os
from dotenv import load_dotenv
from dataclasses import dataclass
from functools import lru_cache

load_dotenv()


def _bool(s: str | None) -> bool:
    return str(s or "").strip().lower() in ("1", "true", "yes", "y", "on")


@dataclass
class Settings:
    # chain / signing
    RPC_URL: str
    CHAIN_ID: int
    PRIVATE_KEY: str  # hex 0x..., empty when running read-only

    # contracts
    LIMIT_ORDER_PROTOCOL: str
    INDEX_ORACLE_ADDRESS: str

    # third-party APIs
    ONEINCH_API_KEY: str
    ALPHAVANTAGE_API_KEY: str
    ONEINCH_API_BASE: str = "https://api.1inch.dev"
    ALPHAVANTAGE_BASE_URL: str = "https://www.alphavantage.co/query"
    HTTP_TIMEOUT_SEC: float = 30.0

    # storage ("file" simulates a DB under DATA_ROOT, "mongo" uses MONGODB_URI)
    ORDER_STORE: str = "file"
    DATA_ROOT: str = "data"
    MONGODB_URI: str = "mongodb://localhost:27017"
    MONGODB_DB_NAME: str = "index_orders"

    # orders
    ORDER_EXPIRATION_SEC: int = 86_400

    # monitor
    MONITOR_ENABLED: bool = False
    MONITOR_INTERVAL_SEC: int = 30
    TELEGRAM_BOT_TOKEN: str = ""
    TELEGRAM_CHAT_ID: str = ""

    # generic
    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"


@lru_cache()
def get_settings() -> Settings:
    return Settings(
        RPC_URL=os.getenv("RPC_URL", "https://base.llamarpc.com"),
        CHAIN_ID=int(os.getenv("CHAIN_ID", 8453)),
        PRIVATE_KEY=os.environ.get("PRIVATE_KEY", ""),  # keep empty when missing

        LIMIT_ORDER_PROTOCOL=os.getenv("LIMIT_ORDER_PROTOCOL", "0x111111125421cA6dc452d289314280a0f8842A65"),
        INDEX_ORACLE_ADDRESS=os.getenv("INDEX_ORACLE_ADDRESS", "0x55aAfa1D3de3D05536C96Ee9F1b965D6cE04a4c1"),

        ONEINCH_API_KEY=os.environ.get("ONEINCH_API_KEY", ""),
        ALPHAVANTAGE_API_KEY=os.environ.get("ALPHAVANTAGE_API_KEY", ""),
        ONEINCH_API_BASE=os.getenv("ONEINCH_API_BASE", "https://api.1inch.dev"),
        ALPHAVANTAGE_BASE_URL=os.getenv("ALPHAVANTAGE_BASE_URL", "https://www.alphavantage.co/query"),
        HTTP_TIMEOUT_SEC=float(os.getenv("HTTP_TIMEOUT_SEC", 30)),

        ORDER_STORE=os.getenv("ORDER_STORE", "file").lower(),
        DATA_ROOT=os.getenv("DATA_ROOT", "data"),
        MONGODB_URI=os.getenv("MONGODB_URI", "mongodb://localhost:27017"),
        MONGODB_DB_NAME=os.getenv("MONGODB_DB_NAME", "index_orders"),

        ORDER_EXPIRATION_SEC=int(os.getenv("ORDER_EXPIRATION_SEC", 86_400)),

        MONITOR_ENABLED=_bool(os.getenv("MONITOR_ENABLED")),
        MONITOR_INTERVAL_SEC=int(os.getenv("MONITOR_INTERVAL_SEC", 30)),
        TELEGRAM_BOT_TOKEN=os.environ.get("TELEGRAM_BOT_TOKEN", ""),
        TELEGRAM_CHAT_ID=os.environ.get("TELEGRAM_CHAT_ID", ""),

        ENV=os.getenv("ENV", "dev"),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
