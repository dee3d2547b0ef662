"""
Shared fixtures and fakes. Nothing here touches the network or a chain.
"""
import json
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest
from eth_account import Account
from web3 import Web3

from index_orders.adapters.external.oneinch_client import OneInchClient
from index_orders.config import Settings
from index_orders.repositories.order_repository import OrderRepository

CHAIN_ID = 8453
PROTOCOL = Web3.to_checksum_address("0x111111125421cA6dc452d289314280a0f8842A65")
ORACLE = Web3.to_checksum_address("0x55aafa1d3de3d05536c96ee9f1b965d6ce04a4c1")
SETTLEMENT = Web3.to_checksum_address("0xfb2809a5314473e1165f6b58018e20ed8f07b840")

USDC = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"
WETH = "0x4200000000000000000000000000000000000006"

MAKER_KEY = "0x" + "11" * 32
OTHER_KEY = "0x" + "22" * 32


@pytest.fixture
def maker():
    return Account.from_key(MAKER_KEY)


@pytest.fixture
def other_account():
    return Account.from_key(OTHER_KEY)


# ---------- 1inch http ----------

class Recorder:
    """Captures requests seen by a MockTransport handler."""

    def __init__(self):
        self.requests: List[httpx.Request] = []

    def json_body(self, i: int = -1) -> Any:
        return json.loads(self.requests[i].content)


def make_oneinch_client(
    handler: Callable[[httpx.Request], httpx.Response],
    recorder: Optional[Recorder] = None,
    api_key: str = "test-key",
) -> OneInchClient:
    def _wrapped(request: httpx.Request) -> httpx.Response:
        if recorder is not None:
            recorder.requests.append(request)
        return handler(request)

    return OneInchClient(api_key, chain_id=CHAIN_ID, base_url="https://api.1inch.test",
                         transport=httpx.MockTransport(_wrapped))


# ---------- storage ----------

class InMemoryOrderRepository(OrderRepository):
    def __init__(self):
        self.docs: Dict[str, Dict] = {}

    async def ensure_indexes(self) -> None:
        return None

    async def upsert(self, doc: Dict) -> Dict:
        cur = self.docs.get(doc["order_id"], {})
        cur.update(doc)
        if cur.get("maker"):
            cur["maker"] = cur["maker"].lower()
        self.docs[doc["order_id"]] = cur
        return cur

    async def get(self, order_id: str) -> Optional[Dict]:
        return self.docs.get(order_id)

    async def get_by_hash(self, order_hash: str) -> Optional[Dict]:
        for d in self.docs.values():
            if d.get("order_hash", "").lower() == order_hash.lower():
                return d
        return None

    async def list_by_maker(self, maker: str, limit: int = 100) -> List[Dict]:
        return [d for d in self.docs.values() if d.get("maker") == maker.lower()][:limit]

    async def update_status(self, order_id: str, status: str, extra: Optional[Dict] = None) -> Optional[Dict]:
        cur = self.docs.get(order_id)
        if cur is None:
            return None
        cur.update(extra or {})
        cur["status"] = status
        return cur


@pytest.fixture
def order_repo():
    return InMemoryOrderRepository()


# ---------- chain ----------

class FakeOracle:
    """Stands in for IndexOracleAdapter: values keyed by index id, fn_* return tagged tuples."""

    def __init__(self, values: Optional[Dict[int, int]] = None, address: str = ORACLE):
        self.address = address
        self.values: Dict[int, int] = dict(values or {})
        self.timestamp = 1_700_000_000
        self.custom: List[Dict[str, Any]] = []
        self.next_id = 6
        self.broken: set = set()
        self.created_id: Optional[int] = None

    def get_index_value(self, index_id: int):
        if index_id in self.broken:
            raise RuntimeError("execution reverted")
        return self.values.get(index_id, 0), self.timestamp

    def index_data(self, index_type: int):
        if index_type in self.broken:
            raise RuntimeError("execution reverted")
        return {"value": self.values.get(index_type, 0), "timestamp": self.timestamp,
                "source_url": f"https://example.org/{index_type}", "is_active": True}

    def custom_index_data(self, index_id: int):
        return {"value": self.values.get(index_id, 0), "timestamp": self.timestamp,
                "source_url": "", "is_active": True}

    def all_custom_indices(self):
        return list(self.custom)

    def next_custom_index_id(self):
        return self.next_id

    def owner(self):
        return "0x000000000000000000000000000000000000dEaD"

    def fn_update_index(self, index_type, value):
        return ("updateIndex", index_type, value)

    def fn_update_custom_index(self, index_id, value):
        return ("updateCustomIndex", index_id, value)

    def fn_set_index_active(self, index_type, active):
        return ("setIndexActive", index_type, active)

    def fn_set_custom_index_active(self, index_id, active):
        return ("setCustomIndexActive", index_id, active)

    def fn_simulate_price_movement(self, index_type, bps, up):
        return ("simulatePriceMovement", index_type, bps, up)

    def fn_create_custom_index(self, initial_value, source_url):
        return ("createCustomIndex", initial_value, source_url)

    def created_index_id(self, receipt):
        return self.created_id


class FakeTx:
    """TxService double: records sent functions, optionally raises."""

    def __init__(self, sender: str, error: Optional[Exception] = None):
        self.sender = sender
        self.error = error
        self.sent: List[Any] = []
        self.kwargs: List[Dict[str, Any]] = []

    def sender_address(self) -> str:
        return self.sender

    def send(self, fn, **kwargs):
        if self.error:
            raise self.error
        self.sent.append(fn)
        self.kwargs.append(kwargs)
        return {
            "tx_hash": "0x" + "ab" * 32,
            "status": 1,
            "block_number": 123,
            "gas_used": 45_000,
            "receipt": {"logs": []},
        }


@pytest.fixture
def fake_oracle():
    return FakeOracle({0: 325, 1: 150_000_000, 2: 10_500_000, 3: 1_400, 4: 410, 5: 24_000})


@pytest.fixture
def offline_web3():
    # provider is never hit: only contract encoding is exercised
    return Web3(Web3.HTTPProvider("http://127.0.0.1:8545"))


@pytest.fixture
def settings(tmp_path):
    return Settings(
        RPC_URL="http://127.0.0.1:8545",
        CHAIN_ID=CHAIN_ID,
        PRIVATE_KEY="",
        LIMIT_ORDER_PROTOCOL=PROTOCOL,
        INDEX_ORACLE_ADDRESS=ORACLE,
        ONEINCH_API_KEY="",
        ALPHAVANTAGE_API_KEY="",
        DATA_ROOT=str(tmp_path),
    )
