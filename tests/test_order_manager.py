import httpx
import pytest

from conftest import CHAIN_ID, ORACLE, USDC, WETH, Recorder, make_oneinch_client
from index_orders.domain.models import IndexCondition
from index_orders.services.extension import Extension
from index_orders.services.order_manager import (
    OrderManager,
    describe_extension_condition,
    describe_trading,
    process_order,
    status_name,
)
from index_orders.services.predicate import build_index_predicate

MAKER = "0x1111111111111111111111111111111111111111"


def _raw(status=1, extension="0x", order_hash="0x" + "aa" * 32):
    return {
        "orderHash": order_hash,
        "signature": "0xsig",
        "createDateTime": "2025-01-01T00:00:00Z",
        "remainingMakerAmount": "1500000",
        "orderStatus": status,
        "data": {
            "maker": MAKER,
            "makerAsset": USDC,
            "takerAsset": WETH,
            "makingAmount": "1500000",
            "takingAmount": "500000000000000",
            "salt": "1",
            "makerTraits": "0",
            "extension": extension,
        },
    }


@pytest.mark.parametrize("code,name", [
    (1, "active"), ("valid", "active"), ("open", "active"),
    (2, "cancelled"), ("canceled", "cancelled"), ("Invalid", "cancelled"), ("expired", "cancelled"),
    (3, "filled"), ("executed", "filled"), ("completed", "filled"),
    (None, "active"), ("weird", "active"),
])
def test_status_name(code, name):
    assert status_name(code) == name


def test_describe_trading():
    assert describe_trading(_raw()["data"]) == "1.5 USDC → 0.0005 WETH"
    assert describe_trading({}) == "Unknown → Unknown"


def test_describe_extension_condition():
    assert describe_extension_condition("0x") == "No condition"
    assert describe_extension_condition(Extension(post_interaction=b"\x01").to_hex()) == "Standard limit order"
    ext = Extension(predicate=build_index_predicate(
        IndexCondition(index_id=2, operator="gt", threshold=10_000_000), ORACLE
    ))
    assert describe_extension_condition(ext.to_hex(), ORACLE) == "BTC Price > $100000.00"
    assert describe_extension_condition(Extension(predicate=b"\x01\x02\x03\x04").to_hex()) == "Conditional order"


def test_process_order_flattens_record():
    p = process_order(_raw(status=3), CHAIN_ID, ORACLE)
    assert p["hash"] == "0x" + "aa" * 32
    assert p["status"] == "filled"
    assert p["maker"] == MAKER
    assert p["remaining"] == "1500000"
    assert p["createdAt"] == "2025-01-01T00:00:00Z"
    assert p["tokenInfo"]["makerToken"] == {"symbol": "USDC", "decimals": 6}
    assert p["technical"] == {"signature": "0xsig", "chainId": CHAIN_ID, "statusCode": 3}
    assert p["condition"] == "No condition"


@pytest.mark.asyncio
async def test_active_orders_query_and_envelope():
    rec = Recorder()
    client = make_oneinch_client(lambda r: httpx.Response(200, json=[_raw(), _raw(order_hash="0x" + "bb" * 32)]), rec)
    res = await OrderManager(client, ORACLE).get_active_orders(MAKER, page=1, limit=2)

    req = rec.requests[0]
    assert req.url.path == f"/orderbook/v4.0/{CHAIN_ID}/address/{MAKER}"
    assert req.url.params.get_list("statuses") == ["1"]
    assert res["success"] is True
    assert len(res["activeOrders"]) == 2
    assert res["pagination"] == {"page": 1, "limit": 2, "total": 2, "hasMore": True, "totalPages": 1}
    assert res["summary"]["totalActiveOrders"] == 2


@pytest.mark.asyncio
async def test_history_status_filter_and_breakdown():
    rec = Recorder()
    client = make_oneinch_client(lambda r: httpx.Response(200, json=[_raw(1), _raw(2), _raw(3)]), rec)
    res = await OrderManager(client).get_order_history(MAKER, status="bogus")

    assert rec.requests[0].url.params.get_list("statuses") == ["1", "2", "3"]
    assert res["status"] == "all"
    assert res["summary"]["statusBreakdown"] == {"active": 1, "cancelled": 1, "filled": 1}


@pytest.mark.asyncio
async def test_upstream_failure_is_reported_not_raised():
    client = make_oneinch_client(lambda r: httpx.Response(500, json={"error": "boom"}))
    res = await OrderManager(client).get_active_orders(MAKER)
    assert res["success"] is False
    assert res["error"] == "boom"
    assert res["activeOrders"] == []


@pytest.mark.asyncio
async def test_order_details_not_found():
    client = make_oneinch_client(lambda r: httpx.Response(404, json={"description": "nope"}))
    res = await OrderManager(client).get_order_details("0x" + "cc" * 32)
    assert res == {"success": False, "error": "Order not found", "orderHash": "0x" + "cc" * 32}


@pytest.mark.asyncio
async def test_order_counts():
    def handler(request):
        statuses = request.url.params.get_list("statuses")
        n = {"1": 2, "2": 1, "3": 4}[statuses[0]]
        return httpx.Response(200, json=[_raw(int(statuses[0]))] * n)

    res = await OrderManager(make_oneinch_client(handler)).get_order_counts(MAKER)
    assert res["counts"] == {"active": 2, "filled": 4, "cancelled": 1}
    assert res["total"] == 7
