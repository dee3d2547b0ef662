import httpx
import pytest

from conftest import CHAIN_ID, USDC, WETH, Recorder, make_oneinch_client
from index_orders.domain.tokens import NATIVE_TOKEN_ADDRESS
from index_orders.services.classic_swap import ClassicSwapService
from index_orders.services.exceptions import ConfigurationError, OrderValidationError, UpstreamApiError

WALLET = "0xAbCdEf0000000000000000000000000000000001"


def _handler(allowance):
    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.endswith("/approve/allowance"):
            return httpx.Response(200, json={"allowance": str(allowance)})
        if path.endswith("/approve/transaction"):
            return httpx.Response(200, json={"to": USDC, "data": "0x095ea7b3", "value": "0"})
        if path.endswith("/swap"):
            params = request.url.params
            short = params["src"].lower() != NATIVE_TOKEN_ADDRESS.lower() and allowance < int(params["amount"])
            if short and params.get("disableEstimate") != "true":
                return httpx.Response(400, json={"error": "Bad Request", "description": "Not enough allowance"})
            return httpx.Response(200, json={"dstAmount": "30000000000000000", "tx": {"to": "0xrouter", "data": "0x12"}})
        return httpx.Response(404, json={"description": "unexpected " + path})
    return handler


@pytest.mark.asyncio
async def test_plan_adds_approval_when_allowance_is_short():
    rec = Recorder()
    svc = ClassicSwapService(make_oneinch_client(_handler(allowance=0), rec))
    plan = await svc.plan(USDC, WETH, 100_000_000, WALLET, slippage=0.5)

    assert [s["type"] for s in plan["steps"]] == ["approve", "swap"]
    assert plan["requiresApproval"] is True
    assert plan["expectedOutput"] == "30000000000000000"
    assert plan["expectedOutputFormatted"] == "0.03"

    allowance_req = rec.requests[0]
    assert allowance_req.url.path == f"/swap/v6.1/{CHAIN_ID}/approve/allowance"
    assert allowance_req.url.params["walletAddress"] == WALLET.lower()
    swap_req = rec.requests[-1]
    assert swap_req.url.params["slippage"] == "0.5"
    assert swap_req.url.params["from"] == WALLET
    assert swap_req.url.params["disableEstimate"] == "true"


@pytest.mark.asyncio
async def test_plan_skips_approval_when_allowance_is_enough():
    rec = Recorder()
    svc = ClassicSwapService(make_oneinch_client(_handler(allowance=10**30), rec))
    plan = await svc.plan(USDC, WETH, 100_000_000, WALLET)
    assert [s["type"] for s in plan["steps"]] == ["swap"]
    assert plan["requiresApproval"] is False
    assert "disableEstimate" not in rec.requests[-1].url.params


@pytest.mark.asyncio
async def test_native_source_never_needs_approval():
    rec = Recorder()
    svc = ClassicSwapService(make_oneinch_client(_handler(allowance=0), rec))
    plan = await svc.plan(NATIVE_TOKEN_ADDRESS, USDC, 10**18, WALLET)
    assert plan["requiresApproval"] is False
    assert all(not r.url.path.endswith("/approve/allowance") for r in rec.requests)


@pytest.mark.asyncio
async def test_missing_api_key():
    client = make_oneinch_client(_handler(0), api_key="")
    with pytest.raises(ConfigurationError) as exc:
        await client.quote(USDC, WETH, 1)
    assert str(exc.value) == "API key not configured"


@pytest.mark.asyncio
async def test_transport_error_becomes_upstream_error():
    def boom(request):
        raise httpx.ConnectError("down", request=request)

    with pytest.raises(UpstreamApiError) as exc:
        await make_oneinch_client(boom).tokens()
    assert exc.value.status_code is None


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", ["1.5", "1e6", "-5", "0", ""])
async def test_plan_rejects_non_raw_amounts(amount):
    rec = Recorder()
    svc = ClassicSwapService(make_oneinch_client(_handler(allowance=0), rec))
    with pytest.raises(OrderValidationError):
        await svc.plan(USDC, WETH, amount, WALLET)
    assert rec.requests == []
