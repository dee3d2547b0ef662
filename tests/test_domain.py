from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from hexbytes import HexBytes

from index_orders.domain.enums import ComparisonOperator, FusionOrderStatus
from index_orders.domain.indices import format_index_value, get_index_info, is_predefined, list_predefined
from index_orders.domain.models import IndexCondition, OrderRequest
from index_orders.domain.tokens import NATIVE_TOKEN_ADDRESS, resolve_token, token_by_address
from index_orders.services.exceptions import UnknownTokenError
from index_orders.services.utils import (
    format_token_amount,
    now_iso,
    parse_token_amount,
    stringify_ints,
    to_json_safe,
)


@pytest.mark.parametrize("amount,decimals,raw", [
    ("1.5", 6, 1_500_000),
    ("100", 6, 100_000_000),
    ("0.0005", 18, 500_000_000_000_000),
    ("1.1234567", 6, 1_123_456),   # truncated, not rounded
    (".5", 2, 50),
    (2, 0, 2),
    (0.1, 18, 100_000_000_000_000_000),
    (Decimal("3.25"), 2, 325),
])
def test_parse_token_amount(amount, decimals, raw):
    assert parse_token_amount(amount, decimals) == raw


@pytest.mark.parametrize("bad", ["", ".", "-1", "1e5", "abc", "1.2.3"])
def test_parse_token_amount_rejects(bad):
    with pytest.raises(ValueError):
        parse_token_amount(bad, 6)


def test_format_token_amount():
    assert format_token_amount(1_500_000, 6) == "1.5"
    assert format_token_amount(100_000_000, 6) == "100"
    assert format_token_amount("500000000000000", 18) == "0.0005"
    assert format_token_amount(7, 0) == "7"


def test_json_helpers():
    assert to_json_safe({"h": HexBytes("0x01"), "l": (1, b"\x02")}) == {"h": "0x01", "l": [1, "0x02"]}
    assert stringify_ints({"a": 2**200, "b": True, "c": [1]}) == {"a": str(2**200), "b": True, "c": ["1"]}


def test_now_iso_is_utc_with_z_suffix():
    stamp = now_iso()
    assert stamp.endswith("Z")
    parsed = datetime.fromisoformat(stamp[:-1] + "+00:00")
    assert abs(datetime.now(timezone.utc) - parsed) < timedelta(seconds=5)


# ---------- tokens ----------

def test_resolve_token_by_symbol_and_address():
    assert resolve_token("usdc").decimals == 6
    assert resolve_token("WETH").address == "0x4200000000000000000000000000000000000006"
    assert resolve_token("0x833589fcd6edb6e08f4c7c32d4f71b54bda02913").symbol == "USDC"
    assert resolve_token("eth").is_native


def test_resolve_unknown_address_defaults_to_18_decimals():
    tok = resolve_token("0x" + "12" * 20)
    assert tok.symbol == "UNKNOWN"
    assert tok.decimals == 18


@pytest.mark.parametrize("bad", ["DOGE", "0x1234", ""])
def test_resolve_token_rejects(bad):
    with pytest.raises(UnknownTokenError):
        resolve_token(bad)


def test_token_by_address_fallback():
    assert token_by_address(NATIVE_TOKEN_ADDRESS.lower()).symbol == "ETH"
    assert token_by_address(None).symbol == "Unknown"
    assert token_by_address("0xabcdef0000000000000000000000000000000001").symbol == "0xabcdef..."


# ---------- indices ----------

def test_predefined_catalogue():
    ids = [i.id for i in list_predefined()]
    assert ids == [0, 1, 2, 3, 4, 5]
    assert is_predefined(5) and not is_predefined(6)
    custom = get_index_info(9)
    assert custom.is_custom and custom.name == "Custom Index 9" and custom.symbol == "CUSTOM9"


@pytest.mark.parametrize("index_id,raw,text", [
    (0, 325, "3.25%"),
    (1, 150_000_000, "150.0M followers"),
    (2, 10_000_000, "$100000.00"),
    (3, 1_500, "15.00"),
    (5, 25_000, "$250.00"),
    (7, 1234, "1234"),
    (2, None, "N/A"),
])
def test_format_index_value(index_id, raw, text):
    assert format_index_value(index_id, raw) == text


# ---------- models / enums ----------

def test_operator_metadata():
    assert ComparisonOperator.GTE.symbol == ">="
    assert ComparisonOperator.NEQ.label == "Not Equal To"


def test_fusion_terminal_statuses():
    terminal = {s.value for s in FusionOrderStatus if s.is_terminal}
    assert terminal == {"filled", "expired", "cancelled", "refunded"}


def test_index_condition_accepts_camel_case_and_upper_operator():
    cond = IndexCondition.model_validate({"indexId": 2, "operator": "GT", "threshold": 1})
    assert cond.operator == ComparisonOperator.GT
    with pytest.raises(ValueError):
        IndexCondition.model_validate({"indexId": -1, "operator": "gt", "threshold": 1})


def test_order_request_coerces_numbers():
    req = OrderRequest.model_validate({"amount": 100, "expectedAmount": 0.5})
    assert req.amount == "100"
    assert req.expected_amount == "0.5"
