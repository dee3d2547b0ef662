import pytest

from conftest import CHAIN_ID, ORACLE, FakeTx
from index_orders.services.oracle_manager import OracleManager


def _manager(oracle, tx=None):
    tx = tx or FakeTx("0x000000000000000000000000000000000000dEaD")
    return OracleManager(oracle, CHAIN_ID, tx_factory=lambda: tx), tx


def test_get_index_formats_value(fake_oracle):
    mgr, _ = _manager(fake_oracle)
    idx = mgr.get_index(2)
    assert idx["name"] == "BTC Price"
    assert idx["value"] == 10_500_000
    assert idx["formatted"] == "$105000.00"
    assert idx["is_active"] is True
    assert idx["source_url"] == "https://example.org/2"


def test_list_indices_skips_unreadable_and_appends_custom(fake_oracle):
    fake_oracle.broken.add(4)
    fake_oracle.custom = [{"id": 6, "value": 42, "timestamp": 1, "is_active": False}]
    mgr, _ = _manager(fake_oracle)

    rows = mgr.list_indices()
    ids = [r["id"] for r in rows]
    assert ids == [0, 1, 2, 3, 5, 6]
    assert rows[-1]["name"] == "Custom Index 6"
    assert rows[-1]["formatted"] == "42"
    assert rows[-1]["is_active"] is False


def test_status(fake_oracle):
    mgr, _ = _manager(fake_oracle)
    st = mgr.get_status()
    assert st["address"] == ORACLE
    assert st["chain_id"] == CHAIN_ID
    assert st["next_custom_index_id"] == 6
    assert st["predefined_indices"] == 6


def test_update_routes_predefined_and_custom(fake_oracle):
    mgr, tx = _manager(fake_oracle)
    res = mgr.update_index(2, 11_000_000)
    mgr.update_index(8, 5)
    assert tx.sent == [("updateIndex", 2, 11_000_000), ("updateCustomIndex", 8, 5)]
    assert res["tx_hash"] == "0x" + "ab" * 32
    assert res["index_id"] == 2


def test_set_active(fake_oracle):
    mgr, tx = _manager(fake_oracle)
    mgr.set_index_active(1, False)
    mgr.set_index_active(7, True)
    assert tx.sent == [("setIndexActive", 1, False), ("setCustomIndexActive", 7, True)]


def test_simulate_only_on_predefined(fake_oracle):
    mgr, tx = _manager(fake_oracle)
    res = mgr.simulate_price_movement(5, 500, True)
    assert tx.sent == [("simulatePriceMovement", 5, 500, True)]
    assert res["percentage_bps"] == 500
    with pytest.raises(ValueError):
        mgr.simulate_price_movement(6, 500, True)


def test_create_custom_index_prefers_event_id(fake_oracle):
    mgr, tx = _manager(fake_oracle)
    fake_oracle.created_id = 11
    assert mgr.create_custom_index(100, "https://x")["index_id"] == 11

    fake_oracle.created_id = None
    res = mgr.create_custom_index(100)
    assert res["index_id"] == fake_oracle.next_id
    assert tx.sent[-1] == ("createCustomIndex", 100, "")
