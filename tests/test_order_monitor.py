import asyncio
import threading

import pytest

from conftest import ORACLE
from index_orders.domain.models import IndexCondition
from index_orders.services.exceptions import OrderNotFoundError
from index_orders.services.extension import Extension
from index_orders.services.order_monitor import OrderMonitor
from index_orders.services.predicate import build_index_predicate

HASH = "0x" + "AB" * 32
BTC_ABOVE_100K = IndexCondition(index_id=2, operator="gt", threshold=10_000_000)


class FakeNotifier:
    def __init__(self, enabled=True):
        self.enabled = enabled
        self.sent = []

    def send_text(self, msg):
        self.sent.append(msg)
        return len(self.sent)


class BlockingNotifier(FakeNotifier):
    """send_text waits until the loop side sets `release`."""

    def __init__(self):
        super().__init__()
        self.release = threading.Event()
        self.released = None

    def send_text(self, msg):
        self.released = self.release.wait(timeout=5)
        return super().send_text(msg)


class FakeOrders:
    def __init__(self, records):
        self.records = records

    async def raw_order(self, order_hash):
        return self.records[order_hash]


@pytest.mark.asyncio
async def test_evaluate_reports_distance_to_threshold(fake_oracle):
    res = await OrderMonitor(fake_oracle).evaluate(BTC_ABOVE_100K)

    assert res["indexName"] == "BTC Price"
    assert res["operator"] == "gt"
    assert res["executable"] is True
    assert res["current"] == 10_500_000
    assert res["currentFormatted"] == "$105000.00"
    assert res["thresholdFormatted"] == "$100000.00"
    assert res["difference"] == 500_000
    assert res["percentDifference"] == 5.0
    assert res["lastUpdated"] == "2023-11-14T22:13:20+00:00"


@pytest.mark.asyncio
async def test_zero_threshold_has_no_percentage(fake_oracle):
    res = await OrderMonitor(fake_oracle).evaluate(IndexCondition(index_id=0, operator="gte", threshold=0))
    assert res["executable"] is True
    assert res["percentDifference"] is None


@pytest.mark.asyncio
async def test_alert_fires_once_per_transition(fake_oracle):
    notifier = FakeNotifier()
    monitor = OrderMonitor(fake_oracle, notifier=notifier)
    tracked = await monitor.track(HASH, condition=BTC_ABOVE_100K)
    assert tracked["orderHash"] == HASH.lower()
    assert tracked["description"] == "BTC Price > $100000.00"

    first = await monitor.check(HASH)
    await monitor.check(HASH)
    assert first["executable"] is True
    assert len(notifier.sent) == 1
    assert HASH.lower() in notifier.sent[0]

    fake_oracle.values[2] = 9_000_000
    dropped = await monitor.check(HASH)
    assert dropped["executable"] is False

    fake_oracle.values[2] = 10_100_000
    await monitor.check(HASH)
    assert len(notifier.sent) == 2
    assert monitor.tracked()[0]["executable"] is True
    assert monitor.tracked()[0]["lastCheck"] is not None


@pytest.mark.asyncio
async def test_disabled_notifier_is_silent(fake_oracle):
    notifier = FakeNotifier(enabled=False)
    monitor = OrderMonitor(fake_oracle, notifier=notifier)
    await monitor.track(HASH, condition=BTC_ABOVE_100K)
    await monitor.check(HASH)
    assert notifier.sent == []


@pytest.mark.asyncio
async def test_track_decodes_condition_from_orderbook(fake_oracle):
    cond = IndexCondition(index_id=5, operator="lt", threshold=25_000)
    ext = Extension(predicate=build_index_predicate(cond, ORACLE)).to_hex()
    orders = FakeOrders({HASH: {"orderHash": HASH, "data": {"extension": ext}}})
    monitor = OrderMonitor(fake_oracle, orders=orders)

    tracked = await monitor.track(HASH, description="tesla dip")
    assert tracked["description"] == "tesla dip"
    assert tracked["condition"]["indexId"] == 5
    assert tracked["condition"]["threshold"] == 25_000

    res = await monitor.check(HASH)
    assert res["executable"] is True


@pytest.mark.asyncio
async def test_track_rejects_orders_without_condition(fake_oracle):
    orders = FakeOrders({HASH: {"data": {"extension": "0x"}}})
    with pytest.raises(ValueError):
        await OrderMonitor(fake_oracle, orders=orders).track(HASH)

    with pytest.raises(OrderNotFoundError):
        await OrderMonitor(fake_oracle).track(HASH)


@pytest.mark.asyncio
async def test_check_all_collects_errors(fake_oracle):
    monitor = OrderMonitor(fake_oracle)
    await monitor.track(HASH, condition=BTC_ABOVE_100K)
    await monitor.track("0x" + "cd" * 32, condition=IndexCondition(index_id=3, operator="lt", threshold=100))
    await monitor.track("0x" + "ef" * 32, condition=IndexCondition(index_id=4, operator="gt", threshold=1))
    fake_oracle.broken.add(4)

    summary = await monitor.check_all()
    assert summary["total"] == 3
    assert summary["executable"] == 1
    assert summary["pending"] == 2
    failed = [r for r in summary["results"] if "error" in r]
    assert failed == [{"orderHash": "0x" + "ef" * 32, "executable": False, "error": "execution reverted"}]


@pytest.mark.asyncio
async def test_untrack(fake_oracle):
    monitor = OrderMonitor(fake_oracle)
    await monitor.track(HASH, condition=BTC_ABOVE_100K)

    assert await monitor.untrack(HASH.lower()) is True
    assert await monitor.untrack(HASH) is False
    assert monitor.tracked() == []
    with pytest.raises(OrderNotFoundError):
        await monitor.check(HASH)


@pytest.mark.asyncio
async def test_alert_delivery_does_not_block_the_event_loop(fake_oracle):
    notifier = BlockingNotifier()
    monitor = OrderMonitor(fake_oracle, notifier=notifier)
    await monitor.track(HASH, condition=BTC_ABOVE_100K)

    async def release_from_loop():
        await asyncio.sleep(0.05)
        notifier.release.set()

    await asyncio.gather(monitor.check(HASH), release_from_loop())
    assert notifier.released is True
    assert len(notifier.sent) == 1
