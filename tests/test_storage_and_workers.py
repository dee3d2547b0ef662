import asyncio

import pytest
from pymongo import ReturnDocument

from index_orders.repositories.order_repository_file import OrderRepositoryFile
from index_orders.repositories.order_repository_mongodb import OrderRepositoryMongoDB
from index_orders.workers.monitor_supervisor import MonitorSupervisor

MAKER = "0xAbC0000000000000000000000000000000000001"


class FakeCursor:
    def __init__(self, docs):
        self.docs = docs

    async def to_list(self, length=None):
        return self.docs[:length]


class FakeCollection:
    """Records motor calls; find_one_and_update echoes back the $set body."""

    def __init__(self):
        self.calls = []

    async def create_index(self, keys, **kwargs):
        self.calls.append(("create_index", keys, kwargs))

    async def find_one_and_update(self, flt, update, **kwargs):
        self.calls.append(("find_one_and_update", flt, update, kwargs))
        return {**update.get("$setOnInsert", {}), **update["$set"]}

    async def find_one(self, flt, **kwargs):
        self.calls.append(("find_one", flt, kwargs))
        return None

    def find(self, flt, **kwargs):
        self.calls.append(("find", flt, kwargs))
        return FakeCursor([{"order_id": "a1"}, {"order_id": "a2"}])


@pytest.mark.asyncio
async def test_file_repository_roundtrip(tmp_path):
    repo = OrderRepositoryFile(str(tmp_path))
    await repo.ensure_indexes()

    doc = await repo.upsert({"order_id": "a1", "order_hash": "0xAA", "maker": MAKER, "status": "prepared"})
    assert doc["maker"] == MAKER.lower()
    assert doc["created_at"] and doc["updated_at"]
    assert (tmp_path / "orders" / "a1.json").exists()

    again = await repo.upsert({"order_id": "a1", "summary": "x", "created_at": 1})
    assert again["created_at"] == doc["created_at"]
    assert again["summary"] == "x"

    assert (await repo.get_by_hash("0xaa"))["order_id"] == "a1"
    assert await repo.get("missing") is None

    updated = await repo.update_status("a1", "submitted", {"signature": "0x12"})
    assert updated["status"] == "submitted"
    assert (await repo.get("a1"))["signature"] == "0x12"
    assert await repo.update_status("missing", "failed") is None


@pytest.mark.asyncio
async def test_file_repository_lists_by_maker(tmp_path):
    repo = OrderRepositoryFile(str(tmp_path))
    await repo.upsert({"order_id": "a", "maker": MAKER})
    await repo.upsert({"order_id": "b", "maker": MAKER})
    await repo.upsert({"order_id": "c", "maker": "0x" + "99" * 20})

    mine = await repo.list_by_maker(MAKER.lower())
    assert {d["order_id"] for d in mine} == {"a", "b"}
    assert len(await repo.list_by_maker(MAKER, limit=1)) == 1


@pytest.mark.asyncio
async def test_file_repository_sanitizes_ids(tmp_path):
    repo = OrderRepositoryFile(str(tmp_path))
    await repo.upsert({"order_id": "../evil", "maker": MAKER})
    assert (tmp_path / "orders" / "evil.json").exists()


@pytest.mark.asyncio
async def test_mongo_repository_upsert_keeps_creation_time_on_insert_only():
    col = FakeCollection()
    repo = OrderRepositoryMongoDB({"limit_orders": col})

    stored = await repo.upsert({"order_id": "a1", "maker": MAKER, "created_at": 1, "status": "prepared"})
    _, flt, update, kwargs = col.calls[-1]

    assert flt == {"order_id": "a1"}
    assert update["$set"]["maker"] == MAKER.lower()
    assert "created_at" not in update["$set"]
    assert update["$set"]["updated_at"] > 1
    assert set(update["$setOnInsert"]) == {"created_at", "created_at_iso"}
    assert kwargs["upsert"] is True
    assert kwargs["return_document"] == ReturnDocument.AFTER
    assert kwargs["projection"] == {"_id": False}
    assert stored["status"] == "prepared"


@pytest.mark.asyncio
async def test_mongo_repository_queries_use_lowercase_keys():
    col = FakeCollection()
    repo = OrderRepositoryMongoDB({"limit_orders": col})

    docs = await repo.list_by_maker(MAKER, limit=1)
    assert docs == [{"order_id": "a1"}]
    _, flt, kwargs = col.calls[-1]
    assert flt == {"maker": MAKER.lower()}
    assert kwargs["sort"] == [("created_at", -1)]
    assert kwargs["limit"] == 1

    assert await repo.get_by_hash("0xABCD") is None
    assert col.calls[-1][1] == {"order_hash": "0xabcd"}

    await repo.ensure_indexes()
    names = [c[2]["name"] for c in col.calls if c[0] == "create_index"]
    assert names == ["ux_order_id", "ix_order_hash", "ix_maker_created_at"]


class CountingMonitor:
    def __init__(self, fail_first=False):
        self.calls = 0
        self.fail_first = fail_first

    async def check_all(self):
        self.calls += 1
        if self.fail_first and self.calls == 1:
            raise RuntimeError("rpc down")
        return {"total": 1, "executable": 0, "pending": 1, "results": []}


@pytest.mark.asyncio
async def test_supervisor_keeps_running_after_errors():
    monitor = CountingMonitor(fail_first=True)
    sup = MonitorSupervisor(monitor, interval_sec=0.01)

    await sup.start()
    await sup.start()
    assert sup.running
    for _ in range(100):
        if monitor.calls >= 3:
            break
        await asyncio.sleep(0.01)
    await sup.stop()

    assert monitor.calls >= 3
    assert not sup.running
