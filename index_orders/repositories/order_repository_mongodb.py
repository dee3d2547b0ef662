from typing import Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from ..services.utils import now_iso, now_ms
from .order_repository import OrderRepository


class OrderRepositoryMongoDB(OrderRepository):
    """
    Mongo implementation for locally created limit orders.
    """

    COLLECTION = "limit_orders"

    def __init__(self, db: AsyncIOMotorDatabase):
        self._col = db[self.COLLECTION]

    async def ensure_indexes(self) -> None:
        await self._col.create_index([("order_id", 1)], unique=True, name="ux_order_id")
        await self._col.create_index([("order_hash", 1)], name="ix_order_hash")
        await self._col.create_index([("maker", 1), ("created_at", -1)], name="ix_maker_created_at")

    async def upsert(self, doc: Dict) -> Dict:
        ts = now_ms()
        body = {k: v for k, v in doc.items() if k not in ("created_at", "created_at_iso")}
        if body.get("maker"):
            body["maker"] = body["maker"].lower()
        update = {
            "$set": {**body, "updated_at": ts},
            "$setOnInsert": {"created_at": ts, "created_at_iso": now_iso()},
        }
        stored = await self._col.find_one_and_update(
            {"order_id": doc["order_id"]},
            update,
            upsert=True,
            return_document=ReturnDocument.AFTER,
            projection={"_id": False},
        )
        return stored

    async def get(self, order_id: str) -> Optional[Dict]:
        return await self._col.find_one({"order_id": order_id}, projection={"_id": False})

    async def get_by_hash(self, order_hash: str) -> Optional[Dict]:
        return await self._col.find_one({"order_hash": order_hash.lower()}, projection={"_id": False})

    async def list_by_maker(self, maker: str, limit: int = 100) -> List[Dict]:
        cursor = self._col.find(
            {"maker": maker.lower()},
            projection={"_id": False},
            sort=[("created_at", -1)],
            limit=limit,
        )
        return await cursor.to_list(length=limit)

    async def update_status(self, order_id: str, status: str, extra: Optional[Dict] = None) -> Optional[Dict]:
        return await self._col.find_one_and_update(
            {"order_id": order_id},
            {"$set": {**(extra or {}), "status": status, "updated_at": now_ms()}},
            return_document=ReturnDocument.AFTER,
            projection={"_id": False},
        )
