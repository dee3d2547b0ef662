"""
JSON-file order store (DATA_ROOT/orders/<order_id>.json).
Default backend for local runs, where Mongo is not around.
"""
import json
from pathlib import Path
from typing import Dict, List, Optional

from ..services.utils import now_iso, now_ms
from .order_repository import OrderRepository


class OrderRepositoryFile(OrderRepository):

    def __init__(self, data_root: str):
        self._dir = Path(data_root) / "orders"

    def _path(self, order_id: str) -> Path:
        # order ids are hex generated by us, still never trust a path component
        safe = "".join(c for c in order_id if c.isalnum() or c in "-_")
        return self._dir / f"{safe}.json"

    def _load(self, path: Path) -> Optional[Dict]:
        if not path.exists():
            return None
        return json.loads(path.read_text())

    def _all(self) -> List[Dict]:
        if not self._dir.exists():
            return []
        docs = []
        for p in self._dir.glob("*.json"):
            doc = self._load(p)
            if doc:
                docs.append(doc)
        return docs

    async def ensure_indexes(self) -> None:
        self._dir.mkdir(parents=True, exist_ok=True)

    async def upsert(self, doc: Dict) -> Dict:
        await self.ensure_indexes()
        p = self._path(doc["order_id"])
        cur = self._load(p) or {"created_at": now_ms(), "created_at_iso": now_iso()}
        body = {k: v for k, v in doc.items() if k not in ("created_at", "created_at_iso")}
        if body.get("maker"):
            body["maker"] = body["maker"].lower()
        cur.update(body)
        cur["updated_at"] = now_ms()
        p.write_text(json.dumps(cur, indent=2))
        return cur

    async def get(self, order_id: str) -> Optional[Dict]:
        return self._load(self._path(order_id))

    async def get_by_hash(self, order_hash: str) -> Optional[Dict]:
        h = order_hash.lower()
        for doc in self._all():
            if str(doc.get("order_hash", "")).lower() == h:
                return doc
        return None

    async def list_by_maker(self, maker: str, limit: int = 100) -> List[Dict]:
        m = maker.lower()
        docs = [d for d in self._all() if d.get("maker") == m]
        docs.sort(key=lambda d: d.get("created_at", 0), reverse=True)
        return docs[:limit]

    async def update_status(self, order_id: str, status: str, extra: Optional[Dict] = None) -> Optional[Dict]:
        p = self._path(order_id)
        cur = self._load(p)
        if cur is None:
            return None
        cur.update(extra or {})
        cur["status"] = status
        cur["updated_at"] = now_ms()
        p.write_text(json.dumps(cur, indent=2))
        return cur
