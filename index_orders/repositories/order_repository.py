from abc import ABC, abstractmethod
from typing import Dict, List, Optional


class OrderRepository(ABC):
    """
    Storage for orders created through this service (prepared -> submitted/failed).
    Documents are StoredOrder.model_dump() dicts keyed by order_id.
    """

    @abstractmethod
    async def ensure_indexes(self) -> None:
        raise NotImplementedError

    @abstractmethod
    async def upsert(self, doc: Dict) -> Dict:
        """
        Insert or update by order_id. Returns the stored document.
        """
        raise NotImplementedError

    @abstractmethod
    async def get(self, order_id: str) -> Optional[Dict]:
        raise NotImplementedError

    @abstractmethod
    async def get_by_hash(self, order_hash: str) -> Optional[Dict]:
        raise NotImplementedError

    @abstractmethod
    async def list_by_maker(self, maker: str, limit: int = 100) -> List[Dict]:
        """
        Newest first.
        """
        raise NotImplementedError

    @abstractmethod
    async def update_status(self, order_id: str, status: str, extra: Optional[Dict] = None) -> Optional[Dict]:
        raise NotImplementedError
