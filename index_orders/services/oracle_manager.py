import logging
from typing import Any, Callable, Dict, List, Optional

from ..adapters.index_oracle import IndexOracleAdapter
from ..domain.indices import PREDEFINED_INDICES, format_index_value, get_index_info, is_predefined
from .tx_service import TxService


class OracleManager:
    """
    Read/write facade over the index oracle.

    Reads are plain eth_calls. Writes go through TxService and only work
    when PRIVATE_KEY belongs to the oracle owner.
    """

    def __init__(
        self,
        oracle: IndexOracleAdapter,
        chain_id: int,
        tx_factory: Optional[Callable[[], TxService]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._oracle = oracle
        self._chain_id = int(chain_id)
        self._tx_factory = tx_factory or TxService
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    @property
    def address(self) -> str:
        return self._oracle.address

    # ---------- reads ----------

    def current_value(self, index_id: int) -> Dict[str, int]:
        value, ts = self._oracle.get_index_value(index_id)
        return {"value": value, "timestamp": ts}

    def get_index(self, index_id: int) -> Dict[str, Any]:
        info = get_index_info(index_id)
        if is_predefined(index_id):
            data = self._oracle.index_data(index_id)
        else:
            data = self._oracle.custom_index_data(index_id)
        return {
            **info.model_dump(),
            "value": data["value"],
            "formatted": format_index_value(index_id, data["value"]),
            "timestamp": data["timestamp"],
            "source_url": data.get("source_url"),
            "is_active": data["is_active"],
        }

    def list_indices(self) -> List[Dict[str, Any]]:
        out: List[Dict[str, Any]] = []
        for index_id in sorted(PREDEFINED_INDICES):
            try:
                out.append(self.get_index(index_id))
            except Exception as exc:
                # skip unreadable slots
                self._logger.warning("index %s unreadable: %s", index_id, exc)

        for row in self._oracle.all_custom_indices():
            info = get_index_info(row["id"])
            out.append({
                **info.model_dump(),
                "value": row["value"],
                "formatted": format_index_value(row["id"], row["value"]),
                "timestamp": row["timestamp"],
                "source_url": None,
                "is_active": row["is_active"],
            })
        return out

    def get_status(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "chain_id": self._chain_id,
            "owner": self._oracle.owner(),
            "next_custom_index_id": self._oracle.next_custom_index_id(),
            "predefined_indices": len(PREDEFINED_INDICES),
        }

    # ---------- writes ----------

    def update_index(self, index_id: int, value: int) -> Dict[str, Any]:
        tx = self._tx_factory()
        if is_predefined(index_id):
            fn = self._oracle.fn_update_index(index_id, value)
        else:
            fn = self._oracle.fn_update_custom_index(index_id, value)
        self._logger.info("update index %s -> %s", index_id, value)
        res = tx.send(fn, wait=True)
        return {"index_id": int(index_id), "value": int(value), **res}

    def set_index_active(self, index_id: int, active: bool) -> Dict[str, Any]:
        tx = self._tx_factory()
        if is_predefined(index_id):
            fn = self._oracle.fn_set_index_active(index_id, active)
        else:
            fn = self._oracle.fn_set_custom_index_active(index_id, active)
        res = tx.send(fn, wait=True)
        return {"index_id": int(index_id), "is_active": bool(active), **res}

    def simulate_price_movement(self, index_id: int, percentage_bps: int, is_increase: bool) -> Dict[str, Any]:
        """
        percentage_bps: 500 = 5%. Only predefined indices support it on-chain.
        """
        if not is_predefined(index_id):
            raise ValueError("simulatePriceMovement only supports predefined indices (0-5)")
        tx = self._tx_factory()
        fn = self._oracle.fn_simulate_price_movement(index_id, percentage_bps, is_increase)
        res = tx.send(fn, wait=True)
        return {"index_id": int(index_id), "percentage_bps": int(percentage_bps), "is_increase": is_increase, **res}

    def create_custom_index(self, initial_value: int, source_url: str = "") -> Dict[str, Any]:
        tx = self._tx_factory()
        expected_id = self._oracle.next_custom_index_id()
        res = tx.send(self._oracle.fn_create_custom_index(initial_value, source_url), wait=True)

        index_id = self._oracle.created_index_id(res.get("receipt") or {})
        if index_id is None:
            self._logger.warning("CustomIndexCreated not found in receipt, assuming id %s", expected_id)
            index_id = expected_id
        self._logger.info("created custom index %s value=%s", index_id, initial_value)
        return {"index_id": index_id, "initial_value": int(initial_value), "source_url": source_url, **res}
