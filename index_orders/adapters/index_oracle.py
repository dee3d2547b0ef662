from typing import Any, Dict, List, Optional, Tuple

from hexbytes import HexBytes
from web3 import Web3

from .base import ContractAdapter

ABI_INDEX_ORACLE = [
    {
        "name": "getIndexValue",
        "inputs": [{"name": "indexId", "type": "uint256"}],
        "outputs": [
            {"name": "value", "type": "uint256"},
            {"name": "timestamp", "type": "uint256"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "name": "indexData",
        "inputs": [{"name": "", "type": "uint8"}],
        "outputs": [
            {"name": "value", "type": "uint256"},
            {"name": "timestamp", "type": "uint256"},
            {"name": "sourceUrl", "type": "string"},
            {"name": "isActive", "type": "bool"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "name": "customIndexData",
        "inputs": [{"name": "", "type": "uint256"}],
        "outputs": [
            {"name": "value", "type": "uint256"},
            {"name": "timestamp", "type": "uint256"},
            {"name": "sourceUrl", "type": "string"},
            {"name": "isActive", "type": "bool"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "name": "getAllCustomIndices",
        "inputs": [],
        "outputs": [
            {"name": "indexIds", "type": "uint256[]"},
            {"name": "values", "type": "uint256[]"},
            {"name": "timestamps", "type": "uint256[]"},
            {"name": "activeStates", "type": "bool[]"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "name": "getNextCustomIndexId",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "name": "owner",
        "inputs": [],
        "outputs": [{"name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "name": "updateIndex",
        "inputs": [
            {"name": "indexType", "type": "uint8"},
            {"name": "newValue", "type": "uint256"},
        ],
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "name": "updateCustomIndex",
        "inputs": [
            {"name": "indexId", "type": "uint256"},
            {"name": "newValue", "type": "uint256"},
        ],
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "name": "setIndexActive",
        "inputs": [
            {"name": "indexType", "type": "uint8"},
            {"name": "isActive", "type": "bool"},
        ],
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "name": "setCustomIndexActive",
        "inputs": [
            {"name": "indexId", "type": "uint256"},
            {"name": "isActive", "type": "bool"},
        ],
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "name": "simulatePriceMovement",
        "inputs": [
            {"name": "indexType", "type": "uint8"},
            {"name": "percentageChange", "type": "uint256"},
            {"name": "isIncrease", "type": "bool"},
        ],
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "name": "createCustomIndex",
        "inputs": [
            {"name": "initialValue", "type": "uint256"},
            {"name": "sourceUrl", "type": "string"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "name": "CustomIndexCreated",
        "inputs": [
            {"indexed": True, "name": "indexId", "type": "uint256"},
            {"indexed": False, "name": "initialValue", "type": "uint256"},
            {"indexed": False, "name": "sourceUrl", "type": "string"},
        ],
        "anonymous": False,
        "type": "event",
    },
]


class IndexOracleAdapter(ContractAdapter):
    """
    Thin web3 wrapper for the index oracle. Ids 0..5 are the predefined
    (enum-typed) indices, everything above is a custom index.
    """

    def abi(self) -> list:
        return ABI_INDEX_ORACLE

    # ---------- Read ----------

    def get_index_value(self, index_id: int) -> Tuple[int, int]:
        value, ts = self.contract.functions.getIndexValue(int(index_id)).call()
        return int(value), int(ts)

    def index_data(self, index_type: int) -> Dict[str, Any]:
        value, ts, source_url, is_active = self.contract.functions.indexData(int(index_type)).call()
        return {"value": int(value), "timestamp": int(ts), "source_url": source_url, "is_active": bool(is_active)}

    def custom_index_data(self, index_id: int) -> Dict[str, Any]:
        value, ts, source_url, is_active = self.contract.functions.customIndexData(int(index_id)).call()
        return {"value": int(value), "timestamp": int(ts), "source_url": source_url, "is_active": bool(is_active)}

    def all_custom_indices(self) -> List[Dict[str, Any]]:
        ids, values, timestamps, actives = self.contract.functions.getAllCustomIndices().call()
        return [
            {"id": int(i), "value": int(v), "timestamp": int(t), "is_active": bool(a)}
            for i, v, t, a in zip(ids, values, timestamps, actives)
        ]

    def next_custom_index_id(self) -> int:
        return int(self.contract.functions.getNextCustomIndexId().call())

    def owner(self) -> str:
        return self.contract.functions.owner().call()

    # ---------- Write (build tx function calls) ----------

    def fn_update_index(self, index_type: int, value: int):
        return self.contract.functions.updateIndex(int(index_type), int(value))

    def fn_update_custom_index(self, index_id: int, value: int):
        return self.contract.functions.updateCustomIndex(int(index_id), int(value))

    def fn_set_index_active(self, index_type: int, active: bool):
        return self.contract.functions.setIndexActive(int(index_type), bool(active))

    def fn_set_custom_index_active(self, index_id: int, active: bool):
        return self.contract.functions.setCustomIndexActive(int(index_id), bool(active))

    def fn_simulate_price_movement(self, index_type: int, percentage_bps: int, is_increase: bool):
        return self.contract.functions.simulatePriceMovement(int(index_type), int(percentage_bps), bool(is_increase))

    def fn_create_custom_index(self, initial_value: int, source_url: str):
        return self.contract.functions.createCustomIndex(int(initial_value), source_url)

    # ---------- Events ----------

    def created_index_id(self, receipt: dict) -> Optional[int]:
        """Id emitted by CustomIndexCreated in a mined receipt, if present."""
        for log in receipt.get("logs", []) or []:
            if Web3.to_checksum_address(log.get("address", self.address)) != self.address:
                continue
            norm = {
                **log,
                "topics": [HexBytes(t) for t in log.get("topics", [])],
                "data": HexBytes(log.get("data", "0x")),
            }
            try:
                ev = self.contract.events.CustomIndexCreated().process_log(norm)
            except Exception:
                # other events from the same contract
                continue
            return int(ev["args"]["indexId"])
        return None
