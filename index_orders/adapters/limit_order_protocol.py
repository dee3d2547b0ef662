from typing import Optional

from web3 import Web3

from .base import ContractAdapter

# Subset of the 1inch Limit Order Protocol v4 (AggregationRouterV6) ABI
ABI_LIMIT_ORDER_PROTOCOL = [
    {
        "name": "cancelOrder",
        "inputs": [
            {"name": "makerTraits", "type": "uint256"},
            {"name": "orderHash", "type": "bytes32"},
        ],
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "name": "remainingInvalidatorForOrder",
        "inputs": [
            {"name": "maker", "type": "address"},
            {"name": "orderHash", "type": "bytes32"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "name": "bitInvalidatorForOrder",
        "inputs": [
            {"name": "maker", "type": "address"},
            {"name": "slot", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "name": "checkPredicate",
        "inputs": [{"name": "predicate", "type": "bytes"}],
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "name": "OrderCancelled",
        "inputs": [{"indexed": False, "name": "orderHash", "type": "bytes32"}],
        "anonymous": False,
        "type": "event",
    },
]


class LimitOrderProtocolAdapter(ContractAdapter):

    def abi(self) -> list:
        return ABI_LIMIT_ORDER_PROTOCOL

    # ---------- Read ----------

    def check_predicate(self, predicate: bytes) -> bool:
        """Ask the protocol itself whether a predicate currently holds."""
        return bool(self.contract.functions.checkPredicate(predicate).call())

    def remaining_invalidator(self, maker: str, order_hash: str) -> int:
        return int(self.contract.functions.remainingInvalidatorForOrder(
            Web3.to_checksum_address(maker), Web3.to_bytes(hexstr=order_hash)
        ).call())

    # ---------- Write ----------

    def fn_cancel_order(self, maker_traits: int, order_hash: str):
        return self.contract.functions.cancelOrder(int(maker_traits), Web3.to_bytes(hexstr=order_hash))

    def cancel_order_tx(self, maker_traits: int, order_hash: str, sender: Optional[str] = None) -> dict:
        """Unsigned transaction for a wallet to cancel its own order."""
        tx = {
            "to": self.address,
            "data": self.encode_call("cancelOrder", int(maker_traits), Web3.to_bytes(hexstr=order_hash)),
            "value": "0",
        }
        if sender:
            tx["from"] = Web3.to_checksum_address(sender)
        return tx
