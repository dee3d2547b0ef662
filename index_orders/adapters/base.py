from abc import ABC, abstractmethod

from web3 import Web3


class ContractAdapter(ABC):
    """
    Abstract adapter around a single deployed contract.
    Read methods return plain python values, fn_* methods return
    parameterized ContractFunctions for TxService.send().
    """

    def __init__(self, w3: Web3, address: str):
        self.w3 = w3
        self.address = Web3.to_checksum_address(address)
        self.contract = self.w3.eth.contract(address=self.address, abi=self.abi())

    # ---------- ABI provider ----------
    @abstractmethod
    def abi(self) -> list: ...

    def encode_call(self, fn_name: str, *args) -> str:
        """Calldata hex for wallet-side transactions (no signing here)."""
        return self.contract.encode_abi(fn_name, args=list(args))
