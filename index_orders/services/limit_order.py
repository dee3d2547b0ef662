"""
1inch Limit Order Protocol v4 order: salt, EIP-712 typed data, hash, signatures.
"""
import secrets
from typing import Any, Dict, Optional

from eth_account import Account
from eth_account.messages import encode_typed_data
from pydantic import BaseModel
from web3 import Web3

from .extension import Extension
from .maker_traits import MakerTraits
from .utils import stringify_ints

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

LOP_DOMAIN_NAME = "1inch Aggregation Router"
LOP_DOMAIN_VERSION = "6"

EIP712_DOMAIN_TYPE = [
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]

ORDER_TYPE = [
    {"name": "salt", "type": "uint256"},
    {"name": "maker", "type": "address"},
    {"name": "receiver", "type": "address"},
    {"name": "makerAsset", "type": "address"},
    {"name": "takerAsset", "type": "address"},
    {"name": "makingAmount", "type": "uint256"},
    {"name": "takingAmount", "type": "uint256"},
    {"name": "makerTraits", "type": "uint256"},
]


def build_salt(extension: Optional[Extension] = None, base_salt: Optional[int] = None) -> int:
    """
    Without extension: random 96 bits.
    With extension: upper 96 bits random, lower 160 bits = keccak(extension),
    which is how the protocol binds the extension to the signed order.
    """
    upper = secrets.randbits(96) if base_salt is None else int(base_salt) & ((1 << 96) - 1)
    if extension is None or extension.is_empty():
        return upper
    return (upper << 160) | extension.hash_low_160()


class LimitOrder(BaseModel):
    salt: int
    maker: str
    receiver: str = ZERO_ADDRESS
    maker_asset: str
    taker_asset: str
    making_amount: int
    taking_amount: int
    maker_traits: int
    extension: str = "0x"

    # ---------- build ----------

    @classmethod
    def create(
        cls,
        *,
        maker: str,
        maker_asset: str,
        taker_asset: str,
        making_amount: int,
        taking_amount: int,
        traits: MakerTraits,
        extension: Optional[Extension] = None,
        receiver: Optional[str] = None,
        base_salt: Optional[int] = None,
    ) -> "LimitOrder":
        ext = extension or Extension()
        if not ext.is_empty():
            traits.with_extension()
        if traits.has_extension() and ext.is_empty():
            raise ValueError("maker traits flag an extension but none was provided")
        if making_amount <= 0 or taking_amount <= 0:
            raise ValueError("making_amount and taking_amount must be positive")

        return cls(
            salt=build_salt(ext, base_salt),
            maker=Web3.to_checksum_address(maker),
            receiver=Web3.to_checksum_address(receiver) if receiver else ZERO_ADDRESS,
            maker_asset=Web3.to_checksum_address(maker_asset),
            taker_asset=Web3.to_checksum_address(taker_asset),
            making_amount=int(making_amount),
            taking_amount=int(taking_amount),
            maker_traits=traits.as_int(),
            extension=ext.to_hex(),
        )

    @classmethod
    def from_api_dict(cls, data: Dict[str, Any], extension: Optional[str] = None) -> "LimitOrder":
        return cls(
            salt=int(data["salt"]),
            maker=data["maker"],
            receiver=data.get("receiver") or ZERO_ADDRESS,
            maker_asset=data["makerAsset"],
            taker_asset=data["takerAsset"],
            making_amount=int(data["makingAmount"]),
            taking_amount=int(data["takingAmount"]),
            maker_traits=int(data["makerTraits"]),
            extension=extension if extension is not None else data.get("extension", "0x"),
        )

    # ---------- views ----------

    @property
    def traits(self) -> MakerTraits:
        return MakerTraits(self.maker_traits)

    def get_extension(self) -> Extension:
        return Extension.decode(self.extension)

    def is_salt_bound_to_extension(self) -> bool:
        ext = self.get_extension()
        if ext.is_empty():
            return True
        return (self.salt & ((1 << 160) - 1)) == ext.hash_low_160()

    def message(self) -> Dict[str, Any]:
        return {
            "salt": self.salt,
            "maker": self.maker,
            "receiver": self.receiver,
            "makerAsset": self.maker_asset,
            "takerAsset": self.taker_asset,
            "makingAmount": self.making_amount,
            "takingAmount": self.taking_amount,
            "makerTraits": self.maker_traits,
        }

    def to_api_dict(self) -> Dict[str, Any]:
        """Order struct with uint256 fields as decimal strings (orderbook / relayer format)."""
        return stringify_ints(self.message())

    # ---------- EIP-712 ----------

    def build_typed_data(self, chain_id: int, verifying_contract: str, domain_name: str = LOP_DOMAIN_NAME,
                         domain_version: str = LOP_DOMAIN_VERSION) -> Dict[str, Any]:
        return {
            "types": {
                "EIP712Domain": EIP712_DOMAIN_TYPE,
                "Order": ORDER_TYPE,
            },
            "primaryType": "Order",
            "domain": {
                "name": domain_name,
                "version": domain_version,
                "chainId": int(chain_id),
                "verifyingContract": Web3.to_checksum_address(verifying_contract),
            },
            "message": self.message(),
        }

    def serializable_typed_data(self, chain_id: int, verifying_contract: str) -> Dict[str, Any]:
        """Typed data safe for JSON (wallets accept uint256 as decimal strings)."""
        td = self.build_typed_data(chain_id, verifying_contract)
        td["message"] = stringify_ints(td["message"])
        return td

    def _signable(self, chain_id: int, verifying_contract: str):
        return encode_typed_data(full_message=self.build_typed_data(chain_id, verifying_contract))

    def order_hash(self, chain_id: int, verifying_contract: str) -> str:
        msg = self._signable(chain_id, verifying_contract)
        digest = Web3.keccak(b"\x19" + msg.version + msg.header + msg.body)
        return Web3.to_hex(digest)

    def sign(self, private_key: str, chain_id: int, verifying_contract: str) -> str:
        signed = Account.sign_message(self._signable(chain_id, verifying_contract), private_key)
        return Web3.to_hex(signed.signature)

    def recover_signer(self, signature: str, chain_id: int, verifying_contract: str) -> str:
        return Account.recover_message(self._signable(chain_id, verifying_contract), signature=signature)

    def verify_signature(self, signature: str, chain_id: int, verifying_contract: str) -> bool:
        try:
            signer = self.recover_signer(signature, chain_id, verifying_contract)
        except Exception:
            # malformed signature bytes
            return False
        return signer.lower() == self.maker.lower()
