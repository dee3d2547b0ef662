"""
LOP v4 order extension.

Layout: a 32-byte offsets word followed by the concatenated fields.
Slot i of the offsets word (bits [32*i, 32*i+32)) holds the cumulative end
offset of field i inside the concatenated data. customData is appended
after the eight interaction fields and is not indexed by the offsets word.
"""
from dataclasses import dataclass, fields
from typing import Optional

from web3 import Web3

UINT160_MASK = (1 << 160) - 1


def _hex_to_bytes(value: bytes | str | None) -> bytes:
    if value is None:
        return b""
    if isinstance(value, str):
        return bytes(Web3.to_bytes(hexstr=value)) if value not in ("", "0x") else b""
    return bytes(value)


@dataclass(frozen=True)
class Extension:
    maker_asset_suffix: bytes = b""
    taker_asset_suffix: bytes = b""
    making_amount_data: bytes = b""
    taking_amount_data: bytes = b""
    predicate: bytes = b""
    maker_permit: bytes = b""
    pre_interaction: bytes = b""
    post_interaction: bytes = b""
    custom_data: bytes = b""

    # order matters: it is the order of the offset slots
    INTERACTION_FIELDS = (
        "maker_asset_suffix",
        "taker_asset_suffix",
        "making_amount_data",
        "taking_amount_data",
        "predicate",
        "maker_permit",
        "pre_interaction",
        "post_interaction",
    )

    def is_empty(self) -> bool:
        return all(len(getattr(self, f.name)) == 0 for f in fields(self))

    def encode(self) -> bytes:
        if self.is_empty():
            return b""
        offsets = 0
        cursor = 0
        chunks = []
        for i, name in enumerate(self.INTERACTION_FIELDS):
            chunk = getattr(self, name)
            cursor += len(chunk)
            offsets |= cursor << (32 * i)
            chunks.append(chunk)
        return offsets.to_bytes(32, "big") + b"".join(chunks) + self.custom_data

    def to_hex(self) -> str:
        data = self.encode()
        return "0x" + data.hex() if data else "0x"

    def keccak(self) -> bytes:
        return bytes(Web3.keccak(self.encode()))

    def hash_low_160(self) -> int:
        """Low 160 bits of keccak(extension), the part bound into the order salt."""
        return int.from_bytes(self.keccak(), "big") & UINT160_MASK

    @classmethod
    def decode(cls, data: bytes | str | None) -> "Extension":
        raw = _hex_to_bytes(data)
        if not raw:
            return cls()
        if len(raw) < 32:
            raise ValueError("extension shorter than its offsets word")

        offsets = int.from_bytes(raw[:32], "big")
        body = raw[32:]
        values = {}
        start = 0
        for i, name in enumerate(cls.INTERACTION_FIELDS):
            end = (offsets >> (32 * i)) & 0xFFFFFFFF
            if end < start or end > len(body):
                raise ValueError(f"bad extension offset for {name}: {start}..{end}")
            values[name] = body[start:end]
            start = end
        values["custom_data"] = body[start:]
        return cls(**values)


def extension_predicate(data: bytes | str | None) -> Optional[bytes]:
    """Predicate bytes of an encoded extension, None when absent or unparsable."""
    try:
        ext = Extension.decode(data)
    except ValueError:
        return None
    return ext.predicate or None
