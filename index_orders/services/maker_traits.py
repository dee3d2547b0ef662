"""
MakerTraits bitfield for LOP v4 orders.

High bits are flags, low 200 bits pack:
    [0, 80)    allowed sender (low 80 bits of the address, 0 = anyone)
    [80, 120)  expiration timestamp (0 = never)
    [120, 160) nonce or epoch
    [160, 200) series
"""
import secrets
from typing import Optional

NO_PARTIAL_FILLS_FLAG = 255
ALLOW_MULTIPLE_FILLS_FLAG = 254
PRE_INTERACTION_CALL_FLAG = 252
POST_INTERACTION_CALL_FLAG = 251
NEED_CHECK_EPOCH_MANAGER_FLAG = 250
HAS_EXTENSION_FLAG = 249
USE_PERMIT2_FLAG = 248
UNWRAP_WETH_FLAG = 247

UINT_40_MAX = (1 << 40) - 1
UINT_80_MAX = (1 << 80) - 1

_ALLOWED_SENDER = (0, 80)
_EXPIRATION = (80, 40)
_NONCE_OR_EPOCH = (120, 40)
_SERIES = (160, 40)


def random_nonce() -> int:
    return secrets.randbits(40)


class MakerTraits:
    def __init__(self, value: int = 0):
        self.value = int(value)

    # ---------- bit helpers ----------

    def _get_bit(self, bit: int) -> bool:
        return bool((self.value >> bit) & 1)

    def _set_bit(self, bit: int, on: bool) -> "MakerTraits":
        if on:
            self.value |= 1 << bit
        else:
            self.value &= ~(1 << bit)
        return self

    def _get_mask(self, span: tuple) -> int:
        offset, size = span
        return (self.value >> offset) & ((1 << size) - 1)

    def _set_mask(self, span: tuple, v: int) -> "MakerTraits":
        offset, size = span
        v = int(v)
        if v < 0 or v >= (1 << size):
            raise ValueError(f"value {v} does not fit in {size} bits")
        mask = ((1 << size) - 1) << offset
        self.value = (self.value & ~mask) | (v << offset)
        return self

    # ---------- fields ----------

    @classmethod
    def default(cls) -> "MakerTraits":
        return cls(0)

    @property
    def allowed_sender(self) -> int:
        return self._get_mask(_ALLOWED_SENDER)

    def with_allowed_sender(self, address: str) -> "MakerTraits":
        return self._set_mask(_ALLOWED_SENDER, int(address, 16) & UINT_80_MAX)

    @property
    def expiration(self) -> Optional[int]:
        exp = self._get_mask(_EXPIRATION)
        return exp or None

    def with_expiration(self, ts: int) -> "MakerTraits":
        return self._set_mask(_EXPIRATION, ts)

    @property
    def nonce_or_epoch(self) -> int:
        return self._get_mask(_NONCE_OR_EPOCH)

    def with_nonce(self, nonce: int) -> "MakerTraits":
        if nonce > UINT_40_MAX:
            raise ValueError("nonce must fit in 40 bits")
        return self._set_mask(_NONCE_OR_EPOCH, nonce)

    def with_epoch(self, series: int, epoch: int) -> "MakerTraits":
        self._set_mask(_SERIES, series)
        self._set_mask(_NONCE_OR_EPOCH, epoch)
        return self._set_bit(NEED_CHECK_EPOCH_MANAGER_FLAG, True)

    @property
    def series(self) -> int:
        return self._get_mask(_SERIES)

    # ---------- flags ----------

    def is_partial_fill_allowed(self) -> bool:
        return not self._get_bit(NO_PARTIAL_FILLS_FLAG)

    def allow_partial_fills(self, allowed: bool = True) -> "MakerTraits":
        return self._set_bit(NO_PARTIAL_FILLS_FLAG, not allowed)

    def is_multiple_fills_allowed(self) -> bool:
        return self._get_bit(ALLOW_MULTIPLE_FILLS_FLAG)

    def allow_multiple_fills(self, allowed: bool = True) -> "MakerTraits":
        return self._set_bit(ALLOW_MULTIPLE_FILLS_FLAG, allowed)

    def has_extension(self) -> bool:
        return self._get_bit(HAS_EXTENSION_FLAG)

    def with_extension(self) -> "MakerTraits":
        return self._set_bit(HAS_EXTENSION_FLAG, True)

    def has_pre_interaction(self) -> bool:
        return self._get_bit(PRE_INTERACTION_CALL_FLAG)

    def enable_pre_interaction(self) -> "MakerTraits":
        return self._set_bit(PRE_INTERACTION_CALL_FLAG, True)

    def has_post_interaction(self) -> bool:
        return self._get_bit(POST_INTERACTION_CALL_FLAG)

    def enable_post_interaction(self) -> "MakerTraits":
        return self._set_bit(POST_INTERACTION_CALL_FLAG, True)

    def enable_permit2(self) -> "MakerTraits":
        return self._set_bit(USE_PERMIT2_FLAG, True)

    def enable_native_unwrap(self) -> "MakerTraits":
        return self._set_bit(UNWRAP_WETH_FLAG, True)

    def is_epoch_manager_enabled(self) -> bool:
        return self._get_bit(NEED_CHECK_EPOCH_MANAGER_FLAG)

    def as_int(self) -> int:
        return self.value

    def __int__(self) -> int:
        return self.value

    def __repr__(self) -> str:
        return f"MakerTraits({hex(self.value)})"
