import re
import time
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from hexbytes import HexBytes
from web3 import Web3

_AMOUNT_RE = re.compile(r"^\d*(\.\d*)?$")


def to_json_safe(obj: Any) -> Any:
    """
    Recursively convert web3 / HexBytes-heavy structures into plain
    JSON-serializable primitives.

    - HexBytes / bytes -> "0x..." str
    - dict (incl. web3 AttributeDict) -> {str(k): to_json_safe(v)}
    - list/tuple/set -> [to_json_safe(v), ...]
    - everything else -> unchanged if natively serializable, else str(obj)
    """
    if isinstance(obj, HexBytes):
        return Web3.to_hex(obj)

    if isinstance(obj, (bytes, bytearray)):
        return "0x" + bytes(obj).hex()

    if isinstance(obj, (str, int, float, bool)) or obj is None:
        return obj

    if isinstance(obj, dict) or hasattr(obj, "items"):
        return {str(k): to_json_safe(v) for (k, v) in obj.items()}

    if isinstance(obj, (list, tuple, set)):
        return [to_json_safe(v) for v in obj]

    return str(obj)


def stringify_ints(obj: Any) -> Any:
    """
    Same walk as to_json_safe but big integers become decimal strings,
    which is how the 1inch APIs and JS wallets expect uint256 values.
    """
    if isinstance(obj, bool):
        return obj
    if isinstance(obj, int):
        return str(obj)
    if isinstance(obj, dict):
        return {k: stringify_ints(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [stringify_ints(v) for v in obj]
    return to_json_safe(obj)


def parse_token_amount(amount: str | int | float | Decimal, decimals: int) -> int:
    """
    Human amount -> raw integer units.
    Extra fractional digits beyond `decimals` are truncated, missing ones padded.
        parse_token_amount("1.5", 6) == 1_500_000
    """
    text = str(amount).strip()
    if isinstance(amount, float):
        # avoid scientific notation coming from float repr
        text = format(Decimal(repr(amount)), "f")
    if not text or text == "." or not _AMOUNT_RE.match(text):
        raise ValueError(f"Invalid amount: {amount!r}")

    whole, _, frac = text.partition(".")
    frac = (frac + "0" * decimals)[:decimals]
    return int(whole or "0") * (10 ** decimals) + int(frac or "0")


def format_token_amount(raw: int | str, decimals: int) -> str:
    """
    Raw integer units -> human string without trailing zeros.
        format_token_amount(1_500_000, 6) == "1.5"
    """
    value = int(raw)
    sign = "-" if value < 0 else ""
    value = abs(value)
    if decimals == 0:
        return f"{sign}{value}"
    whole, frac = divmod(value, 10 ** decimals)
    frac_str = str(frac).rjust(decimals, "0").rstrip("0")
    return f"{sign}{whole}.{frac_str}" if frac_str else f"{sign}{whole}"


def to_decimal(value: Any) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"Not a number: {value!r}") from exc


def now_ms() -> int:
    return int(time.time() * 1000)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def is_address(value: Any) -> bool:
    return isinstance(value, str) and Web3.is_address(value)


def short_hex(value: str, n: int = 10) -> str:
    return value[:n] + "..." if value and len(value) > n else value
