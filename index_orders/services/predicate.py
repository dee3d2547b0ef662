"""
Predicate calldata for conditional 1inch limit orders (LOP v4).

A predicate is calldata that the Limit Order Protocol executes against
itself (PredicateHelper) before a fill; the order is fillable only while
the call returns true. For index orders the tree is

    gt|lt|eq(threshold, arbitraryStaticCall(oracle, getIndexValue(indexId)))

optionally wrapped in not(...) for gte / lte / neq.
"""
from typing import Iterable, Optional, Tuple

from eth_abi import decode, encode
from web3 import Web3

from ..domain.enums import ComparisonOperator
from ..domain.indices import format_index_value, get_index_info
from ..domain.models import IndexCondition

UINT256_MAX = 2**256 - 1

SIG_GET_INDEX_VALUE = "getIndexValue(uint256)"
SIG_ARBITRARY_STATIC_CALL = "arbitraryStaticCall(address,bytes)"
SIG_GT = "gt(uint256,bytes)"
SIG_LT = "lt(uint256,bytes)"
SIG_EQ = "eq(uint256,bytes)"
SIG_NOT = "not(bytes)"
SIG_AND = "and(uint256,bytes)"
SIG_OR = "or(uint256,bytes)"


def selector(signature: str) -> bytes:
    return bytes(Web3.keccak(text=signature)[:4])


SELECTORS = {
    sig: selector(sig)
    for sig in (SIG_GET_INDEX_VALUE, SIG_ARBITRARY_STATIC_CALL, SIG_GT, SIG_LT, SIG_EQ, SIG_NOT, SIG_AND, SIG_OR)
}


def _check_uint(value: int, name: str = "value") -> int:
    v = int(value)
    if v < 0 or v > UINT256_MAX:
        raise ValueError(f"{name} out of uint256 range: {value}")
    return v


def _as_bytes(data: bytes | str) -> bytes:
    if isinstance(data, str):
        return bytes(Web3.to_bytes(hexstr=data))
    return bytes(data)


# ---------- leaf calls ----------

def build_oracle_call(index_id: int) -> bytes:
    """Calldata for oracle.getIndexValue(indexId)."""
    return SELECTORS[SIG_GET_INDEX_VALUE] + encode(["uint256"], [_check_uint(index_id, "index_id")])


def arbitrary_static_call(target: str, data: bytes | str) -> bytes:
    """LOP arbitraryStaticCall(target, data): static call returning a uint256."""
    return SELECTORS[SIG_ARBITRARY_STATIC_CALL] + encode(
        ["address", "bytes"], [Web3.to_checksum_address(target), _as_bytes(data)]
    )


# ---------- comparison / logic primitives ----------

def gt(value: int, data: bytes | str) -> bytes:
    """true when result(data) > value"""
    return SELECTORS[SIG_GT] + encode(["uint256", "bytes"], [_check_uint(value), _as_bytes(data)])


def lt(value: int, data: bytes | str) -> bytes:
    """true when result(data) < value"""
    return SELECTORS[SIG_LT] + encode(["uint256", "bytes"], [_check_uint(value), _as_bytes(data)])


def eq(value: int, data: bytes | str) -> bytes:
    return SELECTORS[SIG_EQ] + encode(["uint256", "bytes"], [_check_uint(value), _as_bytes(data)])


def not_(data: bytes | str) -> bytes:
    return SELECTORS[SIG_NOT] + encode(["bytes"], [_as_bytes(data)])


def _join(predicates: Iterable[bytes | str]) -> Tuple[int, bytes]:
    """
    Concatenate predicates and pack their cumulative end offsets,
    32 bits per slot (slot i at bit 32*i), max 8 predicates.
    """
    parts = [_as_bytes(p) for p in predicates]
    if not parts:
        raise ValueError("at least one predicate is required")
    if len(parts) > 8:
        raise ValueError("at most 8 predicates can be combined")
    offsets = 0
    cursor = 0
    for i, p in enumerate(parts):
        cursor += len(p)
        offsets |= cursor << (32 * i)
    return offsets, b"".join(parts)


def and_(*predicates: bytes | str) -> bytes:
    offsets, data = _join(predicates)
    return SELECTORS[SIG_AND] + encode(["uint256", "bytes"], [offsets, data])


def or_(*predicates: bytes | str) -> bytes:
    offsets, data = _join(predicates)
    return SELECTORS[SIG_OR] + encode(["uint256", "bytes"], [offsets, data])


# ---------- index predicates ----------

def build_index_predicate(condition: IndexCondition, oracle: str) -> bytes:
    """
    Build the LOP predicate for "oracle[indexId] <operator> threshold".
    """
    static = arbitrary_static_call(oracle, build_oracle_call(condition.index_id))
    threshold = _check_uint(condition.threshold, "threshold")
    op = ComparisonOperator(condition.operator)

    if op == ComparisonOperator.GT:
        return gt(threshold, static)
    if op == ComparisonOperator.LT:
        return lt(threshold, static)
    if op == ComparisonOperator.EQ:
        return eq(threshold, static)
    # value >= t  <=>  !(value < t)
    if op == ComparisonOperator.GTE:
        return not_(lt(threshold, static))
    if op == ComparisonOperator.LTE:
        return not_(gt(threshold, static))
    if op == ComparisonOperator.NEQ:
        return not_(eq(threshold, static))
    raise ValueError(f"Unsupported operator: {condition.operator}")


_COMPARISONS = {
    SELECTORS[SIG_GT]: ComparisonOperator.GT,
    SELECTORS[SIG_LT]: ComparisonOperator.LT,
    SELECTORS[SIG_EQ]: ComparisonOperator.EQ,
}
_NEGATED = {
    ComparisonOperator.GT: ComparisonOperator.LTE,
    ComparisonOperator.LT: ComparisonOperator.GTE,
    ComparisonOperator.EQ: ComparisonOperator.NEQ,
}


def decode_index_predicate(predicate: bytes | str, oracle: Optional[str] = None) -> Optional[IndexCondition]:
    """
    Reverse of build_index_predicate. Returns None for anything that is not
    an index predicate (or targets another oracle when `oracle` is given).
    """
    try:
        raw = _as_bytes(predicate)
        negated = False
        if raw[:4] == SELECTORS[SIG_NOT]:
            (raw,) = decode(["bytes"], raw[4:])
            negated = True

        op = _COMPARISONS.get(bytes(raw[:4]))
        if op is None:
            return None
        threshold, static = decode(["uint256", "bytes"], raw[4:])

        if static[:4] != SELECTORS[SIG_ARBITRARY_STATIC_CALL]:
            return None
        target, call = decode(["address", "bytes"], static[4:])
        if oracle and target.lower() != oracle.lower():
            return None

        if call[:4] != SELECTORS[SIG_GET_INDEX_VALUE]:
            return None
        (index_id,) = decode(["uint256"], call[4:])
    except Exception:
        # malformed calldata is just "not ours"
        return None

    return IndexCondition(
        index_id=int(index_id),
        operator=_NEGATED[op] if negated else op,
        threshold=int(threshold),
    )


def evaluate_condition(operator: ComparisonOperator | str, current: int, threshold: int) -> bool:
    """Off-chain mirror of what the predicate answers on-chain."""
    op = ComparisonOperator(operator)
    c, t = int(current), int(threshold)
    return {
        ComparisonOperator.GT: c > t,
        ComparisonOperator.LT: c < t,
        ComparisonOperator.EQ: c == t,
        ComparisonOperator.GTE: c >= t,
        ComparisonOperator.LTE: c <= t,
        ComparisonOperator.NEQ: c != t,
    }[op]


def describe_condition(condition: IndexCondition) -> str:
    info = get_index_info(condition.index_id)
    op = ComparisonOperator(condition.operator)
    return f"{info.name} {op.symbol} {format_index_value(condition.index_id, condition.threshold)}"
