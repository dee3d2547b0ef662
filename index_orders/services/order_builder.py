"""
Turns an OrderRequest (human amounts, symbols, index condition) into a
signed-ready LOP v4 LimitOrder carrying the index predicate.
"""
import time
from dataclasses import dataclass
from typing import List, Optional

from pydantic import ValidationError
from pydantic.alias_generators import to_camel
from web3 import Web3

from ..domain.enums import ComparisonOperator
from ..domain.models import IndexCondition, OrderRequest
from ..domain.tokens import Token, resolve_token
from .exceptions import OrderValidationError, UnknownTokenError
from .extension import Extension
from .limit_order import LimitOrder
from .maker_traits import MakerTraits, random_nonce
from .predicate import build_index_predicate, describe_condition
from .utils import parse_token_amount

REQUIRED_FIELDS = ("from_token", "to_token", "amount", "expected_amount", "condition", "maker_address")


def _amount_error(label: str, value: str, token: Optional[Token]) -> Optional[str]:
    """Same parsing build() applies, against the token decimals once known."""
    decimals = token.decimals if token is not None else 18
    try:
        raw = parse_token_amount(value, decimals)
    except ValueError:
        return f"{label} must be a positive number"
    if raw == 0:
        if token is None:
            return f"{label} must be a positive number"
        return f"{label} rounds down to zero for {token.symbol} ({token.decimals} decimals)"
    return None


def validate_order_request(req: OrderRequest) -> List[str]:
    """
    Collect every problem with the request instead of stopping at the first.
    """
    errors: List[str] = []
    for name in REQUIRED_FIELDS:
        if getattr(req, name) in (None, ""):
            errors.append(f"Missing required field: {to_camel(name)}")

    if req.maker_address and not Web3.is_address(req.maker_address):
        errors.append("makerAddress is not a valid address")
    if req.receiver and not Web3.is_address(req.receiver):
        errors.append("receiver is not a valid address")

    from_token = to_token = None
    for label, value in (("fromToken", req.from_token), ("toToken", req.to_token)):
        if not value:
            continue
        try:
            tok = resolve_token(value)
        except UnknownTokenError:
            errors.append(f"{label} is not a known token symbol or address: {value}")
            continue
        if label == "fromToken":
            from_token = tok
        else:
            to_token = tok
    if from_token and to_token and from_token.address.lower() == to_token.address.lower():
        errors.append("fromToken and toToken must be different")
    if from_token is not None and from_token.is_native:
        errors.append("native ETH cannot be the maker asset of a limit order, use WETH")

    for label, value, tok in (("amount", req.amount, from_token), ("expectedAmount", req.expected_amount, to_token)):
        if value in (None, ""):
            continue
        problem = _amount_error(label, value, tok)
        if problem:
            errors.append(problem)

    cond = req.condition
    if cond is not None:
        index_id = cond.get("indexId", cond.get("index_id"))
        if not isinstance(index_id, int) or isinstance(index_id, bool) or index_id < 0:
            errors.append("condition.indexId must be a non-negative integer")
        op = cond.get("operator")
        if not isinstance(op, str) or op.lower() not in {o.value for o in ComparisonOperator}:
            errors.append(
                "condition.operator must be one of: " + ", ".join(o.value for o in ComparisonOperator)
            )
        threshold = cond.get("threshold")
        if not isinstance(threshold, int) or isinstance(threshold, bool) or threshold < 0:
            errors.append("condition.threshold must be a non-negative integer (basis points)")

    return errors


def parse_condition(raw: dict) -> IndexCondition:
    try:
        return IndexCondition.model_validate(raw)
    except ValidationError as exc:
        raise OrderValidationError([f"condition: {e['msg']}" for e in exc.errors()]) from exc


@dataclass
class BuiltIndexOrder:
    order: LimitOrder
    condition: IndexCondition
    maker_token: Token
    taker_token: Token
    predicate: bytes
    summary: str


class IndexOrderBuilder:
    """
    Defaults for index orders: partial fills + multiple fills allowed,
    has-extension set, random 40-bit nonce, expiration now + expiration_sec.
    """

    def __init__(self, oracle_address: str, expiration_sec: int = 86_400):
        self.oracle_address = Web3.to_checksum_address(oracle_address)
        self.expiration_sec = int(expiration_sec)

    def build(self, req: OrderRequest, now: Optional[int] = None) -> BuiltIndexOrder:
        errors = validate_order_request(req)
        if errors:
            raise OrderValidationError(errors)

        maker_token = resolve_token(req.from_token)
        taker_token = resolve_token(req.to_token)
        making_amount = parse_token_amount(req.amount, maker_token.decimals)
        taking_amount = parse_token_amount(req.expected_amount, taker_token.decimals)

        condition = parse_condition(req.condition)
        predicate = build_index_predicate(condition, self.oracle_address)
        extension = Extension(predicate=predicate)

        ts = int(now if now is not None else time.time())
        traits = (
            MakerTraits.default()
            .allow_partial_fills()
            .allow_multiple_fills()
            .with_extension()
            .with_nonce(random_nonce())
            .with_expiration(ts + int(req.expiration_sec or self.expiration_sec))
        )

        order = LimitOrder.create(
            maker=req.maker_address,
            receiver=req.receiver,
            maker_asset=maker_token.address,
            taker_asset=taker_token.address,
            making_amount=making_amount,
            taking_amount=taking_amount,
            traits=traits,
            extension=extension,
        )
        summary = (
            f"Swap {req.amount} {maker_token.symbol} for {req.expected_amount} {taker_token.symbol} "
            f"when {describe_condition(condition)}"
        )
        return BuiltIndexOrder(
            order=order,
            condition=condition,
            maker_token=maker_token,
            taker_token=taker_token,
            predicate=predicate,
            summary=summary,
        )
