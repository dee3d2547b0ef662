import logging
from typing import Any, Dict, List, Optional

from ..adapters.external.oneinch_client import OneInchClient
from ..domain.tokens import NATIVE_TOKEN_ADDRESS, token_by_address
from .exceptions import OrderValidationError
from .utils import format_token_amount


def _raw_amount(amount: str | int) -> int:
    if isinstance(amount, str):
        amount = amount.strip()
        if not (amount.isascii() and amount.isdigit()):
            raise OrderValidationError([f"Invalid raw amount: {amount!r}"])
    raw = int(amount)
    if raw <= 0:
        raise OrderValidationError([f"Amount must be positive: {raw}"])
    return raw


class ClassicSwapService:
    """
    Classic (gas-paying) swap through the 1inch aggregation router.

    plan() returns the ordered list of transactions the wallet must send:
    an approve when the current allowance is short, then the swap itself.
    Nothing is signed server-side.
    """

    def __init__(self, client: OneInchClient, logger: Optional[logging.Logger] = None):
        self._client = client
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def needs_approval(self, token: str, wallet: str, amount: int) -> bool:
        if token.lower() == NATIVE_TOKEN_ADDRESS.lower():
            return False
        allowance = await self._client.allowance(token, wallet)
        return allowance < int(amount)

    async def plan(self, src: str, dst: str, amount: str | int, wallet: str, slippage: float = 1.0) -> Dict[str, Any]:
        raw_amount = _raw_amount(amount)
        steps: List[Dict[str, Any]] = []

        if await self.needs_approval(src, wallet, raw_amount):
            approve_tx = await self._client.approve_transaction(src, raw_amount)
            steps.append({"type": "approve", "token": src, "tx": approve_tx})

        extra: Dict[str, Any] = {}
        if steps:
            # /swap refuses to estimate gas before the approve is mined
            extra["disableEstimate"] = "true"
        swap = await self._client.swap(src, dst, raw_amount, wallet, slippage=slippage, **extra)
        steps.append({"type": "swap", "tx": swap.get("tx")})

        dst_amount = swap.get("dstAmount") or swap.get("toAmount") or "0"
        dst_token = token_by_address(dst)
        src_token = token_by_address(src)
        self._logger.info(
            "classic plan %s %s -> %s %s (%d steps)",
            format_token_amount(raw_amount, src_token.decimals), src_token.symbol,
            format_token_amount(int(dst_amount), dst_token.decimals), dst_token.symbol,
            len(steps),
        )
        return {
            "mode": "classic",
            "src": src,
            "dst": dst,
            "amount": str(raw_amount),
            "expectedOutput": str(dst_amount),
            "expectedOutputFormatted": format_token_amount(int(dst_amount), dst_token.decimals),
            "slippage": slippage,
            "requiresApproval": any(s["type"] == "approve" for s in steps),
            "steps": steps,
        }
