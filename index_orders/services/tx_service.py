import logging
from decimal import Decimal
from typing import Any, Dict, Literal, Optional

from eth_account import Account
from web3 import Web3
from web3.contract.contract import ContractFunction

from ..config import get_settings
from .exceptions import (
    ConfigurationError,
    TransactionBudgetExceededError,
    TransactionRevertedError,
)
from .utils import to_json_safe

GasStrategy = Literal["default", "buffered", "aggressive"]

FALLBACK_GAS_LIMIT = 300_000

# (multiplier, flat padding) applied on top of eth_estimateGas
_GAS_PADDING: Dict[str, tuple] = {
    "default": (1.0, 0),
    "buffered": (1.25, 10_000),
    "aggressive": (1.5, 25_000),
}


class TxService:
    """
    Signs and broadcasts contract writes with the configured PRIVATE_KEY
    (oracle owner operations, backend order cancellation).

    send() returns a JSON-safe dict:
        tx_hash, broadcasted, status, block_number, gas_used,
        gas_limit_used, gas_price_wei, gas_budget_check, receipt
    """

    def __init__(self, rpc_url: Optional[str] = None, private_key: Optional[str] = None, w3: Optional[Web3] = None):
        s = get_settings()
        self._logger = logging.getLogger(self.__class__.__name__)
        self.w3 = w3 or Web3(Web3.HTTPProvider(rpc_url or s.RPC_URL))
        self.pk = private_key or s.PRIVATE_KEY
        if not self.pk:
            raise ConfigurationError("PRIVATE_KEY", "PRIVATE_KEY not configured: on-chain writes are disabled")
        self.account = Account.from_key(self.pk)

    def sender_address(self) -> str:
        return self.account.address

    # ---------- gas ----------

    def gas_limit_for(self, tx: dict, strategy: GasStrategy = "buffered", multiplier: Optional[float] = None) -> int:
        try:
            estimate = int(self.w3.eth.estimate_gas(tx))
        except Exception as exc:
            # reverting calls also land here, the receipt will tell
            self._logger.warning("estimate_gas failed (%s), using %s", exc, FALLBACK_GAS_LIMIT)
            estimate = FALLBACK_GAS_LIMIT

        if multiplier is not None:
            return int(estimate * multiplier)
        factor, pad = _GAS_PADDING.get(strategy, (1.0, 0))
        return int(estimate * factor) + pad

    def _with_fee_fields(self, tx: dict) -> dict:
        # Base accepts legacy gasPrice when no 1559 fields are given
        if "maxFeePerGas" not in tx and "maxPriorityFeePerGas" not in tx and "gasPrice" not in tx:
            tx["gasPrice"] = self.w3.eth.gas_price
        return tx

    @staticmethod
    def _check_budget(gas_limit: int, gas_price_wei: int, max_gas_usd: Optional[float],
                      eth_usd: Optional[float]) -> Dict[str, Any]:
        """
        Upper bound of the fee in USD against max_gas_usd.
        Raises before anything is broadcast.
        """
        block = {
            "max_gas_usd": max_gas_usd,
            "eth_usd_hint": eth_usd,
            "usd_estimated_upper_bound": None,
            "budget_exceeded": False,
        }
        if max_gas_usd is None:
            return block
        if not eth_usd or eth_usd <= 0:
            raise TransactionBudgetExceededError(gas_limit, gas_price_wei, 0.0, 0.0, float(max_gas_usd))

        cost_eth = Decimal(gas_limit) * Decimal(gas_price_wei) / Decimal(10**18)
        cost_usd = float(cost_eth * Decimal(str(eth_usd)))
        block["usd_estimated_upper_bound"] = cost_usd
        if cost_usd > float(max_gas_usd):
            raise TransactionBudgetExceededError(gas_limit, gas_price_wei, float(eth_usd), cost_usd, float(max_gas_usd))
        return block

    # ---------- send ----------

    def send(
        self,
        fn: ContractFunction,
        *,
        wait: bool = False,
        value: int = 0,
        gas_limit: Optional[int] = None,
        gas_strategy: GasStrategy = "buffered",
        gas_multiplier: Optional[float] = None,
        max_gas_usd: Optional[float] = None,
        eth_usd_hint: Optional[float] = None,
        receipt_timeout: int = 180,
    ) -> dict:
        """
        Broadcast `fn` from the configured account.

        gas_multiplier overrides gas_strategy (cancellation uses 1.2).
        With wait=True blocks for the receipt and raises
        TransactionRevertedError on status 0.
        """
        tx = fn.build_transaction({
            "from": self.account.address,
            "nonce": self.w3.eth.get_transaction_count(self.account.address),
            "value": int(value or 0),
        })
        tx["gas"] = int(gas_limit) if gas_limit is not None else self.gas_limit_for(tx, gas_strategy, gas_multiplier)
        tx = self._with_fee_fields(tx)
        gas_price_wei = int(tx.get("gasPrice") or tx.get("maxFeePerGas") or 0)
        budget = self._check_budget(tx["gas"], gas_price_wei, max_gas_usd, eth_usd_hint)

        signed = self.w3.eth.account.sign_transaction(tx, self.pk)
        tx_hash = Web3.to_hex(self.w3.eth.send_raw_transaction(signed.raw_transaction))
        self._logger.info("sent %s from %s (gas=%s, gasPrice=%s)", tx_hash, self.account.address, tx["gas"], gas_price_wei)

        result: Dict[str, Any] = {
            "tx_hash": tx_hash,
            "broadcasted": True,
            "receipt": None,
            "status": None,
            "block_number": None,
            "gas_used": None,
            "gas_limit_used": tx["gas"],
            "gas_price_wei": gas_price_wei,
            "gas_budget_check": budget,
        }
        if not wait:
            return to_json_safe(result)

        rcpt = dict(self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=receipt_timeout))
        status = int(rcpt.get("status", 0))
        if status == 0:
            raise TransactionRevertedError(
                tx_hash=tx_hash,
                receipt=to_json_safe(rcpt),
                msg="Transaction reverted (status=0)",
                budget_block=budget,
            )
        result.update(receipt=rcpt, status=status, block_number=rcpt.get("blockNumber"), gas_used=rcpt.get("gasUsed"))
        return to_json_safe(result)
