import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

from ..adapters.limit_order_protocol import LimitOrderProtocolAdapter
from .exceptions import CancellationError, TransactionRevertedError, UpstreamApiError
from .order_manager import OrderManager, status_name
from .tx_service import TxService

CANCEL_GAS_MULTIPLIER = 1.2


class OrderCancellationService:
    """
    Cancels LOP v4 orders on-chain: cancelOrder(makerTraits, orderHash).

    Only the maker can cancel, so backend cancellation signs with the
    configured key and refuses orders made by anyone else. Wallet users get
    an unsigned transaction from build_cancel_transaction instead.
    """

    def __init__(
        self,
        orders: OrderManager,
        protocol: LimitOrderProtocolAdapter,
        tx_factory: Optional[Callable[[], TxService]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._orders = orders
        self._protocol = protocol
        self._tx_factory = tx_factory or TxService
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def _fetch(self, order_hash: str) -> Dict[str, Any]:
        try:
            raw = await self._orders.raw_order(order_hash)
        except UpstreamApiError as exc:
            if exc.status_code == 404:
                raise CancellationError(CancellationError.ORDER_NOT_FOUND, f"Order {order_hash} not found") from exc
            raise CancellationError(CancellationError.UNKNOWN_ERROR, str(exc)) from exc
        if not raw:
            raise CancellationError(CancellationError.ORDER_NOT_FOUND, f"Order {order_hash} not found")
        return raw

    @staticmethod
    def _order_data(raw: Dict[str, Any]) -> Dict[str, Any]:
        return raw.get("data") if isinstance(raw.get("data"), dict) else raw

    async def can_cancel(self, order_hash: str, wallet_address: str) -> Dict[str, Any]:
        try:
            raw = await self._fetch(order_hash)
        except CancellationError as exc:
            return {"canCancel": False, "reason": exc.msg, "orderStatus": None, "isMaker": False}

        data = self._order_data(raw)
        status = status_name(raw.get("status"))
        is_maker = str(data.get("maker", "")).lower() == wallet_address.lower()

        if not is_maker:
            reason = "Only the order maker can cancel this order"
        elif status != "active":
            reason = f"Order is {status}"
        else:
            reason = "Order can be cancelled"
        return {
            "canCancel": is_maker and status == "active",
            "reason": reason,
            "orderStatus": status,
            "isMaker": is_maker,
        }

    async def build_cancel_transaction(self, order_hash: str, maker_traits: Optional[int] = None) -> Dict[str, Any]:
        """
        Unsigned {to, data, value} for the maker's wallet.
        makerTraits is looked up in the orderbook when not supplied.
        """
        if maker_traits is None:
            raw = await self._fetch(order_hash)
            data = self._order_data(raw)
            maker_traits = int(data.get("makerTraits", 0))
            return self._protocol.cancel_order_tx(maker_traits, order_hash, data.get("maker"))
        return self._protocol.cancel_order_tx(int(maker_traits), order_hash)

    async def cancel(self, order_hash: str) -> Dict[str, Any]:
        raw = await self._fetch(order_hash)
        data = self._order_data(raw)

        tx = self._tx_factory()
        sender = tx.sender_address()
        if str(data.get("maker", "")).lower() != sender.lower():
            raise CancellationError(
                CancellationError.NOT_ORDER_MAKER,
                f"Signer {sender} is not the maker of order {order_hash}",
            )

        fn = self._protocol.fn_cancel_order(int(data.get("makerTraits", 0)), order_hash)
        self._logger.info("cancelling order %s from %s", order_hash, sender)
        try:
            res = await asyncio.to_thread(tx.send, fn, wait=True, gas_multiplier=CANCEL_GAS_MULTIPLIER)
        except TransactionRevertedError as exc:
            raise CancellationError(CancellationError.TRANSACTION_REVERTED, exc.msg, tx_hash=exc.tx_hash) from exc
        except Exception as exc:
            self._logger.exception("cancel %s failed", order_hash)
            raise CancellationError(CancellationError.UNKNOWN_ERROR, str(exc)) from exc

        return {
            "success": True,
            "orderHash": order_hash,
            "transactionHash": res["tx_hash"],
            "blockNumber": res.get("block_number"),
            "gasUsed": res.get("gas_used"),
        }

    async def cancel_many(self, order_hashes: List[str], delay_sec: float = 2.0) -> Dict[str, Any]:
        """
        Sequential, the signer nonce has to advance between cancels.
        """
        results: List[Dict[str, Any]] = []
        for i, h in enumerate(order_hashes):
            if i and delay_sec:
                await asyncio.sleep(delay_sec)
            try:
                results.append(await self.cancel(h))
            except CancellationError as exc:
                self._logger.warning("cancel %s failed: %s %s", h, exc.code, exc.msg)
                results.append({"success": False, "orderHash": h, "code": exc.code, "error": exc.msg})
        ok = sum(1 for r in results if r["success"])
        return {
            "success": ok == len(results),
            "results": results,
            "total": len(results),
            "cancelled": ok,
            "failed": len(results) - ok,
        }
