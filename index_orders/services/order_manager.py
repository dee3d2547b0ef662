import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..adapters.external.oneinch_client import OneInchClient
from ..domain.enums import OrderStatus
from ..domain.tokens import token_by_address
from .exceptions import UpstreamApiError
from .extension import extension_predicate
from .predicate import decode_index_predicate, describe_condition
from .utils import format_token_amount, short_hex

# orderbook numeric statuses
STATUS_CODES = {
    "active": [1],
    "cancelled": [2],
    "filled": [3],
    "all": [1, 2, 3],
}

_STATUS_ALIASES = {
    "1": OrderStatus.ACTIVE, "active": OrderStatus.ACTIVE, "valid": OrderStatus.ACTIVE, "open": OrderStatus.ACTIVE,
    "2": OrderStatus.CANCELLED, "cancelled": OrderStatus.CANCELLED, "canceled": OrderStatus.CANCELLED,
    "invalid": OrderStatus.CANCELLED, "expired": OrderStatus.CANCELLED,
    "3": OrderStatus.FILLED, "filled": OrderStatus.FILLED, "executed": OrderStatus.FILLED,
    "completed": OrderStatus.FILLED,
}


def status_name(code: Any) -> str:
    """
    Normalize the orderbook's status (numeric or textual) to active / cancelled / filled.
    Unknown or missing values are reported as active.
    """
    if code is None:
        return OrderStatus.ACTIVE.value
    return _STATUS_ALIASES.get(str(code).strip().lower(), OrderStatus.ACTIVE).value


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _first(*values: Any) -> Any:
    for v in values:
        if v not in (None, ""):
            return v
    return None


def _human(raw: Any, decimals: int) -> str:
    try:
        return format_token_amount(int(raw), decimals)
    except (TypeError, ValueError):
        return "Unknown"


def describe_trading(order_data: Dict[str, Any]) -> str:
    maker_asset = order_data.get("makerAsset")
    taker_asset = order_data.get("takerAsset")
    if not maker_asset or not taker_asset:
        return "Unknown → Unknown"
    mt = token_by_address(maker_asset)
    tt = token_by_address(taker_asset)
    making = _human(order_data.get("makingAmount"), mt.decimals)
    taking = _human(order_data.get("takingAmount"), tt.decimals)
    return f"{making} {mt.symbol} → {taking} {tt.symbol}"


def describe_extension_condition(extension: Optional[str], oracle: Optional[str] = None) -> str:
    if not extension or extension == "0x":
        return "No condition"
    predicate = extension_predicate(extension)
    if not predicate:
        return "Standard limit order"
    condition = decode_index_predicate(predicate, oracle)
    if condition is None:
        return "Conditional order"
    return describe_condition(condition)


def process_order(raw: Dict[str, Any], chain_id: int, oracle: Optional[str] = None) -> Dict[str, Any]:
    """
    Flatten an orderbook record ({orderHash, signature, data: {...}, ...})
    into what the dashboard shows.
    """
    data = raw.get("data") if isinstance(raw.get("data"), dict) else raw
    order_hash = _first(raw.get("orderHash"), raw.get("hash"))
    extension = _first(data.get("extension"), raw.get("extension"))
    status = _first(raw.get("status"), raw.get("orderStatus"))
    maker_token = token_by_address(data.get("makerAsset"))
    taker_token = token_by_address(data.get("takerAsset"))

    return {
        "hash": order_hash,
        "maker": data.get("maker"),
        "makerAsset": data.get("makerAsset") or "Unknown",
        "takerAsset": data.get("takerAsset") or "Unknown",
        "makingAmount": str(data.get("makingAmount") or "0"),
        "takingAmount": str(data.get("takingAmount") or "0"),
        "salt": data.get("salt"),
        "makerTraits": data.get("makerTraits"),
        "extension": extension,
        "status": status_name(status),
        "createdAt": _first(raw.get("createDateTime"), raw.get("createdAt")),
        "expiration": _first(raw.get("expiry"), raw.get("expiration")),
        "filled": str(_first(raw.get("filledAmount"), raw.get("filled")) or "0"),
        "remaining": _first(raw.get("remainingMakerAmount"), raw.get("remainingAmount"), raw.get("remaining")),
        "trading": describe_trading(data),
        "condition": describe_extension_condition(extension, oracle),
        "tokenInfo": {
            "makerToken": {"symbol": maker_token.symbol, "decimals": maker_token.decimals},
            "takerToken": {"symbol": taker_token.symbol, "decimals": taker_token.decimals},
        },
        "technical": {
            "signature": raw.get("signature"),
            "chainId": raw.get("chainId") or chain_id,
            "statusCode": status,
        },
    }


class OrderManager:
    """
    Read side of the 1inch orderbook for a maker: active orders, history,
    single order details and per-status counts.
    """

    def __init__(self, client: OneInchClient, oracle_address: Optional[str] = None, logger: Optional[logging.Logger] = None):
        self._client = client
        self._oracle = oracle_address
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    def _process(self, raw: Dict[str, Any]) -> Dict[str, Any]:
        return process_order(raw, self._client.chain_id, self._oracle)

    @staticmethod
    def _pagination(page: int, limit: int, count: int) -> Dict[str, Any]:
        # the orderbook does not return a total, a full page means "maybe more"
        return {
            "page": page,
            "limit": limit,
            "total": count,
            "hasMore": count >= limit,
            "totalPages": math.ceil(count / limit) if limit else 0,
        }

    async def get_active_orders(self, maker: str, page: int = 1, limit: int = 20) -> Dict[str, Any]:
        try:
            raw = await self._client.orders_by_maker(maker, page=page, limit=limit, statuses=STATUS_CODES["active"])
        except UpstreamApiError as exc:
            self._logger.warning("active orders for %s failed: %s", maker, exc)
            return {"success": False, "error": str(exc), "maker": maker, "activeOrders": [], "pagination": None}

        orders = [self._process(o) for o in raw if o]
        self._logger.info("found %d active orders for %s", len(orders), short_hex(maker))
        return {
            "success": True,
            "maker": maker,
            "activeOrders": orders,
            "pagination": self._pagination(page, limit, len(orders)),
            "summary": {
                "totalActiveOrders": len(orders),
                "ordersOnThisPage": len(orders),
                "retrievedAt": _utc_now_iso(),
            },
        }

    async def get_order_history(self, maker: str, page: int = 1, limit: int = 50, status: str = "all") -> Dict[str, Any]:
        key = (status or "all").lower()
        if key not in STATUS_CODES:
            key = "all"
        try:
            raw = await self._client.orders_by_maker(maker, page=page, limit=limit, statuses=STATUS_CODES[key])
        except UpstreamApiError as exc:
            self._logger.warning("order history for %s failed: %s", maker, exc)
            return {"success": False, "error": str(exc), "maker": maker, "orders": [], "pagination": None}

        orders = [self._process(o) for o in raw if o]
        counts: Dict[str, int] = {}
        for o in orders:
            counts[o["status"]] = counts.get(o["status"], 0) + 1
        return {
            "success": True,
            "maker": maker,
            "status": key,
            "orders": orders,
            "pagination": self._pagination(page, limit, len(orders)),
            "summary": {
                "totalHistoricalOrders": len(orders),
                "ordersOnThisPage": len(orders),
                "statusBreakdown": counts,
                "retrievedAt": _utc_now_iso(),
            },
        }

    async def get_order_details(self, order_hash: str) -> Dict[str, Any]:
        try:
            raw = await self._client.order_by_hash(order_hash)
        except UpstreamApiError as exc:
            if exc.status_code == 404:
                return {"success": False, "error": "Order not found", "orderHash": order_hash}
            return {"success": False, "error": str(exc), "orderHash": order_hash}
        return {"success": True, "order": self._process(raw), "raw": raw}

    async def get_order_counts(self, maker: str) -> Dict[str, Any]:
        counts: Dict[str, int] = {}
        for key in ("active", "filled", "cancelled"):
            res = await self.get_order_history(maker, page=1, limit=500, status=key)
            if not res["success"]:
                return {"success": False, "error": res["error"], "maker": maker, "counts": {}, "total": 0}
            counts[key] = res["summary"]["totalHistoricalOrders"]
        return {"success": True, "maker": maker, "counts": counts, "total": sum(counts.values())}

    async def raw_order(self, order_hash: str) -> Dict[str, Any]:
        """Unprocessed orderbook record (raises on upstream errors)."""
        return await self._client.order_by_hash(order_hash)
