import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..adapters.external.telegram_client import TelegramNotifier
from ..adapters.index_oracle import IndexOracleAdapter
from ..domain.indices import format_index_value, get_index_info
from ..domain.models import IndexCondition
from .exceptions import OrderNotFoundError
from .extension import extension_predicate
from .order_manager import OrderManager
from .predicate import decode_index_predicate, describe_condition, evaluate_condition


class OrderMonitor:
    """
    Watches conditional orders and reports when their index condition holds,
    i.e. when a taker could fill them.

    Tracked orders live in memory. Alerts fire once per transition to
    executable and re-arm when the condition stops holding.
    """

    def __init__(
        self,
        oracle: IndexOracleAdapter,
        orders: Optional[OrderManager] = None,
        notifier: Optional[TelegramNotifier] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._oracle = oracle
        self._orders = orders
        self._notifier = notifier
        self._logger = logger or logging.getLogger(self.__class__.__name__)
        self._tracked: Dict[str, Dict[str, Any]] = {}
        self._lock = asyncio.Lock()

    async def _condition_from_orderbook(self, order_hash: str) -> IndexCondition:
        if self._orders is None:
            raise OrderNotFoundError(order_hash)
        raw = await self._orders.raw_order(order_hash)
        data = raw.get("data") if isinstance(raw.get("data"), dict) else raw
        extension = data.get("extension") or raw.get("extension")
        predicate = extension_predicate(extension) if extension else b""
        condition = decode_index_predicate(predicate, self._oracle.address) if predicate else None
        if condition is None:
            raise ValueError(f"order {order_hash} has no index condition")
        return condition

    async def track(self, order_hash: str, description: str = "", condition: Optional[IndexCondition] = None) -> Dict[str, Any]:
        key = order_hash.lower()
        if condition is None:
            condition = await self._condition_from_orderbook(order_hash)
        entry = {
            "orderHash": key,
            "description": description or describe_condition(condition),
            "condition": condition,
            "executable": False,
            "lastCheck": None,
        }
        async with self._lock:
            self._tracked[key] = entry
        self._logger.info("tracking %s: %s", key, entry["description"])
        return self._public(entry)

    async def untrack(self, order_hash: str) -> bool:
        async with self._lock:
            return self._tracked.pop(order_hash.lower(), None) is not None

    def tracked(self) -> List[Dict[str, Any]]:
        return [self._public(e) for e in self._tracked.values()]

    @staticmethod
    def _public(entry: Dict[str, Any]) -> Dict[str, Any]:
        cond: IndexCondition = entry["condition"]
        return {
            "orderHash": entry["orderHash"],
            "description": entry["description"],
            "condition": cond.model_dump(mode="json", by_alias=True),
            "executable": entry["executable"],
            "lastCheck": entry["lastCheck"],
        }

    async def evaluate(self, condition: IndexCondition) -> Dict[str, Any]:
        value, ts = await asyncio.to_thread(self._oracle.get_index_value, condition.index_id)
        threshold = int(condition.threshold)
        diff = value - threshold
        return {
            "indexId": condition.index_id,
            "indexName": get_index_info(condition.index_id).name,
            "operator": condition.operator.value,
            "executable": evaluate_condition(condition.operator, value, threshold),
            "current": value,
            "threshold": threshold,
            "currentFormatted": format_index_value(condition.index_id, value),
            "thresholdFormatted": format_index_value(condition.index_id, threshold),
            "difference": diff,
            "percentDifference": round(diff / threshold * 100, 4) if threshold else None,
            "lastUpdated": datetime.fromtimestamp(ts, tz=timezone.utc).isoformat() if ts else None,
        }

    async def check(self, order_hash: str) -> Dict[str, Any]:
        key = order_hash.lower()
        entry = self._tracked.get(key)
        if entry is None:
            raise OrderNotFoundError(order_hash)

        result = await self.evaluate(entry["condition"])
        became_executable = result["executable"] and not entry["executable"]
        entry["executable"] = result["executable"]
        entry["lastCheck"] = datetime.now(timezone.utc).isoformat()

        if became_executable:
            self._logger.info("order %s is now executable (%s)", key, result["currentFormatted"])
            await self._notify(entry, result)
        return {"orderHash": key, "description": entry["description"], **result}

    async def _notify(self, entry: Dict[str, Any], result: Dict[str, Any]) -> None:
        if not self._notifier or not self._notifier.enabled:
            return
        msg = (
            "🎯 Order condition met\n"
            f"{entry['description']}\n"
            f"Current: {result['currentFormatted']} (threshold {result['thresholdFormatted']})\n"
            f"Order: {entry['orderHash']}"
        )
        await asyncio.to_thread(self._notifier.send_text, msg)

    async def check_all(self) -> Dict[str, Any]:
        results: List[Dict[str, Any]] = []
        for key in list(self._tracked):
            try:
                results.append(await self.check(key))
            except OrderNotFoundError:
                # untracked while iterating
                continue
            except Exception as exc:
                self._logger.warning("check %s failed: %s", key, exc)
                results.append({"orderHash": key, "executable": False, "error": str(exc)})
        executable = sum(1 for r in results if r.get("executable"))
        return {
            "total": len(results),
            "executable": executable,
            "pending": len(results) - executable,
            "results": results,
        }
