import logging
import secrets
from typing import Any, Dict, List, Optional

from ..adapters.external.oneinch_client import OneInchClient
from ..domain.enums import ComparisonOperator, StoredOrderStatus
from ..domain.models import OrderRequest, StoredOrder, ValidationResult
from ..repositories.order_repository import OrderRepository
from .exceptions import OrderNotFoundError, OrderValidationError, UpstreamApiError
from .limit_order import LimitOrder
from .order_builder import IndexOrderBuilder, validate_order_request

ORDER_EXAMPLES: List[Dict[str, Any]] = [
    {
        "name": "Tesla > $250",
        "description": "Buy WETH with USDC once Tesla trades above $250",
        "request": {
            "fromToken": "USDC", "toToken": "WETH", "amount": "100", "expectedAmount": "0.03",
            "condition": {"indexId": 5, "operator": "gt", "threshold": 25000},
        },
    },
    {
        "name": "VIX < 15",
        "description": "Rotate USDC into WETH when volatility calms down",
        "request": {
            "fromToken": "USDC", "toToken": "WETH", "amount": "250", "expectedAmount": "0.075",
            "condition": {"indexId": 3, "operator": "lt", "threshold": 1500},
        },
    },
    {
        "name": "BTC > $100k",
        "description": "Take profit from WETH into USDC when BTC crosses $100,000",
        "request": {
            "fromToken": "WETH", "toToken": "USDC", "amount": "0.1", "expectedAmount": "400",
            "condition": {"indexId": 2, "operator": "gt", "threshold": 10000000},
        },
    },
    {
        "name": "Inflation > 5%",
        "description": "Hedge into WETH when inflation runs above 5%",
        "request": {
            "fromToken": "USDC", "toToken": "WETH", "amount": "500", "expectedAmount": "0.15",
            "condition": {"indexId": 0, "operator": "gt", "threshold": 500},
        },
    },
]


def list_operators() -> List[Dict[str, str]]:
    return [
        {"id": op.value, "name": op.label, "symbol": op.symbol, "description": op.description}
        for op in ComparisonOperator
    ]


class OrderCreationService:
    """
    prepare -> (wallet signs typedData) -> submit

    Prepared orders are persisted under a random orderId so the client only
    has to send back {orderId, signature}; the signed payload posted to the
    orderbook is always the one built here.
    """

    def __init__(
        self,
        repo: OrderRepository,
        client: OneInchClient,
        builder: IndexOrderBuilder,
        chain_id: int,
        protocol_address: str,
        logger: Optional[logging.Logger] = None,
    ):
        self._repo = repo
        self._client = client
        self._builder = builder
        self._chain_id = int(chain_id)
        self._protocol = protocol_address
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    def validate(self, req: OrderRequest) -> ValidationResult:
        errors = validate_order_request(req)
        return ValidationResult(valid=not errors, errors=errors)

    async def prepare(self, req: OrderRequest) -> Dict[str, Any]:
        built = self._builder.build(req)
        order = built.order
        order_hash = order.order_hash(self._chain_id, self._protocol)
        order_id = secrets.token_hex(16)

        stored = StoredOrder(
            order_id=order_id,
            order_hash=order_hash,
            maker=order.maker,
            order=order.to_api_dict(),
            extension=order.extension,
            condition=built.condition.model_dump(mode="json"),
            summary=built.summary,
        )
        await self._repo.upsert(stored.model_dump(mode="json"))
        self._logger.info("prepared order %s hash=%s (%s)", order_id, order_hash, built.summary)

        return {
            "success": True,
            "orderId": order_id,
            "orderHash": order_hash,
            "typedData": order.serializable_typed_data(self._chain_id, self._protocol),
            "order": order.to_api_dict(),
            "extension": order.extension,
            "summary": built.summary,
            "condition": built.condition.model_dump(mode="json", by_alias=True),
            "expiration": order.traits.expiration,
        }

    async def submit(self, order_id: str, signature: str) -> Dict[str, Any]:
        doc = await self._repo.get(order_id)
        if not doc:
            raise OrderNotFoundError(order_id)
        if doc.get("status") == StoredOrderStatus.SUBMITTED.value:
            raise OrderValidationError([f"order {order_id} was already submitted"])

        order = LimitOrder.from_api_dict(doc["order"], extension=doc.get("extension", "0x"))
        if not order.verify_signature(signature, self._chain_id, self._protocol):
            raise OrderValidationError(["signature does not match the order maker"])

        data = {**order.to_api_dict(), "extension": order.extension}
        try:
            resp = await self._client.submit_limit_order(doc["order_hash"], signature, data)
        except UpstreamApiError as exc:
            await self._repo.update_status(
                order_id, StoredOrderStatus.FAILED.value, {"signature": signature, "last_error": str(exc)}
            )
            raise

        await self._repo.update_status(
            order_id,
            StoredOrderStatus.SUBMITTED.value,
            {"signature": signature, "orderbook_response": resp, "last_error": None},
        )
        self._logger.info("submitted order %s hash=%s", order_id, doc["order_hash"])
        return {
            "success": True,
            "orderId": order_id,
            "orderHash": doc["order_hash"],
            "orderbook": resp,
        }

    async def get_local(self, order_id: str) -> Dict[str, Any]:
        doc = await self._repo.get(order_id)
        if not doc:
            raise OrderNotFoundError(order_id)
        return doc

    async def list_local(self, maker: str, limit: int = 100) -> List[Dict[str, Any]]:
        return await self._repo.list_by_maker(maker, limit)
