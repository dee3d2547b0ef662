from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..domain.indices import list_predefined
from ..domain.models import (
    CancelManyRequest,
    CancelOrderRequest,
    CanCancelRequest,
    OrderRequest,
    SubmitOrderRequest,
    ValidationResult,
)
from ..domain.tokens import list_tokens
from ..services.order_cancellation import OrderCancellationService
from ..services.order_creator import ORDER_EXAMPLES, OrderCreationService, list_operators
from ..services.order_manager import OrderManager
from .deps import DOMAIN_ERRORS, get_cancellation_service, get_order_creator, get_order_manager, http_error

router = APIRouter(prefix="/orders", tags=["orders"])


# ---------- catalogue ----------

@router.get("/indices")
def indices():
    return {"indices": [i.model_dump() for i in list_predefined()]}


@router.get("/operators")
def operators():
    return {"operators": list_operators()}


@router.get("/tokens")
def tokens():
    return {"tokens": [t.model_dump() for t in list_tokens()]}


@router.get("/examples")
def examples():
    return {"examples": ORDER_EXAMPLES}


# ---------- create ----------

@router.post("/validate", response_model=ValidationResult)
def validate(req: OrderRequest, svc: OrderCreationService = Depends(get_order_creator)):
    return svc.validate(req)


@router.post("/prepare")
async def prepare(req: OrderRequest, svc: OrderCreationService = Depends(get_order_creator)):
    """
    Build the conditional order and return EIP-712 typed data for the
    maker's wallet. The order is stored until /submit.
    """
    try:
        return await svc.prepare(req)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc


@router.post("/submit")
async def submit(req: SubmitOrderRequest, svc: OrderCreationService = Depends(get_order_creator)):
    try:
        return await svc.submit(req.order_id, req.signature)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc


@router.get("/local/{order_id}")
async def local_order(order_id: str, svc: OrderCreationService = Depends(get_order_creator)):
    try:
        return await svc.get_local(order_id)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc


@router.get("/local")
async def local_orders(
    maker: str = Query(...),
    limit: int = Query(100, ge=1, le=500),
    svc: OrderCreationService = Depends(get_order_creator),
):
    return {"maker": maker, "orders": await svc.list_local(maker, limit)}


# ---------- orderbook reads ----------

@router.get("/active/{maker}")
async def active_orders(
    maker: str,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=500),
    svc: OrderManager = Depends(get_order_manager),
):
    return await svc.get_active_orders(maker, page, limit)


@router.get("/history/{maker}")
async def order_history(
    maker: str,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    status: str = Query("all"),
    svc: OrderManager = Depends(get_order_manager),
):
    return await svc.get_order_history(maker, page, limit, status)


@router.get("/details/{order_hash}")
async def order_details(order_hash: str, svc: OrderManager = Depends(get_order_manager)):
    res = await svc.get_order_details(order_hash)
    if not res["success"] and res.get("error") == "Order not found":
        raise HTTPException(404, "Order not found")
    return res


@router.get("/counts/{maker}")
async def order_counts(maker: str, svc: OrderManager = Depends(get_order_manager)):
    return await svc.get_order_counts(maker)


# ---------- cancellation ----------

@router.post("/can-cancel")
async def can_cancel(req: CanCancelRequest, svc: OrderCancellationService = Depends(get_cancellation_service)):
    return await svc.can_cancel(req.order_hash, req.wallet_address)


@router.post("/cancel")
async def cancel(req: CancelOrderRequest, svc: OrderCancellationService = Depends(get_cancellation_service)):
    """Cancel with the backend signer (PRIVATE_KEY must be the maker)."""
    try:
        return await svc.cancel(req.order_hash)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc


@router.post("/cancel-many")
async def cancel_many(req: CancelManyRequest, svc: OrderCancellationService = Depends(get_cancellation_service)):
    try:
        return await svc.cancel_many(req.order_hashes, req.delay_sec)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc


@router.get("/cancel-tx/{order_hash}")
async def cancel_tx(
    order_hash: str,
    maker_traits: Optional[str] = Query(None, alias="makerTraits"),
    svc: OrderCancellationService = Depends(get_cancellation_service),
):
    """Unsigned cancelOrder transaction for the maker's wallet."""
    try:
        traits = int(maker_traits) if maker_traits is not None else None
    except ValueError as exc:
        raise HTTPException(400, "makerTraits must be an integer") from exc
    try:
        return await svc.build_cancel_transaction(order_hash, traits)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc
