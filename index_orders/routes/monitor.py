from fastapi import APIRouter, Depends, HTTPException

from ..domain.models import TrackOrderRequest
from ..services.order_monitor import OrderMonitor
from .deps import DOMAIN_ERRORS, get_monitor, http_error

router = APIRouter(prefix="/monitor", tags=["monitor"])


@router.get("")
async def monitor_summary(monitor: OrderMonitor = Depends(get_monitor)):
    summary = await monitor.check_all()
    return {**summary, "tracked": monitor.tracked()}


@router.post("/track")
async def track(req: TrackOrderRequest, monitor: OrderMonitor = Depends(get_monitor)):
    """Track an order; without `condition` it is decoded from the orderbook extension."""
    try:
        return await monitor.track(req.order_hash, req.description, req.condition)
    except ValueError as exc:
        raise HTTPException(400, str(exc)) from exc
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc


@router.get("/{order_hash}")
async def check(order_hash: str, monitor: OrderMonitor = Depends(get_monitor)):
    try:
        return await monitor.check(order_hash)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc


@router.delete("/{order_hash}")
async def untrack(order_hash: str, monitor: OrderMonitor = Depends(get_monitor)):
    if not await monitor.untrack(order_hash):
        raise HTTPException(404, "Order is not tracked")
    return {"ok": True, "orderHash": order_hash.lower()}
