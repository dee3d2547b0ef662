from fastapi import APIRouter, Depends, HTTPException

from ..domain.models import FusionPrepareRequest, FusionQuoteRequest, FusionSubmitRequest
from ..services.fusion import FusionService
from .deps import DOMAIN_ERRORS, get_fusion_service, http_error

router = APIRouter(prefix="/fusion", tags=["fusion"])


@router.post("/quote")
async def quote(req: FusionQuoteRequest, svc: FusionService = Depends(get_fusion_service)):
    try:
        return await svc.quote(req.from_token, req.to_token, req.amount, req.wallet_address)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc


@router.post("/prepare")
async def prepare(req: FusionPrepareRequest, svc: FusionService = Depends(get_fusion_service)):
    """
    Quote + build. The wallet signs `typedData` and sends it back to /submit
    together with `order`, `extension` and `quoteId`.
    """
    try:
        built = await svc.prepare(
            req.from_token, req.to_token, req.amount, req.wallet_address, req.preset, req.receiver
        )
    except ValueError as exc:
        raise HTTPException(400, str(exc)) from exc
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc
    return {
        "success": True,
        "orderHash": built.order_hash,
        "quoteId": built.quote_id,
        "preset": built.preset.value,
        "typedData": built.typed_data,
        "order": built.order.to_api_dict(),
        "extension": built.order.extension,
        "auction": {
            "startTime": built.auction.start_time,
            "duration": built.auction.duration,
            "initialRateBump": built.auction.initial_rate_bump,
        },
    }


@router.post("/submit")
async def submit(req: FusionSubmitRequest, svc: FusionService = Depends(get_fusion_service)):
    try:
        resp = await svc.submit(req.order, req.signature, req.extension, req.quote_id)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc
    return {"success": True, "orderHash": req.order_hash, "relayer": resp}


@router.get("/status/{order_hash}")
async def status(order_hash: str, svc: FusionService = Depends(get_fusion_service)):
    try:
        return await svc.status(order_hash)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc
