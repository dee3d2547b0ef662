from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..adapters.external.oneinch_client import OneInchClient
from ..domain.models import ClassicSwapRequest
from ..services.classic_swap import ClassicSwapService
from .deps import DOMAIN_ERRORS, get_oneinch_client, get_swap_service, http_error

router = APIRouter(prefix="/swap", tags=["swap"])


@router.get("/quote")
async def quote(
    src: str = Query(...),
    dst: str = Query(...),
    amount: str = Query(..., description="raw units of src"),
    client: OneInchClient = Depends(get_oneinch_client),
):
    try:
        return await client.quote(src, dst, amount)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc


@router.get("/swap")
async def swap(
    src: str = Query(...),
    dst: str = Query(...),
    amount: str = Query(...),
    from_address: str = Query(..., alias="from"),
    slippage: float = Query(1.0, gt=0, le=50),
    client: OneInchClient = Depends(get_oneinch_client),
):
    try:
        return await client.swap(src, dst, amount, from_address, slippage=slippage)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc


@router.get("/allowance")
async def allowance(
    token_address: str = Query(..., alias="tokenAddress"),
    wallet_address: str = Query(..., alias="walletAddress"),
    client: OneInchClient = Depends(get_oneinch_client),
):
    try:
        value = await client.allowance(token_address, wallet_address)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc
    return {"allowance": str(value)}


@router.get("/approve")
async def approve(
    token_address: str = Query(..., alias="tokenAddress"),
    amount: Optional[str] = Query(None),
    client: OneInchClient = Depends(get_oneinch_client),
):
    try:
        return await client.approve_transaction(token_address, amount)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc


@router.get("/tokens")
async def tokens(client: OneInchClient = Depends(get_oneinch_client)):
    try:
        return await client.tokens()
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc


@router.post("/classic/plan")
async def classic_plan(req: ClassicSwapRequest, svc: ClassicSwapService = Depends(get_swap_service)):
    """Approve (if needed) + swap transactions for the wallet to sign, in order."""
    try:
        return await svc.plan(req.src, req.dst, req.amount, req.wallet_address, req.slippage)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc
