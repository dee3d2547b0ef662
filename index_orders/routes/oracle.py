from fastapi import APIRouter, Depends, HTTPException

from ..domain.models import CreateIndexRequest, SetActiveRequest, SimulateMovementRequest, UpdateIndexRequest
from ..services.oracle_manager import OracleManager
from .deps import DOMAIN_ERRORS, get_oracle_manager, http_error

router = APIRouter(prefix="/oracle", tags=["oracle"])

# Sync handlers: web3 calls block, FastAPI runs them in its threadpool.


@router.get("/status")
def oracle_status(svc: OracleManager = Depends(get_oracle_manager)):
    return svc.get_status()


@router.get("/indices")
def list_indices(svc: OracleManager = Depends(get_oracle_manager)):
    return {"indices": svc.list_indices()}


@router.get("/indices/{index_id}")
def get_index(index_id: int, svc: OracleManager = Depends(get_oracle_manager)):
    if index_id < 0:
        raise HTTPException(400, "index_id must be >= 0")
    return svc.get_index(index_id)


@router.post("/indices")
def create_index(req: CreateIndexRequest, svc: OracleManager = Depends(get_oracle_manager)):
    try:
        return svc.create_custom_index(req.initial_value, req.source_url)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc


@router.put("/indices/{index_id}")
def update_index(index_id: int, req: UpdateIndexRequest, svc: OracleManager = Depends(get_oracle_manager)):
    try:
        return svc.update_index(index_id, req.value)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc


@router.put("/indices/{index_id}/active")
def set_active(index_id: int, req: SetActiveRequest, svc: OracleManager = Depends(get_oracle_manager)):
    try:
        return svc.set_index_active(index_id, req.active)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc


@router.post("/indices/{index_id}/simulate")
def simulate(index_id: int, req: SimulateMovementRequest, svc: OracleManager = Depends(get_oracle_manager)):
    try:
        return svc.simulate_price_movement(index_id, req.percentage_bps, req.is_increase)
    except ValueError as exc:
        raise HTTPException(400, str(exc)) from exc
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc
