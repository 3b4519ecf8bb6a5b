from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..deps import get_db, http_error
from ..errors import InventoryError
from ..schemas import (
    CycleCountCreate, CycleCountFilter, CycleCountOut, CycleCountUpdate,
    TemperatureLogCreate, TemperatureLogFilter, TemperatureLogOut, TransitionRequest,
)
from ..services import CycleCountService, TemperatureLogService

router = APIRouter(prefix="/api/v1/warehouse", tags=["Cycle Counts & Monitoring"])


# =============================================================================
# CYCLE COUNTS
# =============================================================================

@router.post("/cycle-counts", response_model=CycleCountOut, status_code=201)
def create_cycle_count(request: CycleCountCreate, db: Session = Depends(get_db)):
    return CycleCountService.create(db, request)


@router.get("/cycle-counts", response_model=List[CycleCountOut])
def list_cycle_counts(filters: CycleCountFilter = Depends(), db: Session = Depends(get_db)):
    return CycleCountService.list_counts(db, filters)


@router.get("/cycle-counts/{count_id}", response_model=CycleCountOut)
def get_cycle_count(count_id: int, db: Session = Depends(get_db)):
    try:
        return CycleCountService.get_count(db, count_id)
    except InventoryError as e:
        raise http_error(e)


@router.post("/cycle-counts/{count_id}/start", response_model=CycleCountOut)
def start_cycle_count(count_id: int, request: TransitionRequest, db: Session = Depends(get_db)):
    try:
        return CycleCountService.start(db, count_id, request.performed_by)
    except InventoryError as e:
        raise http_error(e)


@router.patch("/cycle-counts/{count_id}", response_model=CycleCountOut)
def update_cycle_count(count_id: int, request: CycleCountUpdate, db: Session = Depends(get_db)):
    """Record the counted quantity; variance fields are recomputed"""
    try:
        return CycleCountService.update(db, count_id, request)
    except InventoryError as e:
        raise http_error(e)


@router.post("/cycle-counts/{count_id}/complete", response_model=CycleCountOut)
def complete_cycle_count(count_id: int, db: Session = Depends(get_db)):
    try:
        return CycleCountService.complete(db, count_id)
    except InventoryError as e:
        raise http_error(e)


# =============================================================================
# TEMPERATURE LOGS
# =============================================================================

@router.post("/temperature-logs", response_model=TemperatureLogOut, status_code=201)
def create_temperature_log(request: TemperatureLogCreate, db: Session = Depends(get_db)):
    return TemperatureLogService.create(db, request)


@router.get("/temperature-logs", response_model=List[TemperatureLogOut])
def list_temperature_logs(filters: TemperatureLogFilter = Depends(), db: Session = Depends(get_db)):
    return TemperatureLogService.list_logs(db, filters)


@router.get("/temperature-logs/{log_id}", response_model=TemperatureLogOut)
def get_temperature_log(log_id: int, db: Session = Depends(get_db)):
    try:
        return TemperatureLogService.get_log(db, log_id)
    except InventoryError as e:
        raise http_error(e)
