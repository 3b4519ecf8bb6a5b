from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..deps import get_db, get_qa_notifier, http_error
from ..errors import InventoryError
from ..schemas import PutawayAssign, PutawayCreate, PutawayFilter, PutawayOut, TransitionRequest
from ..services import PutawayService
from ..services.ports import QAReleaseNotifier

router = APIRouter(prefix="/api/v1/warehouse/putaway", tags=["Putaway"])


def get_putaway_service(notifier: QAReleaseNotifier = Depends(get_qa_notifier)) -> PutawayService:
    return PutawayService(notifier)


@router.post("", response_model=PutawayOut, status_code=201)
def create_putaway(
    request: PutawayCreate,
    db: Session = Depends(get_db),
    service: PutawayService = Depends(get_putaway_service),
):
    return service.create(db, request)


@router.get("", response_model=List[PutawayOut])
def list_putaway(
    filters: PutawayFilter = Depends(),
    db: Session = Depends(get_db),
    service: PutawayService = Depends(get_putaway_service),
):
    return service.list(db, filters)


@router.get("/{putaway_id}", response_model=PutawayOut)
def get_putaway(
    putaway_id: int,
    db: Session = Depends(get_db),
    service: PutawayService = Depends(get_putaway_service),
):
    try:
        return service.get(db, putaway_id)
    except InventoryError as e:
        raise http_error(e)


@router.post("/{putaway_id}/assign", response_model=PutawayOut)
def assign_putaway_location(
    putaway_id: int,
    request: PutawayAssign,
    db: Session = Depends(get_db),
    service: PutawayService = Depends(get_putaway_service),
):
    try:
        return service.assign_location(db, putaway_id, request)
    except InventoryError as e:
        raise http_error(e)


@router.post("/{putaway_id}/start", response_model=PutawayOut)
def start_putaway(
    putaway_id: int,
    request: TransitionRequest,
    db: Session = Depends(get_db),
    service: PutawayService = Depends(get_putaway_service),
):
    try:
        return service.start(db, putaway_id, request.performed_by)
    except InventoryError as e:
        raise http_error(e)


@router.post("/{putaway_id}/complete", response_model=PutawayOut)
def complete_putaway(
    putaway_id: int,
    request: TransitionRequest,
    db: Session = Depends(get_db),
    service: PutawayService = Depends(get_putaway_service),
):
    """Store the quantity as an AVAILABLE lot with its RECEIPT movement"""
    try:
        return service.complete(db, putaway_id, request.performed_by)
    except InventoryError as e:
        raise http_error(e)
