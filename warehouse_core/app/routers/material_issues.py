"""
Material Issue API Router
=========================
PENDING -> APPROVED -> PICKED -> ISSUED

/reserve and /consume run the same transitions as /pick and /issue but
return the allocations and movements instead of the issue.
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..deps import get_db, http_error
from ..errors import InventoryError
from ..schemas import (
    AllocationOut, MaterialIssueApprove, MaterialIssueCreate, MaterialIssueFilter,
    MaterialIssueOut, MovementOut, TransitionRequest,
)
from ..services import MaterialIssueService

router = APIRouter(prefix="/api/v1/warehouse/material-issues", tags=["Material Issues"])


@router.post("", response_model=MaterialIssueOut, status_code=201)
def create_material_issue(request: MaterialIssueCreate, db: Session = Depends(get_db)):
    return MaterialIssueService.create(db, request)


@router.get("", response_model=List[MaterialIssueOut])
def list_material_issues(filters: MaterialIssueFilter = Depends(), db: Session = Depends(get_db)):
    return MaterialIssueService.list_issues(db, filters)


@router.get("/{issue_id}", response_model=MaterialIssueOut)
def get_material_issue(issue_id: int, db: Session = Depends(get_db)):
    try:
        return MaterialIssueService.get_issue(db, issue_id)
    except InventoryError as e:
        raise http_error(e)


@router.get("/{issue_id}/allocations", response_model=List[AllocationOut])
def get_material_issue_allocations(issue_id: int, db: Session = Depends(get_db)):
    try:
        return MaterialIssueService.get_allocations(db, issue_id)
    except InventoryError as e:
        raise http_error(e)


@router.get("/{issue_id}/movements", response_model=List[MovementOut])
def get_material_issue_movements(issue_id: int, db: Session = Depends(get_db)):
    try:
        return MaterialIssueService.get_movements(db, issue_id)
    except InventoryError as e:
        raise http_error(e)


@router.post("/{issue_id}/approve", response_model=MaterialIssueOut)
def approve_material_issue(issue_id: int, request: MaterialIssueApprove, db: Session = Depends(get_db)):
    try:
        return MaterialIssueService.approve(db, issue_id, request)
    except InventoryError as e:
        raise http_error(e)


@router.post("/{issue_id}/pick", response_model=MaterialIssueOut)
def pick_material_issue(issue_id: int, request: TransitionRequest, db: Session = Depends(get_db)):
    """Reserve lots FEFO for the full quantity. 422 when stock is short."""
    try:
        return MaterialIssueService.pick(db, issue_id, request.performed_by)
    except InventoryError as e:
        raise http_error(e)


@router.post("/{issue_id}/issue", response_model=MaterialIssueOut)
def issue_material(issue_id: int, request: TransitionRequest, db: Session = Depends(get_db)):
    try:
        return MaterialIssueService.issue(db, issue_id, request.performed_by)
    except InventoryError as e:
        raise http_error(e)


@router.post("/{issue_id}/reserve", response_model=List[AllocationOut])
def reserve_for_issue(issue_id: int, request: TransitionRequest, db: Session = Depends(get_db)):
    try:
        return MaterialIssueService.reserve_for_issue(db, issue_id, request.performed_by)
    except InventoryError as e:
        raise http_error(e)


@router.post("/{issue_id}/consume", response_model=List[MovementOut])
def consume_reserved(issue_id: int, request: TransitionRequest, db: Session = Depends(get_db)):
    try:
        return MaterialIssueService.consume_reserved(db, issue_id, request.performed_by)
    except InventoryError as e:
        raise http_error(e)
