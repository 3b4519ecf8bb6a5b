from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..deps import get_db, http_error
from ..errors import InventoryError
from ..schemas import LabelCreate, LabelFilter, LabelOut, LabelPrint, LabelUpdate
from ..services import LabelService

router = APIRouter(prefix="/api/v1/warehouse/labels", tags=["Labels"])


@router.post("", response_model=LabelOut, status_code=201)
def create_label(request: LabelCreate, db: Session = Depends(get_db)):
    try:
        return LabelService.create(db, request)
    except InventoryError as e:
        raise http_error(e)


@router.get("", response_model=List[LabelOut])
def list_labels(filters: LabelFilter = Depends(), db: Session = Depends(get_db)):
    return LabelService.list_labels(db, filters)


@router.get("/barcode/{barcode}", response_model=LabelOut)
def get_label_by_barcode(barcode: str, db: Session = Depends(get_db)):
    try:
        return LabelService.get_by_barcode(db, barcode)
    except InventoryError as e:
        raise http_error(e)


@router.get("/{label_id}", response_model=LabelOut)
def get_label(label_id: int, db: Session = Depends(get_db)):
    try:
        return LabelService.get(db, label_id)
    except InventoryError as e:
        raise http_error(e)


@router.patch("/{label_id}", response_model=LabelOut)
def update_label(label_id: int, request: LabelUpdate, db: Session = Depends(get_db)):
    try:
        return LabelService.update(db, label_id, request)
    except InventoryError as e:
        raise http_error(e)


@router.post("/{label_id}/print", response_model=LabelOut)
def print_label(label_id: int, request: LabelPrint, db: Session = Depends(get_db)):
    """Mark printed and add `copies` to the print count"""
    try:
        return LabelService.print_label(db, label_id, request)
    except InventoryError as e:
        raise http_error(e)
