"""
Inventory API Router
====================
Lots and the movement ledger. Movements are read-only here: they are only
ever written by the operations that change stock.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..deps import get_db, http_error
from ..errors import InventoryError
from ..schemas import (
    BalanceOut, InventoryFilter, LotCreate, LotOut, LotUpdate, LotVerify,
    MovementFilter, MovementOut, VerificationOut,
)
from ..services import LedgerService, LotService

router = APIRouter(prefix="/api/v1/warehouse", tags=["Inventory"])


# =============================================================================
# LOTS
# =============================================================================

@router.post("/inventory", response_model=LotOut, status_code=201)
def create_inventory_lot(request: LotCreate, db: Session = Depends(get_db)):
    """Create a lot directly; writes its RECEIPT movement"""
    try:
        return LotService.create_lot(db, request)
    except InventoryError as e:
        raise http_error(e)


@router.get("/inventory", response_model=List[LotOut])
def list_inventory(filters: InventoryFilter = Depends(), db: Session = Depends(get_db)):
    """Lots in FEFO order: earliest expiry first, no expiry last"""
    return LotService.list_inventory(db, filters)


@router.get("/inventory/{lot_id}", response_model=LotOut)
def get_inventory_lot(lot_id: int, db: Session = Depends(get_db)):
    try:
        return LotService.get_lot(db, lot_id)
    except InventoryError as e:
        raise http_error(e)


@router.patch("/inventory/{lot_id}", response_model=LotOut)
def update_inventory_lot(lot_id: int, request: LotUpdate, db: Session = Depends(get_db)):
    try:
        return LotService.update_lot(db, lot_id, request)
    except InventoryError as e:
        raise http_error(e)


@router.post("/inventory/{lot_id}/verify", response_model=VerificationOut)
def verify_inventory_lot(lot_id: int, request: LotVerify, db: Session = Depends(get_db)):
    """
    Physical verification.

    Quantity differences are booked as ADJUSTMENT movements, location
    differences as TRANSFER movements.
    """
    try:
        return LotService.verify_lot(db, lot_id, request)
    except InventoryError as e:
        raise http_error(e)


@router.delete("/inventory/{lot_id}", response_model=MovementOut)
def write_off_inventory_lot(
    lot_id: int,
    performed_by: Optional[int] = None,
    remarks: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """Write a lot off. Returns the ADJUSTMENT movement that removed it."""
    try:
        return LotService.write_off_lot(db, lot_id, performed_by=performed_by, remarks=remarks)
    except InventoryError as e:
        raise http_error(e)


# =============================================================================
# MOVEMENTS
# =============================================================================

@router.get("/movements", response_model=List[MovementOut])
def list_movements(filters: MovementFilter = Depends(), db: Session = Depends(get_db)):
    return LedgerService.list_movements(db, filters)


@router.get("/movements/balance", response_model=BalanceOut)
def get_material_balance(
    material_id: int,
    batch_number: Optional[str] = None,
    unbatched: bool = False,
    db: Session = Depends(get_db),
):
    """On-hand quantity against the ledger total"""
    try:
        return LedgerService.material_balance(db, material_id, batch_number, unbatched)
    except InventoryError as e:
        raise http_error(e)


@router.get("/movements/{movement_id}", response_model=MovementOut)
def get_movement(movement_id: int, db: Session = Depends(get_db)):
    try:
        return LedgerService.get_movement(db, movement_id)
    except InventoryError as e:
        raise http_error(e)
