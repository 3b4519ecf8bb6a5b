"""
Stock Movement Ledger
=====================
Append-only record of every quantity change.

Sign convention, enforced on write:
- RECEIPT      positive
- CONSUMPTION  negative
- ADJUSTMENT   signed delta, never zero
- TRANSFER     zero (moves stock, does not change it)

Writers here only flush. The workflow that caused the movement owns the
transaction, so a movement is committed together with the lot change it
describes or not at all.
"""

from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..errors import InventoryError, NotFoundError
from ..logging_config import get_logger
from ..models import InventoryLot, MovementType, StockMovement
from ..schemas import MovementFilter
from .sequences import MOVEMENT, get_next_sequence

logger = get_logger(__name__)

ZERO = Decimal("0")


def _check_sign(movement_type: MovementType, quantity: Decimal) -> None:
    if movement_type == MovementType.RECEIPT and quantity <= ZERO:
        raise InventoryError(f"RECEIPT quantity must be positive, got {quantity}")
    if movement_type == MovementType.CONSUMPTION and quantity >= ZERO:
        raise InventoryError(f"CONSUMPTION quantity must be negative, got {quantity}")
    if movement_type == MovementType.ADJUSTMENT and quantity == ZERO:
        raise InventoryError("ADJUSTMENT quantity must be non-zero")
    if movement_type == MovementType.TRANSFER and quantity != ZERO:
        raise InventoryError(f"TRANSFER quantity must be zero, got {quantity}")


class LedgerService:
    """Ledger writer and movement queries"""

    @staticmethod
    def record_movement(
        db: Session,
        movement_type: MovementType,
        lot: InventoryLot,
        quantity: Decimal,
        performed_by: Optional[int] = None,
        from_location_id: Optional[int] = None,
        to_location_id: Optional[int] = None,
        reference_id=None,
        reference_type: Optional[str] = None,
        remarks: Optional[str] = None,
    ) -> StockMovement:
        """
        Append one movement for `lot`.

        Material, batch and unit are copied from the lot so the ledger stays
        readable after the lot itself is deleted.
        """
        quantity = Decimal(quantity)
        _check_sign(movement_type, quantity)

        movement = StockMovement(
            movement_number=get_next_sequence(db, MOVEMENT),
            movement_type=movement_type,
            material_id=lot.material_id,
            material_name=lot.material_name,
            material_code=lot.material_code,
            batch_number=lot.batch_number,
            quantity=quantity,
            unit=lot.unit,
            from_location_id=from_location_id,
            to_location_id=to_location_id,
            reference_id=str(reference_id) if reference_id is not None else None,
            reference_type=reference_type,
            remarks=remarks,
            performed_by=performed_by,
        )
        db.add(movement)
        db.flush()

        logger.info(
            "movement_recorded",
            movement_number=movement.movement_number,
            movement_type=movement_type.value,
            lot_code=lot.lot_code,
            material_id=lot.material_id,
            batch_number=lot.batch_number,
            quantity=str(quantity),
        )
        return movement

    @staticmethod
    def list_movements(db: Session, filters: Optional[MovementFilter] = None) -> List[StockMovement]:
        """Movements matching `filters`, newest first"""
        filters = filters or MovementFilter()
        query = db.query(StockMovement)

        if filters.material_id is not None:
            query = query.filter(StockMovement.material_id == filters.material_id)
        if filters.batch_number is not None:
            query = query.filter(StockMovement.batch_number == filters.batch_number)
        if filters.movement_type is not None:
            query = query.filter(StockMovement.movement_type == filters.movement_type)
        if filters.reference_id is not None:
            query = query.filter(StockMovement.reference_id == filters.reference_id)
        if filters.reference_type is not None:
            query = query.filter(StockMovement.reference_type == filters.reference_type)

        return query.order_by(StockMovement.performed_at.desc(), StockMovement.id.desc()).all()

    @staticmethod
    def get_movement(db: Session, movement_id: int) -> StockMovement:
        movement = db.query(StockMovement).filter(StockMovement.id == movement_id).first()
        if not movement:
            raise NotFoundError("Stock movement", movement_id)
        return movement

    @staticmethod
    def material_balance(
        db: Session,
        material_id: int,
        batch_number: Optional[str] = None,
        unbatched: bool = False,
    ) -> dict:
        """
        On-hand quantity next to the ledger total for one material.

        `batch_number` narrows to one batch, `unbatched` to the lots and
        movements that carry no batch number; with neither, all batches are
        summed. The two totals always agree; `reconciled` is reported so
        operators can check.
        """
        if unbatched and batch_number is not None:
            raise InventoryError("batch_number and unbatched cannot be combined")

        lot_q = db.query(func.coalesce(func.sum(InventoryLot.quantity), 0)).filter(
            InventoryLot.material_id == material_id
        )
        mov_q = db.query(func.coalesce(func.sum(StockMovement.quantity), 0)).filter(
            StockMovement.material_id == material_id
        )
        if unbatched:
            lot_q = lot_q.filter(InventoryLot.batch_number.is_(None))
            mov_q = mov_q.filter(StockMovement.batch_number.is_(None))
        elif batch_number is not None:
            lot_q = lot_q.filter(InventoryLot.batch_number == batch_number)
            mov_q = mov_q.filter(StockMovement.batch_number == batch_number)

        on_hand = Decimal(str(lot_q.scalar())).quantize(Decimal("0.001"))
        ledger_total = Decimal(str(mov_q.scalar())).quantize(Decimal("0.001"))

        return {
            "material_id": material_id,
            "batch_number": batch_number,
            "unbatched": unbatched,
            "on_hand": on_hand,
            "ledger_total": ledger_total,
            "reconciled": on_hand == ledger_total,
        }
