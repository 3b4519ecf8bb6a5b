"""
FEFO Allocation Engine
======================
Selects lots for a material issue and later consumes them.

Reservation never splits a lot: a lot that covers more than the remaining
need is held RESERVED as a whole, and the IssueAllocation row records the
part of it that belongs to the issue. Consumption books exactly that part
and hands the remainder back as AVAILABLE.

Nothing here commits. Callers run these inside their own transaction.
"""

from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from ..errors import InsufficientInventoryError, InvalidStateError, InventoryError
from ..logging_config import get_logger
from ..models import (
    InventoryLot, IssueAllocation, LotStatus, MaterialIssue, MovementType,
    StockMovement,
)
from .ledger_service import LedgerService
from .lot_service import fefo_order

logger = get_logger(__name__)

ZERO = Decimal("0")


class AllocationEngine:

    @staticmethod
    def candidate_lots(
        db: Session,
        material_id: int,
        batch_number: Optional[str] = None,
        status: LotStatus = LotStatus.AVAILABLE,
    ) -> List[InventoryLot]:
        """Matching lots in FEFO order, row-locked until the caller commits"""
        query = db.query(InventoryLot).filter(
            InventoryLot.material_id == material_id,
            InventoryLot.status == status,
        )
        if batch_number is not None:
            query = query.filter(InventoryLot.batch_number == batch_number)
        return fefo_order(query).with_for_update().all()

    @staticmethod
    def plan(
        db: Session,
        material_id: int,
        quantity: Decimal,
        batch_number: Optional[str] = None,
    ) -> List[Tuple[InventoryLot, Decimal]]:
        """
        Walk the FEFO list taking whole lots until the need is covered.

        Returns (lot, quantity taken from it) pairs whose quantities add up to
        `quantity`. Raises InsufficientInventoryError before any lot is
        touched when the available lots cannot cover it.
        """
        quantity = Decimal(quantity)
        if quantity <= ZERO:
            raise InventoryError(f"Requested quantity must be positive, got {quantity}")

        lots = AllocationEngine.candidate_lots(db, material_id, batch_number)

        plan = []
        remaining = quantity
        for lot in lots:
            if remaining <= ZERO:
                break
            take = min(lot.quantity, remaining)
            plan.append((lot, take))
            remaining -= take

        if remaining > ZERO:
            available = sum((lot.quantity for lot in lots), ZERO)
            logger.warning(
                "allocation_insufficient",
                material_id=material_id,
                batch_number=batch_number,
                requested=str(quantity),
                available=str(available),
            )
            raise InsufficientInventoryError(material_id, quantity, available)

        return plan

    @staticmethod
    def reserve_for_issue(db: Session, issue: MaterialIssue) -> List[IssueAllocation]:
        """
        Reserve lots for `issue` and record one allocation per lot touched.

        All or nothing: the plan is complete before the first lot changes.
        """
        if issue.allocations:
            raise InventoryError(f"Material issue {issue.issue_number} already holds a reservation")

        plan = AllocationEngine.plan(db, issue.material_id, issue.quantity, issue.batch_number)

        allocations = []
        for lot, take in plan:
            lot.status = LotStatus.RESERVED
            allocation = IssueAllocation(
                lot_id=lot.id,
                lot_code=lot.lot_code,
                reserved_quantity=take,
            )
            issue.allocations.append(allocation)
            allocations.append(allocation)
        db.flush()

        logger.info(
            "lots_reserved",
            issue_number=issue.issue_number,
            lots=[a.lot_code for a in allocations],
            quantity=str(issue.quantity),
        )
        return allocations

    @staticmethod
    def consume_reserved(
        db: Session,
        issue: MaterialIssue,
        performed_by: Optional[int] = None,
    ) -> List[StockMovement]:
        """
        Consume the lots reserved for `issue`, one CONSUMPTION per lot.

        A lot used up entirely is deleted. A lot that held more than its
        allocation keeps the residual and becomes AVAILABLE again.
        """
        pending = [a for a in issue.allocations if a.consumed_quantity is None]
        if not pending:
            raise InventoryError(f"Material issue {issue.issue_number} has no reserved lots")

        movements = []
        for allocation in pending:
            lot = None
            if allocation.lot_id is not None:
                lot = db.query(InventoryLot).filter(
                    InventoryLot.id == allocation.lot_id
                ).with_for_update().first()
            if lot is None:
                raise InventoryError(f"Reserved lot {allocation.lot_code} no longer exists")
            if lot.status != LotStatus.RESERVED:
                raise InvalidStateError(f"Inventory lot {lot.lot_code}", lot.status, LotStatus.RESERVED)

            need = allocation.reserved_quantity
            consumed = min(lot.quantity, need)

            movements.append(LedgerService.record_movement(
                db,
                MovementType.CONSUMPTION,
                lot,
                -consumed,
                performed_by=performed_by,
                from_location_id=lot.location_id,
                to_location_id=issue.to_location_id,
                reference_id=issue.issue_number,
                reference_type="material_issue",
                remarks=f"Issued against {issue.issue_number}",
            ))
            allocation.consumed_quantity = consumed

            if lot.quantity <= need:
                allocation.lot_id = None
                db.delete(lot)
            else:
                lot.quantity = lot.quantity - need
                lot.status = LotStatus.AVAILABLE
                lot.last_updated_by = performed_by

        db.flush()
        logger.info(
            "lots_consumed",
            issue_number=issue.issue_number,
            movements=[m.movement_number for m in movements],
        )
        return movements

    @staticmethod
    def available_quantity(db: Session, material_id: int, batch_number: Optional[str] = None) -> Decimal:
        query = db.query(InventoryLot).filter(
            InventoryLot.material_id == material_id,
            InventoryLot.status == LotStatus.AVAILABLE,
        )
        if batch_number is not None:
            query = query.filter(InventoryLot.batch_number == batch_number)
        return sum((lot.quantity for lot in query.all()), ZERO)
