"""
Inventory Lot Store
===================
Lots are created with a RECEIPT, changed only together with a ledger entry,
and deleted when their quantity reaches zero.
"""

from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Query, Session

from ..errors import InvalidStateError, InventoryError, NotFoundError
from ..logging_config import get_logger
from ..models import InventoryLot, LotStatus, MovementType, StorageLocation, StockMovement, utcnow
from ..schemas import InventoryFilter, LotCreate, LotUpdate, LotVerify
from .ledger_service import LedgerService
from .sequences import LOT, get_next_sequence
from .transactions import atomic

logger = get_logger(__name__)

PLACEMENT_FIELDS = ("zone", "rack", "shelf", "position")


def fefo_order(query: Query) -> Query:
    """Earliest expiry first, lots without expiry last, then oldest lot first"""
    return query.order_by(
        InventoryLot.expiry_date.is_(None),
        InventoryLot.expiry_date.asc(),
        InventoryLot.created_at.asc(),
        InventoryLot.id.asc(),
    )


def append_remarks(existing: Optional[str], new: Optional[str]) -> Optional[str]:
    if not new:
        return existing
    return f"{existing}\n{new}" if existing else new


def require_location(db: Session, location_id: int) -> StorageLocation:
    location = db.query(StorageLocation).filter(StorageLocation.id == location_id).first()
    if not location:
        raise NotFoundError("Storage location", location_id)
    return location


class LotService:
    """Lot CRUD. Every quantity change goes through the ledger."""

    @staticmethod
    def add_lot(
        db: Session,
        performed_by: Optional[int] = None,
        reference_id=None,
        reference_type: Optional[str] = None,
        **fields,
    ) -> InventoryLot:
        """
        Insert a lot and its RECEIPT movement inside the caller's transaction.

        Used by direct lot creation and by putaway completion.
        """
        if fields.get("location_id") is not None:
            require_location(db, fields["location_id"])

        lot = InventoryLot(lot_code=get_next_sequence(db, LOT), **fields)
        db.add(lot)
        db.flush()

        if reference_id is None:
            if lot.goods_receipt_item_id is not None:
                reference_id, reference_type = lot.goods_receipt_item_id, "goods_receipt_item"
            elif lot.qa_release_id is not None:
                reference_id, reference_type = lot.qa_release_id, "qa_release"
            else:
                reference_id, reference_type = lot.id, "inventory_lot"

        LedgerService.record_movement(
            db,
            MovementType.RECEIPT,
            lot,
            lot.quantity,
            performed_by=performed_by,
            to_location_id=lot.location_id,
            reference_id=reference_id,
            reference_type=reference_type,
            remarks="Inventory received",
        )
        logger.info("lot_created", lot_code=lot.lot_code, material_id=lot.material_id,
                    batch_number=lot.batch_number, quantity=str(lot.quantity))
        return lot

    @staticmethod
    def create_lot(db: Session, data: LotCreate) -> InventoryLot:
        fields = data.model_dump(exclude={"performed_by"})
        with atomic(db):
            lot = LotService.add_lot(
                db,
                performed_by=data.performed_by,
                last_updated_by=data.performed_by,
                **fields,
            )
        return lot

    @staticmethod
    def list_inventory(db: Session, filters: Optional[InventoryFilter] = None) -> List[InventoryLot]:
        """Lots matching `filters` in FEFO order"""
        filters = filters or InventoryFilter()
        query = db.query(InventoryLot)

        if filters.material_id is not None:
            query = query.filter(InventoryLot.material_id == filters.material_id)
        if filters.batch_number is not None:
            query = query.filter(InventoryLot.batch_number == filters.batch_number)
        if filters.status is not None:
            query = query.filter(InventoryLot.status == filters.status)
        if filters.location_id is not None:
            query = query.filter(InventoryLot.location_id == filters.location_id)

        return fefo_order(query).all()

    @staticmethod
    def get_lot(db: Session, lot_id: int) -> InventoryLot:
        lot = db.query(InventoryLot).filter(InventoryLot.id == lot_id).first()
        if not lot:
            raise NotFoundError("Inventory lot", lot_id)
        return lot

    @staticmethod
    def update_lot(db: Session, lot_id: int, data: LotUpdate) -> InventoryLot:
        """
        Partial update of placement, status and environment fields.

        RESERVED is owned by material issues: it can be neither set nor
        cleared here. A location change is recorded as a TRANSFER.
        """
        changes = data.model_dump(exclude_unset=True)

        with atomic(db):
            lot = db.query(InventoryLot).filter(
                InventoryLot.id == lot_id
            ).with_for_update().first()
            if not lot:
                raise NotFoundError("Inventory lot", lot_id)

            new_status = changes.pop("status", None)
            if new_status is not None and new_status != lot.status:
                if new_status == LotStatus.RESERVED:
                    raise InventoryError("Lots are reserved by material issues only")
                if lot.status == LotStatus.RESERVED:
                    raise InvalidStateError(
                        "Inventory lot", lot.status,
                        [LotStatus.AVAILABLE, LotStatus.QUARANTINED],
                    )
                lot.status = new_status

            new_location = changes.pop("location_id", None)
            if new_location is not None and new_location != lot.location_id:
                require_location(db, new_location)
                LedgerService.record_movement(
                    db,
                    MovementType.TRANSFER,
                    lot,
                    Decimal("0"),
                    performed_by=data.last_updated_by,
                    from_location_id=lot.location_id,
                    to_location_id=new_location,
                    reference_id=lot.id,
                    reference_type="inventory_lot",
                    remarks="Location changed",
                )
                lot.location_id = new_location

            for field, value in changes.items():
                setattr(lot, field, value)

        logger.info("lot_updated", lot_code=lot.lot_code, fields=sorted(data.model_fields_set))
        return lot

    @staticmethod
    def verify_lot(db: Session, lot_id: int, data: LotVerify) -> dict:
        """
        Record a physical verification.

        A quantity difference is booked as an ADJUSTMENT for the delta (the
        lot is deleted when nothing is left), a location difference as a
        TRANSFER. Returns the verification record with the discrepancies.
        """
        discrepancies = {}
        movements: List[StockMovement] = []
        lot_deleted = False

        with atomic(db):
            lot = db.query(InventoryLot).filter(
                InventoryLot.id == lot_id
            ).with_for_update().first()
            if not lot:
                raise NotFoundError("Inventory lot", lot_id)

            if data.verified_quantity is not None and data.verified_quantity != lot.quantity:
                if lot.status == LotStatus.RESERVED:
                    raise InvalidStateError(
                        "Inventory lot", lot.status,
                        [LotStatus.AVAILABLE, LotStatus.QUARANTINED],
                    )
                delta = data.verified_quantity - lot.quantity
                discrepancies["quantity"] = {
                    "expected": str(lot.quantity),
                    "actual": str(data.verified_quantity),
                    "difference": str(delta),
                }
                movements.append(LedgerService.record_movement(
                    db,
                    MovementType.ADJUSTMENT,
                    lot,
                    delta,
                    performed_by=data.verified_by,
                    from_location_id=lot.location_id,
                    reference_id=lot.id,
                    reference_type="inventory_verification",
                    remarks=data.remarks or "Verification adjustment",
                ))
                if data.verified_quantity == 0:
                    db.delete(lot)
                    lot_deleted = True
                else:
                    lot.quantity = data.verified_quantity

            if (
                not lot_deleted
                and data.location_id is not None
                and data.location_id != lot.location_id
            ):
                require_location(db, data.location_id)
                discrepancies["location"] = {
                    "expected": lot.location_id,
                    "actual": data.location_id,
                }
                movements.append(LedgerService.record_movement(
                    db,
                    MovementType.TRANSFER,
                    lot,
                    Decimal("0"),
                    performed_by=data.verified_by,
                    from_location_id=lot.location_id,
                    to_location_id=data.location_id,
                    reference_id=lot.id,
                    reference_type="inventory_verification",
                    remarks="Location corrected on verification",
                ))
                lot.location_id = data.location_id

            if not lot_deleted:
                lot.last_updated_by = data.verified_by
                lot.remarks = append_remarks(lot.remarks, data.remarks)

            verified_at = utcnow()

        if discrepancies:
            logger.warning("lot_verification_discrepancy", lot_id=lot_id, discrepancies=discrepancies)
        else:
            logger.info("lot_verified", lot_id=lot_id)

        return {
            "inventory_lot_id": lot_id,
            "lot_deleted": lot_deleted,
            "verified_quantity": data.verified_quantity,
            "location_id": data.location_id,
            "location_verified": data.location_verified,
            "remarks": data.remarks,
            "verified_by": data.verified_by,
            "verified_at": verified_at,
            "discrepancies": discrepancies or None,
            "movement_numbers": [m.movement_number for m in movements],
        }

    @staticmethod
    def write_off_lot(
        db: Session,
        lot_id: int,
        performed_by: Optional[int] = None,
        remarks: Optional[str] = None,
    ) -> StockMovement:
        """Remove a lot, booking its full quantity out as an ADJUSTMENT"""
        with atomic(db):
            lot = db.query(InventoryLot).filter(
                InventoryLot.id == lot_id
            ).with_for_update().first()
            if not lot:
                raise NotFoundError("Inventory lot", lot_id)
            if lot.status == LotStatus.RESERVED:
                raise InvalidStateError(
                    "Inventory lot", lot.status,
                    [LotStatus.AVAILABLE, LotStatus.QUARANTINED],
                )
            if lot.quantity <= 0:
                raise InventoryError(f"Inventory lot {lot.lot_code} has no quantity")

            movement = LedgerService.record_movement(
                db,
                MovementType.ADJUSTMENT,
                lot,
                -lot.quantity,
                performed_by=performed_by,
                from_location_id=lot.location_id,
                reference_id=lot.id,
                reference_type="inventory_write_off",
                remarks=remarks or "Lot written off",
            )
            db.delete(lot)

        logger.info("lot_written_off", lot_id=lot_id, movement_number=movement.movement_number)
        return movement
