"""
Putaway Workflow
================
PENDING -> ASSIGNED -> IN_PROGRESS -> COMPLETED

Completion stores the quantity: one AVAILABLE lot plus its RECEIPT movement,
committed together with the status change. QA is told about it before the
commit; if that call fails nothing is stored.
"""

from typing import List, Optional

from sqlalchemy.orm import Session

from ..errors import InvalidStateError, NotFoundError, PeerServiceError
from ..logging_config import get_logger
from ..models import LotStatus, PutawayItem, PutawayStatus, utcnow
from ..schemas import PutawayAssign, PutawayCreate, PutawayFilter
from .lot_service import LotService, append_remarks, require_location
from .ports import NullQAReleaseNotifier, QAReleaseNotifier
from .sequences import PUTAWAY, get_next_sequence
from .transactions import atomic

logger = get_logger(__name__)


def _locked_putaway(db: Session, putaway_id: int) -> PutawayItem:
    item = db.query(PutawayItem).filter(
        PutawayItem.id == putaway_id
    ).with_for_update().first()
    if not item:
        raise NotFoundError("Putaway item", putaway_id)
    return item


def _require_status(item: PutawayItem, *allowed: PutawayStatus) -> None:
    if item.status not in allowed:
        logger.warning("putaway_invalid_transition", putaway_number=item.putaway_number,
                       current=item.status.value, required=[s.value for s in allowed])
        raise InvalidStateError(f"Putaway {item.putaway_number}", item.status, allowed)


class PutawayService:

    def __init__(self, notifier: Optional[QAReleaseNotifier] = None):
        self.notifier = notifier or NullQAReleaseNotifier()

    def _notify(self, item: PutawayItem, lot) -> None:
        try:
            self.notifier.putaway_completed(item, lot)
        except PeerServiceError:
            raise
        except Exception as exc:
            raise PeerServiceError("qa", str(exc)) from exc

    def create(self, db: Session, data: PutawayCreate) -> PutawayItem:
        with atomic(db):
            item = PutawayItem(
                putaway_number=get_next_sequence(db, PUTAWAY),
                status=PutawayStatus.PENDING,
                requested_at=utcnow(),
                **data.model_dump(),
            )
            db.add(item)
            db.flush()
            logger.info("putaway_created", putaway_number=item.putaway_number,
                        material_id=item.material_id, quantity=str(item.quantity))
        return item

    def list(self, db: Session, filters: Optional[PutawayFilter] = None) -> List[PutawayItem]:
        """Putaway items matching `filters`, oldest request first"""
        filters = filters or PutawayFilter()
        query = db.query(PutawayItem)
        if filters.status is not None:
            query = query.filter(PutawayItem.status == filters.status)
        if filters.qa_release_id is not None:
            query = query.filter(PutawayItem.qa_release_id == filters.qa_release_id)
        return query.order_by(PutawayItem.requested_at.asc(), PutawayItem.id.asc()).all()

    def get(self, db: Session, putaway_id: int) -> PutawayItem:
        item = db.query(PutawayItem).filter(PutawayItem.id == putaway_id).first()
        if not item:
            raise NotFoundError("Putaway item", putaway_id)
        return item

    def assign_location(self, db: Session, putaway_id: int, data: PutawayAssign) -> PutawayItem:
        """Set or replace the target location. Allowed while PENDING or ASSIGNED."""
        with atomic(db):
            item = _locked_putaway(db, putaway_id)
            _require_status(item, PutawayStatus.PENDING, PutawayStatus.ASSIGNED)
            require_location(db, data.location_id)

            item.status = PutawayStatus.ASSIGNED
            item.location_id = data.location_id
            item.zone = data.zone
            item.rack = data.rack
            item.shelf = data.shelf
            item.position = data.position
            item.temperature = data.temperature
            item.humidity = data.humidity
            item.assigned_by = data.assigned_by
            item.assigned_at = utcnow()
            if data.remarks:
                item.remarks = append_remarks(item.remarks, f"Location assigned: {data.remarks}")

            logger.info("putaway_assigned", putaway_number=item.putaway_number,
                        location_id=data.location_id)
        return item

    def start(self, db: Session, putaway_id: int, started_by: int) -> PutawayItem:
        with atomic(db):
            item = _locked_putaway(db, putaway_id)
            _require_status(item, PutawayStatus.ASSIGNED)
            item.status = PutawayStatus.IN_PROGRESS
            item.started_by = started_by
            item.started_at = utcnow()
            logger.info("putaway_started", putaway_number=item.putaway_number)
        return item

    def complete(self, db: Session, putaway_id: int, completed_by: int) -> PutawayItem:
        """
        Store the putaway quantity.

        Exactly one lot and one RECEIPT are written. A failed QA notification
        rolls all of it back and surfaces as PeerServiceError.
        """
        try:
            with atomic(db):
                item = _locked_putaway(db, putaway_id)
                _require_status(item, PutawayStatus.ASSIGNED, PutawayStatus.IN_PROGRESS)

                lot = LotService.add_lot(
                    db,
                    performed_by=completed_by,
                    reference_id=item.putaway_number,
                    reference_type="putaway",
                    material_id=item.material_id,
                    material_name=item.material_name,
                    material_code=item.material_code,
                    batch_number=item.batch_number,
                    quantity=item.quantity,
                    unit=item.unit,
                    location_id=item.location_id,
                    zone=item.zone,
                    rack=item.rack,
                    shelf=item.shelf,
                    position=item.position,
                    status=LotStatus.AVAILABLE,
                    expiry_date=item.expiry_date,
                    temperature=item.temperature,
                    humidity=item.humidity,
                    goods_receipt_item_id=item.goods_receipt_item_id,
                    qa_release_id=item.qa_release_id,
                    remarks=f"Stored from putaway: {item.putaway_number}",
                    last_updated_by=completed_by,
                )

                item.status = PutawayStatus.COMPLETED
                item.completed_by = completed_by
                item.completed_at = utcnow()
                item.inventory_lot_id = lot.id
                db.flush()

                self._notify(item, lot)
        except PeerServiceError:
            logger.error("putaway_notification_failed", putaway_id=putaway_id)
            raise

        logger.info("putaway_completed", putaway_number=item.putaway_number,
                    lot_id=item.inventory_lot_id)
        return item
