"""
Label & barcode registry.

Each label points at the thing it is stuck on: a lot, a putaway, a material
issue, a cycle count, a storage location or a batch. Printing only counts
copies; rendering is left to the printer client.
"""

from typing import List, Optional

from sqlalchemy.orm import Session

from ..errors import MissingDataError, NotFoundError
from ..logging_config import get_logger
from ..models import (
    CycleCount, InventoryLot, LabelBarcode, LabelType, MaterialIssue, PutawayItem, utcnow,
)
from ..schemas import LabelCreate, LabelFilter, LabelPrint, LabelUpdate
from .lot_service import require_location
from .sequences import LABEL, get_next_sequence
from .transactions import atomic

logger = get_logger(__name__)

# label type -> (link field, model it must exist in)
LABEL_LINKS = {
    LabelType.INVENTORY_LOT: ("inventory_lot_id", InventoryLot),
    LabelType.PUTAWAY: ("putaway_item_id", PutawayItem),
    LabelType.MATERIAL_ISSUE: ("material_issue_id", MaterialIssue),
    LabelType.CYCLE_COUNT: ("cycle_count_id", CycleCount),
    LabelType.LOCATION: ("location_id", None),
    LabelType.BATCH: ("batch_number", None),
}


def _check_links(db: Session, data: LabelCreate) -> None:
    field, model = LABEL_LINKS[data.label_type]
    if getattr(data, field) is None:
        raise MissingDataError(f"{data.label_type.value} label requires {field}")

    for link_field, link_model in LABEL_LINKS.values():
        value = getattr(data, link_field)
        if link_model is None or value is None:
            continue
        if not db.query(link_model).filter(link_model.id == value).first():
            raise NotFoundError(link_model.__name__, value)
    if data.location_id is not None:
        require_location(db, data.location_id)


class LabelService:

    @staticmethod
    def create(db: Session, data: LabelCreate) -> LabelBarcode:
        """
        Register a label with a fresh barcode.

        A lot label picks up the lot's batch and location when they are not
        given. reference_id / reference_type default to the primary link.
        """
        fields = data.model_dump()
        field, _ = LABEL_LINKS[data.label_type]

        with atomic(db):
            _check_links(db, data)

            if data.inventory_lot_id is not None:
                lot = db.query(InventoryLot).filter(InventoryLot.id == data.inventory_lot_id).first()
                if fields["batch_number"] is None:
                    fields["batch_number"] = lot.batch_number
                if fields["location_id"] is None:
                    fields["location_id"] = lot.location_id

            if fields["reference_type"] is None:
                fields["reference_type"] = data.label_type.value
            if fields["reference_id"] is None and field != "batch_number":
                fields["reference_id"] = fields[field]

            label = LabelBarcode(
                barcode=get_next_sequence(db, LABEL),
                is_printed=False,
                print_count=0,
                **fields,
            )
            db.add(label)
            db.flush()
            logger.info("label_created", barcode=label.barcode, label_type=data.label_type.value)
        return label

    @staticmethod
    def list_labels(db: Session, filters: Optional[LabelFilter] = None) -> List[LabelBarcode]:
        filters = filters or LabelFilter()
        query = db.query(LabelBarcode)
        for field, value in filters.model_dump(exclude_none=True).items():
            query = query.filter(getattr(LabelBarcode, field) == value)
        return query.order_by(LabelBarcode.id.asc()).all()

    @staticmethod
    def get(db: Session, label_id: int) -> LabelBarcode:
        label = db.query(LabelBarcode).filter(LabelBarcode.id == label_id).first()
        if not label:
            raise NotFoundError("Label", label_id)
        return label

    @staticmethod
    def get_by_barcode(db: Session, barcode: str) -> LabelBarcode:
        """Scanner lookup"""
        label = db.query(LabelBarcode).filter(LabelBarcode.barcode == barcode).first()
        if not label:
            raise NotFoundError("Label with barcode", barcode)
        return label

    @staticmethod
    def update(db: Session, label_id: int, data: LabelUpdate) -> LabelBarcode:
        with atomic(db):
            label = LabelService.get(db, label_id)
            for field, value in data.model_dump(exclude_unset=True).items():
                setattr(label, field, value)
        return label

    @staticmethod
    def print_label(db: Session, label_id: int, data: LabelPrint) -> LabelBarcode:
        with atomic(db):
            label = db.query(LabelBarcode).filter(
                LabelBarcode.id == label_id
            ).with_for_update().first()
            if not label:
                raise NotFoundError("Label", label_id)

            label.is_printed = True
            label.print_count = (label.print_count or 0) + data.copies
            label.printed_at = utcnow()
            label.printed_by = data.printed_by
            if data.printer_name:
                label.printer_name = data.printer_name

        logger.info("label_printed", barcode=label.barcode, copies=data.copies,
                    print_count=label.print_count)
        return label
