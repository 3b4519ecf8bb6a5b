import pytest

from warehouse_core.app.errors import MissingDataError, NotFoundError
from warehouse_core.app.models import BarcodeType, LabelBarcode, LabelType, utcnow
from warehouse_core.app.schemas import LabelCreate, LabelFilter, LabelPrint, LabelUpdate
from warehouse_core.app.services import LabelService


def lot_label(db, lot, **extra):
    return LabelService.create(
        db, LabelCreate(label_type=LabelType.INVENTORY_LOT, inventory_lot_id=lot.id, **extra)
    )


class TestCreateLabel:
    def test_lot_label_inherits_batch_and_location(self, db_session, make_lot, location):
        lot = make_lot(25, location_id=location.id)
        label = lot_label(db_session, lot)

        year = utcnow().year
        assert label.barcode == f"BC-{year}-000001"
        assert label.barcode_type == BarcodeType.CODE128
        assert label.batch_number == "B1"
        assert label.location_id == location.id
        assert label.reference_id == lot.id
        assert label.reference_type == "inventory_lot"
        assert label.is_printed is False
        assert label.print_count == 0

    def test_barcodes_are_unique(self, db_session, make_lot):
        lot = make_lot(25)
        first = lot_label(db_session, lot)
        second = lot_label(db_session, lot)
        assert first.barcode != second.barcode

    def test_primary_link_required(self, db_session):
        with pytest.raises(MissingDataError):
            LabelService.create(db_session, LabelCreate(label_type=LabelType.MATERIAL_ISSUE))
        assert db_session.query(LabelBarcode).count() == 0

    def test_linked_record_must_exist(self, db_session):
        with pytest.raises(NotFoundError):
            LabelService.create(
                db_session, LabelCreate(label_type=LabelType.PUTAWAY, putaway_item_id=404)
            )
        with pytest.raises(NotFoundError):
            LabelService.create(
                db_session, LabelCreate(label_type=LabelType.LOCATION, location_id=404)
            )

    def test_batch_label_has_no_reference_id(self, db_session):
        label = LabelService.create(
            db_session,
            LabelCreate(label_type=LabelType.BATCH, batch_number="B7", barcode_type=BarcodeType.QR_CODE),
        )
        assert label.reference_id is None
        assert label.batch_number == "B7"


class TestLabelLookup:
    def test_filters(self, db_session, make_lot, make_issue):
        lot = make_lot(25)
        issue = make_issue(5)
        for_lot = lot_label(db_session, lot)
        for_issue = LabelService.create(
            db_session,
            LabelCreate(label_type=LabelType.MATERIAL_ISSUE, material_issue_id=issue.id),
        )

        assert [l.id for l in LabelService.list_labels(db_session)] == [for_lot.id, for_issue.id]
        by_issue = LabelService.list_labels(db_session, LabelFilter(material_issue_id=issue.id))
        assert [l.id for l in by_issue] == [for_issue.id]
        by_type = LabelService.list_labels(
            db_session, LabelFilter(label_type=LabelType.INVENTORY_LOT, batch_number="B1")
        )
        assert [l.id for l in by_type] == [for_lot.id]

    def test_get_by_barcode(self, db_session, make_lot):
        label = lot_label(db_session, make_lot(25))
        assert LabelService.get_by_barcode(db_session, label.barcode).id == label.id
        with pytest.raises(NotFoundError):
            LabelService.get_by_barcode(db_session, "BC-1999-000001")

    def test_update(self, db_session, make_lot):
        label = lot_label(db_session, make_lot(25))
        LabelService.update(db_session, label.id, LabelUpdate(label_template="pallet-4x6"))
        assert LabelService.get(db_session, label.id).label_template == "pallet-4x6"


class TestPrintLabel:
    def test_print_counts_copies(self, db_session, make_lot):
        label = lot_label(db_session, make_lot(25))

        LabelService.print_label(db_session, label.id, LabelPrint(printed_by=3, copies=2))
        label = LabelService.print_label(
            db_session, label.id, LabelPrint(printed_by=4, printer_name="dock-1")
        )

        assert label.is_printed is True
        assert label.print_count == 3
        assert label.printed_by == 4
        assert label.printer_name == "dock-1"
        assert label.printed_at is not None

        unprinted = LabelService.list_labels(db_session, LabelFilter(is_printed=False))
        assert unprinted == []

    def test_print_unknown_label(self, db_session):
        with pytest.raises(NotFoundError):
            LabelService.print_label(db_session, 9, LabelPrint(printed_by=1))
