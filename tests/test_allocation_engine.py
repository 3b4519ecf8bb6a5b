from datetime import datetime
from decimal import Decimal

import pytest

from warehouse_core.app.errors import InsufficientInventoryError
from warehouse_core.app.models import (
    InventoryLot, IssueAllocation, LotStatus, MaterialIssueStatus, MovementType,
    StockMovement,
)
from warehouse_core.app.services import AllocationEngine, MaterialIssueService


def lot_state(db):
    return sorted(
        (lot.id, lot.quantity, lot.status)
        for lot in db.query(InventoryLot).all()
    )


class TestPlan:
    def test_takes_lots_in_fefo_order(self, db_session, fefo_lots):
        january, june, _ = fefo_lots
        plan = AllocationEngine.plan(db_session, 10, Decimal("7"))

        assert [(lot.id, take) for lot, take in plan] == [
            (january.id, Decimal("5")),
            (june.id, Decimal("2")),
        ]

    def test_batch_pin(self, db_session, make_lot):
        make_lot(5, batch_number="B1", expiry_date=datetime(2025, 1, 1))
        pinned = make_lot(5, batch_number="B2", expiry_date=datetime(2026, 1, 1))

        plan = AllocationEngine.plan(db_session, 10, Decimal("3"), batch_number="B2")
        assert [lot.id for lot, _ in plan] == [pinned.id]

    def test_ignores_quarantined_lots(self, db_session, make_lot):
        make_lot(5, status=LotStatus.QUARANTINED)
        with pytest.raises(InsufficientInventoryError):
            AllocationEngine.plan(db_session, 10, Decimal("1"))

    def test_insufficient_reports_requested_and_available(self, db_session, fefo_lots):
        with pytest.raises(InsufficientInventoryError) as exc_info:
            AllocationEngine.plan(db_session, 10, Decimal("16"))

        assert exc_info.value.requested == Decimal("16")
        assert exc_info.value.available == Decimal("15")
        assert "Available: 15" in exc_info.value.message
        assert "Requested: 16" in exc_info.value.message


class TestReserveAndConsume:
    def test_fefo_reservation_and_consumption(self, db_session, fefo_lots, make_issue):
        january, june, no_expiry = fefo_lots
        january_id, june_id, no_expiry_id = january.id, june.id, no_expiry.id
        issue = make_issue(7)

        MaterialIssueService.pick(db_session, issue.id, picked_by=5)

        allocations = MaterialIssueService.get_allocations(db_session, issue.id)
        assert [(a.lot_id, a.reserved_quantity) for a in allocations] == [
            (january_id, Decimal("5")),
            (june_id, Decimal("2")),
        ]
        assert db_session.get(InventoryLot, june_id).status == LotStatus.RESERVED
        assert db_session.get(InventoryLot, june_id).quantity == Decimal("5")
        assert db_session.get(InventoryLot, no_expiry_id).status == LotStatus.AVAILABLE

        MaterialIssueService.issue(db_session, issue.id, issued_by=6)

        assert db_session.get(InventoryLot, january_id) is None
        june_after = db_session.get(InventoryLot, june_id)
        assert june_after.quantity == Decimal("3")
        assert june_after.status == LotStatus.AVAILABLE
        untouched = db_session.get(InventoryLot, no_expiry_id)
        assert untouched.quantity == Decimal("5")
        assert untouched.status == LotStatus.AVAILABLE

        consumptions = db_session.query(StockMovement).filter(
            StockMovement.movement_type == MovementType.CONSUMPTION
        ).order_by(StockMovement.id).all()
        assert [m.quantity for m in consumptions] == [Decimal("-5"), Decimal("-2")]
        assert AllocationEngine.available_quantity(db_session, 10) == Decimal("8")

    def test_failed_reservation_leaves_lots_untouched(self, db_session, fefo_lots, make_issue):
        before = lot_state(db_session)
        issue = make_issue(20)

        with pytest.raises(InsufficientInventoryError):
            MaterialIssueService.pick(db_session, issue.id, picked_by=5)

        assert lot_state(db_session) == before
        assert db_session.query(IssueAllocation).count() == 0
        assert MaterialIssueService.get_issue(db_session, issue.id).status == MaterialIssueStatus.APPROVED

    def test_reserved_lot_not_available_to_second_issue(self, db_session, make_lot, make_issue):
        make_lot(10)
        first = make_issue(4)
        second = make_issue(4)

        MaterialIssueService.pick(db_session, first.id, picked_by=5)
        # The whole lot is held by the first issue
        with pytest.raises(InsufficientInventoryError):
            MaterialIssueService.pick(db_session, second.id, picked_by=5)

        MaterialIssueService.issue(db_session, first.id, issued_by=6)
        MaterialIssueService.pick(db_session, second.id, picked_by=5)
        MaterialIssueService.issue(db_session, second.id, issued_by=6)

        remaining = db_session.query(InventoryLot).one()
        assert remaining.quantity == Decimal("2")
        assert remaining.status == LotStatus.AVAILABLE

    def test_exact_lot_quantity_deletes_lot(self, db_session, make_lot, make_issue):
        make_lot(5)
        issue = make_issue(5)
        MaterialIssueService.pick(db_session, issue.id, picked_by=5)
        MaterialIssueService.issue(db_session, issue.id, issued_by=6)

        assert db_session.query(InventoryLot).count() == 0
        allocation = MaterialIssueService.get_allocations(db_session, issue.id)[0]
        assert allocation.lot_id is None
        assert allocation.consumed_quantity == Decimal("5")
