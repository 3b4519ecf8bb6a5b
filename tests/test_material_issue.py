from decimal import Decimal

import pytest

from warehouse_core.app.errors import InvalidStateError, NotFoundError
from warehouse_core.app.models import (
    InventoryLot, LotStatus, MaterialIssueStatus, MovementType, StockMovement,
)
from warehouse_core.app.schemas import (
    MaterialIssueApprove, MaterialIssueFilter, PutawayAssign, PutawayCreate,
)
from warehouse_core.app.services import MaterialIssueService, PutawayService


class TestScenario:
    def test_putaway_then_partial_issue(self, db_session, location, make_issue):
        """Putaway 100 of B1, issue 60: one lot of 40 remains."""
        service = PutawayService()
        putaway = service.create(
            db_session,
            PutawayCreate(material_id=10, batch_number="B1", quantity=Decimal("100"), unit="kg"),
        )
        service.assign_location(db_session, putaway.id, PutawayAssign(location_id=location.id))
        service.complete(db_session, putaway.id, completed_by=1)

        lot = db_session.query(InventoryLot).one()
        assert lot.quantity == Decimal("100")
        assert lot.status == LotStatus.AVAILABLE
        receipts = db_session.query(StockMovement).filter(
            StockMovement.movement_type == MovementType.RECEIPT
        ).all()
        assert [m.quantity for m in receipts] == [Decimal("100")]

        issue = make_issue(60, batch_number="B1")
        MaterialIssueService.pick(db_session, issue.id, picked_by=2)
        lot = db_session.query(InventoryLot).one()
        assert lot.status == LotStatus.RESERVED
        assert lot.quantity == Decimal("100")

        MaterialIssueService.issue(db_session, issue.id, issued_by=3)

        consumptions = MaterialIssueService.get_movements(db_session, issue.id)
        assert [(m.movement_type, m.quantity) for m in consumptions] == [
            (MovementType.CONSUMPTION, Decimal("-60")),
        ]
        lot = db_session.query(InventoryLot).one()
        assert lot.quantity == Decimal("40")
        assert lot.status == LotStatus.AVAILABLE


class TestStateMachine:
    def test_create_does_not_check_stock(self, make_issue):
        issue = make_issue(1000, approved=False)
        assert issue.status == MaterialIssueStatus.PENDING
        assert issue.issue_number.startswith("ISS-")

    def test_issue_on_pending_fails_and_stays_pending(self, db_session, make_issue):
        issue = make_issue(5, approved=False)

        with pytest.raises(InvalidStateError) as exc_info:
            MaterialIssueService.issue(db_session, issue.id, issued_by=3)

        assert exc_info.value.current == "PENDING"
        assert exc_info.value.required == ["PICKED"]
        assert MaterialIssueService.get_issue(db_session, issue.id).status == MaterialIssueStatus.PENDING

    def test_pick_requires_approval(self, db_session, make_lot, make_issue):
        make_lot(10)
        issue = make_issue(5, approved=False)
        with pytest.raises(InvalidStateError):
            MaterialIssueService.pick(db_session, issue.id, picked_by=2)
        assert db_session.query(InventoryLot).one().status == LotStatus.AVAILABLE

    def test_approve_twice_fails(self, db_session, make_issue):
        issue = make_issue(5)
        with pytest.raises(InvalidStateError):
            MaterialIssueService.approve(db_session, issue.id, MaterialIssueApprove(approved_by=2))

    def test_issued_is_terminal(self, db_session, make_lot, make_issue):
        make_lot(10)
        issue = make_issue(5)
        MaterialIssueService.pick(db_session, issue.id, picked_by=2)
        MaterialIssueService.issue(db_session, issue.id, issued_by=3)

        with pytest.raises(InvalidStateError):
            MaterialIssueService.issue(db_session, issue.id, issued_by=3)
        with pytest.raises(InvalidStateError):
            MaterialIssueService.pick(db_session, issue.id, picked_by=2)

    def test_transitions_record_actor_and_time(self, db_session, make_lot, make_issue):
        make_lot(10)
        issue = make_issue(5)
        MaterialIssueService.pick(db_session, issue.id, picked_by=2)
        issue = MaterialIssueService.issue(db_session, issue.id, issued_by=3)

        assert issue.approved_by == 2
        assert issue.picked_by == 2
        assert issue.issued_by == 3
        assert issue.requested_at <= issue.approved_at <= issue.picked_at <= issue.issued_at

    def test_unknown_issue(self, db_session):
        with pytest.raises(NotFoundError):
            MaterialIssueService.approve(db_session, 99, MaterialIssueApprove(approved_by=1))


class TestEntryPoints:
    def test_reserve_and_consume_return_their_records(self, db_session, make_lot, make_issue):
        lot_id = make_lot(10).id
        issue = make_issue(4)

        allocations = MaterialIssueService.reserve_for_issue(db_session, issue.id, picked_by=2)
        assert [(a.lot_id, a.reserved_quantity) for a in allocations] == [(lot_id, Decimal("4"))]

        movements = MaterialIssueService.consume_reserved(db_session, issue.id, issued_by=3)
        assert [m.quantity for m in movements] == [Decimal("-4")]
        assert movements[0].reference_id == issue.issue_number

    def test_consume_requires_picked(self, db_session, make_issue):
        issue = make_issue(4)
        with pytest.raises(InvalidStateError):
            MaterialIssueService.consume_reserved(db_session, issue.id, issued_by=3)


class TestQueries:
    def test_list_newest_first_and_filter(self, db_session, make_issue):
        first = make_issue(1, approved=False)
        second = make_issue(2)

        issues = MaterialIssueService.list_issues(db_session)
        assert [i.id for i in issues] == [second.id, first.id]

        approved = MaterialIssueService.list_issues(
            db_session, MaterialIssueFilter(status=MaterialIssueStatus.APPROVED)
        )
        assert [i.id for i in approved] == [second.id]
