from datetime import datetime
from decimal import Decimal

import pytest

from warehouse_core.app.errors import InventoryError, LedgerImmutableError, NotFoundError
from warehouse_core.app.models import InventoryLot, MovementType, NumberSequence, StockMovement
from warehouse_core.app.schemas import LotVerify, MovementFilter
from warehouse_core.app.services import LedgerService, LotService
from warehouse_core.app.services.sequences import LOT, MOVEMENT, _seed_counter, get_next_sequence


# =============================================================================
# Sequences
# =============================================================================


class TestSequences:
    def test_format_and_increment(self, db_session):
        now = datetime(2025, 3, 1)
        assert get_next_sequence(db_session, MOVEMENT, now=now) == "MOV-2025-000001"
        assert get_next_sequence(db_session, MOVEMENT, now=now) == "MOV-2025-000002"

    def test_counters_are_per_name(self, db_session):
        now = datetime(2025, 3, 1)
        get_next_sequence(db_session, MOVEMENT, now=now)
        assert get_next_sequence(db_session, LOT, now=now) == "INV-2025-000001"

    def test_counters_restart_each_year(self, db_session):
        assert get_next_sequence(db_session, LOT, now=datetime(2025, 12, 31)) == "INV-2025-000001"
        assert get_next_sequence(db_session, LOT, now=datetime(2026, 1, 1)) == "INV-2026-000001"
        assert get_next_sequence(db_session, LOT, now=datetime(2025, 12, 31)) == "INV-2025-000002"

    def test_rolled_back_numbers_are_reused(self, db_session):
        now = datetime(2025, 3, 1)
        get_next_sequence(db_session, MOVEMENT, now=now)
        db_session.commit()
        get_next_sequence(db_session, MOVEMENT, now=now)
        db_session.rollback()
        assert get_next_sequence(db_session, MOVEMENT, now=now) == "MOV-2025-000002"

    def test_first_of_year_writers_share_one_counter(self, session_factory):
        now = datetime(2025, 3, 1)
        first, second = session_factory(), session_factory()
        try:
            # both miss the counter row, the first seeds and commits it
            _seed_counter(first, "movement", "MOV", 2025)
            first.commit()
            _seed_counter(second, "movement", "MOV", 2025)

            assert get_next_sequence(second, MOVEMENT, now=now) == "MOV-2025-000001"
            second.commit()
            assert get_next_sequence(first, MOVEMENT, now=now) == "MOV-2025-000002"
            first.commit()
            assert second.query(NumberSequence).count() == 1
        finally:
            first.close()
            second.close()


# =============================================================================
# Ledger writer
# =============================================================================


class TestRecordMovement:
    def test_lot_creation_writes_one_receipt(self, db_session, make_lot):
        lot = make_lot(100)

        movements = db_session.query(StockMovement).all()
        assert len(movements) == 1
        assert movements[0].movement_type == MovementType.RECEIPT
        assert movements[0].quantity == Decimal("100")
        assert movements[0].batch_number == "B1"
        assert movements[0].movement_number.startswith(f"MOV-{datetime.now().year}-")
        assert lot.lot_code.startswith("INV-")

    @pytest.mark.parametrize(
        "movement_type, quantity",
        [
            (MovementType.RECEIPT, Decimal("-1")),
            (MovementType.RECEIPT, Decimal("0")),
            (MovementType.CONSUMPTION, Decimal("5")),
            (MovementType.ADJUSTMENT, Decimal("0")),
            (MovementType.TRANSFER, Decimal("1")),
        ],
    )
    def test_sign_convention_enforced(self, db_session, make_lot, movement_type, quantity):
        lot = make_lot(10)
        with pytest.raises(InventoryError):
            LedgerService.record_movement(db_session, movement_type, lot, quantity)

    def test_movement_cannot_be_updated(self, db_session, make_lot):
        make_lot(10)
        movement = db_session.query(StockMovement).one()

        movement.remarks = "edited"
        with pytest.raises(LedgerImmutableError):
            db_session.flush()
        db_session.rollback()

    def test_movement_cannot_be_deleted(self, db_session, make_lot):
        make_lot(10)
        movement = db_session.query(StockMovement).one()

        db_session.delete(movement)
        with pytest.raises(LedgerImmutableError):
            db_session.flush()
        db_session.rollback()
        assert db_session.query(StockMovement).count() == 1


# =============================================================================
# Queries
# =============================================================================


class TestMovementQueries:
    def test_list_newest_first(self, db_session, make_lot):
        make_lot(1)
        make_lot(2)
        make_lot(3)

        movements = LedgerService.list_movements(db_session)
        assert [m.quantity for m in movements] == [Decimal("3"), Decimal("2"), Decimal("1")]

    def test_filters(self, db_session, make_lot):
        make_lot(1, material_id=10, batch_number="B1")
        make_lot(2, material_id=10, batch_number="B2")
        make_lot(3, material_id=11, batch_number="B1")

        by_material = LedgerService.list_movements(db_session, MovementFilter(material_id=10))
        assert len(by_material) == 2

        by_batch = LedgerService.list_movements(
            db_session, MovementFilter(material_id=10, batch_number="B2")
        )
        assert [m.quantity for m in by_batch] == [Decimal("2")]

        receipts = LedgerService.list_movements(
            db_session, MovementFilter(movement_type=MovementType.RECEIPT)
        )
        assert len(receipts) == 3

    def test_get_missing_movement(self, db_session):
        with pytest.raises(NotFoundError):
            LedgerService.get_movement(db_session, 999)

    def test_balance_matches_lots(self, db_session, make_lot):
        make_lot(40)
        make_lot(60)
        make_lot(5, batch_number="B2")

        balance = LedgerService.material_balance(db_session, 10, "B1")
        assert balance["on_hand"] == Decimal("100")
        assert balance["ledger_total"] == Decimal("100")
        assert balance["reconciled"] is True

        total = LedgerService.material_balance(db_session, 10)
        assert total["on_hand"] == Decimal("105")
        assert db_session.query(InventoryLot).count() == 3

    def test_balance_of_unbatched_lots(self, db_session, make_lot):
        make_lot(40)
        loose = make_lot(7, batch_number=None)
        LotService.verify_lot(
            db_session, loose.id, LotVerify(verified_quantity=Decimal("5"), verified_by=1)
        )

        balance = LedgerService.material_balance(db_session, 10, unbatched=True)
        assert balance["on_hand"] == Decimal("5")
        assert balance["ledger_total"] == Decimal("5")
        assert balance["reconciled"] is True
        assert balance["unbatched"] is True

        with pytest.raises(InventoryError):
            LedgerService.material_balance(db_session, 10, "B1", unbatched=True)
