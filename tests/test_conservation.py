"""Ledger conservation and non-negative stock across mixed operations."""

import random
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import func

from warehouse_core.app.errors import InsufficientInventoryError
from warehouse_core.app.models import InventoryLot, LotStatus, StockMovement
from warehouse_core.app.schemas import LotUpdate, LotVerify
from warehouse_core.app.services import LotService, MaterialIssueService

MATERIALS = [(10, "B1"), (10, "B2"), (11, "B1")]


def assert_conserved(db):
    for material_id, batch in MATERIALS:
        on_hand = db.query(func.coalesce(func.sum(InventoryLot.quantity), 0)).filter(
            InventoryLot.material_id == material_id, InventoryLot.batch_number == batch
        ).scalar()
        ledger = db.query(func.coalesce(func.sum(StockMovement.quantity), 0)).filter(
            StockMovement.material_id == material_id, StockMovement.batch_number == batch
        ).scalar()
        assert Decimal(str(on_hand)).quantize(Decimal("0.001")) == \
            Decimal(str(ledger)).quantize(Decimal("0.001"))
    assert db.query(InventoryLot).filter(InventoryLot.quantity <= 0).count() == 0


@pytest.mark.parametrize("seed", [1, 7, 42])
def test_random_operations_conserve_stock(db_session, location, make_lot, make_issue, seed):
    rng = random.Random(seed)
    base = datetime(2025, 1, 1)

    for _ in range(40):
        material_id, batch = rng.choice(MATERIALS)
        op = rng.choice(["receive", "receive", "issue", "verify", "write_off", "move"])
        lots = db_session.query(InventoryLot).filter(
            InventoryLot.status == LotStatus.AVAILABLE
        ).all()

        if op == "receive" or not lots:
            expiry = rng.choice([None, base + timedelta(days=rng.randint(0, 365))])
            make_lot(
                Decimal(rng.randint(1, 5000)) / 100,
                material_id=material_id,
                batch_number=batch,
                expiry_date=expiry,
            )
        elif op == "issue":
            issue = make_issue(
                Decimal(rng.randint(1, 3000)) / 100, material_id=material_id, batch_number=batch
            )
            try:
                MaterialIssueService.pick(db_session, issue.id, picked_by=1)
            except InsufficientInventoryError:
                pass
            else:
                MaterialIssueService.issue(db_session, issue.id, issued_by=1)
        elif op == "verify":
            lot = rng.choice(lots)
            LotService.verify_lot(
                db_session, lot.id,
                LotVerify(verified_quantity=Decimal(rng.randint(0, 3000)) / 100, verified_by=1),
            )
        elif op == "write_off":
            LotService.write_off_lot(db_session, rng.choice(lots).id, performed_by=1)
        else:
            LotService.update_lot(db_session, rng.choice(lots).id, LotUpdate(location_id=location.id))

        assert_conserved(db_session)
