"""Pytest configuration and fixtures."""

import os

# Keep the module-level engine off the on-disk default
os.environ.setdefault("WAREHOUSE_DATABASE_URL", "sqlite://")

from collections.abc import Generator
from datetime import datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from warehouse_core.app import models  # noqa: F401
from warehouse_core.app.db import Base
from warehouse_core.app.deps import get_db
from warehouse_core.app.main import app
from warehouse_core.app.schemas import (
    LotCreate, MaterialIssueApprove, MaterialIssueCreate, StorageLocationCreate,
    WarehouseCreate,
)
from warehouse_core.app.services import (
    LotService, MaterialIssueService, StorageLocationService, WarehouseService,
)


@pytest.fixture
def engine():
    """In-memory SQLite shared by every session of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db_session(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory) -> Generator[TestClient, None, None]:
    """Test client with get_db bound to the test database."""

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def api_prefix() -> str:
    return "/api/v1/warehouse"


@pytest.fixture
def warehouse(db_session):
    return WarehouseService.create(db_session, WarehouseCreate(code="WH-01", name="Main Store"))


@pytest.fixture
def location(db_session, warehouse):
    return StorageLocationService.create(
        db_session,
        StorageLocationCreate(location_code="WH-01-A1", warehouse_id=warehouse.id),
    )


@pytest.fixture
def make_lot(db_session):
    """Factory for lots created through the lot store."""

    def _make_lot(quantity, material_id=10, batch_number="B1", expiry_date=None, **extra):
        return LotService.create_lot(
            db_session,
            LotCreate(
                material_id=material_id,
                batch_number=batch_number,
                quantity=Decimal(str(quantity)),
                unit="kg",
                expiry_date=expiry_date,
                performed_by=1,
                **extra,
            ),
        )

    return _make_lot


@pytest.fixture
def make_issue(db_session):
    """Factory for material issues, optionally moved to APPROVED."""

    def _make_issue(quantity, material_id=10, batch_number=None, approved=True):
        issue = MaterialIssueService.create(
            db_session,
            MaterialIssueCreate(
                material_id=material_id,
                batch_number=batch_number,
                quantity=Decimal(str(quantity)),
                unit="kg",
                requested_by=1,
            ),
        )
        if approved:
            issue = MaterialIssueService.approve(
                db_session, issue.id, MaterialIssueApprove(approved_by=2)
            )
        return issue

    return _make_issue


@pytest.fixture
def fefo_lots(make_lot):
    """Lots expiring 2025-01-01, 2025-06-01 and never, 5 units each.

    Created out of expiry order so FEFO cannot be mistaken for insertion order.
    """
    no_expiry = make_lot(5)
    june = make_lot(5, expiry_date=datetime(2025, 6, 1))
    january = make_lot(5, expiry_date=datetime(2025, 1, 1))
    return january, june, no_expiry
