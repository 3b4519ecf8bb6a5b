"""
Warehouse Inventory Data Models
===============================
Lots, the stock movement ledger, and the workflow documents that change them.

Key points:
- All quantities are Numeric(15, 3) and handled as Decimal
- StockMovement rows are append-only (guarded by ORM events)
- Document numbers come from NumberSequence, one counter per (name, year)
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, Text, Boolean,
    Numeric, Enum as SQLEnum, Index, CheckConstraint, UniqueConstraint,
    event
)
from sqlalchemy.orm import relationship, validates

from .db import Base
from .errors import LedgerImmutableError


def utcnow() -> datetime:
    """Naive UTC timestamp, the convention for every DateTime column here"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


QTY = Numeric(15, 3)


# =============================================================================
# ENUMS
# =============================================================================

class LotStatus(str, Enum):
    AVAILABLE = "available"
    RESERVED = "reserved"
    QUARANTINED = "quarantined"


class MovementType(str, Enum):
    """Ledger movement kinds. RECEIPT is positive, CONSUMPTION negative,
    ADJUSTMENT a signed delta, TRANSFER zero."""
    RECEIPT = "receipt"
    TRANSFER = "transfer"
    CONSUMPTION = "consumption"
    ADJUSTMENT = "adjustment"


class PutawayStatus(str, Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class MaterialIssueStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    PICKED = "picked"
    ISSUED = "issued"


class WarehouseType(str, Enum):
    MAIN = "main"
    COLD_STORAGE = "cold_storage"
    QUARANTINE = "quarantine"
    DISTRIBUTION = "distribution"


class WarehouseStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    MAINTENANCE = "maintenance"


class LocationType(str, Enum):
    ZONE = "zone"
    AISLE = "aisle"
    RACK = "rack"
    SHELF = "shelf"
    BIN = "bin"


class LocationStatus(str, Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    RESERVED = "reserved"
    MAINTENANCE = "maintenance"


class CycleCountStatus(str, Enum):
    PLANNED = "planned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class CycleCountType(str, Enum):
    FULL = "full"
    PARTIAL = "partial"
    SPOT = "spot"


class TemperatureLogType(str, Enum):
    WAREHOUSE = "warehouse"
    LOCATION = "location"
    INVENTORY = "inventory"
    PUTAWAY = "putaway"


class TemperatureStatus(str, Enum):
    NORMAL = "normal"
    WARNING = "warning"
    OUT_OF_RANGE = "out_of_range"


class LabelType(str, Enum):
    INVENTORY_LOT = "inventory_lot"
    PUTAWAY = "putaway"
    MATERIAL_ISSUE = "material_issue"
    CYCLE_COUNT = "cycle_count"
    LOCATION = "location"
    BATCH = "batch"


class BarcodeType(str, Enum):
    CODE128 = "code128"
    CODE39 = "code39"
    EAN13 = "ean13"
    QR_CODE = "qr_code"
    DATA_MATRIX = "data_matrix"


# =============================================================================
# LOCATION & WAREHOUSE REGISTRY
# =============================================================================

class Warehouse(Base):
    """
    Top of the storage hierarchy. Environment limits here are defaults only;
    each StorageLocation carries its own.
    """
    __tablename__ = "warehouses"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(SQLEnum(WarehouseType), nullable=False, default=WarehouseType.MAIN)
    status = Column(SQLEnum(WarehouseStatus), nullable=False, default=WarehouseStatus.ACTIVE)

    site_id = Column(Integer, nullable=True)
    address = Column(Text, nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    country = Column(String(100), nullable=True)
    postal_code = Column(String(20), nullable=True)

    min_temperature = Column(Numeric(6, 2), nullable=True)
    max_temperature = Column(Numeric(6, 2), nullable=True)
    min_humidity = Column(Numeric(6, 2), nullable=True)
    max_humidity = Column(Numeric(6, 2), nullable=True)

    manager_id = Column(Integer, nullable=True)
    remarks = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    locations = relationship("StorageLocation", back_populates="warehouse")


class StorageLocation(Base):
    """A bin/shelf/rack inside exactly one warehouse"""
    __tablename__ = "storage_locations"

    id = Column(Integer, primary_key=True, index=True)
    location_code = Column(String(50), unique=True, nullable=False, index=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False)
    name = Column(String(100), nullable=True)
    type = Column(SQLEnum(LocationType), nullable=False, default=LocationType.BIN)
    status = Column(SQLEnum(LocationStatus), nullable=False, default=LocationStatus.AVAILABLE)

    zone = Column(String(50), nullable=True)
    aisle = Column(String(50), nullable=True)
    rack = Column(String(50), nullable=True)
    shelf = Column(String(50), nullable=True)
    position = Column(String(50), nullable=True)

    capacity = Column(QTY, nullable=True)
    capacity_unit = Column(String(20), nullable=True)

    min_temperature = Column(Numeric(6, 2), nullable=True)
    max_temperature = Column(Numeric(6, 2), nullable=True)
    min_humidity = Column(Numeric(6, 2), nullable=True)
    max_humidity = Column(Numeric(6, 2), nullable=True)
    requires_temperature_control = Column(Boolean, nullable=False, default=False)
    requires_humidity_control = Column(Boolean, nullable=False, default=False)

    remarks = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    warehouse = relationship("Warehouse", back_populates="locations")

    __table_args__ = (
        Index('ix_location_warehouse_status', 'warehouse_id', 'status'),
    )


# =============================================================================
# INVENTORY - THE CORE
# =============================================================================

class InventoryLot(Base):
    """
    A physical quantity of one material and one batch at one location.

    Quantity is always > 0 while the row exists. A lot consumed down to zero
    is deleted; the ledger keeps its history.
    """
    __tablename__ = "inventory_lots"

    id = Column(Integer, primary_key=True, index=True)
    lot_code = Column(String(50), unique=True, nullable=False, index=True)  # INV-2025-000001

    material_id = Column(Integer, nullable=False, index=True)
    material_name = Column(String(200), nullable=True)
    material_code = Column(String(50), nullable=True)
    batch_number = Column(String(50), nullable=True, index=True)

    quantity = Column(QTY, nullable=False)
    unit = Column(String(20), nullable=False)

    location_id = Column(Integer, ForeignKey("storage_locations.id"), nullable=True)
    zone = Column(String(50), nullable=True)
    rack = Column(String(50), nullable=True)
    shelf = Column(String(50), nullable=True)
    position = Column(String(50), nullable=True)

    status = Column(SQLEnum(LotStatus), nullable=False, default=LotStatus.AVAILABLE)
    expiry_date = Column(DateTime, nullable=True)
    temperature = Column(Numeric(6, 2), nullable=True)
    humidity = Column(Numeric(6, 2), nullable=True)

    # Provenance
    goods_receipt_item_id = Column(Integer, nullable=True)
    qa_release_id = Column(Integer, nullable=True)

    remarks = Column(Text, nullable=True)
    last_updated_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    location = relationship("StorageLocation")

    __table_args__ = (
        CheckConstraint('quantity > 0', name='ck_lot_quantity_positive'),
        Index('ix_lot_material_batch_status', 'material_id', 'batch_number', 'status'),
        Index('ix_lot_expiry', 'expiry_date'),
    )

    @validates('quantity')
    def validate_quantity(self, key, value):
        """Prevent negative stock"""
        if value is not None and Decimal(value) < 0:
            raise ValueError("Lot quantity cannot be negative")
        return value


class StockMovement(Base):
    """
    Immutable ledger of every quantity change.

    The signed quantities of a (material_id, batch_number) always add up to
    the quantity currently held in its lots.
    """
    __tablename__ = "stock_movements"

    id = Column(Integer, primary_key=True, index=True)
    movement_number = Column(String(50), unique=True, nullable=False)  # MOV-2025-000001
    movement_type = Column(SQLEnum(MovementType), nullable=False)

    material_id = Column(Integer, nullable=False)
    material_name = Column(String(200), nullable=True)
    material_code = Column(String(50), nullable=True)
    batch_number = Column(String(50), nullable=True)

    quantity = Column(QTY, nullable=False)
    unit = Column(String(20), nullable=False)

    from_location_id = Column(Integer, ForeignKey("storage_locations.id"), nullable=True)
    to_location_id = Column(Integer, ForeignKey("storage_locations.id"), nullable=True)

    # Business object that caused the movement
    reference_id = Column(String(50), nullable=True)
    reference_type = Column(String(50), nullable=True)

    remarks = Column(Text, nullable=True)
    performed_by = Column(Integer, nullable=True)
    performed_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index('ix_movement_material_batch', 'material_id', 'batch_number'),
        Index('ix_movement_type_date', 'movement_type', 'performed_at'),
        Index('ix_movement_reference', 'reference_type', 'reference_id'),
    )


@event.listens_for(StockMovement, "before_update")
def _block_movement_update(mapper, connection, target):
    raise LedgerImmutableError(f"Stock movement {target.movement_number} cannot be updated")


@event.listens_for(StockMovement, "before_delete")
def _block_movement_delete(mapper, connection, target):
    raise LedgerImmutableError(f"Stock movement {target.movement_number} cannot be deleted")


# =============================================================================
# WORKFLOW DOCUMENTS
# =============================================================================

class PutawayItem(Base):
    """
    Pending placement of received/released stock.

    Workflow: PENDING -> ASSIGNED -> IN_PROGRESS -> COMPLETED
    Completion creates the InventoryLot and its RECEIPT movement.
    """
    __tablename__ = "putaway_items"

    id = Column(Integer, primary_key=True, index=True)
    putaway_number = Column(String(50), unique=True, nullable=False, index=True)

    material_id = Column(Integer, nullable=False)
    material_name = Column(String(200), nullable=True)
    material_code = Column(String(50), nullable=True)
    batch_number = Column(String(50), nullable=True)
    quantity = Column(QTY, nullable=False)
    unit = Column(String(20), nullable=False)
    expiry_date = Column(DateTime, nullable=True)

    status = Column(SQLEnum(PutawayStatus), nullable=False, default=PutawayStatus.PENDING)

    location_id = Column(Integer, ForeignKey("storage_locations.id"), nullable=True)
    zone = Column(String(50), nullable=True)
    rack = Column(String(50), nullable=True)
    shelf = Column(String(50), nullable=True)
    position = Column(String(50), nullable=True)
    temperature = Column(Numeric(6, 2), nullable=True)
    humidity = Column(Numeric(6, 2), nullable=True)

    goods_receipt_item_id = Column(Integer, nullable=True)
    qa_release_id = Column(Integer, nullable=True, index=True)
    inventory_lot_id = Column(Integer, nullable=True)

    requested_by = Column(Integer, nullable=True)
    requested_at = Column(DateTime, default=utcnow)
    assigned_by = Column(Integer, nullable=True)
    assigned_at = Column(DateTime, nullable=True)
    started_by = Column(Integer, nullable=True)
    started_at = Column(DateTime, nullable=True)
    completed_by = Column(Integer, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    remarks = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint('quantity > 0', name='ck_putaway_quantity_positive'),
    )


class MaterialIssue(Base):
    """
    Withdrawal request.

    Workflow: PENDING -> APPROVED -> PICKED -> ISSUED
    PICK reserves lots (FEFO), ISSUE consumes exactly those lots.
    """
    __tablename__ = "material_issues"

    id = Column(Integer, primary_key=True, index=True)
    issue_number = Column(String(50), unique=True, nullable=False, index=True)

    material_id = Column(Integer, nullable=False)
    material_name = Column(String(200), nullable=True)
    material_code = Column(String(50), nullable=True)
    batch_number = Column(String(50), nullable=True)  # Optional pin
    quantity = Column(QTY, nullable=False)
    unit = Column(String(20), nullable=False)

    from_location_id = Column(Integer, nullable=True)
    to_location_id = Column(Integer, nullable=True)

    # Consumer context
    work_order_id = Column(String(50), nullable=True, index=True)
    batch_id = Column(String(50), nullable=True, index=True)
    reference_id = Column(String(50), nullable=True)
    reference_type = Column(String(50), nullable=True)

    status = Column(SQLEnum(MaterialIssueStatus), nullable=False, default=MaterialIssueStatus.PENDING)

    requested_by = Column(Integer, nullable=True)
    requested_at = Column(DateTime, default=utcnow)
    approved_by = Column(Integer, nullable=True)
    approved_at = Column(DateTime, nullable=True)
    picked_by = Column(Integer, nullable=True)
    picked_at = Column(DateTime, nullable=True)
    issued_by = Column(Integer, nullable=True)
    issued_at = Column(DateTime, nullable=True)

    remarks = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    allocations = relationship(
        "IssueAllocation",
        back_populates="material_issue",
        order_by="IssueAllocation.id",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint('quantity > 0', name='ck_issue_quantity_positive'),
    )


class IssueAllocation(Base):
    """
    One lot touched by a material issue at PICK time.

    The lot itself is held RESERVED as a whole; reserved_quantity is the part
    of it the issue will actually consume.
    """
    __tablename__ = "issue_allocations"

    id = Column(Integer, primary_key=True, index=True)
    material_issue_id = Column(Integer, ForeignKey("material_issues.id"), nullable=False, index=True)
    lot_id = Column(Integer, ForeignKey("inventory_lots.id", ondelete="SET NULL"), nullable=True, index=True)
    lot_code = Column(String(50), nullable=False)
    reserved_quantity = Column(QTY, nullable=False)
    consumed_quantity = Column(QTY, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    material_issue = relationship("MaterialIssue", back_populates="allocations")


# =============================================================================
# RECONCILIATION & MONITORING
# =============================================================================

class CycleCount(Base):
    """Expected vs. counted quantity. Variance fields are derived on update."""
    __tablename__ = "cycle_counts"

    id = Column(Integer, primary_key=True, index=True)
    count_number = Column(String(50), unique=True, nullable=False, index=True)
    count_type = Column(SQLEnum(CycleCountType), nullable=False, default=CycleCountType.FULL)
    status = Column(SQLEnum(CycleCountStatus), nullable=False, default=CycleCountStatus.PLANNED)

    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=True)
    location_id = Column(Integer, ForeignKey("storage_locations.id"), nullable=True)
    zone = Column(String(50), nullable=True)
    material_id = Column(Integer, nullable=True)
    batch_number = Column(String(50), nullable=True)

    scheduled_date = Column(DateTime, nullable=True)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    assigned_to = Column(Integer, nullable=True)
    performed_by = Column(Integer, nullable=True)

    expected_quantity = Column(QTY, nullable=True)
    counted_quantity = Column(QTY, nullable=True)
    variance = Column(QTY, nullable=True)
    variance_percentage = Column(Numeric(9, 2), nullable=True)
    has_variance = Column(Boolean, nullable=False, default=False)

    adjustment_reason = Column(Text, nullable=True)
    remarks = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class TemperatureLog(Base):
    __tablename__ = "temperature_logs"

    id = Column(Integer, primary_key=True, index=True)
    log_type = Column(SQLEnum(TemperatureLogType), nullable=False)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=True)
    location_id = Column(Integer, ForeignKey("storage_locations.id"), nullable=True)
    inventory_lot_id = Column(Integer, nullable=True)
    putaway_item_id = Column(Integer, nullable=True)

    temperature = Column(Numeric(6, 2), nullable=False)
    humidity = Column(Numeric(6, 2), nullable=True)
    min_threshold = Column(Numeric(6, 2), nullable=True)
    max_threshold = Column(Numeric(6, 2), nullable=True)
    status = Column(SQLEnum(TemperatureStatus), nullable=False, default=TemperatureStatus.NORMAL)
    is_out_of_range = Column(Boolean, nullable=False, default=False)

    sensor_id = Column(String(50), nullable=True)
    sensor_name = Column(String(100), nullable=True)
    remarks = Column(Text, nullable=True)
    logged_by = Column(Integer, nullable=True)
    logged_at = Column(DateTime, nullable=False, default=utcnow)
    created_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        Index('ix_temperature_log_logged_at', 'logged_at'),
    )


# =============================================================================
# LABELS
# =============================================================================

class LabelBarcode(Base):
    """Printable label for a lot, workflow document, location or batch"""
    __tablename__ = "label_barcodes"

    id = Column(Integer, primary_key=True, index=True)
    barcode = Column(String(50), unique=True, nullable=False, index=True)
    label_type = Column(SQLEnum(LabelType), nullable=False)
    barcode_type = Column(SQLEnum(BarcodeType), nullable=False, default=BarcodeType.CODE128)

    reference_id = Column(Integer, nullable=True)
    reference_type = Column(String(50), nullable=True)
    inventory_lot_id = Column(Integer, nullable=True, index=True)
    putaway_item_id = Column(Integer, nullable=True)
    material_issue_id = Column(Integer, nullable=True)
    cycle_count_id = Column(Integer, nullable=True)
    location_id = Column(Integer, ForeignKey("storage_locations.id"), nullable=True)
    batch_number = Column(String(50), nullable=True)

    label_data = Column(Text, nullable=True)
    label_template = Column(String(100), nullable=True)

    is_printed = Column(Boolean, nullable=False, default=False)
    print_count = Column(Integer, nullable=False, default=0)
    printed_at = Column(DateTime, nullable=True)
    printed_by = Column(Integer, nullable=True)
    printer_name = Column(String(100), nullable=True)

    remarks = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


# =============================================================================
# SYSTEM TABLES
# =============================================================================

class NumberSequence(Base):
    """
    Document number counters, one row per (sequence_name, year).
    Locked with SELECT FOR UPDATE while the number is taken.
    """
    __tablename__ = "number_sequences"

    id = Column(Integer, primary_key=True, index=True)
    sequence_name = Column(String(50), nullable=False)  # movement, lot, putaway, ...
    year = Column(Integer, nullable=False)
    prefix = Column(String(20), nullable=False)
    current_number = Column(Integer, nullable=False, default=0)
    padding = Column(Integer, nullable=False, default=6)

    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint('sequence_name', 'year', name='uq_sequence_name_year'),
    )
