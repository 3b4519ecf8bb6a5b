from datetime import datetime
from decimal import Decimal
from typing import Annotated, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import (
    BarcodeType, CycleCountStatus, CycleCountType, LabelType, LocationStatus, LocationType, LotStatus,
    MaterialIssueStatus, MovementType, PutawayStatus, TemperatureLogType,
    TemperatureStatus, WarehouseStatus, WarehouseType,
)

Quantity = Annotated[Decimal, Field(gt=0, max_digits=15, decimal_places=3)]


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class TransitionRequest(BaseModel):
    """Actor for a workflow transition"""
    performed_by: int


# =============================================================================
# INVENTORY LOTS
# =============================================================================

class LotCreate(BaseModel):
    material_id: int
    material_name: Optional[str] = None
    material_code: Optional[str] = None
    batch_number: Optional[str] = None
    quantity: Quantity
    unit: str = Field(..., min_length=1, max_length=20)
    location_id: Optional[int] = None
    zone: Optional[str] = None
    rack: Optional[str] = None
    shelf: Optional[str] = None
    position: Optional[str] = None
    status: LotStatus = LotStatus.AVAILABLE
    expiry_date: Optional[datetime] = None
    temperature: Optional[Decimal] = None
    humidity: Optional[Decimal] = None
    goods_receipt_item_id: Optional[int] = None
    qa_release_id: Optional[int] = None
    remarks: Optional[str] = None
    performed_by: Optional[int] = None

    @field_validator("status")
    @classmethod
    def not_reserved(cls, v):
        if v == LotStatus.RESERVED:
            raise ValueError("Lots are reserved by material issues only")
        return v


class LotUpdate(BaseModel):
    """Partial update. Quantity changes go through verification."""
    location_id: Optional[int] = None
    zone: Optional[str] = None
    rack: Optional[str] = None
    shelf: Optional[str] = None
    position: Optional[str] = None
    status: Optional[LotStatus] = None
    expiry_date: Optional[datetime] = None
    temperature: Optional[Decimal] = None
    humidity: Optional[Decimal] = None
    remarks: Optional[str] = None
    last_updated_by: Optional[int] = None

    @field_validator("status")
    @classmethod
    def not_reserved(cls, v):
        if v == LotStatus.RESERVED:
            raise ValueError("Lots are reserved by material issues only")
        return v


class LotVerify(BaseModel):
    """Physical verification of a lot"""
    verified_quantity: Optional[Decimal] = Field(None, ge=0, max_digits=15, decimal_places=3)
    location_id: Optional[int] = None
    location_verified: bool = False
    remarks: Optional[str] = None
    verified_by: int


class InventoryFilter(BaseModel):
    material_id: Optional[int] = None
    batch_number: Optional[str] = None
    status: Optional[LotStatus] = None
    location_id: Optional[int] = None


class LotOut(ORMModel):
    id: int
    lot_code: str
    material_id: int
    material_name: Optional[str]
    material_code: Optional[str]
    batch_number: Optional[str]
    quantity: Decimal
    unit: str
    location_id: Optional[int]
    zone: Optional[str]
    rack: Optional[str]
    shelf: Optional[str]
    position: Optional[str]
    status: LotStatus
    expiry_date: Optional[datetime]
    temperature: Optional[Decimal]
    humidity: Optional[Decimal]
    goods_receipt_item_id: Optional[int]
    qa_release_id: Optional[int]
    remarks: Optional[str]
    last_updated_by: Optional[int]
    created_at: datetime
    updated_at: datetime


class VerificationOut(BaseModel):
    inventory_lot_id: int
    lot_deleted: bool
    verified_quantity: Optional[Decimal]
    location_id: Optional[int]
    location_verified: bool
    remarks: Optional[str]
    verified_by: int
    verified_at: datetime
    discrepancies: Optional[dict] = None
    movement_numbers: List[str] = []


# =============================================================================
# ALLOCATION
# =============================================================================

class AllocationOut(ORMModel):
    lot_id: Optional[int]
    lot_code: str
    reserved_quantity: Decimal
    consumed_quantity: Optional[Decimal] = None


# =============================================================================
# LEDGER
# =============================================================================

class MovementFilter(BaseModel):
    material_id: Optional[int] = None
    batch_number: Optional[str] = None
    movement_type: Optional[MovementType] = None
    reference_id: Optional[str] = None
    reference_type: Optional[str] = None


class MovementOut(ORMModel):
    id: int
    movement_number: str
    movement_type: MovementType
    material_id: int
    material_name: Optional[str]
    material_code: Optional[str]
    batch_number: Optional[str]
    quantity: Decimal
    unit: str
    from_location_id: Optional[int]
    to_location_id: Optional[int]
    reference_id: Optional[str]
    reference_type: Optional[str]
    remarks: Optional[str]
    performed_by: Optional[int]
    performed_at: datetime


class BalanceOut(BaseModel):
    material_id: int
    batch_number: Optional[str]
    unbatched: bool = False
    on_hand: Decimal
    ledger_total: Decimal
    reconciled: bool


# =============================================================================
# PUTAWAY
# =============================================================================

class PutawayCreate(BaseModel):
    material_id: int
    material_name: Optional[str] = None
    material_code: Optional[str] = None
    batch_number: Optional[str] = None
    quantity: Quantity
    unit: str = Field(..., min_length=1, max_length=20)
    expiry_date: Optional[datetime] = None
    goods_receipt_item_id: Optional[int] = None
    qa_release_id: Optional[int] = None
    requested_by: Optional[int] = None
    remarks: Optional[str] = None


class PutawayAssign(BaseModel):
    location_id: int
    zone: Optional[str] = None
    rack: Optional[str] = None
    shelf: Optional[str] = None
    position: Optional[str] = None
    temperature: Optional[Decimal] = None
    humidity: Optional[Decimal] = None
    assigned_by: Optional[int] = None
    remarks: Optional[str] = None


class PutawayFilter(BaseModel):
    status: Optional[PutawayStatus] = None
    qa_release_id: Optional[int] = None


class PutawayOut(ORMModel):
    id: int
    putaway_number: str
    material_id: int
    material_name: Optional[str]
    material_code: Optional[str]
    batch_number: Optional[str]
    quantity: Decimal
    unit: str
    expiry_date: Optional[datetime]
    status: PutawayStatus
    location_id: Optional[int]
    zone: Optional[str]
    rack: Optional[str]
    shelf: Optional[str]
    position: Optional[str]
    temperature: Optional[Decimal]
    humidity: Optional[Decimal]
    goods_receipt_item_id: Optional[int]
    qa_release_id: Optional[int]
    inventory_lot_id: Optional[int]
    requested_by: Optional[int]
    requested_at: Optional[datetime]
    assigned_by: Optional[int]
    assigned_at: Optional[datetime]
    started_by: Optional[int]
    started_at: Optional[datetime]
    completed_by: Optional[int]
    completed_at: Optional[datetime]
    remarks: Optional[str]


# =============================================================================
# MATERIAL ISSUE
# =============================================================================

class MaterialIssueCreate(BaseModel):
    material_id: int
    material_name: Optional[str] = None
    material_code: Optional[str] = None
    batch_number: Optional[str] = None
    quantity: Quantity
    unit: str = Field(..., min_length=1, max_length=20)
    from_location_id: Optional[int] = None
    to_location_id: Optional[int] = None
    work_order_id: Optional[str] = None
    batch_id: Optional[str] = None
    reference_id: Optional[str] = None
    reference_type: Optional[str] = None
    requested_by: Optional[int] = None
    remarks: Optional[str] = None


class MaterialIssueApprove(BaseModel):
    approved_by: int
    remarks: Optional[str] = None


class MaterialIssueFilter(BaseModel):
    status: Optional[MaterialIssueStatus] = None
    work_order_id: Optional[str] = None
    batch_id: Optional[str] = None


class MaterialIssueOut(ORMModel):
    id: int
    issue_number: str
    material_id: int
    material_name: Optional[str]
    material_code: Optional[str]
    batch_number: Optional[str]
    quantity: Decimal
    unit: str
    from_location_id: Optional[int]
    to_location_id: Optional[int]
    work_order_id: Optional[str]
    batch_id: Optional[str]
    reference_id: Optional[str]
    reference_type: Optional[str]
    status: MaterialIssueStatus
    requested_by: Optional[int]
    requested_at: Optional[datetime]
    approved_by: Optional[int]
    approved_at: Optional[datetime]
    picked_by: Optional[int]
    picked_at: Optional[datetime]
    issued_by: Optional[int]
    issued_at: Optional[datetime]
    remarks: Optional[str]
    allocations: List[AllocationOut] = []


# =============================================================================
# WAREHOUSES & LOCATIONS
# =============================================================================

class WarehouseCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    type: WarehouseType = WarehouseType.MAIN
    status: WarehouseStatus = WarehouseStatus.ACTIVE
    site_id: Optional[int] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None
    min_temperature: Optional[Decimal] = None
    max_temperature: Optional[Decimal] = None
    min_humidity: Optional[Decimal] = None
    max_humidity: Optional[Decimal] = None
    manager_id: Optional[int] = None
    remarks: Optional[str] = None


class WarehouseUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    type: Optional[WarehouseType] = None
    status: Optional[WarehouseStatus] = None
    site_id: Optional[int] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None
    min_temperature: Optional[Decimal] = None
    max_temperature: Optional[Decimal] = None
    min_humidity: Optional[Decimal] = None
    max_humidity: Optional[Decimal] = None
    manager_id: Optional[int] = None
    remarks: Optional[str] = None


class WarehouseFilter(BaseModel):
    site_id: Optional[int] = None
    status: Optional[WarehouseStatus] = None
    type: Optional[WarehouseType] = None


class WarehouseOut(ORMModel):
    id: int
    code: str
    name: str
    description: Optional[str]
    type: WarehouseType
    status: WarehouseStatus
    site_id: Optional[int]
    address: Optional[str]
    city: Optional[str]
    state: Optional[str]
    country: Optional[str]
    postal_code: Optional[str]
    min_temperature: Optional[Decimal]
    max_temperature: Optional[Decimal]
    min_humidity: Optional[Decimal]
    max_humidity: Optional[Decimal]
    manager_id: Optional[int]
    remarks: Optional[str]
    created_at: datetime
    updated_at: datetime


class StorageLocationCreate(BaseModel):
    location_code: str = Field(..., min_length=1, max_length=50)
    warehouse_id: int
    name: Optional[str] = None
    type: LocationType = LocationType.BIN
    status: LocationStatus = LocationStatus.AVAILABLE
    zone: Optional[str] = None
    aisle: Optional[str] = None
    rack: Optional[str] = None
    shelf: Optional[str] = None
    position: Optional[str] = None
    capacity: Optional[Decimal] = Field(None, ge=0)
    capacity_unit: Optional[str] = None
    min_temperature: Optional[Decimal] = None
    max_temperature: Optional[Decimal] = None
    min_humidity: Optional[Decimal] = None
    max_humidity: Optional[Decimal] = None
    requires_temperature_control: bool = False
    requires_humidity_control: bool = False
    remarks: Optional[str] = None


class StorageLocationUpdate(BaseModel):
    name: Optional[str] = None
    type: Optional[LocationType] = None
    status: Optional[LocationStatus] = None
    zone: Optional[str] = None
    aisle: Optional[str] = None
    rack: Optional[str] = None
    shelf: Optional[str] = None
    position: Optional[str] = None
    capacity: Optional[Decimal] = Field(None, ge=0)
    capacity_unit: Optional[str] = None
    min_temperature: Optional[Decimal] = None
    max_temperature: Optional[Decimal] = None
    min_humidity: Optional[Decimal] = None
    max_humidity: Optional[Decimal] = None
    requires_temperature_control: Optional[bool] = None
    requires_humidity_control: Optional[bool] = None
    remarks: Optional[str] = None


class StorageLocationFilter(BaseModel):
    warehouse_id: Optional[int] = None
    status: Optional[LocationStatus] = None
    type: Optional[LocationType] = None


class StorageLocationOut(ORMModel):
    id: int
    location_code: str
    warehouse_id: int
    name: Optional[str]
    type: LocationType
    status: LocationStatus
    zone: Optional[str]
    aisle: Optional[str]
    rack: Optional[str]
    shelf: Optional[str]
    position: Optional[str]
    capacity: Optional[Decimal]
    capacity_unit: Optional[str]
    min_temperature: Optional[Decimal]
    max_temperature: Optional[Decimal]
    min_humidity: Optional[Decimal]
    max_humidity: Optional[Decimal]
    requires_temperature_control: bool
    requires_humidity_control: bool
    remarks: Optional[str]
    created_at: datetime
    updated_at: datetime


# =============================================================================
# CYCLE COUNTS & TEMPERATURE
# =============================================================================

class CycleCountCreate(BaseModel):
    count_type: CycleCountType = CycleCountType.FULL
    warehouse_id: Optional[int] = None
    location_id: Optional[int] = None
    zone: Optional[str] = None
    material_id: Optional[int] = None
    batch_number: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    assigned_to: Optional[int] = None
    expected_quantity: Optional[Decimal] = Field(None, ge=0, max_digits=15, decimal_places=3)
    remarks: Optional[str] = None


class CycleCountUpdate(BaseModel):
    counted_quantity: Optional[Decimal] = Field(None, ge=0, max_digits=15, decimal_places=3)
    performed_by: Optional[int] = None
    adjustment_reason: Optional[str] = None
    remarks: Optional[str] = None


class CycleCountFilter(BaseModel):
    warehouse_id: Optional[int] = None
    status: Optional[CycleCountStatus] = None
    count_type: Optional[CycleCountType] = None


class CycleCountOut(ORMModel):
    id: int
    count_number: str
    count_type: CycleCountType
    status: CycleCountStatus
    warehouse_id: Optional[int]
    location_id: Optional[int]
    zone: Optional[str]
    material_id: Optional[int]
    batch_number: Optional[str]
    scheduled_date: Optional[datetime]
    started_at: Optional[datetime]
    completed_at: Optional[datetime]
    assigned_to: Optional[int]
    performed_by: Optional[int]
    expected_quantity: Optional[Decimal]
    counted_quantity: Optional[Decimal]
    variance: Optional[Decimal]
    variance_percentage: Optional[Decimal]
    has_variance: bool
    adjustment_reason: Optional[str]
    remarks: Optional[str]


class TemperatureLogCreate(BaseModel):
    log_type: TemperatureLogType
    warehouse_id: Optional[int] = None
    location_id: Optional[int] = None
    inventory_lot_id: Optional[int] = None
    putaway_item_id: Optional[int] = None
    temperature: Decimal
    humidity: Optional[Decimal] = None
    min_threshold: Optional[Decimal] = None
    max_threshold: Optional[Decimal] = None
    sensor_id: Optional[str] = None
    sensor_name: Optional[str] = None
    remarks: Optional[str] = None
    logged_by: Optional[int] = None


class TemperatureLogFilter(BaseModel):
    warehouse_id: Optional[int] = None
    location_id: Optional[int] = None
    inventory_lot_id: Optional[int] = None
    putaway_item_id: Optional[int] = None
    log_type: Optional[TemperatureLogType] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class TemperatureLogOut(ORMModel):
    id: int
    log_type: TemperatureLogType
    warehouse_id: Optional[int]
    location_id: Optional[int]
    inventory_lot_id: Optional[int]
    putaway_item_id: Optional[int]
    temperature: Decimal
    humidity: Optional[Decimal]
    min_threshold: Optional[Decimal]
    max_threshold: Optional[Decimal]
    status: TemperatureStatus
    is_out_of_range: bool
    sensor_id: Optional[str]
    sensor_name: Optional[str]
    remarks: Optional[str]
    logged_by: Optional[int]
    logged_at: datetime


# =============================================================================
# LABELS
# =============================================================================

class LabelCreate(BaseModel):
    label_type: LabelType
    barcode_type: BarcodeType = BarcodeType.CODE128
    reference_id: Optional[int] = None
    reference_type: Optional[str] = None
    inventory_lot_id: Optional[int] = None
    putaway_item_id: Optional[int] = None
    material_issue_id: Optional[int] = None
    cycle_count_id: Optional[int] = None
    location_id: Optional[int] = None
    batch_number: Optional[str] = None
    label_data: Optional[str] = None
    label_template: Optional[str] = None
    remarks: Optional[str] = None


class LabelUpdate(BaseModel):
    """Print state changes through the print operation only"""
    label_data: Optional[str] = None
    label_template: Optional[str] = None
    remarks: Optional[str] = None


class LabelPrint(BaseModel):
    printed_by: int
    printer_name: Optional[str] = None
    copies: int = Field(1, ge=1, le=100)


class LabelFilter(BaseModel):
    label_type: Optional[LabelType] = None
    inventory_lot_id: Optional[int] = None
    putaway_item_id: Optional[int] = None
    material_issue_id: Optional[int] = None
    cycle_count_id: Optional[int] = None
    location_id: Optional[int] = None
    batch_number: Optional[str] = None
    is_printed: Optional[bool] = None


class LabelOut(ORMModel):
    id: int
    barcode: str
    label_type: LabelType
    barcode_type: BarcodeType
    reference_id: Optional[int]
    reference_type: Optional[str]
    inventory_lot_id: Optional[int]
    putaway_item_id: Optional[int]
    material_issue_id: Optional[int]
    cycle_count_id: Optional[int]
    location_id: Optional[int]
    batch_number: Optional[str]
    label_data: Optional[str]
    label_template: Optional[str]
    is_printed: bool
    print_count: int
    printed_at: Optional[datetime]
    printed_by: Optional[int]
    printer_name: Optional[str]
    remarks: Optional[str]
    created_at: datetime
    updated_at: datetime
