"""
Cycle Counts & Temperature Monitoring
=====================================
Reconciliation of expected vs. counted stock, and threshold checks on
environment readings. Neither changes lot quantities.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from ..config import get_settings
from ..errors import InvalidStateError, MissingDataError, NotFoundError
from ..logging_config import get_logger
from ..models import (
    CycleCount, CycleCountStatus, TemperatureLog, TemperatureStatus, utcnow,
)
from ..schemas import (
    CycleCountCreate, CycleCountFilter, CycleCountUpdate, TemperatureLogCreate,
    TemperatureLogFilter,
)
from .lot_service import append_remarks
from .sequences import CYCLE_COUNT, get_next_sequence
from .transactions import atomic

logger = get_logger(__name__)

HUNDRED = Decimal("100")


def compute_variance(
    expected: Decimal,
    counted: Decimal,
    tolerance: Optional[Decimal] = None,
) -> Tuple[Decimal, Decimal, bool]:
    """
    (variance, variance percentage, has variance) for a count.

    Percentage is 0 when nothing was expected. The flag uses an absolute
    tolerance in stock units.
    """
    if tolerance is None:
        tolerance = get_settings().variance_tolerance
    variance = Decimal(counted) - Decimal(expected)
    if expected > 0:
        percentage = (variance / Decimal(expected) * HUNDRED).quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP
        )
    else:
        percentage = Decimal("0.00")
    return variance, percentage, abs(variance) > tolerance


def classify_temperature(
    temperature: Decimal,
    min_threshold: Optional[Decimal] = None,
    max_threshold: Optional[Decimal] = None,
    margin: Optional[Decimal] = None,
) -> TemperatureStatus:
    """
    OUT_OF_RANGE beyond a threshold, WARNING inside the soft margin next to
    either threshold, NORMAL otherwise or when no thresholds are given.

    The margin is scaled by the threshold's magnitude, so a -25..-15 freezer
    warns above -15.75 and below -23.75 the same way a 2..8 fridge warns
    above 7.6 and below 2.1.
    """
    if margin is None:
        margin = get_settings().temperature_warning_margin
    t = Decimal(temperature)

    low = Decimal(min_threshold) if min_threshold is not None else None
    high = Decimal(max_threshold) if max_threshold is not None else None

    if low is not None and t < low:
        return TemperatureStatus.OUT_OF_RANGE
    if high is not None and t > high:
        return TemperatureStatus.OUT_OF_RANGE
    if low is not None and t < low + abs(low) * margin:
        return TemperatureStatus.WARNING
    if high is not None and t > high - abs(high) * margin:
        return TemperatureStatus.WARNING
    return TemperatureStatus.NORMAL


def _locked_count(db: Session, count_id: int) -> CycleCount:
    count = db.query(CycleCount).filter(
        CycleCount.id == count_id
    ).with_for_update().first()
    if not count:
        raise NotFoundError("Cycle count", count_id)
    return count


class CycleCountService:

    @staticmethod
    def create(db: Session, data: CycleCountCreate) -> CycleCount:
        with atomic(db):
            count = CycleCount(
                count_number=get_next_sequence(db, CYCLE_COUNT),
                status=CycleCountStatus.PLANNED,
                has_variance=False,
                **data.model_dump(),
            )
            db.add(count)
            db.flush()
            logger.info("cycle_count_created", count_number=count.count_number,
                        count_type=count.count_type.value)
        return count

    @staticmethod
    def list_counts(db: Session, filters: Optional[CycleCountFilter] = None) -> List[CycleCount]:
        filters = filters or CycleCountFilter()
        query = db.query(CycleCount)
        if filters.warehouse_id is not None:
            query = query.filter(CycleCount.warehouse_id == filters.warehouse_id)
        if filters.status is not None:
            query = query.filter(CycleCount.status == filters.status)
        if filters.count_type is not None:
            query = query.filter(CycleCount.count_type == filters.count_type)
        return query.order_by(CycleCount.created_at.desc(), CycleCount.id.desc()).all()

    @staticmethod
    def get_count(db: Session, count_id: int) -> CycleCount:
        count = db.query(CycleCount).filter(CycleCount.id == count_id).first()
        if not count:
            raise NotFoundError("Cycle count", count_id)
        return count

    @staticmethod
    def start(db: Session, count_id: int, performed_by: int) -> CycleCount:
        with atomic(db):
            count = _locked_count(db, count_id)
            if count.status != CycleCountStatus.PLANNED:
                raise InvalidStateError(f"Cycle count {count.count_number}",
                                        count.status, CycleCountStatus.PLANNED)
            count.status = CycleCountStatus.IN_PROGRESS
            count.performed_by = performed_by
            count.started_at = utcnow()
            logger.info("cycle_count_started", count_number=count.count_number)
        return count

    @staticmethod
    def update(db: Session, count_id: int, data: CycleCountUpdate) -> CycleCount:
        """Record the counted quantity and recompute variance. Not after completion."""
        with atomic(db):
            count = _locked_count(db, count_id)
            if count.status == CycleCountStatus.COMPLETED:
                raise InvalidStateError(
                    f"Cycle count {count.count_number}", count.status,
                    [CycleCountStatus.PLANNED, CycleCountStatus.IN_PROGRESS],
                )

            if data.counted_quantity is not None:
                count.counted_quantity = data.counted_quantity
                if count.expected_quantity is not None:
                    variance, percentage, flagged = compute_variance(
                        count.expected_quantity, data.counted_quantity
                    )
                    count.variance = variance
                    count.variance_percentage = percentage
                    count.has_variance = flagged

            if data.performed_by is not None:
                count.performed_by = data.performed_by
            if data.adjustment_reason is not None:
                count.adjustment_reason = data.adjustment_reason
            count.remarks = append_remarks(count.remarks, data.remarks)

        if count.has_variance:
            logger.warning("cycle_count_variance", count_number=count.count_number,
                           variance=str(count.variance),
                           variance_percentage=str(count.variance_percentage))
        return count

    @staticmethod
    def complete(db: Session, count_id: int) -> CycleCount:
        with atomic(db):
            count = _locked_count(db, count_id)
            if count.status != CycleCountStatus.IN_PROGRESS:
                raise InvalidStateError(f"Cycle count {count.count_number}",
                                        count.status, CycleCountStatus.IN_PROGRESS)
            if count.counted_quantity is None:
                raise MissingDataError(
                    f"Cycle count {count.count_number} has no counted quantity"
                )
            count.status = CycleCountStatus.COMPLETED
            count.completed_at = utcnow()
            logger.info("cycle_count_completed", count_number=count.count_number,
                        has_variance=count.has_variance)
        return count


class TemperatureLogService:

    @staticmethod
    def create(db: Session, data: TemperatureLogCreate) -> TemperatureLog:
        """Store a reading with its classification. Informational only."""
        status = classify_temperature(data.temperature, data.min_threshold, data.max_threshold)
        with atomic(db):
            log = TemperatureLog(
                status=status,
                is_out_of_range=status == TemperatureStatus.OUT_OF_RANGE,
                logged_at=utcnow(),
                **data.model_dump(),
            )
            db.add(log)
            db.flush()

        if status == TemperatureStatus.NORMAL:
            logger.info("temperature_logged", log_id=log.id, temperature=str(data.temperature))
        else:
            logger.warning("temperature_alert", log_id=log.id, status=status.value,
                           temperature=str(data.temperature))
        return log

    @staticmethod
    def list_logs(db: Session, filters: Optional[TemperatureLogFilter] = None) -> List[TemperatureLog]:
        """Readings matching `filters`, newest first"""
        filters = filters or TemperatureLogFilter()
        query = db.query(TemperatureLog)
        if filters.warehouse_id is not None:
            query = query.filter(TemperatureLog.warehouse_id == filters.warehouse_id)
        if filters.location_id is not None:
            query = query.filter(TemperatureLog.location_id == filters.location_id)
        if filters.inventory_lot_id is not None:
            query = query.filter(TemperatureLog.inventory_lot_id == filters.inventory_lot_id)
        if filters.putaway_item_id is not None:
            query = query.filter(TemperatureLog.putaway_item_id == filters.putaway_item_id)
        if filters.log_type is not None:
            query = query.filter(TemperatureLog.log_type == filters.log_type)
        if filters.start_date is not None:
            query = query.filter(TemperatureLog.logged_at >= filters.start_date)
        if filters.end_date is not None:
            query = query.filter(TemperatureLog.logged_at <= filters.end_date)
        return query.order_by(TemperatureLog.logged_at.desc(), TemperatureLog.id.desc()).all()

    @staticmethod
    def get_log(db: Session, log_id: int) -> TemperatureLog:
        log = db.query(TemperatureLog).filter(TemperatureLog.id == log_id).first()
        if not log:
            raise NotFoundError("Temperature log", log_id)
        return log
