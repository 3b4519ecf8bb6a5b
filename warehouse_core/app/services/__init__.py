"""
Services package initialization.
Business logic layer for warehouse inventory operations.
"""

from .allocation_engine import AllocationEngine
from .cycle_count_service import (
    CycleCountService,
    TemperatureLogService,
    classify_temperature,
    compute_variance,
)
from .label_service import LabelService
from .ledger_service import LedgerService
from .location_service import StorageLocationService, WarehouseService
from .lot_service import LotService, fefo_order
from .material_issue_service import MaterialIssueService
from .ports import NullQAReleaseNotifier, QAReleaseNotifier
from .putaway_service import PutawayService
from .sequences import get_next_sequence
from .transactions import atomic

__all__ = [
    'AllocationEngine',
    'CycleCountService',
    'TemperatureLogService',
    'classify_temperature',
    'compute_variance',
    'LabelService',
    'LedgerService',
    'StorageLocationService',
    'WarehouseService',
    'LotService',
    'fefo_order',
    'MaterialIssueService',
    'NullQAReleaseNotifier',
    'QAReleaseNotifier',
    'PutawayService',
    'get_next_sequence',
    'atomic',
]
