"""
Typed errors raised by the warehouse engine.

Business-rule violations derive from InventoryError. PeerServiceError is the
transient kind: the operation did not happen and may be retried.
"""

from decimal import Decimal
from typing import Iterable, Union


class InventoryError(Exception):
    """Base exception for inventory operations"""

    code = "inventory_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(InventoryError):
    code = "not_found"

    def __init__(self, entity: str, entity_id):
        super().__init__(f"{entity} with ID {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class InvalidStateError(InventoryError):
    """Raised when a transition is not allowed from the current state"""

    code = "invalid_state"

    def __init__(self, entity: str, current, required: Union[str, Iterable]):
        if isinstance(required, str):
            required = [required]
        self.current = _state_name(current)
        self.required = [_state_name(r) for r in required]
        super().__init__(
            f"{entity} is {self.current}; operation requires {' or '.join(self.required)}"
        )


class InsufficientInventoryError(InventoryError):
    """Raised when an allocation cannot cover the requested quantity"""

    code = "insufficient_inventory"

    def __init__(self, material_id: int, requested: Decimal, available: Decimal):
        super().__init__(
            f"Insufficient inventory for material {material_id}. "
            f"Available: {available}, Requested: {requested}"
        )
        self.material_id = material_id
        self.requested = requested
        self.available = available


class MissingDataError(InventoryError):
    code = "missing_data"


class ConflictError(InventoryError):
    code = "conflict"


class LedgerImmutableError(InventoryError):
    """Stock movements are append-only"""

    code = "ledger_immutable"


class PeerServiceError(Exception):
    """A call to a peer service failed; local changes were rolled back"""

    code = "peer_unavailable"

    def __init__(self, service: str, message: str):
        super().__init__(f"{service}: {message}")
        self.service = service


def _state_name(state) -> str:
    return getattr(state, "name", str(state))
