"""
Peer service ports.

The engine talks to other services only through these interfaces. The
defaults do nothing so the engine runs standalone; deployments and tests
pass their own implementation.
"""

from typing import Protocol

from ..models import InventoryLot, PutawayItem


class QAReleaseNotifier(Protocol):
    def putaway_completed(self, putaway: PutawayItem, lot: InventoryLot) -> None:
        """Tell QA a released quantity is now stored. Raise on failure."""
        ...


class NullQAReleaseNotifier:
    def putaway_completed(self, putaway: PutawayItem, lot: InventoryLot) -> None:
        return None
