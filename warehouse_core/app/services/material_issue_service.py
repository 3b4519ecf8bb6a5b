"""
Material Issue Workflow
=======================
PENDING -> APPROVED -> PICKED -> ISSUED, no skipping.

- approve: sign-off only, stock is not looked at
- pick:    FEFO reservation of the full quantity, or nothing
- issue:   consumes exactly the lots reserved at pick
"""

from typing import List, Optional

from sqlalchemy.orm import Session

from ..errors import InsufficientInventoryError, InvalidStateError, NotFoundError
from ..logging_config import get_logger
from ..models import IssueAllocation, MaterialIssue, MaterialIssueStatus, StockMovement, utcnow
from ..schemas import MaterialIssueApprove, MaterialIssueCreate, MaterialIssueFilter
from .allocation_engine import AllocationEngine
from .lot_service import append_remarks
from .sequences import ISSUE, get_next_sequence
from .transactions import atomic

logger = get_logger(__name__)


def _locked_issue(db: Session, issue_id: int) -> MaterialIssue:
    issue = db.query(MaterialIssue).filter(
        MaterialIssue.id == issue_id
    ).with_for_update().first()
    if not issue:
        raise NotFoundError("Material issue", issue_id)
    return issue


def _require_status(issue: MaterialIssue, required: MaterialIssueStatus) -> None:
    if issue.status != required:
        logger.warning("material_issue_invalid_transition", issue_number=issue.issue_number,
                       current=issue.status.value, required=required.value)
        raise InvalidStateError(f"Material issue {issue.issue_number}", issue.status, required)


class MaterialIssueService:

    @staticmethod
    def create(db: Session, data: MaterialIssueCreate) -> MaterialIssue:
        """New PENDING request. Availability is checked at pick time, not here."""
        with atomic(db):
            issue = MaterialIssue(
                issue_number=get_next_sequence(db, ISSUE),
                status=MaterialIssueStatus.PENDING,
                requested_at=utcnow(),
                **data.model_dump(),
            )
            db.add(issue)
            db.flush()
            logger.info("material_issue_created", issue_number=issue.issue_number,
                        material_id=issue.material_id, quantity=str(issue.quantity))
        return issue

    @staticmethod
    def list_issues(db: Session, filters: Optional[MaterialIssueFilter] = None) -> List[MaterialIssue]:
        """Issues matching `filters`, newest first"""
        filters = filters or MaterialIssueFilter()
        query = db.query(MaterialIssue)
        if filters.status is not None:
            query = query.filter(MaterialIssue.status == filters.status)
        if filters.work_order_id is not None:
            query = query.filter(MaterialIssue.work_order_id == filters.work_order_id)
        if filters.batch_id is not None:
            query = query.filter(MaterialIssue.batch_id == filters.batch_id)
        return query.order_by(MaterialIssue.created_at.desc(), MaterialIssue.id.desc()).all()

    @staticmethod
    def get_issue(db: Session, issue_id: int) -> MaterialIssue:
        issue = db.query(MaterialIssue).filter(MaterialIssue.id == issue_id).first()
        if not issue:
            raise NotFoundError("Material issue", issue_id)
        return issue

    @staticmethod
    def get_allocations(db: Session, issue_id: int) -> List[IssueAllocation]:
        return MaterialIssueService.get_issue(db, issue_id).allocations

    @staticmethod
    def get_movements(db: Session, issue_id: int) -> List[StockMovement]:
        issue = MaterialIssueService.get_issue(db, issue_id)
        return db.query(StockMovement).filter(
            StockMovement.reference_type == "material_issue",
            StockMovement.reference_id == issue.issue_number,
        ).order_by(StockMovement.id.asc()).all()

    @staticmethod
    def approve(db: Session, issue_id: int, data: MaterialIssueApprove) -> MaterialIssue:
        with atomic(db):
            issue = _locked_issue(db, issue_id)
            _require_status(issue, MaterialIssueStatus.PENDING)
            issue.status = MaterialIssueStatus.APPROVED
            issue.approved_by = data.approved_by
            issue.approved_at = utcnow()
            issue.remarks = append_remarks(issue.remarks, data.remarks)
            logger.info("material_issue_approved", issue_number=issue.issue_number)
        return issue

    @staticmethod
    def pick(db: Session, issue_id: int, picked_by: int) -> MaterialIssue:
        """
        Reserve lots for the full quantity.

        On InsufficientInventoryError the transaction is rolled back: the issue
        stays APPROVED and no lot changes.
        """
        try:
            with atomic(db):
                issue = _locked_issue(db, issue_id)
                _require_status(issue, MaterialIssueStatus.APPROVED)
                AllocationEngine.reserve_for_issue(db, issue)
                issue.status = MaterialIssueStatus.PICKED
                issue.picked_by = picked_by
                issue.picked_at = utcnow()
        except InsufficientInventoryError:
            logger.warning("material_issue_pick_failed", issue_id=issue_id)
            raise

        logger.info("material_issue_picked", issue_number=issue.issue_number,
                    lots=len(issue.allocations))
        return issue

    @staticmethod
    def issue(db: Session, issue_id: int, issued_by: int) -> MaterialIssue:
        """Consume the reserved lots, writing one CONSUMPTION per lot"""
        with atomic(db):
            issue = _locked_issue(db, issue_id)
            _require_status(issue, MaterialIssueStatus.PICKED)
            AllocationEngine.consume_reserved(db, issue, performed_by=issued_by)
            issue.status = MaterialIssueStatus.ISSUED
            issue.issued_by = issued_by
            issue.issued_at = utcnow()

        logger.info("material_issue_issued", issue_number=issue.issue_number)
        return issue

    @staticmethod
    def reserve_for_issue(db: Session, issue_id: int, picked_by: int) -> List[IssueAllocation]:
        """Reservation entry point: picks the issue and returns its allocations"""
        return MaterialIssueService.pick(db, issue_id, picked_by).allocations

    @staticmethod
    def consume_reserved(db: Session, issue_id: int, issued_by: int) -> List[StockMovement]:
        """Consumption entry point: issues the material and returns the movements written"""
        MaterialIssueService.issue(db, issue_id, issued_by)
        return MaterialIssueService.get_movements(db, issue_id)
