from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """
    Transaction boundary for one public service operation.

    Commits when the block finishes, rolls back and re-raises on any error.
    Lower-level helpers (ledger writes, allocation) only flush and rely on
    the caller's atomic block.
    """
    try:
        yield db
        db.commit()
    except BaseException:
        db.rollback()
        raise
