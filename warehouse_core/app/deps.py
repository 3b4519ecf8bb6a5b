from typing import Generator

from fastapi import HTTPException, status

from .db import SessionLocal
from .services.ports import NullQAReleaseNotifier, QAReleaseNotifier
from .errors import (
    ConflictError, InsufficientInventoryError, InvalidStateError, InventoryError,
    LedgerImmutableError, MissingDataError, NotFoundError,
)


def get_db() -> Generator:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# Most specific first
ERROR_STATUS = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (InvalidStateError, status.HTTP_409_CONFLICT),
    (ConflictError, status.HTTP_409_CONFLICT),
    (LedgerImmutableError, status.HTTP_409_CONFLICT),
    (InsufficientInventoryError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (MissingDataError, status.HTTP_400_BAD_REQUEST),
)


def http_error(exc: InventoryError) -> HTTPException:
    """HTTPException for a business-rule error, carrying its code and message"""
    status_code = status.HTTP_400_BAD_REQUEST
    for error_type, code in ERROR_STATUS:
        if isinstance(exc, error_type):
            status_code = code
            break
    return HTTPException(
        status_code=status_code,
        detail={"code": exc.code, "message": exc.message},
    )


def get_qa_notifier() -> QAReleaseNotifier:
    return NullQAReleaseNotifier()
