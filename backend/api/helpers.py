"""Shared API helpers for route handlers."""

from fastapi import HTTPException
from sqlalchemy.orm import Session

from integrations.exceptions import ProviderError, RateUnavailableError
from models import Account
from services.account_service import AccountService
from services.exceptions import (
    DuplicateAccountError,
    DuplicateHoldingError,
    NotFoundError,
    ReconcileTimeoutError,
    StoreReadError,
    StoreWriteError,
)

_STATUS_BY_ERROR: list[tuple[type[Exception], int]] = [
    (NotFoundError, 404),
    (DuplicateAccountError, 409),
    (DuplicateHoldingError, 409),
    (RateUnavailableError, 502),
    (ProviderError, 502),
    (ReconcileTimeoutError, 504),
    (StoreReadError, 503),
    (StoreWriteError, 503),
    (ValueError, 422),
]


def to_http_exception(exc: Exception) -> HTTPException:
    """Map a service or provider error to an HTTPException.

    Unknown errors map to 500.
    """
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=500, detail="Internal server error")


def get_account_or_404(db: Session, account_id: str) -> Account:
    """Fetch an account or raise 404."""
    try:
        return AccountService.get(db, account_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
