"""Account and holdings API endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.helpers import get_account_or_404, to_http_exception
from database import get_db
from schemas import (
    AccountCreate,
    AccountResponse,
    HoldingInput,
    HoldingQuantityUpdate,
    HoldingResponse,
)
from services.account_service import AccountService
from services.exceptions import DuplicateAccountError, DuplicateHoldingError, NotFoundError
from services.holdings_service import HoldingsService

router = APIRouter(prefix="/api/accounts", tags=["accounts"])


@router.get("", response_model=list[AccountResponse])
def list_accounts(db: Session = Depends(get_db)):
    """List all accounts."""
    return AccountService.list_all(db)


@router.post("", response_model=AccountResponse, status_code=201)
def create_account(account_data: AccountCreate, db: Session = Depends(get_db)):
    """Create an account."""
    try:
        return AccountService.create(db, account_data.name)
    except DuplicateAccountError as e:
        raise to_http_exception(e) from e


@router.get("/{account_id}", response_model=AccountResponse)
def get_account(account_id: str, db: Session = Depends(get_db)):
    """Get a single account."""
    return get_account_or_404(db, account_id)


@router.delete("/{account_id}", status_code=204)
def delete_account(account_id: str, db: Session = Depends(get_db)):
    """Delete an account together with its holdings and history."""
    try:
        AccountService.delete(db, account_id)
    except NotFoundError as e:
        raise to_http_exception(e) from e


@router.get("/{account_id}/holdings", response_model=list[HoldingResponse])
def list_holdings(account_id: str, db: Session = Depends(get_db)):
    """List the account's holdings."""
    get_account_or_404(db, account_id)
    return HoldingsService.list_holdings(db, account_id)


@router.post("/{account_id}/holdings", response_model=HoldingResponse, status_code=201)
def add_holding(
    account_id: str,
    holding_input: HoldingInput,
    db: Session = Depends(get_db),
):
    """Add a holding. Returns 409 if the symbol is already held."""
    get_account_or_404(db, account_id)
    try:
        return HoldingsService.add(
            db,
            account_id,
            holding_input.symbol,
            holding_input.quantity,
            display_name=holding_input.display_name,
        )
    except (DuplicateHoldingError, ValueError) as e:
        raise to_http_exception(e) from e


@router.patch("/{account_id}/holdings/{symbol}", response_model=HoldingResponse)
def update_holding(
    account_id: str,
    symbol: str,
    update: HoldingQuantityUpdate,
    db: Session = Depends(get_db),
):
    """Change a holding's quantity."""
    get_account_or_404(db, account_id)
    try:
        return HoldingsService.update_quantity(db, account_id, symbol, update.quantity)
    except (NotFoundError, ValueError) as e:
        raise to_http_exception(e) from e


@router.delete("/{account_id}/holdings/{symbol}", status_code=204)
def delete_holding(account_id: str, symbol: str, db: Session = Depends(get_db)):
    """Remove a holding."""
    get_account_or_404(db, account_id)
    try:
        HoldingsService.remove(db, account_id, symbol)
    except NotFoundError as e:
        raise to_http_exception(e) from e
