"""Account service - CRUD for portfolio accounts."""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models import Account
from services.exceptions import DuplicateAccountError, NotFoundError

logger = logging.getLogger(__name__)


class AccountService:
    """Service for creating, listing and deleting accounts."""

    @staticmethod
    def create(db: Session, name: str) -> Account:
        """Create a new account.

        Raises:
            DuplicateAccountError: If an account with ``name`` exists.
        """
        name = name.strip()
        if db.query(Account).filter(Account.name == name).first() is not None:
            raise DuplicateAccountError(f"Account '{name}' already exists")

        account = Account(name=name)
        db.add(account)
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            raise DuplicateAccountError(f"Account '{name}' already exists") from e
        db.refresh(account)
        logger.info("Account created: %s (id=%s)", name, account.id)
        return account

    @staticmethod
    def list_all(db: Session) -> list[Account]:
        """List accounts ordered by name."""
        return db.query(Account).order_by(Account.name).all()

    @staticmethod
    def get(db: Session, account_id: str) -> Account:
        """Get an account by ID.

        Raises:
            NotFoundError: If the account does not exist.
        """
        account = db.query(Account).filter(Account.id == account_id).first()
        if account is None:
            raise NotFoundError(f"Account '{account_id}' not found")
        return account

    @staticmethod
    def delete(db: Session, account_id: str) -> None:
        """Delete an account with its holdings, snapshots and daily totals."""
        account = AccountService.get(db, account_id)
        name = account.name
        db.delete(account)
        db.commit()
        logger.info("Account deleted: %s (id=%s)", name, account_id)
