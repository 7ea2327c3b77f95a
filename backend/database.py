"""Database setup and session management."""

import logging
from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


@lru_cache
def get_engine():
    """Get or create the database engine (cached).

    The engine is the single store handle for the process. It is opened
    lazily on first use and released by :func:`dispose_engine` on shutdown.
    """
    connect_args = {}
    database_url = settings.DATABASE_URL

    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False

    engine = create_engine(
        database_url,
        connect_args=connect_args,
        echo=False,
    )
    logger.info("Database engine created for %s", engine.url.render_as_string(hide_password=True))
    return engine


def init_db() -> None:
    """Create any missing tables."""
    import models  # noqa: F401  (registers mappers on Base.metadata)

    Base.metadata.create_all(bind=get_engine())


def dispose_engine() -> None:
    """Close pooled connections and drop the cached engine."""
    if get_engine.cache_info().currsize:
        get_engine().dispose()
        get_engine.cache_clear()
        logger.info("Database engine disposed")


def get_session_local():
    """Get a sessionmaker bound to the engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=get_engine())


def get_db():
    """Dependency that provides a database session.

    Transaction conventions:
    - Default: services ``flush()``, API layer ``commit()``
    - Exceptions that commit internally:
      - ``ReconciliationService.reconcile()``: snapshot and total upserts
        commit together while the per-account lock is held
      - ``HoldingsService`` / ``AccountService`` writes: ``IntegrityError``
        is translated to a duplicate error after rollback
    """
    SessionLocal = get_session_local()
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
