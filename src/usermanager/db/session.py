"""Database session configuration."""

from __future__ import annotations

import logging
from collections.abc import Generator, Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from usermanager.core.errors import AppError, ErrorKind
from usermanager.core.settings import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


# Ensure model modules are imported so that metadata is populated when create_all runs.
import usermanager.models  # noqa: E402,F401

_connect_args = (
    {"check_same_thread": False}
    if settings.effective_database_url.startswith("sqlite")
    else {}
)

engine = create_engine(
    settings.effective_database_url,
    pool_pre_ping=True,
    echo=settings.sql_debug,
    connect_args=_connect_args,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a database session for dependency injection."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction_scope(db: Session) -> Iterator[Session]:
    """Run a block of writes as one unit and commit it.

    The block runs inside a SAVEPOINT; any SQLAlchemy error rolls the whole
    block back and is re-raised as ``PERSISTENCE_FAILURE``. ``AppError``
    raised inside the block also rolls it back and propagates unchanged.
    """
    try:
        with db.begin_nested():
            yield db
    except SQLAlchemyError as err:
        logger.exception("Savepoint rolled back")
        raise AppError(ErrorKind.PERSISTENCE_FAILURE).with_detail(err) from err

    try:
        db.commit()
    except SQLAlchemyError as err:
        logger.exception("Commit failed, transaction rolled back")
        db.rollback()
        raise AppError(ErrorKind.PERSISTENCE_FAILURE).with_detail(err) from err


def create_tables() -> None:
    """Create all database tables."""
    Base.metadata.create_all(bind=engine)


def drop_tables() -> None:
    """Drop all database tables."""
    Base.metadata.drop_all(bind=engine)
