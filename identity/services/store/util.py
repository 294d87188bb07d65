"""Helpers and Flask application integration for the credential store."""

from typing import Generator, Optional
from datetime import datetime
from contextlib import contextmanager

from flask import Flask
from pytz import UTC
from sqlalchemy import event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.session import Session

from arxiv.base import logging

from ..exceptions import Unavailable
from .models import db

logger = logging.getLogger(__name__)

_DEPTH = 'transaction_depth'


@event.listens_for(Engine, 'connect')
def _enforce_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    """SQLite ignores ``ON DELETE CASCADE`` unless this pragma is set."""
    if type(dbapi_connection).__module__.startswith('sqlite3'):
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()


def now() -> datetime:
    """Get the current time, in UTC."""
    return datetime.now(tz=UTC)


def as_utc(t: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to a naive datetime read back from the database."""
    if t is None or t.tzinfo is not None:
        return t
    return t.replace(tzinfo=UTC)


@contextmanager
def transaction() -> Generator[Session, None, None]:
    """
    Context manager for database transaction.

    Transactions nest: only the outermost block commits, and an exception at
    any depth rolls back the whole unit. This lets a use case compose several
    store operations (e.g. consume a code and mark the user verified) into a
    single commit.
    """
    session = db.session()
    depth = session.info.get(_DEPTH, 0)
    session.info[_DEPTH] = depth + 1
    try:
        yield session
        if depth == 0:
            session.commit()
    except SQLAlchemyError as e:
        if depth == 0:
            logger.warning('Commit failed, rolling back: %s', str(e))
            session.rollback()
        if isinstance(e, OperationalError):
            raise Unavailable('Database unavailable') from e
        raise
    except Exception:
        if depth == 0:
            session.rollback()
        raise
    finally:
        session.info[_DEPTH] = depth


def init_app(app: Flask) -> None:
    """Set configuration defaults and attach session to the application."""
    db.init_app(app)


def current_session() -> Session:
    """Get/create database session for this context."""
    return db.session()


def create_all() -> None:
    """Create all tables in the database."""
    db.create_all()


def drop_all() -> None:
    """Drop all tables in the database."""
    db.drop_all()


def is_available() -> bool:
    """Check our connection to the database."""
    try:
        db.session.execute(text('SELECT 1'))
    except Exception as e:
        logger.error('Encountered an error talking to database: %s', e)
        return False
    return True
