# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
SQLAlchemy engine, session factory, declarative base, the FastAPI
dependency that provides a DB session per request, and the ``atomic``
unit-of-work helper used by every multi-step write.
"""

from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker, declarative_base

from core.config import settings


def _connect_args(url: str) -> dict:
    # SQLite connections are shared with FastAPI's threadpool workers
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


# pool_pre_ping keeps idle connections alive across MySQL's wait_timeout
engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,
    connect_args=_connect_args(settings.database_url),
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """
    FastAPI dependency.  Yields a session for the duration of the request,
    then closes it.  Use with Depends(get_db).
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session):
    """
    Run a block of writes as one transaction.

    Commits when the block exits normally.  Any exception rolls back every
    write made inside the block and is re-raised unchanged.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


def dispose_engine() -> None:
    """Close every pooled connection.  Called once at process shutdown."""
    engine.dispose()


# Dialects that accept an explicit REPEATABLE READ level per connection
_SNAPSHOT_DIALECTS = {"postgresql", "mysql", "mariadb"}


@contextmanager
def read_snapshot(db: Session):
    """
    Run a group of reads against one consistent snapshot.

    The request session has usually already read (authentication), so that
    transaction is closed first and a fresh one is opened at REPEATABLE READ
    where the dialect supports it.  SQLite serialises writers, so a single
    transaction is already consistent there.  Nothing inside the block may
    write; the transaction is always rolled back.
    """
    db.commit()
    if db.get_bind().dialect.name in _SNAPSHOT_DIALECTS:
        db.connection(execution_options={"isolation_level": "REPEATABLE READ"})
    try:
        yield db
    finally:
        db.rollback()
