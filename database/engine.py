"""
Database Layer - Engine and Sessions.

============================================================
PURPOSE
============================================================
Owns the single SQLAlchemy engine behind the report store.

The URL comes from DATABASE_URL (a .env file is honoured). When it
is unset a SQLite file in the working directory is used, which is
what the operator CLI and the tests rely on.

Writers use transaction_scope(): commit on success, rollback and
DatabasePersistenceError on any SQLAlchemy failure.

============================================================
"""

import logging
import os
from contextlib import contextmanager
from typing import Iterator, Optional

from dotenv import load_dotenv
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from core.exceptions import StoreError, StoreUnavailableError

load_dotenv()

logger = logging.getLogger(__name__)

Base = declarative_base()

DEFAULT_DATABASE_URL = "sqlite:///./civic_reports.db"


# =============================================================
# ERRORS
# =============================================================

class DatabasePersistenceError(StoreError):
    """A write, commit or schema operation failed."""


class DatabaseConnectionError(StoreUnavailableError):
    """The configured database cannot be reached."""


# =============================================================
# ENGINE
# =============================================================

_engine: Optional[Engine] = None
_session_maker: Optional[sessionmaker] = None


def get_database_url() -> str:
    url = os.getenv("DATABASE_URL", "").strip()
    if url:
        return url
    logger.warning(f"DATABASE_URL is empty, falling back to {DEFAULT_DATABASE_URL}")
    return DEFAULT_DATABASE_URL


def _redact(url: str) -> str:
    """Drop credentials before a URL reaches the log."""
    scheme, _, rest = url.partition("://")
    return f"{scheme}://{rest.rsplit('@', 1)[-1]}"


def create_database_engine(
    database_url: Optional[str] = None,
    pool_size: int = 10,
    max_overflow: int = 20,
    pool_recycle: int = 1800,
    echo: bool = False,
) -> Engine:
    """
    Build the shared engine, or return the existing one.

    An explicit `database_url` always builds a fresh engine and makes
    it the shared one. Pool settings only apply to server databases;
    SQLite connections are opened with check_same_thread disabled so a
    session may be used from the CLI worker thread.
    """
    global _engine, _session_maker

    if database_url is None and _engine is not None:
        return _engine

    url = database_url or get_database_url()
    logger.info(f"Opening report database at {_redact(url)}")

    options = {"echo": echo, "future": True}
    if url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
    else:
        options.update(
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_recycle=pool_recycle,
            pool_pre_ping=True,
        )
    engine = create_engine(url, **options)

    @event.listens_for(engine, "connect")
    def _log_connect(dbapi_connection, connection_record):
        logger.debug(f"New DBAPI connection for {engine.url.get_backend_name()}")

    _engine = engine
    _session_maker = None
    return engine


def get_engine() -> Engine:
    return _engine if _engine is not None else create_database_engine()


def get_session_factory() -> sessionmaker:
    global _session_maker
    if _session_maker is None:
        _session_maker = sessionmaker(
            bind=get_engine(),
            autoflush=False,
            expire_on_commit=False,
        )
    return _session_maker


def reset_engine() -> None:
    """Dispose of the shared engine; the next call rebuilds it from the environment."""
    global _engine, _session_maker
    if _engine is not None:
        _engine.dispose()
    _engine, _session_maker = None, None


# =============================================================
# TRANSACTIONS
# =============================================================

@contextmanager
def transaction_scope() -> Iterator[Session]:
    """
    Yield a session whose work is committed when the block exits.

        with transaction_scope() as session:
            SqlReportStore(session).save_report(report)
    """
    session = get_session_factory()()
    try:
        yield session
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Rolled back report transaction: {e}")
        raise DatabasePersistenceError(f"Transaction failed: {e}", cause=e) from e
    except BaseException:
        session.rollback()
        raise
    finally:
        session.close()


# =============================================================
# SCHEMA
# =============================================================

def verify_database_connection() -> bool:
    try:
        with get_engine().connect() as connection:
            connection.execute(text("SELECT 1"))
    except OperationalError as e:
        logger.error(f"Report database unreachable: {e}")
        raise DatabaseConnectionError(f"Cannot connect to database: {e}", cause=e) from e
    logger.info("Report database reachable")
    return True


def create_all_tables(engine: Optional[Engine] = None) -> None:
    """Create any missing tables for the ORM models in database.models."""
    from . import models  # noqa: F401  registers tables on Base

    try:
        Base.metadata.create_all(bind=engine or get_engine())
    except SQLAlchemyError as e:
        logger.error(f"Schema creation failed: {e}")
        raise DatabasePersistenceError(f"Table creation failed: {e}", cause=e) from e
    logger.info(f"Report tables ready: {', '.join(sorted(Base.metadata.tables))}")


def initialize_database() -> None:
    verify_database_connection()
    create_all_tables()


__all__ = [
    "Base",
    "DEFAULT_DATABASE_URL",
    "get_database_url",
    "create_database_engine",
    "get_engine",
    "get_session_factory",
    "reset_engine",
    "transaction_scope",
    "verify_database_connection",
    "create_all_tables",
    "initialize_database",
    "DatabasePersistenceError",
    "DatabaseConnectionError",
]
