"""
Database Package.

SQLAlchemy engine, transactions and the `reports` table that back
report_intelligence.repository.SqlReportStore. DATABASE_URL picks
the backend; SQLite is used when it is unset.
"""

from .engine import (
    Base,
    DEFAULT_DATABASE_URL,
    get_database_url,
    create_database_engine,
    get_engine,
    get_session_factory,
    reset_engine,
    transaction_scope,
    verify_database_connection,
    create_all_tables,
    initialize_database,
    DatabasePersistenceError,
    DatabaseConnectionError,
)
from .models import ReportRecord


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
    "ReportRecord",
]
