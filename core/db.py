"""
core/db.py -- Shared SQLAlchemy engine and schema metadata.

UserStore and PostStore live in one database so posts can carry a foreign key
to their owning user and the listing query can join the author in. Both
stores register their tables on the single `metadata` object below and share
the Engine built by create_db_engine().

SQLAlchemy Core keeps the stores database-agnostic: SQLite by default,
PostgreSQL (or any hosted relational service) is a DATABASE_URL change.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import MetaData, create_engine, event
from sqlalchemy.engine import Engine

metadata = MetaData()

# Largest value an INTEGER column (and OFFSET) accepts: SQLite and PostgreSQL
# BIGINT are both signed 64-bit.
SQL_INTEGER_MAX = 2**63 - 1


def _sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL and foreign key enforcement on every new SQLite connection.

    SQLite PRAGMAs are per-connection and are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


def create_db_engine(db_url: str) -> Engine:
    """Build an Engine for db_url. Stores create their own tables."""
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _sqlite_pragmas)
    return engine


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")
