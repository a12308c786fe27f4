"""Database factory functions for creating database instances."""

import os
from pathlib import Path
from typing import Optional

from fundledger.database.sqlalchemy_db import SQLAlchemyDatabase

DEFAULT_DATA_DIR = Path.home() / ".fundledger"
DEFAULT_DB_NAME = "fundledger.db"


def default_database_path() -> str:
    """Return ~/.fundledger/fundledger.db, creating the directory if needed."""
    DEFAULT_DATA_DIR.mkdir(exist_ok=True)
    return str(DEFAULT_DATA_DIR / DEFAULT_DB_NAME)


def create_database(database_url: str) -> SQLAlchemyDatabase:
    """Create a database for any SQLAlchemy URL (e.g. ``postgresql://...``)."""
    return SQLAlchemyDatabase(database_url)


def create_sqlite_database(database_path: Optional[str] = None) -> SQLAlchemyDatabase:
    """Create a SQLite-backed ledger database.

    Args:
        database_path: Path to the SQLite file. Falls back to
            FUNDLEDGER_DB_PATH, then to ``default_database_path()``.

    Returns:
        SQLAlchemyDatabase with ``database_path`` set to the resolved file
    """
    path = database_path or os.environ.get("FUNDLEDGER_DB_PATH") or default_database_path()
    db = create_database(f"sqlite:///{path}")
    db.database_path = path
    return db
