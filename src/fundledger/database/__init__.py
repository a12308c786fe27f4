"""Persistence layer: the Database interface and its SQLAlchemy implementation."""

from fundledger.database.base import Database
from fundledger.database.factories import create_database, create_sqlite_database
from fundledger.database.sqlalchemy_db import SQLAlchemyDatabase

__all__ = ["Database", "SQLAlchemyDatabase", "create_database", "create_sqlite_database"]
