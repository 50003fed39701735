"""Database factory functions for creating database instances."""

from typing import Optional

from ledgerly.config import Settings
from ledgerly.database.sqlalchemy_db import SQLAlchemyDatabase


def create_sqlite_database(database_path: Optional[str] = None) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    Args:
        database_path: Path to SQLite database file. If None, uses the configured
            path (LEDGERLY_DB_PATH, then ~/.ledgerly/ledgerly.db)

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    if database_path is None:
        database_path = Settings.from_env().resolve_database_path()

    database_url = f"sqlite:///{database_path}"
    db = SQLAlchemyDatabase(database_url)
    db.database_path = database_path
    return db
