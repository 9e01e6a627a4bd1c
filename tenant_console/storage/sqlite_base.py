# tenant_console/storage/sqlite_base.py
import sqlite3
import logging
from pathlib import Path
from typing import Dict, Optional

from ..settings import settings

logger = logging.getLogger(__name__)

# One connection per database file for the lifetime of the process
_db_connections: Dict[str, sqlite3.Connection] = {}


async def get_sqlite_db_connection(db_path: Optional[str] = None) -> sqlite3.Connection:
    """
    Get or create a SQLite database connection with proper initialization.

    Connections are cached per resolved file path. The database directory is
    created if needed and the schema is ensured on first connection.

    Raises:
        sqlite3.Error: If database connection fails
    """
    resolved = str(Path(db_path or settings.sqlite_db_path).resolve())
    conn = _db_connections.get(resolved)
    if conn is None:
        try:
            Path(resolved).parent.mkdir(parents=True, exist_ok=True)
            logger.info(f"Attempting to connect to SQLite DB at: {resolved}")

            conn = sqlite3.connect(resolved, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            await init_sqlite_db(conn)
            _db_connections[resolved] = conn

            logger.info(f"Successfully connected to SQLite DB: {resolved}")
        except sqlite3.Error as e:
            logger.error(f"Error connecting to SQLite database at {resolved}: {e}", exc_info=True)
            raise
    return conn


async def init_sqlite_db(conn: sqlite3.Connection) -> None:
    """Create the credential table if it does not exist yet."""
    cursor = conn.cursor()
    cursor.execute('''
    CREATE TABLE IF NOT EXISTS console_credentials (
        storage_key TEXT PRIMARY KEY,
        credential_value TEXT NOT NULL,
        stored_at TEXT NOT NULL
    )
    ''')
    conn.commit()
    logger.debug("Ensured 'console_credentials' table exists.")


async def close_sqlite_db_connection(db_path: Optional[str] = None) -> None:
    """
    Close one cached connection, or all of them when no path is given.

    Should be called during shutdown to release database resources.
    """
    if db_path is None:
        paths = list(_db_connections.keys())
    else:
        paths = [str(Path(db_path).resolve())]

    for path in paths:
        conn = _db_connections.pop(path, None)
        if conn is not None:
            logger.info(f"Closing SQLite DB connection: {path}")
            conn.close()
