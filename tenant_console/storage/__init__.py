from .sqlite_base import get_sqlite_db_connection, close_sqlite_db_connection

__all__ = ["get_sqlite_db_connection", "close_sqlite_db_connection"]
