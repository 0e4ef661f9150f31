"""
Database transaction management

Context manager for explicit transaction boundaries, so multi-key writes
(candidate tallies plus voter flags) land together or not at all.
"""

from contextlib import contextmanager
import sqlite3

from config import get_logger

logger = get_logger(__name__).bind(component="transaction")


@contextmanager
def transaction(conn: sqlite3.Connection, rollback_on_exception: bool = True):
    """Context manager for database transactions

    Args:
        conn: SQLite connection object
        rollback_on_exception: If True, rollback on any exception (default: True)

    Yields:
        The connection object (for convenience)

    Example:
        with transaction(db.conn):
            db.conn.execute("UPDATE kv_store ...")
            db.conn.execute("UPDATE kv_store ...")
            # Automatic commit on success, rollback on exception
    """
    try:
        yield conn
        conn.commit()
        logger.debug("transaction committed")
    except Exception as e:
        if rollback_on_exception:
            conn.rollback()
            logger.warning("transaction rolled back", error=str(e), error_type=type(e).__name__)
        raise
