"""
Election Database - SQLite key-value persistence

Stores the candidate list and the voter roll as JSON documents under fixed
keys, surviving process restarts. Scoped to one local file; no server-side
sharing.
"""

import json
import sqlite3
from typing import Any, Dict
from pathlib import Path
from importlib.resources import files

from config import get_logger
from database.transaction import transaction
from exceptions import DatabaseConnectionError, DatabaseError

logger = get_logger(__name__).bind(component="database")


class ElectionDatabase:
    """
    SQLite-backed key-value store for election state.

    Threading Model:
    - Each instance owns its own SQLite connection
    - The service mutates state from a single event loop thread, so one
      instance per process is enough
    """

    conn: sqlite3.Connection

    def __init__(self, db_path: str):
        self.db_path = db_path
        self.conn = None
        self._connect()
        self._init_schema()
        logger.info("initialized election database", db_path=db_path)

    def _connect(self):
        """Create database connection

        Note: check_same_thread=False lets FastAPI's threadpool reach the
        connection; callers still serialise mutations.
        """
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        try:
            self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        except sqlite3.Error as e:
            raise DatabaseConnectionError(
                f"Could not open database: {e}", context={'db_path': self.db_path}
            )
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA journal_mode=WAL")
        self.conn.execute("PRAGMA synchronous=NORMAL")

    def _init_schema(self):
        """Initialize schema from schema.sql

        Uses importlib.resources so it works from the source tree and from an
        installed package.
        """
        schema = files("database").joinpath("schema.sql").read_text()
        self.conn.executescript(schema)
        self.conn.commit()

    def _require_conn(self) -> sqlite3.Connection:
        if self.conn is None:
            raise DatabaseConnectionError("Database connection not established")
        return self.conn

    def get(self, key: str, default: Any = None) -> Any:
        """Read a JSON value by key

        Corrupt JSON is logged and treated as missing so the service can still
        start with an empty election.
        """
        conn = self._require_conn()
        try:
            row = conn.execute(
                "SELECT value FROM kv_store WHERE key = ?", (key,)
            ).fetchone()
        except sqlite3.Error as e:
            raise DatabaseError(f"Read failed: {e}", context={'key': key})

        if row is None:
            return default

        try:
            return json.loads(row["value"])
        except json.JSONDecodeError as e:
            logger.error("stored value is not valid json", key=key, error=str(e))
            return default

    def set(self, key: str, value: Any) -> None:
        self.set_many({key: value})

    def set_many(self, values: Dict[str, Any]) -> None:
        """Write several keys in one transaction"""
        conn = self._require_conn()

        try:
            encoded = {key: json.dumps(value) for key, value in values.items()}
        except (TypeError, ValueError) as e:
            raise DatabaseError(f"Value is not JSON serialisable: {e}", context={'keys': ",".join(values)})

        try:
            with transaction(conn):
                for key, payload in encoded.items():
                    conn.execute(
                        """
                        INSERT INTO kv_store (key, value, updated_at)
                        VALUES (?, ?, CURRENT_TIMESTAMP)
                        ON CONFLICT(key) DO UPDATE SET
                            value = excluded.value,
                            updated_at = CURRENT_TIMESTAMP
                        """,
                        (key, payload),
                    )
        except sqlite3.Error as e:
            raise DatabaseError(f"Write failed: {e}", context={'keys': ",".join(values)})

    def close(self):
        """Close database connection"""
        if self.conn:
            self.conn.close()
            self.conn = None
            logger.info("database connection closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
