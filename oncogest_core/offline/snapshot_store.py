# =============================================================================
# oncogest_core/offline/snapshot_store.py
# Local SQLite Key/Value Store for Offline Collections
# =============================================================================
"""
SnapshotStore - whole-collection snapshots persisted in SQLite.

Each collection is stored as one JSON array under a fixed key. Reads and
writes replace the whole value; callers serialize writes per key with
``write_lock(key)``.
"""

from __future__ import annotations
import json
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from oncogest_core.errors import SnapshotCorruptError
from oncogest_core.logging import get_logger

logger = get_logger(__name__)


class SnapshotStore:
    """
    Local SQLite database holding one serialized snapshot per key.
    """

    SCHEMA = """
        CREATE TABLE IF NOT EXISTS snapshots (
            key TEXT PRIMARY KEY,
            value TEXT,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    """

    def __init__(self, db_path: Path):
        """
        Initialize local snapshot store.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._local = threading.local()
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        self._initialized = False

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if getattr(self._local, "connection", None) is None:
            self._local.connection = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self._local.connection.row_factory = sqlite3.Row
        return self._local.connection

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database transactions."""
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def initialize(self) -> None:
        """Initialize database schema."""
        if self._initialized:
            return

        with self.transaction() as conn:
            conn.execute(self.SCHEMA)

        self._initialized = True
        logger.info(f"Local snapshot store initialized at: {self.db_path}")

    @contextmanager
    def write_lock(self, key: str) -> Iterator[None]:
        """Serialize read-modify-write cycles on one snapshot key."""
        with self._locks_guard:
            lock = self._locks.setdefault(key, threading.Lock())
        with lock:
            yield

    # =========================================================================
    # SNAPSHOT OPERATIONS
    # =========================================================================

    def has_snapshot(self, key: str) -> bool:
        self.initialize()
        row = self._get_connection().execute(
            "SELECT 1 FROM snapshots WHERE key = ?", [key]
        ).fetchone()
        return row is not None

    def get_snapshot(self, key: str) -> Optional[List[Dict[str, Any]]]:
        """
        Load a snapshot.

        Returns:
            List of records, or None if the key has never been written

        Raises:
            SnapshotCorruptError: if the stored value is not a JSON list of objects
        """
        self.initialize()
        row = self._get_connection().execute(
            "SELECT value FROM snapshots WHERE key = ?", [key]
        ).fetchone()
        if row is None:
            return None

        try:
            records = json.loads(row["value"])
        except (TypeError, json.JSONDecodeError) as e:
            raise SnapshotCorruptError(f"Snapshot is not valid JSON: {e}", key=key)

        if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
            raise SnapshotCorruptError("Snapshot is not a list of records", key=key)
        return records

    def set_snapshot(self, key: str, records: List[Dict[str, Any]]) -> None:
        """Replace the snapshot stored under key."""
        self.initialize()
        with self.transaction() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO snapshots (key, value, updated_at)
                VALUES (?, ?, ?)
                """,
                [key, json.dumps(records), datetime.now().isoformat()],
            )
        logger.debug(f"Snapshot {key} written ({len(records)} records)")

    def write_raw(self, key: str, value: str) -> None:
        """Store an arbitrary string under key (used for imports and repair)."""
        self.initialize()
        with self.transaction() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO snapshots (key, value, updated_at) VALUES (?, ?, ?)",
                [key, value, datetime.now().isoformat()],
            )

    def delete_snapshot(self, key: str) -> None:
        self.initialize()
        with self.transaction() as conn:
            conn.execute("DELETE FROM snapshots WHERE key = ?", [key])

    def close(self) -> None:
        """Close database connection."""
        if getattr(self._local, "connection", None) is not None:
            self._local.connection.close()
            self._local.connection = None
