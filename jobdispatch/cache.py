"""
Status cache - key/value store with a per-entry time-to-live.

Entries are JSON documents stored in SQLite with an absolute expiry time.
Reads never return an expired entry; expired rows are purged on write.
"""

import json
import sqlite3
import threading
import time
import logging
from pathlib import Path
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class StatusCache:
    """
    File-backed SQLite cache with TTL.

    Thread-safe: one shared connection guarded by a lock.
    """

    def __init__(self, db_path: Path, clock: Callable[[], float] = time.time):
        """
        Initialize the cache at given path.

        Args:
            db_path: Path to SQLite database file
            clock: Returns the current time in epoch seconds
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.clock = clock
        self._lock = threading.Lock()

        self._conn = sqlite3.connect(
            str(self.db_path),
            check_same_thread=False,
            timeout=10.0,
        )
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS entries (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                expires_at REAL NOT NULL
            )
        """)
        self._conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_entries_expires ON entries(expires_at)
        """)
        self._conn.commit()

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        """
        Store a value, replacing any previous entry under ``key``.

        Args:
            key: Cache key
            value: JSON-serializable value
            ttl_seconds: Seconds until the entry becomes unreadable
        """
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")

        now = self.clock()
        data = json.dumps(value)

        with self._lock:
            self._conn.execute("DELETE FROM entries WHERE expires_at <= ?", (now,))
            self._conn.execute(
                "INSERT OR REPLACE INTO entries (key, value, expires_at) VALUES (?, ?, ?)",
                (key, data, now + ttl_seconds),
            )
            self._conn.commit()

    def add(self, key: str, value: Any, ttl_seconds: float) -> bool:
        """
        Store a value only if no live entry exists under ``key``.

        Returns:
            True if the value was written, False if a live entry was kept
        """
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")

        now = self.clock()
        data = json.dumps(value)

        with self._lock:
            self._conn.execute("DELETE FROM entries WHERE expires_at <= ?", (now,))
            cursor = self._conn.execute(
                "INSERT OR IGNORE INTO entries (key, value, expires_at) VALUES (?, ?, ?)",
                (key, data, now + ttl_seconds),
            )
            self._conn.commit()
            return cursor.rowcount == 1

    def get(self, key: str) -> Optional[Any]:
        """
        Point lookup.

        Returns:
            The stored value, or None if absent or expired
        """
        with self._lock:
            row = self._conn.execute(
                "SELECT value FROM entries WHERE key = ? AND expires_at > ?",
                (key, self.clock()),
            ).fetchone()

        if row is None:
            return None
        return json.loads(row[0])

    def purge_expired(self) -> int:
        """
        Delete expired entries.

        Returns:
            Number of entries removed
        """
        with self._lock:
            cursor = self._conn.execute(
                "DELETE FROM entries WHERE expires_at <= ?", (self.clock(),)
            )
            self._conn.commit()
            count = cursor.rowcount

        if count:
            logger.info(f"Purged {count} expired status entries")
        return count

    def close(self) -> None:
        with self._lock:
            self._conn.close()
