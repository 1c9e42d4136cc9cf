# database.py - Key/value persistence for the calibration collection
#
# Typed load/store contract consumed by CalibrationRepository and RangeSettings.
# Values are JSON documents; one key holds one whole document (for example the
# full job collection). store() never raises: failures are logged and reported
# as False so the caller's in-memory state stays authoritative.

import json
import logging
import sqlite3
import time
from pathlib import Path
from typing import Any, Protocol

from config import DEFAULT_NAMESPACE

logger = logging.getLogger(__name__)

KV_TABLE = "kv_store"


def storage_key(module: str, namespace: str = DEFAULT_NAMESPACE) -> str:
    """Deterministic key for one calibration module instance."""
    return f"{namespace}_{module}"


class KeyValueStore(Protocol):
    def load(self, key: str, default: Any) -> Any: ...

    def store(self, key: str, value: Any) -> bool: ...

    def remove(self, key: str) -> bool: ...

    def clear(self) -> bool: ...


# -----------------------------------------------------------------------------
# Connection helpers
# -----------------------------------------------------------------------------

def get_connection(db_path: Path, timeout: float = 30.0, retries: int = 3) -> sqlite3.Connection:
    """
    Open (creating parent dirs) the sqlite file at db_path.
    retries: number of retries on SQLITE_BUSY / database is locked (with exponential backoff).
    """
    db_path = Path(db_path)
    if str(db_path) != ":memory:":
        db_path.parent.mkdir(parents=True, exist_ok=True)
    last_error: sqlite3.OperationalError | None = None
    for attempt in range(retries + 1):
        try:
            conn = sqlite3.connect(str(db_path), timeout=timeout)
            conn.row_factory = sqlite3.Row
            return conn
        except sqlite3.OperationalError as e:
            last_error = e
            if "locked" not in str(e).lower() or attempt == retries:
                raise
            delay = 0.5 * (2 ** attempt)
            logger.warning("Database locked, retrying in %.1fs: %s", delay, e)
            time.sleep(delay)
    raise last_error  # pragma: no cover


def initialize_db(conn: sqlite3.Connection) -> sqlite3.Connection:
    conn.execute(
        f"""
        CREATE TABLE IF NOT EXISTS {KV_TABLE} (
            key         TEXT PRIMARY KEY,
            value       TEXT NOT NULL,
            updated_at  TEXT DEFAULT CURRENT_TIMESTAMP
        )
        """
    )
    conn.commit()
    return conn


def run_integrity_check(conn: sqlite3.Connection) -> str | None:
    """Return None if PRAGMA integrity_check is ok, else the first problem reported."""
    row = conn.execute("PRAGMA integrity_check").fetchone()
    result = row[0] if row else None
    return None if result == "ok" else result


# -----------------------------------------------------------------------------
# Stores
# -----------------------------------------------------------------------------

class SqliteKeyValueStore:
    """Key/value store backed by a single sqlite table."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = initialize_db(conn)

    @classmethod
    def open(cls, db_path: Path) -> "SqliteKeyValueStore":
        return cls(get_connection(db_path))

    def load(self, key: str, default: Any) -> Any:
        try:
            row = self.conn.execute(
                f"SELECT value FROM {KV_TABLE} WHERE key = ?", (key,)
            ).fetchone()
        except sqlite3.Error as e:
            logger.warning("Failed to read from storage: %s (%s)", key, e)
            return default
        if row is None:
            return default
        try:
            return json.loads(row[0])
        except (json.JSONDecodeError, TypeError) as e:
            logger.warning("Malformed value in storage, using default: %s (%s)", key, e)
            return default

    def store(self, key: str, value: Any) -> bool:
        try:
            payload = json.dumps(value, allow_nan=False)
            self.conn.execute(
                f"INSERT INTO {KV_TABLE} (key, value, updated_at) "
                "VALUES (?, ?, CURRENT_TIMESTAMP) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value, "
                "updated_at = excluded.updated_at",
                (key, payload),
            )
            self.conn.commit()
            return True
        except (sqlite3.Error, TypeError, ValueError) as e:
            logger.warning("Failed to save to storage: %s (%s)", key, e)
            try:
                self.conn.rollback()
            except sqlite3.Error:
                pass
            return False

    def remove(self, key: str) -> bool:
        try:
            self.conn.execute(f"DELETE FROM {KV_TABLE} WHERE key = ?", (key,))
            self.conn.commit()
            return True
        except sqlite3.Error as e:
            logger.warning("Failed to remove from storage: %s (%s)", key, e)
            return False

    def clear(self) -> bool:
        try:
            self.conn.execute(f"DELETE FROM {KV_TABLE}")
            self.conn.commit()
            return True
        except sqlite3.Error as e:
            logger.warning("Failed to clear storage: %s", e)
            return False

    def keys(self) -> list[str]:
        cur = self.conn.execute(f"SELECT key FROM {KV_TABLE} ORDER BY key")
        return [r["key"] for r in cur.fetchall()]

    def close(self) -> None:
        self.conn.close()


class MemoryKeyValueStore:
    """
    In-process store with the same contract. Values round-trip through JSON so
    callers never share mutable state with the store.
    """

    def __init__(self):
        self._data: dict[str, str] = {}

    def load(self, key: str, default: Any) -> Any:
        raw = self._data.get(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Malformed value in storage, using default: %s (%s)", key, e)
            return default

    def store(self, key: str, value: Any) -> bool:
        try:
            self._data[key] = json.dumps(value, allow_nan=False)
            return True
        except (TypeError, ValueError) as e:
            logger.warning("Failed to save to storage: %s (%s)", key, e)
            return False

    def remove(self, key: str) -> bool:
        self._data.pop(key, None)
        return True

    def clear(self) -> bool:
        self._data.clear()
        return True
