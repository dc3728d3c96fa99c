"""Record persistence: a SQLite document store and an in-memory fallback.

Both adapters implement the same RecordStore contract and hand out copies,
so a caller mutating a record never changes stored state until it saves.
Whole-record saves are last-write-wins; update() and increment() run their
read-merge-save under the store lock, so partial writes never drop each other.
"""

import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any

from talentpage.core.config import DatabaseConfig
from talentpage.core.schemas import JobPosting

logger = logging.getLogger(__name__)

_RECORDS_TABLE = """
CREATE TABLE IF NOT EXISTS records (
    id          TEXT PRIMARY KEY,
    data        TEXT NOT NULL,
    created_at  TEXT NOT NULL,
    updated_at  TEXT NOT NULL
);
"""

# Fields a partial update may never change.
_PROTECTED_FIELDS = frozenset({"id", "created_at"})


def merge_updates(record: JobPosting, updates: dict[str, Any]) -> JobPosting:
    """Apply a partial update to a record, validating the result.

    ``id`` and ``created_at`` are preserved; ``updated_at`` is refreshed.
    Raises pydantic.ValidationError if a value does not fit the schema.
    """
    data = record.model_dump()
    for key, value in updates.items():
        if key in _PROTECTED_FIELDS:
            continue
        data[key] = value
    data["updated_at"] = datetime.now()
    return JobPosting.model_validate(data)


class RecordStore(ABC):
    """Capability interface shared by every storage adapter."""

    def __init__(self) -> None:
        self._lock = threading.RLock()

    @abstractmethod
    def create(self, record: JobPosting | None = None) -> JobPosting:
        """Persist a new record (an empty one when None) and return it."""

    @abstractmethod
    def find_by_id(self, record_id: str) -> JobPosting | None:
        """Return a copy of the stored record, or None."""

    @abstractmethod
    def save(self, record: JobPosting) -> JobPosting:
        """Overwrite the stored record with this one."""

    @abstractmethod
    def delete(self, record_id: str) -> bool:
        """Remove a record. Returns False if it did not exist."""

    @abstractmethod
    def find_all(self) -> list[JobPosting]:
        """Return every stored record, oldest first."""

    def update(self, record_id: str, updates: dict[str, Any]) -> JobPosting | None:
        """Merge ``updates`` into the stored record. Returns None if missing."""
        with self._lock:
            record = self.find_by_id(record_id)
            if record is None:
                return None
            return self.save(merge_updates(record, updates))

    def increment(self, record_id: str, field: str) -> int | None:
        """Add one to an integer field and return the new value, or None if missing."""
        with self._lock:
            record = self.find_by_id(record_id)
            if record is None:
                return None
            value = int(getattr(record, field)) + 1
            self.save(merge_updates(record, {field: value}))
            return value


class MemoryRecordStore(RecordStore):
    """Dict-backed store used when the database is disabled or unavailable."""

    def __init__(self) -> None:
        super().__init__()
        self._records: dict[str, JobPosting] = {}

    def create(self, record: JobPosting | None = None) -> JobPosting:
        record = record or JobPosting()
        self._records[record.id] = record.model_copy(deep=True)
        return record

    def find_by_id(self, record_id: str) -> JobPosting | None:
        record = self._records.get(record_id)
        return record.model_copy(deep=True) if record is not None else None

    def save(self, record: JobPosting) -> JobPosting:
        self._records[record.id] = record.model_copy(deep=True)
        return record

    def delete(self, record_id: str) -> bool:
        return self._records.pop(record_id, None) is not None

    def find_all(self) -> list[JobPosting]:
        return [
            r.model_copy(deep=True)
            for r in sorted(self._records.values(), key=lambda r: r.created_at)
        ]


class SqliteRecordStore(RecordStore):
    """Stores each record as one JSON document row."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        super().__init__()
        self._conn = conn

    def create(self, record: JobPosting | None = None) -> JobPosting:
        record = record or JobPosting()
        with self._lock:
            self._conn.execute(
                "INSERT INTO records (id, data, created_at, updated_at) VALUES (?, ?, ?, ?)",
                (
                    record.id,
                    record.model_dump_json(),
                    record.created_at.isoformat(),
                    record.updated_at.isoformat(),
                ),
            )
            self._conn.commit()
        return record

    def find_by_id(self, record_id: str) -> JobPosting | None:
        with self._lock:
            row = self._conn.execute(
                "SELECT data FROM records WHERE id = ?", (record_id,),
            ).fetchone()
        if row is None:
            return None
        return JobPosting.model_validate_json(row["data"])

    def save(self, record: JobPosting) -> JobPosting:
        with self._lock:
            self._conn.execute(
                """
                INSERT INTO records (id, data, created_at, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    data = excluded.data,
                    updated_at = excluded.updated_at
                """,
                (
                    record.id,
                    record.model_dump_json(),
                    record.created_at.isoformat(),
                    record.updated_at.isoformat(),
                ),
            )
            self._conn.commit()
        return record

    def delete(self, record_id: str) -> bool:
        with self._lock:
            cursor = self._conn.execute("DELETE FROM records WHERE id = ?", (record_id,))
            self._conn.commit()
        return cursor.rowcount > 0

    def find_all(self) -> list[JobPosting]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT data FROM records ORDER BY created_at",
            ).fetchall()
        return [JobPosting.model_validate_json(row["data"]) for row in rows]


def init_db(path: str | Path) -> sqlite3.Connection:
    """Create the database and tables, returning a connection."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    # Shared across threads; SqliteRecordStore serializes access with its lock.
    conn = sqlite3.connect(str(path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute(_RECORDS_TABLE)
    conn.commit()
    return conn


def open_store(config: DatabaseConfig) -> RecordStore:
    """Open the configured store, falling back to memory if SQLite is unavailable."""
    if not config.enabled:
        logger.info("Database disabled, using in-memory record store")
        return MemoryRecordStore()
    try:
        conn = init_db(config.path)
    except (sqlite3.Error, OSError) as e:
        logger.warning("Database unavailable (%s), using in-memory record store", e)
        return MemoryRecordStore()
    logger.info("Using SQLite record store at %s", config.path)
    return SqliteRecordStore(conn)
