"""Record backends — the physical storage behind ``TransactionStore``.

A backend knows how to insert a record, replace it conditionally on its
current status, delete rows in a given status, and query by id and/or
status.  Nothing above this module knows whether rows live in SQLite or
in memory.

Two backends:

1. **SQLite** (``SQLiteRecordBackend``): persistent, crash-safe, one
   database per project directory.  WAL journal mode for readers.
2. **In-memory** (``InMemoryRecordBackend``): volatile, for tests and
   embedding.
"""

from __future__ import annotations

import sqlite3
import threading
from pathlib import Path
from typing import Protocol, runtime_checkable

from patchwarden.models.transactions import TransactionRecord, TransactionStatus


class DuplicateRecordError(RuntimeError):
    """Raised when inserting a record whose id already has a row."""


@runtime_checkable
class RecordBackend(Protocol):
    """Minimal transactional record-store interface."""

    def insert(self, record: TransactionRecord) -> None: ...

    def replace(self, record: TransactionRecord, expected_status: TransactionStatus) -> bool:
        """Overwrite the row for ``record.id`` only if it is in *expected_status*."""
        ...

    def delete(self, record_id: str, status: TransactionStatus) -> int: ...

    def query(
        self,
        *,
        record_id: str | None = None,
        status: TransactionStatus | None = None,
    ) -> list[TransactionRecord]: ...

    def close(self) -> None: ...


# ---------------------------------------------------------------------------
# DDL
# ---------------------------------------------------------------------------

_CREATE_TRANSACTIONS = """
CREATE TABLE IF NOT EXISTS transactions (
    row_id        INTEGER PRIMARY KEY AUTOINCREMENT,
    id            TEXT NOT NULL UNIQUE,
    project_id    TEXT NOT NULL,
    status        TEXT NOT NULL,
    created_at    TEXT NOT NULL,
    payload_json  TEXT NOT NULL
);
"""

_CREATE_IDX_STATUS = """
CREATE INDEX IF NOT EXISTS idx_status_created ON transactions(status, created_at);
"""


def _dump(record: TransactionRecord) -> str:
    return record.model_dump_json(by_alias=True)


class SQLiteRecordBackend:
    """Records as JSON payload rows in a SQLite table.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file. Created if it does not exist.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(_CREATE_TRANSACTIONS)
            conn.execute(_CREATE_IDX_STATUS)
            conn.commit()

    def insert(self, record: TransactionRecord) -> None:
        try:
            self._insert(record)
        except sqlite3.IntegrityError as exc:
            raise DuplicateRecordError(f"Record {record.id} already exists.") from exc

    def _insert(self, record: TransactionRecord) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO transactions (id, project_id, status, created_at, payload_json)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    record.id,
                    record.project_id,
                    record.status.value,
                    record.created_at.isoformat(),
                    _dump(record),
                ),
            )
            conn.commit()

    def replace(self, record: TransactionRecord, expected_status: TransactionStatus) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE transactions
                   SET status = ?, payload_json = ?
                 WHERE id = ? AND status = ?
                """,
                (record.status.value, _dump(record), record.id, expected_status.value),
            )
            conn.commit()
        return cursor.rowcount > 0

    def delete(self, record_id: str, status: TransactionStatus) -> int:
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM transactions WHERE id = ? AND status = ?",
                (record_id, status.value),
            )
            conn.commit()
        return cursor.rowcount

    def query(
        self,
        *,
        record_id: str | None = None,
        status: TransactionStatus | None = None,
    ) -> list[TransactionRecord]:
        clauses: list[str] = []
        params: list[str] = []
        if record_id is not None:
            clauses.append("id = ?")
            params.append(record_id)
        if status is not None:
            clauses.append("status = ?")
            params.append(status.value)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT payload_json FROM transactions{where} ORDER BY row_id ASC",
                params,
            ).fetchall()
        return [TransactionRecord.model_validate_json(row[0]) for row in rows]

    def close(self) -> None:
        """Connections are per-call; nothing to release."""

    def __repr__(self) -> str:
        return f"SQLiteRecordBackend(db_path={str(self._db_path)!r})"


class InMemoryRecordBackend:
    """Volatile backend keyed by record id."""

    def __init__(self) -> None:
        self._rows: dict[str, TransactionRecord] = {}
        self._lock = threading.Lock()

    def insert(self, record: TransactionRecord) -> None:
        with self._lock:
            if record.id in self._rows:
                raise DuplicateRecordError(f"Record {record.id} already exists.")
            self._rows[record.id] = record

    def replace(self, record: TransactionRecord, expected_status: TransactionStatus) -> bool:
        with self._lock:
            current = self._rows.get(record.id)
            if current is None or current.status != expected_status:
                return False
            self._rows[record.id] = record
            return True

    def delete(self, record_id: str, status: TransactionStatus) -> int:
        with self._lock:
            current = self._rows.get(record_id)
            if current is None or current.status != status:
                return 0
            del self._rows[record_id]
            return 1

    def query(
        self,
        *,
        record_id: str | None = None,
        status: TransactionStatus | None = None,
    ) -> list[TransactionRecord]:
        with self._lock:
            rows = list(self._rows.values())
        return [
            r
            for r in rows
            if (record_id is None or r.id == record_id)
            and (status is None or r.status == status)
        ]

    def close(self) -> None:
        with self._lock:
            self._rows.clear()

    def __repr__(self) -> str:
        return f"InMemoryRecordBackend(rows={len(self._rows)})"
