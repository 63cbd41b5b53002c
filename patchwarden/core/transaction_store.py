"""Transaction store — durable, status-keyed transaction records.

The store is the only writer of transaction records.  Every write is
keyed by id *and* expected current status, so a transition whose prior
status no longer holds is a logged no-op instead of a double-processing
bug.  This conditional write is the engine's substitute for row locks.

Design:
- ``insert()`` supersedes an orphaned ``pending`` row with the same id.
- ``update()`` only touches ``pending`` rows.
- ``set_status()`` only follows ``VALID_TRANSITIONS``.
- Nothing is ever deleted except orphaned ``pending`` rows.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from patchwarden.config import EngineSettings, settings as default_settings
from patchwarden.core.record_backends import RecordBackend, SQLiteRecordBackend
from patchwarden.models.transactions import (
    VALID_TRANSITIONS,
    TransactionRecord,
    TransactionStatus,
    is_revert_transaction,
    is_uuid,
    reverted_transaction_id,
)

logger = logging.getLogger(__name__)

_INDEX_PATTERN = re.compile(r"^-?\d+$")


class InvalidIdentifierError(ValueError):
    """Raised when a write is attempted with a malformed transaction id."""


class InvalidTransitionError(RuntimeError):
    """Raised when a requested status transition is not valid."""


def _require_uuid(record_id: str) -> None:
    if not is_uuid(record_id):
        logger.error("Fatal: invalid transaction id %r", record_id)
        raise InvalidIdentifierError(f"Invalid transaction id: {record_id!r}")


def _newest_first(records: list[TransactionRecord]) -> list[TransactionRecord]:
    return sorted(records, key=lambda r: r.created_at, reverse=True)


class TransactionStore:
    """Queryable persistence of transaction records.

    Parameters
    ----------
    backend:
        The physical record backend (SQLite or in-memory).
    """

    def __init__(self, backend: RecordBackend) -> None:
        self._backend = backend

    @classmethod
    def for_directory(
        cls, directory: Path | str, engine_settings: EngineSettings | None = None
    ) -> TransactionStore:
        """Open the SQLite-backed store partitioned to one project directory."""
        cfg = engine_settings or default_settings
        return cls(SQLiteRecordBackend(cfg.database_path(directory)))

    @property
    def backend(self) -> RecordBackend:
        return self._backend

    def close(self) -> None:
        self._backend.close()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, record: TransactionRecord) -> TransactionRecord:
        """Persist *record* as ``pending``.

        An existing ``pending`` row with the same id is an orphan from an
        interrupted run; it is deleted first so the id can be reprocessed.
        """
        _require_uuid(record.id)
        removed = self._backend.delete(record.id, TransactionStatus.PENDING)
        if removed:
            logger.info("Superseding orphaned pending transaction %s.", record.id)
        pending = record.model_copy(update={"status": TransactionStatus.PENDING})
        self._backend.insert(pending)
        return pending

    def update(
        self,
        record_id: str,
        changes: dict[str, Any],
        *,
        status: TransactionStatus = TransactionStatus.PENDING,
    ) -> TransactionRecord | None:
        """Apply field *changes* to the row for *record_id* in *status*.

        Returns the updated record, or ``None`` (with a warning) if no row
        in that status exists.  ``id`` and ``status`` cannot be changed here.
        """
        _require_uuid(record_id)
        forbidden = {"id", "status", "created_at"} & changes.keys()
        if forbidden:
            raise ValueError(f"Fields cannot be updated: {sorted(forbidden)}")

        current = self._find(record_id, status)
        if current is None:
            logger.warning(
                "Could not find %s transaction %s to update.", status.value, record_id
            )
            return None

        updated = current.model_copy(update=changes)
        if not self._backend.replace(updated, status):
            logger.warning(
                "Transaction %s left status %s before update.", record_id, status.value
            )
            return None
        return updated

    def set_status(
        self,
        record_id: str,
        from_status: TransactionStatus,
        to_status: TransactionStatus,
    ) -> bool:
        """Transition *record_id* from *from_status* to *to_status*.

        Returns ``False`` (with a warning) when no row is in *from_status*.
        """
        _require_uuid(record_id)
        allowed = VALID_TRANSITIONS.get(from_status, set())
        if to_status not in allowed:
            raise InvalidTransitionError(
                f"Cannot transition {record_id} from {from_status.value} to "
                f"{to_status.value}. Allowed: {sorted(s.value for s in allowed)}"
            )

        current = self._find(record_id, from_status)
        if current is None or not self._backend.replace(
            current.model_copy(update={"status": to_status}), from_status
        ):
            logger.warning(
                "Could not find %s transaction %s to mark as %s.",
                from_status.value,
                record_id,
                to_status.value,
            )
            return False
        return True

    def mark_vcs_committed(self, record_ids: list[str]) -> int:
        """Stamp committed records as included in an external VCS commit.

        Returns the number of records marked.
        """
        stamp = datetime.now(timezone.utc)
        marked = 0
        for record_id in record_ids:
            if self.update(
                record_id, {"vcs_committed_at": stamp}, status=TransactionStatus.COMMITTED
            ):
                marked += 1
        return marked

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _find(self, record_id: str, status: TransactionStatus) -> TransactionRecord | None:
        rows = self._backend.query(record_id=record_id, status=status)
        return rows[0] if rows else None

    def find_by_id(self, record_id: str) -> TransactionRecord | None:
        """Return the record for *record_id* in any status, or ``None``."""
        rows = self._backend.query(record_id=record_id)
        return rows[0] if rows else None

    def query_by_status(self, status: TransactionStatus) -> list[TransactionRecord]:
        """Return all records in *status*, oldest first."""
        return sorted(self._backend.query(status=status), key=lambda r: r.created_at)

    def all(self) -> list[TransactionRecord]:
        """Return every record, most recent first."""
        return _newest_first(self._backend.query())

    def has_been_processed(self, record_id: str) -> bool:
        """``committed`` and ``undone`` are final; ``pending`` may be reprocessed."""
        record = self.find_by_id(record_id)
        return record is not None and record.status in (
            TransactionStatus.COMMITTED,
            TransactionStatus.UNDONE,
        )

    def list_committed(self, *, skip_reverts: bool = False) -> list[TransactionRecord]:
        """Return committed records, most recent first.

        With *skip_reverts*, revert transactions and the transactions they
        reverted are both left out.
        """
        records = self._backend.query(status=TransactionStatus.COMMITTED)
        if skip_reverts:
            reverted = {
                reverted_transaction_id(r) for r in records if is_revert_transaction(r)
            }
            records = [
                r for r in records if not is_revert_transaction(r) and r.id not in reverted
            ]
        return _newest_first(records)

    def find_committed(
        self, identifier: str, *, skip_reverts: bool = False
    ) -> TransactionRecord | None:
        """Find a committed record by UUID or by 1-based recency index.

        A UUID is returned whenever it is committed, revert or not.  An
        index (``"1"`` is the latest; a leading minus is ignored) counts
        over ``list_committed(skip_reverts=...)``.
        """
        if is_uuid(identifier):
            return self._find(identifier, TransactionStatus.COMMITTED)

        if _INDEX_PATTERN.match(identifier):
            index = abs(int(identifier))
            if index <= 0:
                return None
            records = self.list_committed(skip_reverts=skip_reverts)
            return records[index - 1] if len(records) >= index else None

        return None

    def __repr__(self) -> str:
        return f"TransactionStore(backend={self._backend!r})"
