"""Transaction record models and the status state machine.

A ``TransactionRecord`` is the unit of durability.  It is written once as
``pending`` and then moved to exactly one terminal status.  Records are
never deleted; ``undone`` marks a rollback, it does not erase history.
"""

from __future__ import annotations

import re
import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from patchwarden.models.operations import FileOperation

UUID_PATTERN = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)

REVERT_PREFIX = "Reverting transaction"
_REVERT_PATTERN = re.compile(r"^Reverting transaction ([\w-]+)\.")


def is_uuid(value: str) -> bool:
    """Return ``True`` if *value* is a canonical hyphenated UUID."""
    return bool(isinstance(value, str) and UUID_PATTERN.match(value))


class TransactionStatus(str, Enum):
    """Lifecycle status of a transaction record."""

    PENDING = "pending"
    COMMITTED = "committed"
    UNDONE = "undone"


# Terminal statuses have no outgoing transitions.
VALID_TRANSITIONS: dict[TransactionStatus, set[TransactionStatus]] = {
    TransactionStatus.PENDING: {TransactionStatus.COMMITTED, TransactionStatus.UNDONE},
    TransactionStatus.COMMITTED: set(),
    TransactionStatus.UNDONE: set(),
}

TERMINAL_STATUSES = frozenset({TransactionStatus.COMMITTED, TransactionStatus.UNDONE})


class LineStats(BaseModel):
    """Added/removed line counts for one operation or a whole transaction."""

    model_config = ConfigDict(frozen=True)

    added: int = 0
    removed: int = 0

    @property
    def difference(self) -> int:
        return self.added - self.removed

    def __add__(self, other: LineStats) -> LineStats:
        return LineStats(added=self.added + other.added, removed=self.removed + other.removed)


class TransactionInput(BaseModel):
    """A batch of operations submitted for processing.

    This is the already-parsed form of an agent's proposal; turning patch
    text into this model happens upstream.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    project_id: str
    operations: list[FileOperation] = []
    reasoning: list[str] = []
    commit_message: str | None = None
    summary: str | None = None


class TransactionRecord(BaseModel):
    """The durable representation of one transaction and its outcome."""

    model_config = ConfigDict(frozen=True)

    id: str
    project_id: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    status: TransactionStatus = TransactionStatus.PENDING
    approved: bool = False
    operations: list[FileOperation] = []
    snapshot: dict[str, str | None] = {}
    reasoning: list[str] = []
    commit_message: str | None = None
    summary: str | None = None
    lines_added: int | None = None
    lines_removed: int | None = None
    lines_difference: int | None = None
    vcs_committed_at: datetime | None = None

    @classmethod
    def from_input(cls, tx_input: TransactionInput, snapshot: dict[str, str | None]) -> TransactionRecord:
        """Build the in-memory pending record for an accepted submission."""
        return cls(
            id=tx_input.id,
            project_id=tx_input.project_id,
            operations=list(tx_input.operations),
            snapshot=dict(snapshot),
            reasoning=list(tx_input.reasoning),
            commit_message=tx_input.commit_message,
            summary=tx_input.summary,
        )


def is_revert_transaction(record: TransactionRecord) -> bool:
    """A revert transaction announces itself in its reasoning."""
    return any(line.startswith(REVERT_PREFIX) for line in record.reasoning)


def reverted_transaction_id(record: TransactionRecord) -> str | None:
    """Return the id of the transaction *record* reverts, if any."""
    for line in record.reasoning:
        match = _REVERT_PATTERN.match(line)
        if match:
            return match.group(1)
    return None
