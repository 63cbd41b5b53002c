"""Inverse operations for reverting a committed transaction."""

from __future__ import annotations

from patchwarden.models.operations import (
    DeleteOperation,
    FileOperation,
    PatchStrategy,
    RenameOperation,
    WriteOperation,
)
from patchwarden.models.transactions import REVERT_PREFIX, TransactionRecord


def paths_after(record: TransactionRecord) -> set[str]:
    """Paths that exist once *record*'s operations have been applied."""
    paths = {p for p, content in record.snapshot.items() if content is not None}
    for op in record.operations:
        if isinstance(op, RenameOperation):
            paths.discard(op.from_path)
            paths.add(op.to_path)
        elif isinstance(op, WriteOperation):
            paths.add(op.path)
        elif isinstance(op, DeleteOperation):
            paths.discard(op.path)
    return paths


def build_inverse_operations(record: TransactionRecord) -> list[FileOperation]:
    """Operations that take the post-transaction tree back to the snapshot.

    Instead of inverting each operation, compare the final path set with
    the snapshot: delete what was created, write back what existed.
    """
    inverse: list[FileOperation] = []
    for path in sorted(paths_after(record)):
        if record.snapshot.get(path) is None:
            inverse.append(DeleteOperation(path=path))
    for path, content in record.snapshot.items():
        if content is not None:
            inverse.append(
                WriteOperation(path=path, content=content, strategy=PatchStrategy.REPLACE)
            )
    return inverse


def revert_reasoning(record: TransactionRecord) -> list[str]:
    return [
        f"{REVERT_PREFIX} {record.id}.",
        f"Reasoning from original transaction: {' '.join(record.reasoning)}",
    ]
