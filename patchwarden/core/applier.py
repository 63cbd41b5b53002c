"""Operation applier — folds operations in memory, then touches the disk.

Step 1 computes the final content of every affected path by folding the
operations in array order against an evolving in-memory map.  A failure
here aborts before any filesystem mutation.

Step 2 applies physical renames first, in order, then writes or deletes
every path whose final content differs from what is now on disk.
Writes and deletes target disjoint paths and run concurrently; their
errors are collected and raised together as an ``ApplyError``.
"""

from __future__ import annotations

import asyncio
import difflib
import logging
from pathlib import Path

from patchwarden.core.fs_ops import delete_file, rename_file, resolve, write_file_content
from patchwarden.core.transforms import ContentTransformer, StrategyRegistry, TransformError
from patchwarden.models.operations import (
    DeleteOperation,
    FileOperation,
    RenameOperation,
    WriteOperation,
)
from patchwarden.models.transactions import LineStats

logger = logging.getLogger(__name__)


class ApplyError(RuntimeError):
    """Raised when filesystem side effects of an apply step fail."""

    def __init__(self, failures: list[tuple[str, BaseException]]) -> None:
        self.failures = failures
        summary = "\n".join(f"  - {path}: {error}" for path, error in failures)
        super().__init__(f"Failed to apply {len(failures)} file change(s):\n{summary}")


def compute_new_states(
    operations: list[FileOperation],
    original: dict[str, str | None],
    transformer: ContentTransformer,
) -> dict[str, str | None]:
    """Fold *operations* over *original*; purely in memory.

    Raises
    ------
    TransformError
        If any write cannot be transformed or a rename source is absent.
    """
    states = dict(original)
    for op in operations:
        if isinstance(op, WriteOperation):
            states[op.path] = transformer.transform(op, states.get(op.path))
        elif isinstance(op, DeleteOperation):
            states[op.path] = None
        elif isinstance(op, RenameOperation):
            content = states.get(op.from_path)
            if content is None:
                raise TransformError(
                    f"Cannot rename {op.from_path} -> {op.to_path}: source does not exist"
                )
            states[op.to_path] = content
            states[op.from_path] = None
        else:
            raise TypeError(f"Unknown operation type: {type(op).__name__}")
    return states


def _count_lines(content: str | None) -> int:
    return len(content.splitlines()) if content else 0


def line_changes(old: str | None, new: str | None) -> LineStats:
    """Count added and removed lines between two versions of a file."""
    if old is None:
        return LineStats(added=_count_lines(new))
    if new is None:
        return LineStats(removed=_count_lines(old))
    matcher = difflib.SequenceMatcher(a=old.splitlines(), b=new.splitlines(), autojunk=False)
    added = removed = 0
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag in ("replace", "delete"):
            removed += i2 - i1
        if tag in ("replace", "insert"):
            added += j2 - j1
    return LineStats(added=added, removed=removed)


def operation_line_changes(
    operation: FileOperation,
    original: dict[str, str | None],
    final: dict[str, str | None],
) -> LineStats:
    """Per-operation statistics: renames change no lines."""
    if isinstance(operation, WriteOperation):
        return line_changes(original.get(operation.path), final.get(operation.path))
    if isinstance(operation, DeleteOperation):
        return LineStats(removed=_count_lines(original.get(operation.path)))
    if isinstance(operation, RenameOperation):
        return LineStats()
    raise TypeError(f"Unknown operation type: {type(operation).__name__}")


def total_line_changes(
    operations: list[FileOperation],
    original: dict[str, str | None],
    final: dict[str, str | None],
) -> LineStats:
    total = LineStats()
    for op in operations:
        total = total + operation_line_changes(op, original, final)
    return total


class OperationApplier:
    """Computes and writes the post-transaction filesystem state.

    Parameters
    ----------
    cwd:
        Project root that operation paths are relative to.
    transformer:
        Content-transform engine for write strategies.  Defaults to a
        ``StrategyRegistry`` with only ``replace``.
    """

    def __init__(self, cwd: Path | str, transformer: ContentTransformer | None = None) -> None:
        self._root = Path(cwd).resolve()
        self._transformer = transformer or StrategyRegistry()

    async def apply(
        self,
        operations: list[FileOperation],
        original: dict[str, str | None],
    ) -> dict[str, str | None]:
        """Apply *operations* and return the final content of every path."""
        final = compute_new_states(operations, original, self._transformer)

        # What is on disk, tracked as renames move content around.
        on_disk = dict(original)
        for op in operations:
            if not isinstance(op, RenameOperation):
                continue
            # The source may only exist in memory if an earlier write created it.
            if resolve(op.from_path, self._root).exists():
                try:
                    await rename_file(op.from_path, op.to_path, self._root)
                except OSError as exc:
                    raise ApplyError([(op.from_path, exc)]) from exc
                on_disk[op.to_path] = on_disk.get(op.from_path)
                on_disk[op.from_path] = None

        changes: list[tuple[str, str | None]] = []
        for path in dict.fromkeys([*on_disk, *final]):
            new = final.get(path)
            if on_disk.get(path) != new:
                changes.append((path, new))

        results = await asyncio.gather(
            *(
                delete_file(path, self._root)
                if content is None
                else write_file_content(path, content, self._root)
                for path, content in changes
            ),
            return_exceptions=True,
        )
        failures = [
            (path, result)
            for (path, _), result in zip(changes, results)
            if isinstance(result, BaseException)
        ]
        if failures:
            raise ApplyError(failures)

        logger.debug("Applied %d operation(s), %d path change(s)", len(operations), len(changes))
        return final
