"""Snapshot capture and restoration.

A snapshot maps every path a transaction touches to its content before
the transaction, or ``None`` when the file did not exist.  Restoring a
snapshot puts each path back, then prunes directories that only existed
because the transaction created files in them.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from patchwarden.core.fs_ops import (
    delete_file,
    read_file_content,
    remove_empty_parent_directories,
    resolve,
    write_file_content,
)

logger = logging.getLogger(__name__)


class RollbackError(RuntimeError):
    """Raised when one or more paths could not be restored.

    ``failures`` lists every ``(path, error)`` pair; all paths were attempted.
    """

    def __init__(self, failures: list[tuple[str, BaseException]]) -> None:
        self.failures = failures
        summary = "\n".join(f"  - {path}: {error}" for path, error in failures)
        super().__init__(f"Rollback failed for {len(failures)} file(s):\n{summary}")


class SnapshotManager:
    """Captures pre-mutation content and restores it on rollback.

    Parameters
    ----------
    cwd:
        The project root.  Paths in snapshots are relative to it, and
        directory pruning never climbs above it.
    """

    def __init__(self, cwd: Path | str) -> None:
        self._root = Path(cwd).resolve()

    @property
    def root(self) -> Path:
        return self._root

    async def create_snapshot(self, paths: list[str]) -> dict[str, str | None]:
        """Read every path concurrently; missing files map to ``None``."""
        unique = list(dict.fromkeys(paths))
        contents = await asyncio.gather(
            *(read_file_content(p, self._root) for p in unique)
        )
        return dict(zip(unique, contents))

    async def restore_snapshot(self, snapshot: dict[str, str | None]) -> None:
        """Put every path back to its snapshot state.

        Raises
        ------
        RollbackError
            After every path has been attempted, if any restoration failed.
        """
        directories_to_clean: set[Path] = set()
        failures: list[tuple[str, BaseException]] = []

        async def _restore(path: str, content: str | None) -> None:
            try:
                if content is None:
                    await delete_file(path, self._root)
                    directories_to_clean.add(resolve(path, self._root).parent)
                else:
                    await write_file_content(path, content, self._root)
            except OSError as exc:
                failures.append((path, exc))

        await asyncio.gather(*(_restore(p, c) for p, c in snapshot.items()))

        # Deepest first, so nested empty trees collapse bottom-up.
        for directory in sorted(directories_to_clean, key=lambda d: len(d.parts), reverse=True):
            await remove_empty_parent_directories(directory, self._root)

        if failures:
            error = RollbackError(failures)
            logger.error("%s", error)
            raise error
