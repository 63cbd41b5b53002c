"""Async filesystem primitives used by snapshots and the operation applier.

Every call resolves its path against a working directory and runs the
blocking I/O in a worker thread so that independent paths can be awaited
together with ``asyncio.gather``.
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


def resolve(path: str, cwd: Path | str) -> Path:
    """Resolve *path* relative to *cwd*."""
    return (Path(cwd) / path).resolve()


def _read(full: Path) -> str | None:
    try:
        return full.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None


def _write(full: Path, content: str) -> None:
    full.parent.mkdir(parents=True, exist_ok=True)
    full.write_text(content, encoding="utf-8")


def _delete(full: Path) -> None:
    try:
        full.unlink()
    except FileNotFoundError:
        pass


def _rename(source: Path, destination: Path) -> None:
    destination.parent.mkdir(parents=True, exist_ok=True)
    os.replace(source, destination)


async def read_file_content(path: str, cwd: Path | str) -> str | None:
    """Return the file's text, or ``None`` if it does not exist."""
    return await asyncio.to_thread(_read, resolve(path, cwd))


async def write_file_content(path: str, content: str, cwd: Path | str) -> None:
    """Write *content*, creating parent directories as needed."""
    await asyncio.to_thread(_write, resolve(path, cwd), content)


async def delete_file(path: str, cwd: Path | str) -> None:
    """Delete a file; a missing file is not an error."""
    await asyncio.to_thread(_delete, resolve(path, cwd))


async def rename_file(from_path: str, to_path: str, cwd: Path | str) -> None:
    """Move a file, replacing the destination if it exists."""
    await asyncio.to_thread(_rename, resolve(from_path, cwd), resolve(to_path, cwd))


def _prune(directory: Path, root: Path) -> None:
    current = directory
    while current != root and root in current.parents:
        try:
            if any(current.iterdir()):
                return
            current.rmdir()
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.debug("Stopped pruning at %s: %s", current, exc)
            return
        current = current.parent


async def remove_empty_parent_directories(directory: Path | str, root: Path | str) -> None:
    """Remove *directory* and its ancestors while they are empty.

    Stops at *root* (never removed) or at the first directory that still
    has entries.
    """
    await asyncio.to_thread(_prune, Path(directory).resolve(), Path(root).resolve())
