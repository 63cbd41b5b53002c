"""Per-directory serialization of transaction work.

``DirectoryLock`` holds, per absolute project directory, the tail of a
chain of scheduled tasks.  A new task waits for the current tail before
it runs, so work for one directory executes strictly in submission
order while different directories proceed independently.

The registry is owned by whoever processes transactions (no module-level
state); ``aclose()`` waits for every outstanding task.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DirectoryLock:
    """Registry of per-directory task chains."""

    def __init__(self) -> None:
        self._tails: dict[str, asyncio.Task[Any]] = {}
        self._closed = False

    @staticmethod
    def _key(directory: Path | str) -> str:
        return str(Path(directory).resolve())

    def process(
        self, directory: Path | str, task: Callable[[], Awaitable[T]]
    ) -> asyncio.Task[T]:
        """Schedule *task* after all earlier work for *directory*.

        Returns a task that resolves with *task*'s result (or exception)
        once it has run to completion.  A failure in one task does not
        stop the tasks queued behind it.
        """
        if self._closed:
            raise RuntimeError("DirectoryLock is closed")

        key = self._key(directory)
        previous = self._tails.get(key)

        async def _run_after() -> T:
            if previous is not None:
                await asyncio.wait([previous])
            return await task()

        scheduled = asyncio.ensure_future(_run_after())
        self._tails[key] = scheduled
        logger.debug("Queued task for %s", key)
        return scheduled

    async def run(self, directory: Path | str, task: Callable[[], Awaitable[T]]) -> T:
        """Schedule *task* and wait for its result.

        Cancelling the caller does not cancel *task*; it still runs to
        completion.
        """
        return await asyncio.shield(self.process(directory, task))

    @property
    def directories(self) -> list[str]:
        return list(self._tails)

    async def aclose(self) -> None:
        """Refuse new work and wait for every queued task to finish."""
        self._closed = True
        tails = list(self._tails.values())
        if tails:
            await asyncio.wait(tails)
        self._tails.clear()

    async def __aenter__(self) -> DirectoryLock:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()
