"""Tests for DirectoryLock — per-directory FIFO, cross-directory concurrency."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from patchwarden.core.directory_lock import DirectoryLock


class TestDirectoryLock:
    @pytest.mark.asyncio
    async def test_same_directory_runs_in_submission_order(self, tmp_path: Path):
        lock = DirectoryLock()
        events: list[str] = []

        def make(name: str, delay: float):
            async def _task() -> str:
                events.append(f"start {name}")
                await asyncio.sleep(delay)
                events.append(f"end {name}")
                return name

            return _task

        first = lock.process(tmp_path, make("first", 0.05))
        second = lock.process(tmp_path, make("second", 0))
        assert await asyncio.gather(first, second) == ["first", "second"]
        assert events == ["start first", "end first", "start second", "end second"]

    @pytest.mark.asyncio
    async def test_equivalent_paths_share_a_queue(self, tmp_path: Path):
        lock = DirectoryLock()
        lock.process(tmp_path, _noop)
        lock.process(tmp_path / "sub" / "..", _noop)
        assert len(lock.directories) == 1
        await lock.aclose()

    @pytest.mark.asyncio
    async def test_different_directories_overlap(self, tmp_path: Path):
        lock = DirectoryLock()
        a_started = asyncio.Event()
        b_started = asyncio.Event()

        async def task_a() -> None:
            a_started.set()
            await asyncio.wait_for(b_started.wait(), timeout=1)

        async def task_b() -> None:
            b_started.set()
            await asyncio.wait_for(a_started.wait(), timeout=1)

        await asyncio.gather(
            lock.process(tmp_path / "a", task_a),
            lock.process(tmp_path / "b", task_b),
        )

    @pytest.mark.asyncio
    async def test_failure_does_not_block_queue(self, tmp_path: Path):
        lock = DirectoryLock()

        async def boom() -> None:
            raise ValueError("boom")

        async def after() -> str:
            return "ran"

        failing = lock.process(tmp_path, boom)
        following = lock.process(tmp_path, after)
        with pytest.raises(ValueError):
            await failing
        assert await following == "ran"

    @pytest.mark.asyncio
    async def test_run_returns_result(self, tmp_path: Path):
        async with DirectoryLock() as lock:
            assert await lock.run(tmp_path, _answer) == 42

    @pytest.mark.asyncio
    async def test_cancelled_waiter_does_not_cancel_task(self, tmp_path: Path):
        lock = DirectoryLock()
        finished = asyncio.Event()

        async def slow() -> None:
            await asyncio.sleep(0.2)
            finished.set()

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(lock.run(tmp_path, slow), timeout=0.05)
        await lock.aclose()
        assert finished.is_set()

    @pytest.mark.asyncio
    async def test_closed_lock_refuses_work(self, tmp_path: Path):
        lock = DirectoryLock()
        await lock.aclose()
        with pytest.raises(RuntimeError):
            lock.process(tmp_path, _noop)


async def _noop() -> None:
    return None


async def _answer() -> int:
    return 42
