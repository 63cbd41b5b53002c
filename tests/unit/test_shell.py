"""Tests for shell execution and linter error counting."""

from __future__ import annotations

from pathlib import Path

import pytest

from patchwarden.core.shell import CommandResult, LinterRunner, ShellExecutor, count_errors


class TestCountErrors:
    def test_success_is_zero(self):
        assert count_errors(CommandResult(command="lint", exit_code=0, stdout="error: ignored")) == 0

    def test_counts_error_lines(self):
        output = "a.py:1: error: bad\nb.py:2: warning: meh\nc.py:3: Error: worse\n"
        assert count_errors(CommandResult(command="lint", exit_code=1, stdout=output)) == 2

    def test_failure_without_error_lines_counts_one(self):
        assert count_errors(CommandResult(command="lint", exit_code=2, stderr="crashed")) == 1


class TestShellExecutor:
    @pytest.mark.asyncio
    async def test_captures_output_and_exit_code(self, tmp_path: Path):
        result = await ShellExecutor().run("echo hello; echo oops >&2; exit 3", tmp_path)
        assert result.exit_code == 3
        assert result.stdout.strip() == "hello"
        assert result.stderr.strip() == "oops"
        assert not result.ok

    @pytest.mark.asyncio
    async def test_runs_in_directory(self, tmp_path: Path):
        (tmp_path / "marker.txt").write_text("", encoding="utf-8")
        result = await ShellExecutor().run("ls", tmp_path)
        assert result.ok
        assert "marker.txt" in result.stdout

    @pytest.mark.asyncio
    async def test_extra_env(self, tmp_path: Path):
        result = await ShellExecutor(env={"PW_TEST_VALUE": "42"}).run("echo $PW_TEST_VALUE", tmp_path)
        assert result.stdout.strip() == "42"

    @pytest.mark.asyncio
    async def test_timeout_kills_command(self, tmp_path: Path):
        result = await ShellExecutor(timeout=0.2).run("sleep 5", tmp_path)
        assert result.exit_code == -1
        assert "timed out" in result.stderr


class TestLinterRunner:
    @pytest.mark.asyncio
    async def test_empty_command_is_zero(self, executor, tmp_path: Path):
        assert await LinterRunner(executor).error_count("", tmp_path) == 0
        assert await LinterRunner(executor).error_count("   ", tmp_path) == 0
        assert executor.calls == []

    @pytest.mark.asyncio
    async def test_uses_executor_result(self, executor, tmp_path: Path):
        executor.results["lint"] = CommandResult(
            command="lint", exit_code=1, stdout="x: error\ny: error\n"
        )
        assert await LinterRunner(executor).error_count("lint", tmp_path) == 2
