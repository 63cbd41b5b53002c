"""Shell command execution and linter error counting.

``ShellExecutor`` runs pre/post hooks, the linter, and post-commit
actions.  ``LinterRunner`` turns a linter command into an error count:
an empty command is skipped and counts as zero.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

_ERROR_LINE = re.compile(r"\berror\b", re.IGNORECASE)


class CommandResult(BaseModel):
    """Exit status and captured output of one shell command."""

    model_config = ConfigDict(frozen=True)

    command: str
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class CommandRunner(Protocol):
    async def run(self, command: str, cwd: Path | str) -> CommandResult: ...


class ShellExecutor:
    """Runs commands through the system shell in a project directory.

    Parameters
    ----------
    timeout:
        Seconds before a command is killed; ``None`` waits indefinitely.
    env:
        Extra environment variables merged over ``os.environ``.
    """

    def __init__(self, *, timeout: float | None = None, env: dict[str, str] | None = None) -> None:
        self._timeout = timeout
        self._env = env or {}

    async def run(self, command: str, cwd: Path | str) -> CommandResult:
        merged_env = os.environ.copy()
        merged_env.update(self._env)

        proc = await asyncio.create_subprocess_shell(
            command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd),
            env=merged_env,
        )
        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(
                proc.communicate(), timeout=self._timeout
            )
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            logger.warning("Command timed out after %ss: %s", self._timeout, command)
            return CommandResult(
                command=command,
                exit_code=-1,
                stderr=f"Command timed out after {self._timeout}s",
            )

        result = CommandResult(
            command=command,
            exit_code=proc.returncode if proc.returncode is not None else -1,
            stdout=stdout_bytes.decode("utf-8", errors="replace"),
            stderr=stderr_bytes.decode("utf-8", errors="replace"),
        )
        logger.debug("Command %r exited with %d", command, result.exit_code)
        return result


def count_errors(result: CommandResult) -> int:
    """Error count for a finished linter run.

    Exit code 0 means zero errors.  Otherwise count output lines that
    mention ``error``, and never report fewer than one.
    """
    if result.ok:
        return 0
    lines = (result.stdout + "\n" + result.stderr).splitlines()
    return max(1, sum(1 for line in lines if _ERROR_LINE.search(line)))


class LinterRunner:
    """Runs the configured check command and reports its error count."""

    def __init__(self, executor: CommandRunner | None = None) -> None:
        self._executor = executor or ShellExecutor()

    async def error_count(self, command: str, cwd: Path | str) -> int:
        if not command or not command.strip():
            return 0
        result = await self._executor.run(command, cwd)
        return count_errors(result)
