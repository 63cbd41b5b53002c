"""Tests for post-commit git branch naming and creation."""

from __future__ import annotations

from pathlib import Path

import pytest

from patchwarden.core.git_branch import (
    branch_name_for,
    create_branch_for,
    normalize_commit_message,
    sanitize_branch_segment,
)
from patchwarden.core.shell import CommandResult
from patchwarden.models.config import BranchTemplate, PatchConfig
from patchwarden.models.transactions import TransactionRecord

_ID = "123e4567-e89b-12d3-a456-426614174000"


def _record(commit_message: str | None = None) -> TransactionRecord:
    return TransactionRecord(id=_ID, project_id="demo", commit_message=commit_message)


class TestBranchNames:
    def test_sanitize(self):
        assert sanitize_branch_segment("  Fix: the Login_bug!! now ") == "fix-the-login-bug-now"

    def test_sanitize_truncates(self):
        assert len(sanitize_branch_segment("word " * 40)) == 70

    def test_normalize_blank_message(self):
        assert normalize_commit_message("   ") is None
        assert normalize_commit_message(None) is None

    def test_uuid_template(self):
        config = PatchConfig(project_id="demo")
        assert branch_name_for(_record(), config) == f"relay/{_ID}"

    def test_commit_message_template(self):
        config = PatchConfig(
            project_id="demo",
            git_branch_prefix="agent/",
            git_branch_template=BranchTemplate.COMMIT_MESSAGE,
        )
        assert branch_name_for(_record("Add retry logic"), config) == "agent/add-retry-logic"

    def test_commit_message_template_without_message(self):
        config = PatchConfig(project_id="demo", git_branch_template=BranchTemplate.COMMIT_MESSAGE)
        assert branch_name_for(_record(), config) is None


class TestCreateBranch:
    @pytest.mark.asyncio
    async def test_runs_checkout(self, executor, tmp_path: Path):
        config = PatchConfig(project_id="demo")
        assert await create_branch_for(_record(), config, executor, tmp_path) is True
        assert executor.commands == [f'git checkout -b "relay/{_ID}"']

    @pytest.mark.asyncio
    async def test_existing_branch_is_a_warning(self, executor, tmp_path: Path, caplog):
        command = f'git checkout -b "relay/{_ID}"'
        executor.results[command] = CommandResult(
            command=command,
            exit_code=128,
            stderr=f"fatal: a branch named 'relay/{_ID}' already exists",
        )
        config = PatchConfig(project_id="demo")
        assert await create_branch_for(_record(), config, executor, tmp_path) is False
        assert "already exists" in caplog.text

    @pytest.mark.asyncio
    async def test_no_name_skips_command(self, executor, tmp_path: Path):
        config = PatchConfig(project_id="demo", git_branch_template=BranchTemplate.COMMIT_MESSAGE)
        assert await create_branch_for(_record(), config, executor, tmp_path) is False
        assert executor.calls == []
