"""Unit tests for the CLI — command registration and end-to-end runs."""

from __future__ import annotations

import json
import uuid
from pathlib import Path

import pytest
from typer.testing import CliRunner

from patchwarden.cli.app import app

runner = CliRunner()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A project directory with a patchwarden.json config."""
    directory = tmp_path / "project"
    directory.mkdir()
    (directory / "patchwarden.json").write_text(
        json.dumps({"project_id": "demo"}), encoding="utf-8"
    )
    return directory


def _write_batch(tmp_path: Path, operations: list[dict], **fields) -> tuple[Path, str]:
    tx_id = str(uuid.uuid4())
    payload = {
        "id": tx_id,
        "project_id": "demo",
        "operations": operations,
        "reasoning": ["Add greeting."],
    }
    payload.update(fields)
    path = tmp_path / f"{tx_id}.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path, tx_id


class TestCliApp:
    def test_help_lists_commands(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("apply", "log", "revert", "approve-all"):
            assert command in result.output

    @pytest.mark.parametrize("command", ["apply", "log", "revert", "approve-all"])
    def test_command_help(self, command):
        result = runner.invoke(app, [command, "--help"])
        assert result.exit_code == 0


class TestApplyAndLog:
    def test_apply_commits(self, project: Path, tmp_path: Path):
        batch, tx_id = _write_batch(
            tmp_path, [{"type": "write", "path": "hello.txt", "content": "hi\n"}]
        )
        result = runner.invoke(app, ["apply", str(batch), "-d", str(project), "--yes"])
        assert result.exit_code == 0, result.output
        assert "committed" in result.output
        assert (project / "hello.txt").read_text(encoding="utf-8") == "hi\n"

        log = runner.invoke(app, ["log", "-d", str(project)])
        assert log.exit_code == 0
        assert tx_id[:8] in log.output

    def test_apply_same_batch_twice_skips(self, project: Path, tmp_path: Path):
        batch, _ = _write_batch(
            tmp_path, [{"type": "write", "path": "hello.txt", "content": "hi\n"}]
        )
        runner.invoke(app, ["apply", str(batch), "-d", str(project), "--yes"])
        again = runner.invoke(app, ["apply", str(batch), "-d", str(project), "--yes"])
        assert again.exit_code == 0
        assert "skipped" in again.output

    def test_apply_without_config_fails(self, tmp_path: Path):
        batch, _ = _write_batch(tmp_path, [])
        result = runner.invoke(app, ["apply", str(batch), "-d", str(tmp_path)])
        assert result.exit_code == 1
        assert "Configuration not found" in result.output

    def test_apply_rejects_invalid_batch(self, project: Path, tmp_path: Path):
        batch = tmp_path / "bad.json"
        batch.write_text('{"project_id": "demo", "operations": [{"type": "chmod"}]}', encoding="utf-8")
        result = runner.invoke(app, ["apply", str(batch), "-d", str(project)])
        assert result.exit_code == 1

    def test_apply_invalid_id_fails(self, project: Path, tmp_path: Path):
        batch, _ = _write_batch(tmp_path, [], id="nope")
        result = runner.invoke(app, ["apply", str(batch), "-d", str(project), "--yes"])
        assert result.exit_code == 1

    def test_log_without_history(self, tmp_path: Path):
        result = runner.invoke(app, ["log", "-d", str(tmp_path)])
        assert result.exit_code == 1


class TestRevertAndApproveAll:
    def test_revert_latest(self, project: Path, tmp_path: Path):
        batch, tx_id = _write_batch(
            tmp_path, [{"type": "write", "path": "hello.txt", "content": "hi\n"}]
        )
        runner.invoke(app, ["apply", str(batch), "-d", str(project), "--yes"])

        result = runner.invoke(app, ["revert", "-d", str(project), "--yes"])
        assert result.exit_code == 0, result.output
        assert f"Reverted {tx_id[:8]}" in result.output
        assert not (project / "hello.txt").exists()

        log = runner.invoke(app, ["log", "-d", str(project)])
        assert "No committed transactions" in log.output

    def test_revert_unknown(self, project: Path):
        result = runner.invoke(app, ["revert", "5", "-d", str(project), "--yes"])
        assert result.exit_code == 1
        assert "Could not find transaction" in result.output

    def test_approve_all_with_nothing_pending(self, project: Path):
        result = runner.invoke(app, ["approve-all", "-d", str(project), "--yes"])
        assert result.exit_code == 0
        assert "Committed 0 pending transaction(s)" in result.output
