"""Tests for engine settings and environment overrides."""

from __future__ import annotations

from pathlib import Path

from patchwarden.config import EngineSettings


class TestEngineSettings:
    def test_defaults(self):
        cfg = EngineSettings()
        assert cfg.state_dir_name == ".patchwarden"
        assert cfg.database_name == "transactions.db"
        assert cfg.notification_timeout_seconds == 30.0

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("PATCHWARDEN_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("PATCHWARDEN_STATE_DIR_NAME", ".relay")
        cfg = EngineSettings()
        assert cfg.log_level == "DEBUG"
        assert cfg.state_dir_name == ".relay"

    def test_database_path_is_per_directory(self, tmp_path: Path):
        cfg = EngineSettings()
        assert cfg.database_path(tmp_path / "a") != cfg.database_path(tmp_path / "b")
        assert cfg.database_path(tmp_path) == tmp_path.resolve() / ".patchwarden" / "transactions.db"
