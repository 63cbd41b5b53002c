"""Helpers shared by CLI commands."""

from __future__ import annotations

from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console

from patchwarden.core.coordinator import TransactionCoordinator
from patchwarden.models.config import PatchConfig

DEFAULT_CONFIG_NAME = "patchwarden.json"

console = Console()


def load_patch_config(directory: Path, config_path: Path | None) -> PatchConfig:
    """Read the project's ``PatchConfig`` JSON or exit with an error."""
    path = config_path or directory / DEFAULT_CONFIG_NAME
    if not path.exists():
        console.print(f"[bold red]Configuration not found:[/bold red] {path}")
        raise typer.Exit(code=1)
    try:
        return PatchConfig.model_validate_json(path.read_text(encoding="utf-8"))
    except ValidationError as exc:
        console.print(f"[bold red]Invalid configuration in {path}:[/bold red]\n{exc}")
        raise typer.Exit(code=1) from exc


def build_coordinator(directory: Path, config_path: Path | None) -> TransactionCoordinator:
    return TransactionCoordinator(load_patch_config(directory, config_path))
