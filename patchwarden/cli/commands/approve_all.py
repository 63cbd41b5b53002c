"""``patchwarden approve-all`` — commit orphaned pending transactions."""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer

from patchwarden.cli.commands._common import build_coordinator, console


def approve_all_cmd(
    directory: Path = typer.Option(Path("."), "--directory", "-d", help="Project directory."),
    config: Path = typer.Option(None, "--config", "-c", help="Path to patchwarden.json."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Approve without prompting."),
) -> None:
    """Review and commit every pending transaction."""
    coordinator = build_coordinator(directory, config)

    async def _run() -> int:
        try:
            return await coordinator.approve_all_pending(directory, yes=yes)
        finally:
            await coordinator.aclose()

    committed = asyncio.run(_run())
    console.print(f"Committed {committed} pending transaction(s).")
