"""``patchwarden apply FILE`` — process a structured transaction batch.

FILE holds a JSON ``TransactionInput`` (id, project_id, operations,
reasoning).  Parsing free-form patch text into that shape happens
elsewhere.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from pydantic import ValidationError

from patchwarden.cli.commands._common import build_coordinator, console
from patchwarden.core.coordinator import ProcessOutcome
from patchwarden.core.transaction_store import InvalidIdentifierError
from patchwarden.models.config import ProcessOptions
from patchwarden.models.transactions import TransactionInput

_OUTCOME_STYLES = {
    ProcessOutcome.COMMITTED: "[bold green]committed[/bold green]",
    ProcessOutcome.UNDONE: "[bold yellow]rolled back[/bold yellow]",
    ProcessOutcome.SKIPPED: "[dim]skipped[/dim]",
}


def apply_cmd(
    batch_file: Path = typer.Argument(..., help="JSON file with the transaction batch."),
    directory: Path = typer.Option(Path("."), "--directory", "-d", help="Project directory."),
    config: Path = typer.Option(None, "--config", "-c", help="Path to patchwarden.json."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Approve without prompting."),
) -> None:
    """Apply a batch of file operations transactionally."""
    try:
        tx_input = TransactionInput.model_validate_json(batch_file.read_text(encoding="utf-8"))
    except (OSError, ValidationError) as exc:
        console.print(f"[bold red]Could not read batch:[/bold red] {exc}")
        raise typer.Exit(code=1) from exc

    coordinator = build_coordinator(directory, config)

    async def _run() -> ProcessOutcome:
        try:
            return await coordinator.process(
                tx_input, ProcessOptions(directory=str(directory), yes=yes)
            )
        finally:
            await coordinator.aclose()

    try:
        outcome = asyncio.run(_run())
    except InvalidIdentifierError as exc:
        console.print(f"[bold red]{exc}[/bold red]")
        raise typer.Exit(code=1) from exc

    console.print(f"Transaction {tx_input.id[:8]}: {_OUTCOME_STYLES[outcome]}")
    if outcome == ProcessOutcome.UNDONE:
        raise typer.Exit(code=2)
