"""``patchwarden revert [IDENTIFIER]`` — undo a committed transaction.

IDENTIFIER is a transaction UUID or a 1-based recency index (``1`` is
the latest).  The revert runs as a new transaction of its own.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer

from patchwarden.cli.commands._common import build_coordinator, console
from patchwarden.cli.formatting import render_transaction_details
from patchwarden.core.coordinator import ProcessOutcome
from patchwarden.models.config import ProcessOptions


def revert_cmd(
    identifier: str = typer.Argument("1", help="Transaction UUID or recency index."),
    directory: Path = typer.Option(Path("."), "--directory", "-d", help="Project directory."),
    config: Path = typer.Option(None, "--config", "-c", help="Path to patchwarden.json."),
    include_reverts: bool = typer.Option(
        False, "--include-reverts", help="Count revert transactions when indexing."
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmations."),
) -> None:
    """Revert a committed transaction."""
    coordinator = build_coordinator(directory, config)
    store = coordinator.store_for(directory)
    target = store.find_committed(identifier, skip_reverts=not include_reverts)
    if target is None:
        console.print(f"[bold red]Could not find transaction[/bold red] {identifier!r}.")
        total = len(store.list_committed())
        shown = len(store.list_committed(skip_reverts=True))
        console.print(f"Found {total} committed transaction(s).")
        if total > shown and not include_reverts:
            console.print("[dim]Revert transactions are skipped by default; use --include-reverts.[/dim]")
        raise typer.Exit(code=1)

    console.print(render_transaction_details(target))

    async def _run() -> ProcessOutcome | None:
        try:
            return await coordinator.revert(
                target.id,
                ProcessOptions(directory=str(directory), yes=yes),
                include_reverts=True,
            )
        finally:
            await coordinator.aclose()

    outcome = asyncio.run(_run())
    if outcome is None:
        console.print("[dim]Nothing reverted.[/dim]")
    elif outcome == ProcessOutcome.COMMITTED:
        console.print(f"[bold green]Reverted[/bold green] {target.id[:8]}.")
    else:
        console.print(f"[bold yellow]Revert of {target.id[:8]} was {outcome.value}.[/bold yellow]")
