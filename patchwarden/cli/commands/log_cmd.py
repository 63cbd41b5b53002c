"""``patchwarden log`` — list committed transactions, most recent first."""

from __future__ import annotations

from pathlib import Path

import typer

from patchwarden.cli.commands._common import console
from patchwarden.cli.formatting import build_transactions_table
from patchwarden.config import settings
from patchwarden.core.transaction_store import TransactionStore


def log_cmd(
    directory: Path = typer.Option(Path("."), "--directory", "-d", help="Project directory."),
    include_reverts: bool = typer.Option(
        False, "--include-reverts", help="Also show reverts and the transactions they reverted."
    ),
    limit: int = typer.Option(20, "--limit", "-n", help="Maximum rows to show."),
) -> None:
    """Show committed transactions recorded for a project."""
    if not settings.database_path(directory).exists():
        console.print(f"[bold red]No transaction history in[/bold red] {directory.resolve()}")
        raise typer.Exit(code=1)

    store = TransactionStore.for_directory(directory)
    records = store.list_committed(skip_reverts=not include_reverts)
    if not records:
        console.print("[dim]No committed transactions.[/dim]")
        return
    console.print(build_transactions_table(records[:limit], title="Committed transactions"))
