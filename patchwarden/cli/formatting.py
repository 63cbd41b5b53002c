"""Rich renderables for transaction records.

Color scheme
------------
- green : lines added
- red   : lines removed
- cyan  : transaction ids and paths
"""

from __future__ import annotations

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from patchwarden.models.operations import DeleteOperation, RenameOperation, WriteOperation
from patchwarden.models.transactions import TransactionRecord, is_revert_transaction


def _first_line(record: TransactionRecord) -> str:
    text = record.commit_message or record.summary or " ".join(record.reasoning)
    return text.strip().splitlines()[0] if text.strip() else "No reasoning provided."


def _stats(record: TransactionRecord) -> str:
    if record.lines_added is None and record.lines_removed is None:
        return "[dim]-[/dim]"
    return f"[green]+{record.lines_added or 0}[/green] [red]-{record.lines_removed or 0}[/red]"


def build_transactions_table(records: list[TransactionRecord], *, title: str = "Transactions") -> Table:
    """One row per record, in the order given."""
    table = Table(title=title)
    table.add_column("#", justify="right", style="dim")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Created", no_wrap=True)
    table.add_column("Ops", justify="right")
    table.add_column("Lines")
    table.add_column("Description")

    for index, record in enumerate(records, start=1):
        description = _first_line(record)
        if is_revert_transaction(record):
            description = f"[magenta]revert[/magenta] {description}"
        table.add_row(
            str(index),
            record.id[:8],
            record.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            str(len(record.operations)),
            _stats(record),
            description,
        )
    return table


def render_transaction_details(record: TransactionRecord) -> Panel:
    """A panel with the record's reasoning and operations."""
    body = Text()
    body.append(f"ID: {record.id}\n", style="cyan")
    body.append(f"Date: {record.created_at.isoformat()}\n")
    body.append(f"Status: {record.status.value}\n")
    if record.commit_message:
        body.append(f"Message: {record.commit_message}\n")
    if record.reasoning:
        body.append("Reasoning:\n", style="bold")
        for line in record.reasoning:
            body.append(f"  {line}\n")
    body.append("Changes:\n", style="bold")
    for op in record.operations:
        if isinstance(op, WriteOperation):
            body.append(f"  write  {op.path}\n")
        elif isinstance(op, DeleteOperation):
            body.append(f"  delete {op.path}\n")
        elif isinstance(op, RenameOperation):
            body.append(f"  rename {op.from_path} -> {op.to_path}\n")
    return Panel(body, title=f"Transaction {record.id[:8]}", expand=False)
