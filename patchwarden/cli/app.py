"""Main Typer application — imports and registers all CLI commands.

Entry point: ``patchwarden`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import logging

import typer
from rich.logging import RichHandler

from patchwarden.cli.commands.apply_cmd import apply_cmd
from patchwarden.cli.commands.approve_all import approve_all_cmd
from patchwarden.cli.commands.log_cmd import log_cmd
from patchwarden.cli.commands.revert_cmd import revert_cmd
from patchwarden.config import settings

app = typer.Typer(
    name="patchwarden",
    help="Patchwarden: transactional, auditable application of file changes.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Configure logging once for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )


# Register subcommands
app.command(name="apply", help="Apply a JSON transaction batch.")(apply_cmd)
app.command(name="log", help="List committed transactions.")(log_cmd)
app.command(name="revert", help="Revert a committed transaction.")(revert_cmd)
app.command(name="approve-all", help="Commit all pending transactions.")(approve_all_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
