"""Portfolio value series command."""

import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from tradejournal.cli.runtime import LOG_LEVELS, JournalEngine, load_runtime_config, resolve_basis
from tradejournal.cli.snapshot import JournalSnapshot
from tradejournal.cli.ui.formatters import create_series_table

console = Console()


@click.command("series")
@click.option(
    "--file",
    "-f",
    "snapshot_file",
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help="Path to journal snapshot (YAML or JSON)",
)
@click.option(
    "--basis",
    "-b",
    type=click.Choice(["cash", "accrual"], case_sensitive=False),
    help="Accounting basis (defaults to accounting.default_basis in system.yaml)",
)
@click.option(
    "--config",
    "-c",
    "config_file",
    type=click.Path(exists=True, path_type=Path),
    help="Path to system configuration (YAML)",
)
@click.option(
    "--log-level",
    "-l",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    help="Set logging level",
)
def series_command(
    snapshot_file: Path,
    basis: Optional[str],
    config_file: Optional[Path],
    log_level: Optional[str],
):
    """
    Print the portfolio value at every event date of a journal snapshot.

    \b
    Examples:
        tradejournal series --file journal.yaml
        tradejournal series -f journal.json --basis accrual
    """
    try:
        config = load_runtime_config(config_file, log_level)
        accounting_basis = resolve_basis(basis, config)
        snapshot = JournalSnapshot.from_file(snapshot_file)
        engine = JournalEngine.create(snapshot, config)

        series = engine.builder.build_series(snapshot.trades, snapshot.capital_changes, accounting_basis)
        if not series:
            console.print("[dim]No dated events in snapshot.[/dim]")
            return

        console.print(create_series_table(series))

    except Exception as e:
        console.print(f"[bold red]✗ Series failed:[/bold red] {e}")
        sys.exit(1)
