"""Money-weighted return command."""

import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from tradejournal.cli.runtime import LOG_LEVELS, JournalEngine, load_runtime_config, resolve_basis
from tradejournal.cli.snapshot import JournalSnapshot
from tradejournal.cli.ui.formatters import format_xirr
from tradejournal.services.accounting import MonthKey

console = Console()


def _parse_month(ctx, param, value: str) -> MonthKey:
    try:
        return MonthKey.parse(value)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e


@click.command("xirr")
@click.option(
    "--file",
    "-f",
    "snapshot_file",
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help="Path to journal snapshot (YAML or JSON)",
)
@click.option("--start", required=True, callback=_parse_month, help='First month ("Jan 2023" or "2023-01")')
@click.option("--end", required=True, callback=_parse_month, help='Last month ("Dec 2023" or "2023-12")')
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
def xirr_command(
    snapshot_file: Path,
    start: MonthKey,
    end: MonthKey,
    basis: Optional[str],
    config_file: Optional[Path],
    log_level: Optional[str],
):
    """
    Print the annualized money-weighted return over a range of months.

    Opening capital of the first month and the final capital of the last
    month bracket the deposits and withdrawals in between.

    \b
    Examples:
        tradejournal xirr -f journal.yaml --start "Jan 2023" --end "Dec 2023"
        tradejournal xirr -f journal.yaml --start 2023-04 --end 2024-03 -b accrual
    """
    try:
        config = load_runtime_config(config_file, log_level)
        accounting_basis = resolve_basis(basis, config)
        snapshot = JournalSnapshot.from_file(snapshot_file)
        engine = JournalEngine.create(snapshot, config)

        flows = engine.ledger.cash_flows_for_period(start, end, snapshot.trades, accounting_basis)
        result = engine.ledger.xirr_solver.solve(flows)

        console.print(f"[cyan]Period:[/cyan]     {start.label} to {end.label} ({accounting_basis.value} basis)")
        console.print(f"[cyan]Cash Flows:[/cyan] {len(flows)}")
        console.print(f"[cyan]XIRR:[/cyan]       {format_xirr(result)}")

    except Exception as e:
        console.print(f"[bold red]✗ XIRR failed:[/bold red] {e}")
        sys.exit(1)
