"""Portfolio report command."""

import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from tradejournal.cli.runtime import LOG_LEVELS, JournalEngine, load_runtime_config, resolve_basis
from tradejournal.cli.snapshot import JournalSnapshot
from tradejournal.cli.ui.formatters import (
    create_monthly_table,
    create_returns_table,
    create_risk_table,
    create_statistics_table,
)
from tradejournal.libraries.performance import TradeStatisticsCalculator

console = Console()


@click.command("report")
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
    help="Set logging level (DEBUG shows per-computation details)",
)
def report_command(
    snapshot_file: Path,
    basis: Optional[str],
    config_file: Optional[Path],
    log_level: Optional[str],
):
    """
    Print the portfolio report for a journal snapshot.

    Shows the monthly capital table, risk metrics of the value series,
    trade statistics and rolling money-weighted returns.

    \b
    Examples:
        # Cash basis with config defaults
        tradejournal report --file journal.yaml

        # Accrual basis
        tradejournal report -f journal.yaml --basis accrual

        # Debug mode (show engine logs)
        tradejournal report -f journal.yaml -l debug
    """
    try:
        console.rule("[bold blue]Trade Journal Report[/bold blue]")
        console.print()

        config = load_runtime_config(config_file, log_level)
        accounting_basis = resolve_basis(basis, config)
        snapshot = JournalSnapshot.from_file(snapshot_file)
        engine = JournalEngine.create(snapshot, config)
        trades = snapshot.trades

        console.print(f"  Snapshot: [yellow]{snapshot_file}[/yellow]")
        console.print(f"  Basis: [magenta]{accounting_basis.value}[/magenta]")
        console.print(
            f"  Trades: [yellow]{len(trades)}[/yellow]  Capital changes: [yellow]{len(snapshot.capital_changes)}[/yellow]"
        )
        console.print()

        monthly = engine.builder.monthly_from_ledger(engine.ledger, trades, accounting_basis)
        if not monthly:
            console.print("[dim]No journal data to report.[/dim]")
            return

        series = engine.builder.build_series(trades, snapshot.capital_changes, accounting_basis)
        summary = engine.metrics.summarize(series)
        stats = TradeStatisticsCalculator.from_outcomes(
            engine.resolver.trade_outcomes(trades, accounting_basis)
        ).statistics()

        as_of = monthly[-1].key
        returns = engine.ledger.rolling_returns(as_of, trades, accounting_basis)

        console.print(create_monthly_table(monthly))
        console.print()
        console.print(create_risk_table(summary))
        console.print()
        console.print(create_statistics_table(stats))
        console.print()
        console.print(create_returns_table(returns, as_of.label))
        console.print()
        console.print(
            f"[cyan]Latest Portfolio Size:[/cyan] {engine.ledger.latest_portfolio_size(trades, accounting_basis):,.2f}"
        )
        console.print()
        console.rule()

    except Exception as e:
        console.print()
        console.print(f"[bold red]✗ Report failed:[/bold red] {e}")
        sys.exit(1)
