"""Rich table formatters for CLI output."""

from datetime import datetime
from decimal import Decimal
from typing import Mapping, Sequence

from rich.table import Table

from tradejournal.libraries.performance.models import RiskMetricsSummary, TradeStatistics, XirrResult
from tradejournal.services.accounting.models import MonthlyPortfolio


def _money(value: Decimal) -> str:
    return f"{value:,.2f}"


def _signed(value: Decimal) -> str:
    """Money with a colour for the sign."""
    if value > 0:
        return f"[green]+{value:,.2f}[/green]"
    if value < 0:
        return f"[red]{value:,.2f}[/red]"
    return "0.00"


def _pct(value: float) -> str:
    return f"{value:.2f}%"


def create_monthly_table(rows: Sequence[MonthlyPortfolio], title: str = "Monthly Portfolio") -> Table:
    """
    Create a Rich table of monthly capital rows.

    Args:
        rows: Monthly rows (opening row first, if any)
        title: Table title

    Returns:
        Populated Rich Table
    """
    table = Table(title=title)
    table.add_column("Month", style="cyan", no_wrap=True)
    table.add_column("Starting", justify="right")
    table.add_column("Deposits", style="green", justify="right")
    table.add_column("Withdrawals", style="red", justify="right")
    table.add_column("P&L", justify="right")
    table.add_column("P&L %", justify="right")
    table.add_column("Final", style="yellow", justify="right")

    for row in rows:
        if row.is_opening:
            table.add_row(
                f"{row.month} {row.year} (opening)",
                _money(row.starting_capital),
                "-",
                "-",
                "-",
                "-",
                _money(row.final_capital),
                style="dim",
            )
            continue
        table.add_row(
            f"{row.month} {row.year}",
            _money(row.starting_capital),
            _money(row.deposits),
            _money(row.withdrawals),
            _signed(row.pl),
            f"{row.pl_percentage:.2f}%",
            _money(row.final_capital),
        )
    return table


def create_risk_table(summary: RiskMetricsSummary) -> Table:
    """
    Create a Rich table for the risk metrics summary.

    Args:
        summary: Summary from RiskMetricsEngine

    Returns:
        Populated Rich Table
    """
    table = Table(title="Risk Metrics")
    table.add_column("Metric", style="cyan", no_wrap=True)
    table.add_column("Value", justify="right")

    table.add_row("Periods", str(summary.periods))
    table.add_row("Total Return", _pct(summary.total_return * 100))
    table.add_row("Annualized Return", _pct(summary.annualized_return * 100))
    table.add_row("Annualized Volatility", _pct(summary.annualized_volatility * 100))
    table.add_row("Downside Deviation", _pct(summary.annualized_downside_deviation * 100))
    table.add_row("Max Drawdown", _pct(summary.max_drawdown * 100))
    table.add_row("Sharpe Ratio", f"{summary.sharpe_ratio:.2f}")
    table.add_row("Sortino Ratio", f"{summary.sortino_ratio:.2f}")
    table.add_row("Calmar Ratio", f"{summary.calmar_ratio:.2f}")
    table.add_row("Risk-free Rate", _pct(summary.risk_free_rate * 100), style="dim")
    return table


def create_statistics_table(stats: TradeStatistics) -> Table:
    """Create a Rich table for trade statistics."""
    table = Table(title="Trade Statistics")
    table.add_column("Statistic", style="cyan", no_wrap=True)
    table.add_column("Value", justify="right")

    table.add_row("Trades", str(stats.total_trades))
    table.add_row("Winners / Losers", f"{stats.winning_trades} / {stats.losing_trades}")
    table.add_row("Win Rate", f"{stats.win_rate}%")
    table.add_row("Net P&L", _signed(stats.net_pl))
    table.add_row("Average Gain", _money(stats.average_gain))
    table.add_row("Average Loss", _money(stats.average_loss))
    table.add_row("Profit Factor", f"{stats.profit_factor:.2f}" if stats.profit_factor is not None else "-")
    table.add_row("Expectancy", _money(stats.expectancy))
    table.add_row("Largest Win", _money(stats.largest_win))
    table.add_row("Largest Loss", _money(stats.largest_loss))
    table.add_row("Max Win Streak", str(stats.max_consecutive_wins))
    table.add_row("Max Loss Streak", str(stats.max_consecutive_losses))
    return table


def create_returns_table(returns: Mapping[str, float], as_of: str) -> Table:
    """
    Create a Rich table of rolling money-weighted returns.

    Args:
        returns: Window label -> annualized percentage
        as_of: Label of the window end month
    """
    table = Table(title=f"Money-Weighted Returns (as of {as_of})")
    for label in returns:
        table.add_column(label, justify="right")
    table.add_row(*(_pct(value) for value in returns.values()))
    return table


def create_series_table(series: Mapping[datetime, Decimal]) -> Table:
    """Create a Rich table of portfolio value points."""
    table = Table(title=f"Portfolio Value ({len(series)} points)", min_width=40)
    table.add_column("Date", style="cyan", no_wrap=True)
    table.add_column("Value", style="yellow", justify="right")
    for timestamp, value in series.items():
        table.add_row(timestamp.date().isoformat(), _money(value))
    return table


def format_xirr(result: XirrResult) -> str:
    """One-line rich markup for a solver result."""
    if not result.defined:
        return "[yellow]undefined[/yellow] (insufficient cash flows)"
    status = "converged" if result.converged else "not converged"
    return f"[bold]{result.percentage:.2f}%[/bold] [dim]({result.method}, {status}, {result.iterations} iterations)[/dim]"
