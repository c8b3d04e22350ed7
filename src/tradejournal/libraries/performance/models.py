"""Performance metrics data models.

Pydantic models for structured performance analysis data, produced by the
metric functions, the risk metrics engine and the XIRR solver.
"""

import datetime as dt
from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class MetricKind(str, Enum):
    """How a per-period metric scales when annualized."""

    VOLATILITY = "volatility"  # scales with sqrt(periods)
    RETURN = "return"  # scales linearly


class TradeOutcome(BaseModel):
    """
    Realized outcome of one journal trade under an accounting basis.

    Attributes:
        trade_id: Canonical trade id
        symbol: Ticker symbol
        date: Date the outcome is recognised (entry or last exit)
        pnl: Realized profit/loss in currency units
    """

    trade_id: str
    symbol: str = ""
    date: dt.date
    pnl: Decimal

    model_config = ConfigDict(frozen=True)

    @property
    def is_winner(self) -> bool:
        """Trade was profitable."""
        return self.pnl > Decimal("0")


class TradeStatistics(BaseModel):
    """Snapshot of journal trade statistics (win rate as percentage 0-100)."""

    total_trades: int
    winning_trades: int
    losing_trades: int
    win_rate: Decimal
    net_pl: Decimal
    gross_profit: Decimal
    gross_loss: Decimal
    average_gain: Decimal
    average_loss: Decimal
    profit_factor: Decimal | None  # None when there are no losing trades
    expectancy: Decimal
    largest_win: Decimal
    largest_loss: Decimal
    max_consecutive_wins: int
    max_consecutive_losses: int

    model_config = ConfigDict(frozen=True)


class DrawdownPeriod(BaseModel):
    """
    Record of a drawdown period (peak to trough to recovery).

    Tracks value decline from peak, duration underwater, and recovery time.
    """

    drawdown_id: int
    start_timestamp: datetime  # Peak timestamp
    trough_timestamp: datetime  # Lowest point
    end_timestamp: datetime | None  # Recovery (None if not recovered)
    peak_value: Decimal
    trough_value: Decimal
    depth: Decimal  # Fraction of peak, 0-1
    duration_days: int  # Days from peak to trough
    recovery_days: int | None  # Days from trough to recovery (None if not recovered)
    recovered: bool

    model_config = ConfigDict(frozen=True)

    @property
    def total_days_underwater(self) -> int | None:
        """Total days from peak to recovery."""
        if not self.recovered or self.end_timestamp is None:
            return None
        return (self.end_timestamp - self.start_timestamp).days


class RiskMetricsSummary(BaseModel):
    """
    Risk/return statistics of a portfolio value series.

    Returns, volatilities and drawdowns are fractions (0.25 == 25%).
    """

    periods: int = Field(description="Number of returns (adjacent point pairs)")
    mean_return: float
    annualized_return: float
    annualized_volatility: float
    annualized_downside_deviation: float
    max_drawdown: float
    sharpe_ratio: float
    sortino_ratio: float
    calmar_ratio: float
    total_return: float
    risk_free_rate: float
    drawdown_periods: list[DrawdownPeriod] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class CashFlow(BaseModel):
    """Dated cash flow for money-weighted return (investor sign convention)."""

    date: dt.date
    amount: float

    model_config = ConfigDict(frozen=True)


class XirrResult(BaseModel):
    """
    Outcome of an XIRR solve.

    Attributes:
        rate: Annual rate as a fraction (0.10 == 10%), None when undefined
        defined: False when the flows cannot support a return
        converged: True when the tolerance was met
        iterations: Iterations used by the final method
        method: "newton", "bisection", or "none"
    """

    rate: float | None
    defined: bool
    converged: bool
    iterations: int = 0
    method: str = "none"

    model_config = ConfigDict(frozen=True)

    @property
    def percentage(self) -> float:
        """Rate as a percentage, 0 when undefined."""
        if self.rate is None:
            return 0.0
        return self.rate * 100
