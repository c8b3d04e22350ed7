"""Performance analytics library for journal portfolios.

1. **Models** (`models.py`): Pydantic data structures
   - TradeOutcome: Realized outcome of a journal trade under a basis
   - DrawdownPeriod: Peak-trough-recovery analysis
   - RiskMetricsSummary: Ratios, drawdown and annualized return
   - CashFlow / XirrResult: Money-weighted return inputs and outputs

2. **Metrics** (`metrics.py`): Pure calculation functions
   - Returns: daily_returns, total_return, annualize
   - Risk: standard_deviation, downside_deviation, max_drawdown, drawdown_periods
   - Risk-adjusted: Sharpe, Sortino, Calmar

3. **Engine** (`engine.py`): RiskMetricsEngine reducing a series to a summary

4. **Calculators** (`calculators.py`): TradeStatisticsCalculator (win rate, streaks)

5. **XIRR** (`xirr.py`): Newton-Raphson solver with bisection fallback

Design Principles:
    - Decimal for money and series values, float for statistics
    - Fail soft: degenerate inputs produce 0 or a documented sentinel
    - Stateless functions; calculators hold only their own running totals
"""

from tradejournal.libraries.performance.calculators import TradeStatisticsCalculator
from tradejournal.libraries.performance.engine import RiskMetricsEngine
from tradejournal.libraries.performance.metrics import (
    CALMAR_SENTINEL,
    EPSILON,
    annualize,
    calmar_ratio,
    daily_returns,
    daily_risk_free_rate,
    downside_deviation,
    drawdown_periods,
    max_drawdown,
    sharpe_ratio,
    sortino_ratio,
    standard_deviation,
    total_return,
)
from tradejournal.libraries.performance.models import (
    CashFlow,
    DrawdownPeriod,
    MetricKind,
    RiskMetricsSummary,
    TradeOutcome,
    TradeStatistics,
    XirrResult,
)
from tradejournal.libraries.performance.xirr import XIRRSolver

__all__ = [
    # Models
    "CashFlow",
    "DrawdownPeriod",
    "MetricKind",
    "RiskMetricsSummary",
    "TradeOutcome",
    "TradeStatistics",
    "XirrResult",
    # Metrics (pure functions)
    "CALMAR_SENTINEL",
    "EPSILON",
    "annualize",
    "calmar_ratio",
    "daily_returns",
    "daily_risk_free_rate",
    "downside_deviation",
    "drawdown_periods",
    "max_drawdown",
    "sharpe_ratio",
    "sortino_ratio",
    "standard_deviation",
    "total_return",
    # Engine and calculators
    "RiskMetricsEngine",
    "TradeStatisticsCalculator",
    "XIRRSolver",
]
