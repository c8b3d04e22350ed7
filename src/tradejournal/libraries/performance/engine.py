"""Risk metrics engine.

Reduces a portfolio value series to a RiskMetricsSummary: annualized
return and volatility, downside deviation against the per-period
risk-free rate, maximum drawdown and the Sharpe, Sortino and Calmar
ratios.
"""

import math

from tradejournal.libraries.performance import metrics
from tradejournal.libraries.performance.models import MetricKind, RiskMetricsSummary
from tradejournal.system import LoggerFactory

logger = LoggerFactory.get_logger()


def _finite(value: float) -> float:
    return value if math.isfinite(value) else 0.0


class RiskMetricsEngine:
    """
    Computes risk statistics from a value series.

    Args:
        risk_free_rate: Annual risk-free rate as a fraction (0.05 == 5%)
        periods_per_year: Return periods per year used for annualization

    Example:
        >>> engine = RiskMetricsEngine(risk_free_rate=0.05)
        >>> summary = engine.summarize(series)
        >>> summary.max_drawdown, summary.sharpe_ratio
    """

    def __init__(self, risk_free_rate: float = 0.05, periods_per_year: int = metrics.TRADING_DAYS_PER_YEAR) -> None:
        self.risk_free_rate = risk_free_rate
        self.periods_per_year = periods_per_year

    def summarize(self, series: metrics.SeriesInput) -> RiskMetricsSummary:
        """
        Compute the full risk summary of a value series.

        Args:
            series: Value series in date order

        Returns:
            RiskMetricsSummary (all zeros for fewer than two points)
        """
        returns = metrics.daily_returns(series)
        periods = self.periods_per_year

        mean_return = _finite(metrics.mean(returns))
        annualized_return = _finite(metrics.annualize(mean_return, periods, MetricKind.RETURN))
        annualized_volatility = _finite(
            metrics.annualize(metrics.standard_deviation(returns), periods, MetricKind.VOLATILITY)
        )
        target = metrics.daily_risk_free_rate(self.risk_free_rate, periods)
        annualized_downside = _finite(
            metrics.annualize(metrics.downside_deviation(returns, target), periods, MetricKind.VOLATILITY)
        )
        max_drawdown = float(metrics.max_drawdown(series))

        summary = RiskMetricsSummary(
            periods=len(returns),
            mean_return=mean_return,
            annualized_return=annualized_return,
            annualized_volatility=annualized_volatility,
            annualized_downside_deviation=annualized_downside,
            max_drawdown=max_drawdown,
            sharpe_ratio=_finite(metrics.sharpe_ratio(annualized_return, annualized_volatility, self.risk_free_rate)),
            sortino_ratio=_finite(metrics.sortino_ratio(annualized_return, annualized_downside, self.risk_free_rate)),
            calmar_ratio=_finite(metrics.calmar_ratio(annualized_return, max_drawdown)),
            total_return=_finite(float(metrics.total_return(series))),
            risk_free_rate=self.risk_free_rate,
            drawdown_periods=metrics.drawdown_periods(series),
        )

        logger.debug(
            "metrics.summary_computed",
            points=len(metrics.series_points(series)),
            sharpe=round(summary.sharpe_ratio, 4),
            max_drawdown=round(summary.max_drawdown, 4),
        )
        return summary
