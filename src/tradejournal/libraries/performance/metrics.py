"""Risk and return metric functions.

Pure functions for calculating risk statistics from portfolio value series
and return series. All functions are stateless and fail soft: empty or
degenerate inputs produce 0 (or a documented sentinel) instead of raising.

Series may be given either as an ordered mapping ``{datetime: value}`` (as
produced by PortfolioTimeSeriesBuilder) or as a sequence of
``(datetime, value)`` tuples. Returns, drawdowns and volatilities are
fractions (0.25 == 25%).

Philosophy:
- Pure functions: same inputs always produce same outputs
- No side effects: don't modify inputs or global state
- Epsilon-guarded denominators: ratios degrade to 0, never to inf/nan

Usage:
    >>> from tradejournal.libraries.performance import metrics
    >>> series = {datetime(2023, 1, d): Decimal(v) for d, v in [(1, 100), (2, 120), (3, 90), (4, 130)]}
    >>> metrics.max_drawdown(series)
    Decimal('0.25')
    >>> returns = metrics.daily_returns(series)
    >>> metrics.annualize(metrics.standard_deviation(returns), 252, MetricKind.VOLATILITY)
"""

import math
from datetime import datetime
from decimal import Decimal
from typing import Mapping, Sequence, Union

from tradejournal.libraries.performance.models import DrawdownPeriod, MetricKind

EPSILON = 1e-9
CALMAR_SENTINEL = 999.0
TRADING_DAYS_PER_YEAR = 252

SeriesInput = Union[Mapping[datetime, Decimal], Sequence[tuple[datetime, Decimal]]]
Number = Union[Decimal, float]


def series_points(series: SeriesInput) -> list[tuple[datetime, Decimal]]:
    """Normalize a series to an ordered list of (timestamp, value) tuples."""
    if isinstance(series, Mapping):
        return list(series.items())
    return list(series)


def daily_returns(series: SeriesInput) -> list[Decimal]:
    """
    Simple return for each adjacent pair of points.

    If the prior value is exactly 0 the return for that interval is 0.

    Args:
        series: Value series in date order

    Returns:
        One return per adjacent pair (len(series) - 1 values)

    Example:
        >>> daily_returns([(t1, Decimal("100")), (t2, Decimal("110")), (t3, Decimal("99"))])
        [Decimal('0.1'), Decimal('-0.1')]
    """
    values = [value for _, value in series_points(series)]
    returns: list[Decimal] = []
    for prev, curr in zip(values, values[1:]):
        if prev == 0:
            returns.append(Decimal("0"))
        else:
            returns.append((curr - prev) / prev)
    return returns


def mean(values: Sequence[Number]) -> float:
    """Arithmetic mean (0 for empty input)."""
    if not values:
        return 0.0
    return sum(float(v) for v in values) / len(values)


def standard_deviation(returns: Sequence[Number]) -> float:
    """
    Sample (N-1) standard deviation.

    Args:
        returns: Return series

    Returns:
        Standard deviation, 0 with fewer than 2 points
    """
    if len(returns) < 2:
        return 0.0

    values = [float(r) for r in returns]
    mean_return = sum(values) / len(values)
    variance = sum((r - mean_return) ** 2 for r in values) / (len(values) - 1)
    return math.sqrt(variance)


def downside_deviation(returns: Sequence[Number], target: float = 0.0) -> float:
    """
    Population root-mean-square of shortfalls below target.

    Returns at or above the target contribute zero; the denominator is the
    full number of returns.

    Args:
        returns: Return series
        target: Minimum acceptable return per period

    Returns:
        Downside deviation, 0 for empty input
    """
    if not returns:
        return 0.0

    shortfalls = [min(float(r) - target, 0.0) for r in returns]
    return math.sqrt(sum(s**2 for s in shortfalls) / len(shortfalls))


def max_drawdown(series: SeriesInput) -> Decimal:
    """
    Maximum peak-to-trough decline as a fraction of the peak.

    The drawdown at a point is (peak - value) / peak, evaluated only while
    the running peak is positive.

    Args:
        series: Value series in date order

    Returns:
        Maximum drawdown in [0, 1] for non-negative values

    Example:
        >>> max_drawdown([(t1, Decimal("100")), (t2, Decimal("120")), (t3, Decimal("90")), (t4, Decimal("130"))])
        Decimal('0.25')
    """
    points = series_points(series)
    if len(points) < 2:
        return Decimal("0")

    max_dd = Decimal("0")
    peak = points[0][1]

    for _, value in points:
        if value > peak:
            peak = value
        elif peak > 0:
            dd = (peak - value) / peak
            if dd > max_dd:
                max_dd = dd

    return max_dd


def drawdown_periods(series: SeriesInput) -> list[DrawdownPeriod]:
    """
    Identify all drawdown periods in a value series.

    A drawdown period starts at a peak, reaches a trough, and ends when the
    value recovers to the peak level (or remains unrecovered).

    Args:
        series: Value series in date order

    Returns:
        List of DrawdownPeriod objects
    """
    points = series_points(series)
    if len(points) < 2:
        return []

    periods: list[DrawdownPeriod] = []
    peak_timestamp, peak_value = points[0]
    trough_timestamp, trough_value = points[0]
    in_drawdown = False

    def close_period(end_timestamp: datetime | None) -> None:
        depth = (peak_value - trough_value) / peak_value if peak_value > 0 else Decimal("0")
        periods.append(
            DrawdownPeriod(
                drawdown_id=len(periods),
                start_timestamp=peak_timestamp,
                trough_timestamp=trough_timestamp,
                end_timestamp=end_timestamp,
                peak_value=peak_value,
                trough_value=trough_value,
                depth=depth,
                duration_days=(trough_timestamp - peak_timestamp).days,
                recovery_days=(end_timestamp - trough_timestamp).days if end_timestamp else None,
                recovered=end_timestamp is not None,
            )
        )

    for timestamp, value in points[1:]:
        if value >= peak_value:
            if in_drawdown:
                close_period(timestamp)
                in_drawdown = False
            peak_timestamp, peak_value = timestamp, value
            trough_timestamp, trough_value = timestamp, value
        elif value < trough_value:
            trough_timestamp, trough_value = timestamp, value
            in_drawdown = True

    if in_drawdown:
        close_period(None)

    return periods


def total_return(series: SeriesInput) -> Decimal:
    """Last value over first value minus one (0 when the first value is 0)."""
    points = series_points(series)
    if len(points) < 2 or points[0][1] == 0:
        return Decimal("0")
    return points[-1][1] / points[0][1] - Decimal("1")


def annualize(metric: Number, periods: int = TRADING_DAYS_PER_YEAR, kind: MetricKind = MetricKind.VOLATILITY) -> float:
    """
    Scale a per-period metric to annual.

    Args:
        metric: Per-period value (e.g. daily standard deviation or mean return)
        periods: Periods per year
        kind: VOLATILITY scales by sqrt(periods); RETURN scales linearly

    Returns:
        Annualized metric
    """
    if kind == MetricKind.RETURN:
        return float(metric) * periods
    return float(metric) * math.sqrt(periods)


def daily_risk_free_rate(annual_rate: float, periods: int = TRADING_DAYS_PER_YEAR) -> float:
    """Per-period rate compounding to annual_rate over one year."""
    if periods <= 0:
        return 0.0
    return (1 + annual_rate) ** (1 / periods) - 1


def sharpe_ratio(annualized_return: float, annualized_volatility: float, risk_free_rate: float = 0.0) -> float:
    """
    Sharpe = (annualized return - risk free) / annualized volatility.

    Returns 0 when the volatility is effectively zero.
    """
    if abs(annualized_volatility) < EPSILON:
        return 0.0
    return (annualized_return - risk_free_rate) / annualized_volatility


def sortino_ratio(annualized_return: float, annualized_downside_deviation: float, risk_free_rate: float = 0.0) -> float:
    """
    Sortino = (annualized return - risk free) / annualized downside deviation.

    Returns 0 when the downside deviation is effectively zero.
    """
    if abs(annualized_downside_deviation) < EPSILON:
        return 0.0
    return (annualized_return - risk_free_rate) / annualized_downside_deviation


def calmar_ratio(annualized_return: float, max_drawdown_fraction: Number) -> float:
    """
    Calmar = annualized return / max drawdown.

    When the drawdown is effectively zero, returns CALMAR_SENTINEL for a
    positive return and 0 otherwise.
    """
    drawdown = float(max_drawdown_fraction)
    if abs(drawdown) < EPSILON:
        return CALMAR_SENTINEL if annualized_return > 0 else 0.0
    return annualized_return / drawdown
