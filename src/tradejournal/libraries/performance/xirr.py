"""XIRR solver for money-weighted annualized return.

Newton-Raphson on the NPV of irregularly dated cash flows, with time in
years of ``day_count`` days measured from the first flow. Flows use the
investor sign convention: money put in is negative, money taken out (and
the final valuation) is positive.

Degenerate inputs (fewer than two flows, or flows of a single sign after
same-day flows are summed) have no defined return; ``xirr()`` reports 0
for them and ``solve()`` marks the result as undefined.

When Newton cannot continue (a near-zero derivative, or an iterate that is
non-finite or at/below -100%), the solver falls back to bisection over a
fixed rate bracket. Hitting the iteration cap returns the last iterate.

Usage:
    >>> solver = XIRRSolver()
    >>> solver.xirr([
    ...     CashFlow(date=date(2023, 1, 1), amount=-100000),
    ...     CashFlow(date=date(2024, 1, 1), amount=110000),
    ... ])
    10.0
"""

import math
from collections import OrderedDict
from typing import Sequence

from tradejournal.libraries.performance.models import CashFlow, XirrResult
from tradejournal.system import LoggerFactory
from tradejournal.system.config import AnalyticsConfig

logger = LoggerFactory.get_logger()

DEFAULT_GUESS = 0.10
DEFAULT_TOLERANCE = 1e-7
DEFAULT_MAX_ITERATIONS = 100
DEFAULT_DAY_COUNT = 365

DERIVATIVE_EPSILON = 1e-12
BISECTION_BRACKET = (-0.9999, 10.0)
BISECTION_MAX_ITERATIONS = 200

_UNDEFINED = XirrResult(rate=None, defined=False, converged=False)


class _NewtonBreakdown(Exception):
    """Newton step cannot continue; carries the last usable iterate."""

    def __init__(self, last_rate: float | None, iterations: int) -> None:
        super().__init__("newton breakdown")
        self.last_rate = last_rate
        self.iterations = iterations


class XIRRSolver:
    """
    Money-weighted return solver.

    Args:
        guess: Initial rate for Newton-Raphson
        tolerance: Convergence threshold on |NPV| and on the iterate delta
        max_iterations: Hard cap on Newton iterations
        day_count: Days per year for time fractions
    """

    def __init__(
        self,
        guess: float = DEFAULT_GUESS,
        tolerance: float = DEFAULT_TOLERANCE,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        day_count: int = DEFAULT_DAY_COUNT,
    ) -> None:
        self.guess = guess
        self.tolerance = tolerance
        self.max_iterations = max_iterations
        self.day_count = day_count

    @classmethod
    def from_config(cls, analytics: AnalyticsConfig) -> "XIRRSolver":
        """Build a solver from an AnalyticsConfig section."""
        return cls(
            guess=analytics.xirr_guess,
            tolerance=analytics.xirr_tolerance,
            max_iterations=analytics.xirr_max_iterations,
            day_count=analytics.xirr_day_count,
        )

    def xirr(self, flows: Sequence[CashFlow]) -> float:
        """
        Annualized money-weighted return as a percentage.

        Args:
            flows: Dated cash flows in any order

        Returns:
            Rate * 100, or 0 when the return is undefined
        """
        return self.solve(flows).percentage

    def solve(self, flows: Sequence[CashFlow]) -> XirrResult:
        """
        Solve for the rate at which the NPV of the flows is zero.

        Args:
            flows: Dated cash flows in any order

        Returns:
            XirrResult distinguishing undefined from computed rates
        """
        terms = self._terms(flows)
        if len(terms) < 2:
            return _UNDEFINED
        if all(amount > 0 for _, amount in terms) or all(amount < 0 for _, amount in terms):
            return _UNDEFINED

        try:
            result = self._newton(terms)
        except _NewtonBreakdown as breakdown:
            logger.debug("xirr.newton_breakdown", iterations=breakdown.iterations)
            bisected = self._bisect(terms)
            if bisected is not None:
                result = bisected
            else:
                rate = breakdown.last_rate if breakdown.last_rate is not None else 0.0
                result = XirrResult(
                    rate=rate, defined=True, converged=False, iterations=breakdown.iterations, method="newton"
                )

        if not result.converged:
            logger.warning("xirr.not_converged", iterations=result.iterations, rate_pct=result.percentage)
        return result

    def _terms(self, flows: Sequence[CashFlow]) -> list[tuple[float, float]]:
        """Same-day flows summed; (years from first flow, amount), zero amounts dropped."""
        by_date: OrderedDict = OrderedDict()
        for flow in sorted(flows, key=lambda f: f.date):
            by_date[flow.date] = by_date.get(flow.date, 0.0) + float(flow.amount)

        dated = [(d, amount) for d, amount in by_date.items() if amount != 0]
        if not dated:
            return []
        origin = dated[0][0]
        return [((d - origin).days / self.day_count, amount) for d, amount in dated]

    @staticmethod
    def npv(rate: float, terms: Sequence[tuple[float, float]]) -> float:
        """Net present value of (years, amount) terms at rate."""
        return sum(amount / (1 + rate) ** years for years, amount in terms)

    @staticmethod
    def npv_derivative(rate: float, terms: Sequence[tuple[float, float]]) -> float:
        """d(NPV)/d(rate)."""
        return sum(-years * amount / (1 + rate) ** (years + 1) for years, amount in terms)

    def _newton(self, terms: list[tuple[float, float]]) -> XirrResult:
        rate = self.guess
        for iteration in range(1, self.max_iterations + 1):
            try:
                value = self.npv(rate, terms)
                derivative = self.npv_derivative(rate, terms)
            except (OverflowError, ZeroDivisionError):
                raise _NewtonBreakdown(None, iteration) from None

            if abs(value) < self.tolerance:
                return XirrResult(rate=rate, defined=True, converged=True, iterations=iteration, method="newton")
            if abs(derivative) < DERIVATIVE_EPSILON:
                raise _NewtonBreakdown(rate, iteration)

            next_rate = rate - value / derivative
            if not math.isfinite(next_rate) or next_rate <= -1:
                raise _NewtonBreakdown(rate, iteration)
            if abs(next_rate - rate) < self.tolerance:
                return XirrResult(rate=next_rate, defined=True, converged=True, iterations=iteration, method="newton")
            rate = next_rate

        return XirrResult(rate=rate, defined=True, converged=False, iterations=self.max_iterations, method="newton")

    def _bisect(self, terms: list[tuple[float, float]]) -> XirrResult | None:
        """Bisection over BISECTION_BRACKET; None when NPV does not change sign."""
        low, high = BISECTION_BRACKET
        try:
            f_low = self.npv(low, terms)
            f_high = self.npv(high, terms)
        except OverflowError:
            return None
        if f_low == 0:
            return XirrResult(rate=low, defined=True, converged=True, method="bisection")
        if f_high == 0:
            return XirrResult(rate=high, defined=True, converged=True, method="bisection")
        if (f_low > 0) == (f_high > 0):
            return None

        mid = (low + high) / 2
        for iteration in range(1, BISECTION_MAX_ITERATIONS + 1):
            mid = (low + high) / 2
            f_mid = self.npv(mid, terms)
            if abs(f_mid) < self.tolerance or (high - low) / 2 < self.tolerance:
                return XirrResult(rate=mid, defined=True, converged=True, iterations=iteration, method="bisection")
            if (f_mid > 0) == (f_low > 0):
                low, f_low = mid, f_mid
            else:
                high = mid

        return XirrResult(rate=mid, defined=True, converged=False, iterations=BISECTION_MAX_ITERATIONS, method="bisection")
