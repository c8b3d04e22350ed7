"""Capital ledger: starting capital per month.

Resolves the starting capital of any (month, year) from capital anchors and
the cascade of prior months. Resolution order, each step terminal:

1. Explicit monthly override for the month
2. For January, the yearly starting capital of that year
3. Final capital of the preceding month
4. The default starting capital (no data at or before the month)

final_capital = starting_capital + deposits - withdrawals + realized P&L

Resolution is a single forward sweep over the calendar months from the
earliest known data point, carrying the running capital value. The ledger
is an immutable snapshot; editing operations return a new ledger, and every
query recomputes from the snapshot.

Usage:
    >>> ledger = CapitalLedger(
    ...     capital_changes=changes,
    ...     yearly_capitals=[YearlyStartingCapital(year=2023, capital=Decimal("100000"))],
    ... )
    >>> ledger.starting_capital("Mar", 2023, trades, AccountingBasis.CASH)
    Decimal('104250')
"""

from decimal import Decimal
from typing import Any, Iterable, Mapping, Sequence

from tradejournal.libraries.performance.models import CashFlow
from tradejournal.libraries.performance.xirr import XIRRSolver
from tradejournal.services.accounting.models import (
    AccountingBasis,
    CapitalChange,
    MonthKey,
    MonthlyCapitalOverride,
    MonthlyPortfolio,
    Trade,
    YearlyStartingCapital,
)
from tradejournal.services.accounting.resolver import TradeAccountingResolver
from tradejournal.system import LoggerFactory

logger = LoggerFactory.get_logger()

DEFAULT_STARTING_CAPITAL = Decimal("100000")

ROLLING_WINDOWS: dict[str, int] = {"1M": 1, "3M": 3, "6M": 6, "12M": 12}

_ZERO = Decimal("0")


class _MonthActivity:
    """Deposits, withdrawals and realized P&L bucketed into one month."""

    __slots__ = ("deposits", "withdrawals", "pl")

    def __init__(self) -> None:
        self.deposits = _ZERO
        self.withdrawals = _ZERO
        self.pl = _ZERO


class CapitalLedger:
    """
    Immutable snapshot of capital changes and capital anchors.

    Args:
        capital_changes: Deposits and withdrawals
        yearly_capitals: Yearly starting capitals (models or {year: capital})
        monthly_overrides: Monthly starting capital overrides
        default_capital: Capital used where no anchor or history exists
        resolver: Trade accounting resolver (shared, stateless)
        xirr_solver: Solver for money-weighted returns
    """

    def __init__(
        self,
        capital_changes: Iterable[CapitalChange] = (),
        yearly_capitals: Iterable[YearlyStartingCapital] | Mapping[int, Decimal] = (),
        monthly_overrides: Iterable[MonthlyCapitalOverride] = (),
        default_capital: Decimal = DEFAULT_STARTING_CAPITAL,
        resolver: TradeAccountingResolver | None = None,
        xirr_solver: XIRRSolver | None = None,
    ) -> None:
        self._changes: tuple[CapitalChange, ...] = tuple(capital_changes)

        if isinstance(yearly_capitals, Mapping):
            yearly_capitals = [
                YearlyStartingCapital(year=year, capital=capital) for year, capital in yearly_capitals.items()
            ]
        self._yearly: tuple[YearlyStartingCapital, ...] = tuple(yearly_capitals)
        self._overrides: tuple[MonthlyCapitalOverride, ...] = tuple(monthly_overrides)

        # Later entries win for duplicate keys
        self._yearly_by_year: dict[int, Decimal] = {y.year: y.capital for y in self._yearly}
        self._override_by_month: dict[MonthKey, Decimal] = {o.key: o.capital for o in self._overrides}

        self.default_capital = Decimal(default_capital)
        self.resolver = resolver or TradeAccountingResolver()
        self.xirr_solver = xirr_solver or XIRRSolver()

    # ==================== Snapshot ====================

    @property
    def capital_changes(self) -> tuple[CapitalChange, ...]:
        return self._changes

    @property
    def yearly_capitals(self) -> tuple[YearlyStartingCapital, ...]:
        return self._yearly

    @property
    def monthly_overrides(self) -> tuple[MonthlyCapitalOverride, ...]:
        return self._overrides

    def _replace(self, **kwargs: Any) -> "CapitalLedger":
        params: dict[str, Any] = {
            "capital_changes": self._changes,
            "yearly_capitals": self._yearly,
            "monthly_overrides": self._overrides,
            "default_capital": self.default_capital,
            "resolver": self.resolver,
            "xirr_solver": self.xirr_solver,
        }
        params.update(kwargs)
        return CapitalLedger(**params)

    # ==================== Editing ====================

    def add_capital_change(self, change: CapitalChange) -> "CapitalLedger":
        """
        Return a new ledger with the capital change appended.

        Raises:
            ValueError: If a change with the same id already exists
        """
        if any(c.change_id == change.change_id for c in self._changes):
            raise ValueError(f"Capital change already exists: {change.change_id}")
        logger.debug("ledger.capital_change_added", change_id=change.change_id)
        return self._replace(capital_changes=self._changes + (change,))

    def update_capital_change(self, change_id: str, **updates: Any) -> "CapitalLedger":
        """
        Return a new ledger with one capital change edited.

        Args:
            change_id: Id of the change to edit
            **updates: Field values to replace (date, amount, type, description)

        Raises:
            KeyError: If no change has the id
        """
        self._index_of(change_id)
        updated = tuple(
            CapitalChange.model_validate({**c.model_dump(), **updates, "change_id": c.change_id})
            if c.change_id == change_id
            else c
            for c in self._changes
        )
        logger.debug("ledger.capital_change_updated", change_id=change_id)
        return self._replace(capital_changes=updated)

    def delete_capital_change(self, change_id: str) -> "CapitalLedger":
        """
        Return a new ledger without the capital change.

        Raises:
            KeyError: If no change has the id
        """
        index = self._index_of(change_id)
        logger.debug("ledger.capital_change_deleted", change_id=change_id)
        return self._replace(capital_changes=self._changes[:index] + self._changes[index + 1 :])

    def with_yearly_capital(self, year: int, capital: Decimal) -> "CapitalLedger":
        """Return a new ledger with the yearly starting capital set."""
        kept = tuple(y for y in self._yearly if y.year != year)
        return self._replace(yearly_capitals=kept + (YearlyStartingCapital(year=year, capital=capital),))

    def with_monthly_override(self, month: str | int, year: int, capital: Decimal) -> "CapitalLedger":
        """Return a new ledger with the monthly override set."""
        key = MonthKey.of(month, year)
        kept = tuple(o for o in self._overrides if o.key != key)
        return self._replace(
            monthly_overrides=kept + (MonthlyCapitalOverride(month=key.short_name, year=year, capital=capital),)
        )

    def without_monthly_override(self, month: str | int, year: int) -> "CapitalLedger":
        key = MonthKey.of(month, year)
        return self._replace(monthly_overrides=tuple(o for o in self._overrides if o.key != key))

    def _index_of(self, change_id: str) -> int:
        for index, change in enumerate(self._changes):
            if change.change_id == change_id:
                return index
        raise KeyError(f"Unknown capital change: {change_id}")

    # ==================== Capital flows ====================

    def deposits(self, month: str | int, year: int) -> Decimal:
        """Sum of deposits dated in the month."""
        key = MonthKey.of(month, year)
        return sum(
            (c.signed_amount for c in self._changes if key.contains(c.date) and c.signed_amount > 0),
            start=_ZERO,
        )

    def withdrawals(self, month: str | int, year: int) -> Decimal:
        """Sum of withdrawals dated in the month (as positive number)."""
        key = MonthKey.of(month, year)
        return sum(
            (-c.signed_amount for c in self._changes if key.contains(c.date) and c.signed_amount < 0),
            start=_ZERO,
        )

    def net_capital_change(self, month: str | int, year: int) -> Decimal:
        return self.deposits(month, year) - self.withdrawals(month, year)

    # ==================== Sweep ====================

    def _activity(self, trades: Sequence[Trade], basis: AccountingBasis) -> dict[MonthKey, _MonthActivity]:
        """Bucket capital flows and realized P&L by month."""
        activity: dict[MonthKey, _MonthActivity] = {}

        def bucket(key: MonthKey) -> _MonthActivity:
            if key not in activity:
                activity[key] = _MonthActivity()
            return activity[key]

        for change in self._changes:
            amount = change.signed_amount
            entry = bucket(MonthKey.from_date(change.date))
            if amount >= 0:
                entry.deposits += amount
            else:
                entry.withdrawals += -amount

        if basis == AccountingBasis.ACCRUAL:
            for trade in self.resolver.distinct_trades(trades):
                entry = bucket(MonthKey.from_date(self.resolver.effective_date(trade, basis)))
                entry.pl += self.resolver.realized_pl(trade, basis)
        else:
            for trade in self.resolver.distinct_trades(trades):
                # Entry months count as activity even before any exit
                bucket(MonthKey.from_date(trade.date))
            for leg in self.resolver.distinct_exit_events(trades):
                bucket(MonthKey.from_date(leg.date)).pl += self.resolver.leg_pl(leg)
            for trade in self.resolver.unlegged_trades(trades):
                entry = bucket(MonthKey.from_date(self.resolver.effective_date(trade, basis)))
                entry.pl += self.resolver.realized_pl(trade, basis)

        return activity

    def _start_of(self, key: MonthKey, carried: Decimal | None) -> Decimal:
        override = self._override_by_month.get(key)
        if override is not None:
            return override
        if key.month == 1 and key.year in self._yearly_by_year:
            return self._yearly_by_year[key.year]
        if carried is not None:
            return carried
        return self.default_capital

    def _sweep(
        self,
        trades: Sequence[Trade],
        basis: AccountingBasis,
        until: MonthKey | None = None,
    ) -> list[MonthlyPortfolio]:
        """
        Forward sweep from the earliest data month.

        Args:
            trades: Trade snapshot
            basis: Accounting basis
            until: Last month to emit (latest data month if None)

        Returns:
            One MonthlyPortfolio per calendar month, in order
        """
        activity = self._activity(trades, basis)
        anchors = set(activity)
        anchors.update(MonthKey(year, 1) for year in self._yearly_by_year)
        anchors.update(self._override_by_month)
        if not anchors:
            return []

        month = min(anchors)
        end = max(anchors) if until is None else until

        rows: list[MonthlyPortfolio] = []
        carried: Decimal | None = None
        empty = _MonthActivity()
        while month <= end:
            starting = self._start_of(month, carried)
            bucket = activity.get(month, empty)
            final = starting + bucket.deposits - bucket.withdrawals + bucket.pl
            rows.append(
                MonthlyPortfolio(
                    month=month.short_name,
                    year=month.year,
                    starting_capital=starting,
                    deposits=bucket.deposits,
                    withdrawals=bucket.withdrawals,
                    pl=bucket.pl,
                    final_capital=final,
                )
            )
            carried = final
            month = month.next()

        logger.debug("ledger.sweep_completed", basis=basis.value, months=len(rows))
        return rows

    def monthly_portfolio(
        self,
        month: str | int,
        year: int,
        trades: Sequence[Trade] = (),
        basis: AccountingBasis = AccountingBasis.CASH,
    ) -> MonthlyPortfolio:
        """
        Capital row of one month.

        Months before any data resolve to the default capital with no flows.
        """
        key = MonthKey.of(month, year)
        rows = self._sweep(trades, basis, until=key)
        if rows and rows[-1].key == key:
            return rows[-1]
        return MonthlyPortfolio(
            month=key.short_name,
            year=key.year,
            starting_capital=self.default_capital,
            final_capital=self.default_capital,
        )

    def starting_capital(
        self,
        month: str | int,
        year: int,
        trades: Sequence[Trade] = (),
        basis: AccountingBasis = AccountingBasis.CASH,
    ) -> Decimal:
        """
        Starting capital of a month.

        Args:
            month: Month name ("Mar", "March") or number
            year: Calendar year
            trades: Trade snapshot (drives the P&L cascade)
            basis: Accounting basis

        Returns:
            Resolved starting capital
        """
        return self.monthly_portfolio(month, year, trades, basis).starting_capital

    def final_capital(
        self,
        month: str | int,
        year: int,
        trades: Sequence[Trade] = (),
        basis: AccountingBasis = AccountingBasis.CASH,
    ) -> Decimal:
        return self.monthly_portfolio(month, year, trades, basis).final_capital

    def monthly_portfolios(
        self,
        trades: Sequence[Trade] = (),
        basis: AccountingBasis = AccountingBasis.CASH,
    ) -> list[MonthlyPortfolio]:
        """Capital rows from the earliest to the latest data month."""
        return self._sweep(trades, basis)

    def latest_portfolio_size(
        self,
        trades: Sequence[Trade] = (),
        basis: AccountingBasis = AccountingBasis.CASH,
    ) -> Decimal:
        """Final capital of the latest data month (default capital without data)."""
        rows = self._sweep(trades, basis)
        if not rows:
            return self.default_capital
        return rows[-1].final_capital

    # ==================== Money-weighted return ====================

    def cash_flows_for_period(
        self,
        start: MonthKey,
        end: MonthKey,
        trades: Sequence[Trade] = (),
        basis: AccountingBasis = AccountingBasis.CASH,
    ) -> list[CashFlow]:
        """
        Investor-signed cash flows for a range of months.

        Opening capital is invested (negative) on the first day of start,
        deposits are negative and withdrawals positive on their dates, and
        the final capital is received (positive) on the last day of end.

        Returns:
            Cash flows in date order (empty when end precedes start)
        """
        if end < start:
            return []

        rows = {row.key: row for row in self._sweep(trades, basis, until=end)}
        opening_row = rows.get(start)
        opening = opening_row.starting_capital if opening_row else self.default_capital
        closing_row = rows.get(end)
        closing = closing_row.final_capital if closing_row else self.default_capital

        flows = [CashFlow(date=start.first_day, amount=-float(opening))]
        for change in sorted(self._changes, key=lambda c: c.date):
            if start.first_day <= change.date <= end.last_day:
                flows.append(CashFlow(date=change.date, amount=-float(change.signed_amount)))
        flows.append(CashFlow(date=end.last_day, amount=float(closing)))
        return flows

    def money_weighted_return(
        self,
        start: MonthKey,
        end: MonthKey,
        trades: Sequence[Trade] = (),
        basis: AccountingBasis = AccountingBasis.CASH,
    ) -> float:
        """Annualized money-weighted return (percent) over a range of months."""
        return self.xirr_solver.xirr(self.cash_flows_for_period(start, end, trades, basis))

    def rolling_returns(
        self,
        as_of: MonthKey,
        trades: Sequence[Trade] = (),
        basis: AccountingBasis = AccountingBasis.CASH,
    ) -> dict[str, float]:
        """
        Money-weighted returns for YTD and trailing 1/3/6/12-month windows.

        Windows are clipped to the earliest data month; a window ending
        before any data reports 0.

        Returns:
            {"YTD": pct, "1M": pct, "3M": pct, "6M": pct, "12M": pct}
        """
        rows = self._sweep(trades, basis)
        if not rows or as_of < rows[0].key:
            return {"YTD": 0.0, **{label: 0.0 for label in ROLLING_WINDOWS}}

        first = rows[0].key
        windows = {"YTD": MonthKey(as_of.year, 1)}
        windows.update({label: as_of.shift(-(months - 1)) for label, months in ROLLING_WINDOWS.items()})

        return {
            label: self.money_weighted_return(max(start, first), as_of, trades, basis)
            for label, start in windows.items()
        }
