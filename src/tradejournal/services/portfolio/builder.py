"""Portfolio time series builder.

Replays every dated event of a journal (trade entries and pyramids, exits,
capital changes) in date order and records the running portfolio value at
each event date. The result is an irregular-interval series keyed by
midnight timestamps.

Realized P&L is attributed by accounting basis: on the entry date under
accrual, on each distinct exit leg's date under cash. A trade recorded both
as an aggregate record and as per-leg records contributes each exit event
once.

The monthly variant delegates starting capital resolution to CapitalLedger
and prepends an opening row holding the starting state of the first month.

Usage:
    >>> builder = PortfolioTimeSeriesBuilder()
    >>> series = builder.build_series(trades, capital_changes, AccountingBasis.CASH)
    >>> monthly = builder.build_monthly(trades, capital_changes, AccountingBasis.CASH, yearly_capitals=yearly)
"""

from datetime import date, datetime, time
from decimal import Decimal
from typing import Iterable, Sequence

from tradejournal.services.accounting.models import (
    AccountingBasis,
    CapitalChange,
    MonthlyCapitalOverride,
    MonthlyPortfolio,
    Trade,
    YearlyStartingCapital,
)
from tradejournal.services.accounting.resolver import TradeAccountingResolver
from tradejournal.services.ledger.capital_ledger import DEFAULT_STARTING_CAPITAL, CapitalLedger
from tradejournal.system import LoggerFactory, SystemConfig

logger = LoggerFactory.get_logger()

DEFAULT_SEED_VALUE = Decimal("1000")


def _midnight(value: date) -> datetime:
    return datetime.combine(value, time.min)


class PortfolioTimeSeriesBuilder:
    """
    Builds portfolio value series and monthly capital tables.

    Args:
        resolver: Trade accounting resolver (shared, stateless)
        seed_value: Opening value of the series when no capital change
            falls on the earliest event date
        default_capital: Default starting capital for the monthly table
    """

    def __init__(
        self,
        resolver: TradeAccountingResolver | None = None,
        seed_value: Decimal = DEFAULT_SEED_VALUE,
        default_capital: Decimal = DEFAULT_STARTING_CAPITAL,
    ) -> None:
        self.resolver = resolver or TradeAccountingResolver()
        self.seed_value = Decimal(seed_value)
        self.default_capital = Decimal(default_capital)

    @classmethod
    def from_config(
        cls, config: SystemConfig, resolver: TradeAccountingResolver | None = None
    ) -> "PortfolioTimeSeriesBuilder":
        """Build from a SystemConfig (accounting section)."""
        return cls(
            resolver=resolver,
            seed_value=config.accounting.series_seed_value,
            default_capital=config.accounting.default_starting_capital,
        )

    def event_dates(
        self,
        trades: Sequence[Trade],
        capital_changes: Sequence[CapitalChange],
        basis: AccountingBasis,
    ) -> list[datetime]:
        """
        Every event date normalized to midnight, deduplicated and sorted.

        Includes entry and pyramid dates, every dated exit lot, synthetic
        cash-basis exit dates, and capital change dates.
        """
        dates: set[date] = set()
        for trade in trades:
            dates.update(trade.entry_dates)
            dates.update(trade.exit_dates)
            if basis == AccountingBasis.CASH:
                dates.update(leg.date for leg in self.resolver.explode_to_exit_events(trade))
        dates.update(change.date for change in capital_changes)
        return [_midnight(d) for d in sorted(dates)]

    def build_series(
        self,
        trades: Iterable[Trade],
        capital_changes: Iterable[CapitalChange],
        basis: AccountingBasis,
    ) -> dict[datetime, Decimal]:
        """
        Replay events in date order into a timestamp -> value map.

        Args:
            trades: Trade snapshot
            capital_changes: Capital change snapshot
            basis: Accounting basis

        Returns:
            Ordered mapping of event timestamp to portfolio value
            (empty when there are no events)
        """
        trades = tuple(trades)
        capital_changes = tuple(capital_changes)

        timestamps = self.event_dates(trades, capital_changes, basis)
        if not timestamps:
            return {}

        deltas: dict[date, Decimal] = {}
        for change in capital_changes:
            deltas[change.date] = deltas.get(change.date, Decimal("0")) + change.signed_amount

        pl_by_date: dict[date, Decimal] = {}
        if basis == AccountingBasis.ACCRUAL:
            for trade in self.resolver.distinct_trades(trades):
                day = self.resolver.effective_date(trade, basis)
                pl_by_date[day] = pl_by_date.get(day, Decimal("0")) + self.resolver.realized_pl(trade, basis)
        else:
            for leg in self.resolver.distinct_exit_events(trades):
                pl_by_date[leg.date] = pl_by_date.get(leg.date, Decimal("0")) + self.resolver.realized_pl(leg, basis)
            for trade in self.resolver.unlegged_trades(trades):
                day = self.resolver.effective_date(trade, basis)
                pl_by_date[day] = pl_by_date.get(day, Decimal("0")) + self.resolver.realized_pl(trade, basis)

        # Changes on the earliest date seed the series themselves
        earliest = timestamps[0].date()
        running = Decimal("0") if earliest in deltas else self.seed_value

        series: dict[datetime, Decimal] = {}
        for timestamp in timestamps:
            day = timestamp.date()
            running += deltas.get(day, Decimal("0")) + pl_by_date.get(day, Decimal("0"))
            series[timestamp] = running

        logger.debug("portfolio.series_built", basis=basis.value, points=len(series), trades=len(trades))
        return series

    def build_monthly(
        self,
        trades: Iterable[Trade],
        capital_changes: Iterable[CapitalChange],
        basis: AccountingBasis,
        yearly_capitals: Iterable[YearlyStartingCapital] = (),
        monthly_overrides: Iterable[MonthlyCapitalOverride] = (),
    ) -> list[MonthlyPortfolio]:
        """
        Monthly capital table with a leading opening row.

        Args:
            trades: Trade snapshot
            capital_changes: Capital change snapshot
            basis: Accounting basis
            yearly_capitals: Yearly starting capitals
            monthly_overrides: Monthly starting capital overrides

        Returns:
            Opening row followed by one row per month from the earliest to
            the latest activity (empty when there is no data)
        """
        ledger = CapitalLedger(
            capital_changes=capital_changes,
            yearly_capitals=yearly_capitals,
            monthly_overrides=monthly_overrides,
            default_capital=self.default_capital,
            resolver=self.resolver,
        )
        return self.monthly_from_ledger(ledger, tuple(trades), basis)

    def monthly_from_ledger(
        self,
        ledger: CapitalLedger,
        trades: Sequence[Trade],
        basis: AccountingBasis,
    ) -> list[MonthlyPortfolio]:
        """Monthly capital table of an existing ledger, with the opening row."""
        rows = ledger.monthly_portfolios(trades, basis)
        if not rows:
            return []

        first = rows[0]
        opening = MonthlyPortfolio(
            month=first.month,
            year=first.year,
            starting_capital=first.starting_capital,
            final_capital=first.starting_capital,
            is_opening=True,
        )
        logger.debug("portfolio.monthly_built", basis=basis.value, months=len(rows))
        return [opening, *rows]
