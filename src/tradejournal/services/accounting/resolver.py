"""Trade accounting resolver.

Resolves a trade's effective date and realized P&L under an explicit
accounting basis, and explodes trades into per-exit views for cash-basis
grouping.

Accrual basis attributes the journal's cached P&L to the entry date.
Cash basis attributes P&L to exit dates, one exit leg at a time, so a
trade with several exits can contribute to several periods.

Usage:
    >>> resolver = TradeAccountingResolver()
    >>> resolver.effective_date(trade, AccountingBasis.CASH)
    datetime.date(2023, 2, 5)
    >>> legs = resolver.explode_to_exit_events(trade)
    >>> sum(resolver.realized_pl(leg, AccountingBasis.CASH) for leg in legs)
    Decimal('200')
"""

from collections import Counter
from datetime import date
from decimal import Decimal
from typing import Iterable, Sequence

from tradejournal.libraries.performance.models import TradeOutcome
from tradejournal.services.accounting.lot_tracker import fifo_realized_pl
from tradejournal.services.accounting.models import (
    AccountingBasis,
    ExitLegView,
    PositionStatus,
    Trade,
)
from tradejournal.system import LoggerFactory

logger = LoggerFactory.get_logger()

LEG_PL_TOLERANCE = Decimal("0.01")


class TradeAccountingResolver:
    """
    Stateless resolver of per-trade accounting under a basis.

    Args:
        pl_tolerance: Allowed difference between the summed leg P&L of a
            closed trade and its stored pl_rs before a warning is logged
    """

    def __init__(self, pl_tolerance: Decimal = LEG_PL_TOLERANCE) -> None:
        self._pl_tolerance = pl_tolerance

    # ==================== Dates ====================

    def effective_date(self, subject: Trade | ExitLegView, basis: AccountingBasis) -> date:
        """
        Date on which the subject's realized P&L is recognised.

        Args:
            subject: Trade, or a single exit leg (always dated by the leg)
            basis: Accounting basis

        Returns:
            Entry date under accrual; latest exit date under cash
        """
        if isinstance(subject, ExitLegView):
            return subject.date

        trade = subject
        if basis == AccountingBasis.ACCRUAL or not trade.is_settled:
            return trade.date

        # Any recorded exit date counts, whatever the lot quantity
        return self.fallback_exit_date(trade)

    def fallback_exit_date(self, trade: Trade) -> date:
        """Latest exit-date field recorded on the trade, else its entry date."""
        dates = trade.exit_dates
        return max(dates) if dates else trade.date

    # ==================== Realized P&L ====================

    def realized_pl(self, subject: Trade | ExitLegView, basis: AccountingBasis) -> Decimal:
        """
        Realized P&L of a trade or exit leg under a basis.

        Accrual returns the stored pl_rs verbatim. Under cash, a leg is
        valued at leg level; a whole trade uses pl_rs when Closed, summed
        leg P&L when Partial, and 0 when Open.

        Args:
            subject: Trade or exit leg
            basis: Accounting basis

        Returns:
            Realized P&L (0 when it cannot be determined)
        """
        if isinstance(subject, ExitLegView):
            return self.leg_pl(subject)

        trade = subject
        if basis == AccountingBasis.ACCRUAL:
            return trade.pl_rs if trade.pl_rs is not None else Decimal("0")

        if trade.position_status == PositionStatus.OPEN:
            return Decimal("0")

        if trade.position_status == PositionStatus.CLOSED:
            if trade.pl_rs is not None:
                return trade.pl_rs
            return sum((self.leg_pl(leg) for leg in self._legs(trade)), start=Decimal("0"))

        # Partial: leg-level P&L over priced exits
        priced = [leg for leg in self._legs(trade) if not leg.synthetic and leg.price > 0]
        if priced:
            return sum((self.leg_pl(leg) for leg in priced), start=Decimal("0"))
        if trade.pl_rs is not None:
            return trade.pl_rs
        return self._aggregate_pl(trade)

    def leg_pl(self, leg: ExitLegView) -> Decimal:
        """(leg price - avg entry) * leg qty, sign-flipped for Sell trades."""
        avg_entry = leg.trade.effective_avg_entry
        if avg_entry <= 0 or leg.price <= 0 or leg.qty <= 0:
            return Decimal("0")
        pnl = (leg.price - avg_entry) * leg.qty
        return -pnl if leg.trade.is_short else pnl

    def fifo_realized_pl(self, trade: Trade) -> Decimal:
        """Realized P&L of the trade's lots by FIFO matching."""
        return fifo_realized_pl(trade.entries, trade.exits, trade.direction)

    def _aggregate_pl(self, trade: Trade) -> Decimal:
        avg_entry = trade.effective_avg_entry
        avg_exit = trade.effective_avg_exit
        if avg_entry <= 0 or avg_exit <= 0:
            return Decimal("0")
        pnl = (avg_exit - avg_entry) * trade.effective_exited_qty
        return -pnl if trade.is_short else pnl

    # ==================== Exit legs ====================

    def explode_to_exit_events(self, trade: Trade) -> list[ExitLegView]:
        """
        One exit leg per populated exit lot of a settled trade.

        A settled trade with exited quantity and an average exit price but
        no populated exit lot yields a single synthetic leg. For a Closed
        trade, a summed leg P&L that differs from pl_rs is logged as a data
        inconsistency (including a non-zero pl_rs with no leg at all); the
        legs are returned unchanged.

        Args:
            trade: Canonical trade

        Returns:
            Exit legs in lot order (empty for Open trades)
        """
        legs = self._legs(trade)

        if trade.position_status == PositionStatus.CLOSED and trade.pl_rs is not None:
            legs_total = sum((self.leg_pl(leg) for leg in legs), start=Decimal("0"))
            if abs(legs_total - trade.pl_rs) > self._pl_tolerance:
                logger.warning(
                    "accounting.leg_pl_mismatch",
                    trade_id=trade.trade_id,
                    legs_total=str(legs_total),
                    pl_rs=str(trade.pl_rs),
                )

        return legs

    def _legs(self, trade: Trade) -> list[ExitLegView]:
        if not trade.is_settled:
            return []

        legs = [
            ExitLegView(trade=trade, leg_index=index, date=fill.date, qty=fill.qty, price=fill.price)
            for index, fill in enumerate(trade.exits, start=1)
            if fill.is_populated and fill.date is not None
        ]
        if legs:
            return legs

        exited_qty = trade.effective_exited_qty
        avg_exit = trade.effective_avg_exit
        if exited_qty > 0 and avg_exit > 0:
            return [
                ExitLegView(
                    trade=trade,
                    leg_index=1,
                    date=self.fallback_exit_date(trade),
                    qty=exited_qty,
                    price=avg_exit,
                    synthetic=True,
                )
            ]
        return []

    # ==================== De-duplication ====================

    def distinct_trades(self, trades: Iterable[Trade]) -> list[Trade]:
        """
        One record per canonical trade id, in first-seen order.

        When a trade appears as both an aggregate record and per-leg
        records, the aggregate record (id equal to its canonical id) wins.
        Records violating the quantity invariants are logged, not dropped.
        """
        chosen: dict[str, Trade] = {}
        for trade in trades:
            issues = trade.consistency_issues()
            if issues:
                logger.warning("accounting.quantity_inconsistency", trade_id=trade.trade_id, issues=issues)
            key = trade.canonical_id
            current = chosen.get(key)
            if current is None or (current.trade_id != key and trade.trade_id == key):
                chosen[key] = trade
        return list(chosen.values())

    def distinct_exit_events(self, trades: Iterable[Trade]) -> list[ExitLegView]:
        """
        Exit legs of all trades, each distinct exit event counted once.

        Records sharing a canonical id contribute an exit event only as
        many times as the record holding it most often, so aggregate and
        per-leg records of one trade never double count.
        """
        seen: dict[str, Counter] = {}
        events: list[ExitLegView] = []
        for trade in trades:
            prior = seen.setdefault(trade.canonical_id, Counter())
            local: Counter = Counter()
            for leg in self.explode_to_exit_events(trade):
                local[leg.event_key] += 1
                if local[leg.event_key] > prior[leg.event_key]:
                    events.append(leg)
            prior |= local
        return events

    def unlegged_trades(self, trades: Iterable[Trade]) -> list[Trade]:
        """
        Settled trades with no exit leg under any of their records.

        Their cash-basis P&L cannot be attributed leg by leg, so callers book
        realized_pl(trade, CASH) on effective_date(trade, CASH) instead.
        """
        trades = tuple(trades)
        legged = {trade.canonical_id for trade in trades if self._legs(trade)}
        return [
            trade
            for trade in self.distinct_trades(trades)
            if trade.is_settled and trade.canonical_id not in legged
        ]

    # ==================== Outcomes ====================

    def trade_outcomes(self, trades: Sequence[Trade], basis: AccountingBasis) -> list[TradeOutcome]:
        """
        Realized outcome per canonical trade, ordered by recognition date.

        Accrual uses each settled trade's pl_rs on its entry date. Cash
        groups the distinct exit legs of each trade and dates the outcome
        by its latest leg; a settled trade without legs falls back to its
        whole-trade P&L on its effective date.

        Args:
            trades: Trade snapshot
            basis: Accounting basis

        Returns:
            TradeOutcome records sorted by (date, trade_id)
        """
        outcomes: list[TradeOutcome] = []

        if basis == AccountingBasis.ACCRUAL:
            for trade in self.distinct_trades(trades):
                if not trade.is_settled:
                    continue
                outcomes.append(
                    TradeOutcome(
                        trade_id=trade.canonical_id,
                        symbol=trade.symbol,
                        date=trade.date,
                        pnl=self.realized_pl(trade, basis),
                    )
                )
        else:
            grouped: dict[str, list[ExitLegView]] = {}
            for leg in self.distinct_exit_events(trades):
                grouped.setdefault(leg.canonical_id, []).append(leg)
            for trade_id, legs in grouped.items():
                outcomes.append(
                    TradeOutcome(
                        trade_id=trade_id,
                        symbol=legs[0].trade.symbol,
                        date=max(leg.date for leg in legs),
                        pnl=sum((self.leg_pl(leg) for leg in legs), start=Decimal("0")),
                    )
                )
            for trade in self.unlegged_trades(trades):
                outcomes.append(
                    TradeOutcome(
                        trade_id=trade.canonical_id,
                        symbol=trade.symbol,
                        date=self.effective_date(trade, basis),
                        pnl=self.realized_pl(trade, basis),
                    )
                )

        outcomes.sort(key=lambda o: (o.date, o.trade_id))
        logger.debug("accounting.outcomes_resolved", basis=basis.value, trades=len(outcomes))
        return outcomes
