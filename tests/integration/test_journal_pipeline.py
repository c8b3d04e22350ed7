"""
Integration test: journal snapshot through the full accounting pipeline.

Snapshot -> resolver -> capital ledger -> value series -> risk metrics,
trade statistics and money-weighted return, under both accounting bases.
Both bases must agree on the capital at the end of the journal.
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from tradejournal.cli.runtime import JournalEngine
from tradejournal.cli.snapshot import JournalSnapshot
from tradejournal.libraries.performance import TradeStatisticsCalculator
from tradejournal.services.accounting import AccountingBasis, MonthKey
from tradejournal.services.accounting.models import (
    CapitalChange,
    CapitalChangeType,
    Fill,
    PositionStatus,
    Trade,
    TradeDirection,
    YearlyStartingCapital,
)
from tradejournal.system.config import SystemConfig


@pytest.fixture
def snapshot(closed_trade, deposit) -> JournalSnapshot:
    """
    Jan-Apr 2023 journal.

    - T001 long, closed over Feb 5 (+100) and Mar 10 (+150)
    - T001_exit_1 per-leg duplicate of T001's first exit
    - T003 short 10 @ 200 on Mar 1, covered 10 @ 180 on Apr 12 (+200)
    - Deposit 5000 on Feb 20, withdrawal 2000 on Apr 20
    """
    leg_record = Trade(
        trade_id="T001_exit_1",
        symbol="INFY",
        date=date(2023, 1, 10),
        position_status=PositionStatus.PARTIAL,
        entries=closed_trade.entries,
        exits=(closed_trade.exits[0],),
        avg_entry=Decimal("100"),
        avg_exit_price=Decimal("120"),
        open_qty=Decimal("5"),
        exited_qty=Decimal("5"),
        pl_rs=Decimal("100"),
    )
    short_trade = Trade.from_lots(
        trade_id="T003",
        symbol="SBIN",
        direction=TradeDirection.SELL,
        entries=[Fill(price=Decimal("200"), qty=Decimal("10"), date=date(2023, 3, 1))],
        exits=[Fill(price=Decimal("180"), qty=Decimal("10"), date=date(2023, 4, 12))],
    )
    withdrawal = CapitalChange(
        change_id="C002",
        date=date(2023, 4, 20),
        amount=Decimal("2000"),
        type=CapitalChangeType.WITHDRAWAL,
    )
    return JournalSnapshot(
        trades=(closed_trade, leg_record, short_trade),
        capital_changes=(deposit, withdrawal),
        yearly_capitals=(YearlyStartingCapital(year=2023, capital=Decimal("100000")),),
    )


@pytest.fixture
def engine(snapshot) -> JournalEngine:
    return JournalEngine.create(snapshot, SystemConfig())


class TestJournalPipeline:
    """End-to-end accounting of one snapshot."""

    def test_cash_basis_monthly_cascade(self, engine, snapshot):
        """Test months cascade with P&L on exit dates."""
        # Act
        rows = engine.builder.monthly_from_ledger(engine.ledger, snapshot.trades, AccountingBasis.CASH)

        # Assert
        assert rows[0].is_opening
        assert rows[0].final_capital == Decimal("100000")
        finals = [(row.month, row.final_capital) for row in rows[1:]]
        assert finals == [
            ("Jan", Decimal("100000")),
            ("Feb", Decimal("105100")),
            ("Mar", Decimal("105250")),
            ("Apr", Decimal("103450")),
        ]

    def test_accrual_basis_monthly_cascade(self, engine, snapshot):
        """Test months cascade with P&L on entry dates and no double count."""
        rows = engine.ledger.monthly_portfolios(snapshot.trades, AccountingBasis.ACCRUAL)

        assert [row.pl for row in rows] == [Decimal("250"), Decimal("0"), Decimal("200"), Decimal("0")]
        assert [row.final_capital for row in rows] == [
            Decimal("100250"),
            Decimal("105250"),
            Decimal("105450"),
            Decimal("103450"),
        ]

    def test_bases_agree_on_latest_size(self, engine, snapshot):
        cash = engine.ledger.latest_portfolio_size(snapshot.trades, AccountingBasis.CASH)
        accrual = engine.ledger.latest_portfolio_size(snapshot.trades, AccountingBasis.ACCRUAL)

        assert cash == accrual == Decimal("103450")

    def test_cash_series_and_risk_summary(self, engine, snapshot):
        """Test the replayed series and the drawdown from the withdrawal."""
        # Act
        series = engine.builder.build_series(snapshot.trades, snapshot.capital_changes, AccountingBasis.CASH)
        summary = engine.metrics.summarize(series)

        # Assert
        assert list(series.values()) == [
            Decimal("1000"),
            Decimal("1100"),
            Decimal("6100"),
            Decimal("6100"),
            Decimal("6250"),
            Decimal("6450"),
            Decimal("4450"),
        ]
        assert next(iter(series)) == datetime(2023, 1, 10)
        assert summary.periods == 6
        assert summary.max_drawdown == pytest.approx(2000 / 6450)
        assert summary.total_return == pytest.approx(3.45)

    def test_trade_statistics(self, engine, snapshot):
        outcomes = engine.resolver.trade_outcomes(snapshot.trades, AccountingBasis.CASH)

        stats = TradeStatisticsCalculator.from_outcomes(outcomes).statistics()

        assert [o.trade_id for o in outcomes] == ["T001", "T003"]
        assert stats.total_trades == 2
        assert stats.winning_trades == 2
        assert stats.net_pl == Decimal("450")
        assert stats.profit_factor is None

    def test_money_weighted_return(self, engine, snapshot):
        """Test investor-signed flows bracket the period and solve to a small gain."""
        start, end = MonthKey.parse("Jan 2023"), MonthKey.parse("Apr 2023")

        flows = engine.ledger.cash_flows_for_period(start, end, snapshot.trades, AccountingBasis.CASH)
        result = engine.ledger.xirr_solver.solve(flows)

        assert [(f.date, f.amount) for f in flows] == [
            (date(2023, 1, 1), -100000.0),
            (date(2023, 2, 20), -5000.0),
            (date(2023, 4, 20), 2000.0),
            (date(2023, 4, 30), 103450.0),
        ]
        assert result.converged
        assert 0 < result.percentage < 5

    def test_rolling_returns_windows(self, engine, snapshot):
        returns = engine.ledger.rolling_returns(MonthKey(2023, 4), snapshot.trades, AccountingBasis.CASH)

        assert list(returns) == ["YTD", "1M", "3M", "6M", "12M"]
        # Windows reaching past January are clipped to the first data month
        assert returns["6M"] == pytest.approx(returns["YTD"])
        assert returns["12M"] == pytest.approx(returns["YTD"])
