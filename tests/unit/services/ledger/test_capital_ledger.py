"""Unit tests for CapitalLedger - starting capital cascade and money-weighted returns."""

from datetime import date
from decimal import Decimal

import pytest

from tradejournal.services.accounting.models import (
    AccountingBasis,
    CapitalChange,
    CapitalChangeType,
    Fill,
    MonthKey,
    PositionStatus,
    Trade,
    YearlyStartingCapital,
)
from tradejournal.services.ledger import DEFAULT_STARTING_CAPITAL, CapitalLedger


@pytest.fixture
def yearly() -> list[YearlyStartingCapital]:
    return [YearlyStartingCapital(year=2023, capital=Decimal("100000"))]


@pytest.fixture
def ledger(yearly, deposit) -> CapitalLedger:
    """Ledger anchored at 100000 for 2023 with a 5000 deposit on Feb 20."""
    return CapitalLedger(capital_changes=[deposit], yearly_capitals=yearly)


class TestStartingCapitalCascade:
    """Test the month-on-month starting capital resolution."""

    def test_yearly_anchor_without_other_data(self, yearly):
        """Test March starts at the yearly capital plus Jan and Feb net changes."""
        # Arrange
        ledger = CapitalLedger(yearly_capitals=yearly)

        # Act
        starting = ledger.starting_capital("Mar", 2023)

        # Assert
        expected = Decimal("100000") + ledger.net_capital_change("Jan", 2023) + ledger.net_capital_change("Feb", 2023)
        assert starting == expected == Decimal("100000")

    def test_cash_basis_cascade(self, ledger, closed_trade):
        """Test cash basis attributes leg P&L to exit months."""
        trades = [closed_trade]

        # Jan: entry month only, Feb: +5000 deposit +100 leg, Mar: +150 leg
        assert ledger.final_capital("Jan", 2023, trades, AccountingBasis.CASH) == Decimal("100000")
        assert ledger.starting_capital("Feb", 2023, trades, AccountingBasis.CASH) == Decimal("100000")
        assert ledger.final_capital("Feb", 2023, trades, AccountingBasis.CASH) == Decimal("105100")
        assert ledger.starting_capital("Mar", 2023, trades, AccountingBasis.CASH) == Decimal("105100")
        assert ledger.final_capital("Mar", 2023, trades, AccountingBasis.CASH) == Decimal("105250")

    def test_accrual_basis_cascade(self, ledger, closed_trade):
        """Test accrual basis attributes the whole P&L to the entry month."""
        trades = [closed_trade]

        assert ledger.final_capital("Jan", 2023, trades, AccountingBasis.ACCRUAL) == Decimal("100250")
        assert ledger.starting_capital("Mar", 2023, trades, AccountingBasis.ACCRUAL) == Decimal("105250")

    def test_cash_basis_books_trade_without_legs_on_exit_month(self, ledger):
        """Test a closed trade's stored P&L lands on its only recorded exit date."""
        trade = Trade(
            trade_id="T1",
            date=date(2023, 1, 10),
            position_status=PositionStatus.CLOSED,
            entries=(Fill(price=Decimal("100"), qty=Decimal("10"), date=date(2023, 1, 10)),),
            exits=(Fill(date=date(2023, 2, 5)),),
            avg_entry=Decimal("100"),
            exited_qty=Decimal("10"),
            pl_rs=Decimal("200"),
        )

        # Feb: +5000 deposit +200 stored P&L
        assert ledger.final_capital("Jan", 2023, [trade], AccountingBasis.CASH) == Decimal("100000")
        assert ledger.final_capital("Feb", 2023, [trade], AccountingBasis.CASH) == Decimal("105200")

    def test_monthly_override_wins(self, ledger, closed_trade):
        """Test an override replaces the carried capital and later months cascade from it."""
        # Arrange
        overridden = ledger.with_monthly_override("March", 2023, Decimal("200000"))

        # Act & Assert
        assert overridden.starting_capital("Mar", 2023, [closed_trade]) == Decimal("200000")
        assert overridden.final_capital("Mar", 2023, [closed_trade]) == Decimal("200150")
        assert overridden.starting_capital("Apr", 2023, [closed_trade]) == Decimal("200150")

    def test_override_beats_yearly_in_january(self, yearly):
        ledger = CapitalLedger(yearly_capitals=yearly).with_monthly_override("Jan", 2023, Decimal("90000"))

        assert ledger.starting_capital("Jan", 2023) == Decimal("90000")

    def test_without_monthly_override(self, ledger):
        overridden = ledger.with_monthly_override("Mar", 2023, Decimal("1"))

        restored = overridden.without_monthly_override(3, 2023)

        assert restored.starting_capital("Mar", 2023) == Decimal("105000")

    def test_yearly_capital_resets_january(self, ledger, closed_trade):
        """Test a new year's anchor replaces the carried December capital."""
        updated = ledger.with_yearly_capital(2024, Decimal("150000"))

        assert updated.starting_capital("Dec", 2023, [closed_trade]) == Decimal("105250")
        assert updated.starting_capital("Jan", 2024, [closed_trade]) == Decimal("150000")

    def test_yearly_capitals_mapping(self):
        ledger = CapitalLedger(yearly_capitals={2023: Decimal("50000")})

        assert ledger.starting_capital("Jan", 2023) == Decimal("50000")

    def test_no_data_uses_default(self):
        """Test months with no data resolve to the default capital."""
        ledger = CapitalLedger()

        assert ledger.starting_capital("Mar", 2023) == DEFAULT_STARTING_CAPITAL
        assert ledger.monthly_portfolios() == []
        assert ledger.latest_portfolio_size() == DEFAULT_STARTING_CAPITAL

    def test_month_before_data_uses_default(self, ledger):
        assert ledger.starting_capital("Dec", 2022) == DEFAULT_STARTING_CAPITAL

    def test_first_month_without_anchor_seeded_with_default(self, deposit):
        """Test a ledger without anchors starts its first month at the default."""
        ledger = CapitalLedger(capital_changes=[deposit], default_capital=Decimal("20000"))

        row = ledger.monthly_portfolio("Feb", 2023)

        assert row.starting_capital == Decimal("20000")
        assert row.final_capital == Decimal("25000")

    def test_monthly_portfolios_cover_every_month(self, ledger, closed_trade):
        """Test months without activity still appear in the sweep."""
        rows = ledger.monthly_portfolios([closed_trade], AccountingBasis.CASH)

        assert [row.key for row in rows] == [MonthKey(2023, 1), MonthKey(2023, 2), MonthKey(2023, 3)]
        for previous, current in zip(rows, rows[1:]):
            assert current.starting_capital == previous.final_capital
        for row in rows:
            assert row.final_capital == row.starting_capital + row.deposits - row.withdrawals + row.pl

    def test_latest_portfolio_size(self, ledger, closed_trade):
        assert ledger.latest_portfolio_size([closed_trade], AccountingBasis.CASH) == Decimal("105250")


class TestCapitalFlows:
    """Test deposits and withdrawals per month."""

    def test_deposits_and_withdrawals(self, ledger):
        # Arrange
        updated = ledger.add_capital_change(
            CapitalChange(
                change_id="C002",
                date=date(2023, 2, 25),
                amount=Decimal("2000"),
                type=CapitalChangeType.WITHDRAWAL,
            )
        )

        # Act & Assert
        assert updated.deposits("Feb", 2023) == Decimal("5000")
        assert updated.withdrawals("Feb", 2023) == Decimal("2000")
        assert updated.net_capital_change("February", 2023) == Decimal("3000")
        assert updated.net_capital_change("Mar", 2023) == Decimal("0")


class TestEditing:
    """Test editing operations return new ledgers."""

    def test_add_returns_new_ledger(self, ledger):
        change = CapitalChange(
            change_id="C002",
            date=date(2023, 3, 1),
            amount=Decimal("1000"),
            type=CapitalChangeType.DEPOSIT,
        )

        updated = ledger.add_capital_change(change)

        assert len(updated.capital_changes) == 2
        assert len(ledger.capital_changes) == 1
        assert updated.starting_capital("Apr", 2023) == Decimal("106000")
        assert ledger.starting_capital("Apr", 2023) == Decimal("105000")

    def test_add_duplicate_id_raises(self, ledger, deposit):
        with pytest.raises(ValueError, match="already exists"):
            ledger.add_capital_change(deposit)

    def test_update_capital_change(self, ledger):
        """Test updating a change revalidates it and keeps its id."""
        updated = ledger.update_capital_change("C001", amount=Decimal("8000"), type="withdrawal")

        change = updated.capital_changes[0]
        assert change.change_id == "C001"
        assert change.signed_amount == Decimal("-8000")
        assert ledger.capital_changes[0].amount == Decimal("5000")

    def test_update_unknown_id_raises(self, ledger):
        with pytest.raises(KeyError, match="Unknown capital change"):
            ledger.update_capital_change("missing", amount=Decimal("1"))

    def test_delete_capital_change(self, ledger):
        updated = ledger.delete_capital_change("C001")

        assert updated.capital_changes == ()
        assert updated.starting_capital("Mar", 2023) == Decimal("100000")

    def test_delete_unknown_id_raises(self, ledger):
        with pytest.raises(KeyError):
            ledger.delete_capital_change("missing")


class TestMoneyWeightedReturn:
    """Test cash flows and XIRR over month ranges."""

    def test_cash_flows_for_period(self, ledger, closed_trade):
        """Test investor signs: capital in negative, final value positive."""
        # Act
        flows = ledger.cash_flows_for_period(MonthKey(2023, 1), MonthKey(2023, 3), [closed_trade])

        # Assert
        assert [(f.date, f.amount) for f in flows] == [
            (date(2023, 1, 1), -100000.0),
            (date(2023, 2, 20), -5000.0),
            (date(2023, 3, 31), 105250.0),
        ]

    def test_cash_flows_empty_when_end_before_start(self, ledger):
        assert ledger.cash_flows_for_period(MonthKey(2023, 3), MonthKey(2023, 1)) == []

    def test_money_weighted_return_positive_on_gain(self, ledger, closed_trade):
        rate = ledger.money_weighted_return(MonthKey(2023, 1), MonthKey(2023, 3), [closed_trade])

        assert rate > 0

    def test_money_weighted_return_zero_without_change(self, yearly):
        """Test a flat year returns 0."""
        ledger = CapitalLedger(yearly_capitals=yearly)

        rate = ledger.money_weighted_return(MonthKey(2023, 1), MonthKey(2023, 12))

        assert rate == pytest.approx(0.0, abs=1e-6)

    def test_rolling_returns_clipped_to_first_month(self, ledger, closed_trade):
        """Test windows reaching before the first data month are clipped."""
        # Act
        returns = ledger.rolling_returns(MonthKey(2023, 3), [closed_trade])

        # Assert
        assert list(returns) == ["YTD", "1M", "3M", "6M", "12M"]
        assert returns["3M"] == pytest.approx(returns["YTD"])
        assert returns["6M"] == pytest.approx(returns["YTD"])
        assert returns["12M"] == pytest.approx(returns["YTD"])
        assert returns["1M"] > 0

    def test_rolling_returns_before_data_are_zero(self, ledger):
        returns = ledger.rolling_returns(MonthKey(2022, 6))

        assert set(returns.values()) == {0.0}
