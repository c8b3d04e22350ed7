"""Trade statistics calculator.

Accumulates realized trade outcomes (in recognition-date order) and exposes
journal statistics: win rate, gross profit and loss, average gain and loss,
profit factor, expectancy and winning/losing streaks.

Break-even outcomes (pnl == 0) count as losses, for rates and streaks.

Usage:
    >>> from tradejournal.libraries.performance.calculators import TradeStatisticsCalculator
    >>> calc = TradeStatisticsCalculator.from_outcomes(resolver.trade_outcomes(trades, basis))
    >>> calc.win_rate
    Decimal('66.67')
    >>> calc.max_consecutive_losses
    2
"""

from decimal import Decimal
from typing import Iterable

from tradejournal.libraries.performance.models import TradeOutcome, TradeStatistics


class TradeStatisticsCalculator:
    """
    Tracks trade statistics incrementally.

    Maintains running counts and streaks as outcomes are added; totals and
    averages are derived from the recorded outcomes.
    """

    def __init__(self) -> None:
        self._outcomes: list[TradeOutcome] = []
        self._winning_trades = 0
        self._consecutive_wins = 0
        self._consecutive_losses = 0
        self._max_consecutive_wins = 0
        self._max_consecutive_losses = 0

    @classmethod
    def from_outcomes(cls, outcomes: Iterable[TradeOutcome]) -> "TradeStatisticsCalculator":
        """Build a calculator pre-loaded with outcomes (in the given order)."""
        calc = cls()
        for outcome in outcomes:
            calc.add_outcome(outcome)
        return calc

    def add_outcome(self, outcome: TradeOutcome) -> None:
        """
        Add realized trade outcome to statistics.

        Args:
            outcome: TradeOutcome, added in recognition-date order
        """
        self._outcomes.append(outcome)

        if outcome.is_winner:
            self._winning_trades += 1
            self._consecutive_wins += 1
            self._consecutive_losses = 0
            self._max_consecutive_wins = max(self._max_consecutive_wins, self._consecutive_wins)
        else:
            self._consecutive_losses += 1
            self._consecutive_wins = 0
            self._max_consecutive_losses = max(self._max_consecutive_losses, self._consecutive_losses)

    @property
    def total_trades(self) -> int:
        return len(self._outcomes)

    @property
    def winning_trades(self) -> int:
        return self._winning_trades

    @property
    def losing_trades(self) -> int:
        return self.total_trades - self._winning_trades

    @property
    def win_rate(self) -> Decimal:
        """Win rate as percentage (0-100)."""
        if not self._outcomes:
            return Decimal("0")
        return (Decimal(self._winning_trades) / Decimal(self.total_trades) * Decimal("100")).quantize(Decimal("0.01"))

    @property
    def max_consecutive_wins(self) -> int:
        return self._max_consecutive_wins

    @property
    def max_consecutive_losses(self) -> int:
        return self._max_consecutive_losses

    @property
    def outcomes(self) -> list[TradeOutcome]:
        return self._outcomes.copy()

    @property
    def net_pl(self) -> Decimal:
        return sum((o.pnl for o in self._outcomes), start=Decimal("0"))

    @property
    def gross_profit(self) -> Decimal:
        """Total profit from winning trades."""
        return sum((o.pnl for o in self._outcomes if o.is_winner), start=Decimal("0"))

    @property
    def gross_loss(self) -> Decimal:
        """Total loss from losing trades (as positive number)."""
        return sum((abs(o.pnl) for o in self._outcomes if not o.is_winner), start=Decimal("0"))

    @property
    def average_gain(self) -> Decimal:
        if self._winning_trades == 0:
            return Decimal("0")
        return self.gross_profit / Decimal(self._winning_trades)

    @property
    def average_loss(self) -> Decimal:
        """Average losing trade (as positive number)."""
        if self.losing_trades == 0:
            return Decimal("0")
        return self.gross_loss / Decimal(self.losing_trades)

    @property
    def profit_factor(self) -> Decimal | None:
        """Gross profit / gross loss, or None if there are no losses."""
        if self.gross_loss == 0:
            return None
        return (self.gross_profit / self.gross_loss).quantize(Decimal("0.01"))

    @property
    def expectancy(self) -> Decimal:
        """Expected P&L per trade: (Win% x AvgWin) - (Loss% x AvgLoss)."""
        if not self._outcomes:
            return Decimal("0")
        total = Decimal(self.total_trades)
        win_rate = Decimal(self._winning_trades) / total
        loss_rate = Decimal(self.losing_trades) / total
        return (win_rate * self.average_gain - loss_rate * self.average_loss).quantize(Decimal("0.01"))

    @property
    def largest_win(self) -> Decimal:
        winners = [o.pnl for o in self._outcomes if o.is_winner]
        return max(winners) if winners else Decimal("0")

    @property
    def largest_loss(self) -> Decimal:
        """Largest losing trade P&L (as negative number)."""
        losers = [o.pnl for o in self._outcomes if not o.is_winner]
        return min(losers) if losers else Decimal("0")

    def statistics(self) -> TradeStatistics:
        """Immutable snapshot of the current statistics."""
        return TradeStatistics(
            total_trades=self.total_trades,
            winning_trades=self.winning_trades,
            losing_trades=self.losing_trades,
            win_rate=self.win_rate,
            net_pl=self.net_pl,
            gross_profit=self.gross_profit,
            gross_loss=self.gross_loss,
            average_gain=self.average_gain,
            average_loss=self.average_loss,
            profit_factor=self.profit_factor,
            expectancy=self.expectancy,
            largest_win=self.largest_win,
            largest_loss=self.largest_loss,
            max_consecutive_wins=self.max_consecutive_wins,
            max_consecutive_losses=self.max_consecutive_losses,
        )
