"""Lot tracker for FIFO realized P&L.

Entry lots of a trade are queued in chronological order (initial entry,
then pyramids). Each exit closes the oldest open lot first, for long and
short trades alike. Partial closes split the lot and keep the remainder
at the front of the queue.
"""

from collections import deque
from decimal import Decimal
from typing import Sequence

from tradejournal.services.accounting.models import Fill, Lot, LotSide, TradeDirection


class LotTracker:
    """
    FIFO queue of open entry lots for one trade.

    Example:
        >>> tracker = LotTracker()
        >>> tracker.add_lot(Lot(side=LotSide.LONG, quantity=Decimal("10"), entry_price=Decimal("100")))
        >>> tracker.add_lot(Lot(side=LotSide.LONG, quantity=Decimal("10"), entry_price=Decimal("110")))
        >>> matches = tracker.match_close(Decimal("15"))
        >>> # Returns: [(Lot(10@100), 10), (Lot(10@110), 5)]
        >>> # Leaves: [Lot(5@110)]
    """

    def __init__(self) -> None:
        self._lots: deque[Lot] = deque()

    def add_lot(self, lot: Lot) -> None:
        """
        Append lot to the back of the queue.

        Args:
            lot: Lot to add

        Raises:
            ValueError: If lot side differs from lots already queued
        """
        if self._lots and self._lots[0].side != lot.side:
            raise ValueError(f"Cannot mix {lot.side.value} lot into {self._lots[0].side.value} queue")
        self._lots.append(lot)

    def get_lots(self) -> list[Lot]:
        """Open lots, oldest first."""
        return list(self._lots)

    def get_total_quantity(self) -> Decimal:
        return sum((lot.quantity for lot in self._lots), start=Decimal("0"))

    def has_position(self) -> bool:
        return len(self._lots) > 0

    def clear(self) -> None:
        self._lots.clear()

    def match_close(self, quantity: Decimal) -> list[tuple[Lot, Decimal]]:
        """
        Match quantity against open lots using FIFO (First In, First Out).

        Closes oldest lots first. Handles partial lot closes by creating
        a new lot with remaining quantity.

        Args:
            quantity: Quantity to close (positive)

        Returns:
            List of (lot, quantity_closed) tuples in match order

        Raises:
            ValueError: If quantity is zero/negative or insufficient quantity
        """
        if quantity <= 0:
            raise ValueError(f"Quantity must be positive, got {quantity}")

        total_available = self.get_total_quantity()
        if quantity > total_available:
            raise ValueError(f"Insufficient quantity: need {quantity}, have {total_available}")

        matches: list[tuple[Lot, Decimal]] = []
        remaining_to_close = quantity

        while remaining_to_close > 0 and self._lots:
            lot = self._lots[0]

            if lot.quantity <= remaining_to_close:
                self._lots.popleft()
                matches.append((lot, lot.quantity))
                remaining_to_close -= lot.quantity
            else:
                self._lots.popleft()
                matches.append((lot, remaining_to_close))
                self._lots.appendleft(
                    lot.model_copy(
                        update={
                            "lot_id": f"{lot.lot_id}_remaining",
                            "quantity": lot.quantity - remaining_to_close,
                        }
                    )
                )
                remaining_to_close = Decimal("0")

        return matches


def fifo_realized_pl(
    entries: Sequence[Fill],
    exits: Sequence[Fill],
    direction: TradeDirection,
) -> Decimal:
    """
    Realized P&L from FIFO matching of exit lots against entry lots.

    Entry lots without a positive price or quantity are ignored, as are
    exit lots without a positive price or quantity. Exit quantity beyond
    what is still open is matched only up to the open quantity.

    Args:
        entries: Entry lots in chronological order
        exits: Exit lots in chronological order
        direction: Buy (long) or Sell (short)

    Returns:
        Realized P&L (sign-flipped for short trades)

    Example:
        >>> entries = [Fill(price=Decimal("100"), qty=Decimal("10")), Fill(price=Decimal("110"), qty=Decimal("10"))]
        >>> exits = [Fill(price=Decimal("120"), qty=Decimal("15"))]
        >>> fifo_realized_pl(entries, exits, TradeDirection.BUY)
        Decimal('250')
    """
    side = LotSide.SHORT if direction == TradeDirection.SELL else LotSide.LONG
    tracker = LotTracker()
    for index, entry in enumerate(entries, start=1):
        if entry.qty > 0 and entry.price > 0:
            tracker.add_lot(
                Lot(
                    lot_id=f"entry_{index}",
                    side=side,
                    quantity=entry.qty,
                    entry_price=entry.price,
                    entry_date=entry.date,
                )
            )

    realized = Decimal("0")
    for exit_fill in exits:
        if exit_fill.qty <= 0 or exit_fill.price <= 0:
            continue
        quantity = min(exit_fill.qty, tracker.get_total_quantity())
        if quantity <= 0:
            break
        for lot, closed_qty in tracker.match_close(quantity):
            pnl = (exit_fill.price - lot.entry_price) * closed_qty
            realized += -pnl if side == LotSide.SHORT else pnl

    return realized
