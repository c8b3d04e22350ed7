"""Data models for the accounting service.

Defines all core entities for journal accounting:
- Fill: One entry or exit lot of a trade ({price, qty, date})
- Trade: Canonical immutable journal trade with cached aggregates
- ExitLegView: Derived per-exit view used for cash-basis grouping
- Lot: Open entry lot tracked during FIFO matching
- CapitalChange: Deposit or withdrawal
- YearlyStartingCapital / MonthlyCapitalOverride: Capital anchors
- MonthlyPortfolio: Derived monthly capital row
- MonthKey: Calendar month on the sweep axis
"""

import calendar
import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import NamedTuple
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

MONTH_NAMES: tuple[str, ...] = tuple(calendar.month_abbr)[1:]
MAX_LOTS = 3


class AccountingBasis(str, Enum):
    """Accounting convention used to attribute realized P&L to dates."""

    CASH = "cash"  # P&L on exit date(s)
    ACCRUAL = "accrual"  # P&L on entry date


class TradeDirection(str, Enum):
    """Direction of a trade."""

    BUY = "Buy"
    SELL = "Sell"


class PositionStatus(str, Enum):
    """Lifecycle status of a trade."""

    OPEN = "Open"
    CLOSED = "Closed"
    PARTIAL = "Partial"


class LotSide(str, Enum):
    """Side of lot position."""

    LONG = "long"
    SHORT = "short"


class CapitalChangeType(str, Enum):
    """Type of capital change."""

    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"


def normalize_month(month: str | int) -> str:
    """
    Normalize a month to its three-letter short name.

    Accepts short names ("Jan"), full names ("January"), any case, and
    month numbers 1-12.

    Args:
        month: Month name or number

    Returns:
        Short month name, e.g. "Jan"

    Raises:
        ValueError: If the month cannot be recognised

    Example:
        >>> normalize_month("september")
        'Sep'
        >>> normalize_month(3)
        'Mar'
    """
    if isinstance(month, int):
        if 1 <= month <= 12:
            return MONTH_NAMES[month - 1]
        raise ValueError(f"Month number must be 1-12, got {month}")

    text = str(month).strip()
    if text.isdigit():
        return normalize_month(int(text))

    prefix = text[:3].title()
    if prefix in MONTH_NAMES:
        full_name = calendar.month_name[MONTH_NAMES.index(prefix) + 1]
        if len(text) == 3 or full_name.lower() == text.lower():
            return prefix
    raise ValueError(f"Unknown month: {month!r}")


def month_number(month: str | int) -> int:
    """Return month number 1-12 for a month name or number."""
    return MONTH_NAMES.index(normalize_month(month)) + 1


class MonthKey(NamedTuple):
    """Calendar month on the sweep axis (orders chronologically)."""

    year: int
    month: int

    @classmethod
    def of(cls, month: str | int, year: int) -> "MonthKey":
        """Build a key from any month representation and a year."""
        return cls(int(year), month_number(month))

    @classmethod
    def from_date(cls, value: dt.date) -> "MonthKey":
        """Month containing the given date."""
        return cls(value.year, value.month)

    @classmethod
    def parse(cls, label: str) -> "MonthKey":
        """
        Parse "Mar 2023", "March 2023" or "2023-03".

        Raises:
            ValueError: If the label is not a recognised month label
        """
        text = label.strip()
        if "-" in text:
            year_part, month_part = text.split("-", 1)
            return cls.of(int(month_part), int(year_part))
        parts = text.split()
        if len(parts) != 2:
            raise ValueError(f"Invalid month label: {label!r}")
        return cls.of(parts[0], int(parts[1]))

    def next(self) -> "MonthKey":
        if self.month == 12:
            return MonthKey(self.year + 1, 1)
        return MonthKey(self.year, self.month + 1)

    def previous(self) -> "MonthKey":
        if self.month == 1:
            return MonthKey(self.year - 1, 12)
        return MonthKey(self.year, self.month - 1)

    def shift(self, months: int) -> "MonthKey":
        """Move forward (positive) or backward (negative) by whole months."""
        index = self.year * 12 + (self.month - 1) + months
        return MonthKey(index // 12, index % 12 + 1)

    @property
    def short_name(self) -> str:
        return MONTH_NAMES[self.month - 1]

    @property
    def label(self) -> str:
        return f"{self.short_name} {self.year}"

    @property
    def first_day(self) -> dt.date:
        return dt.date(self.year, self.month, 1)

    @property
    def last_day(self) -> dt.date:
        return dt.date(self.year, self.month, calendar.monthrange(self.year, self.month)[1])

    def contains(self, value: dt.date) -> bool:
        return value.year == self.year and value.month == self.month


class Fill(BaseModel):
    """
    One entry or exit lot of a trade.

    A fill is populated when it has a positive quantity and a date;
    it is priced when it is populated and has a positive price.

    Attributes:
        price: Price per share
        qty: Shares in the lot (non-negative)
        date: Date of the fill (None when not yet recorded)
    """

    price: Decimal = Decimal("0")
    qty: Decimal = Decimal("0")
    date: dt.date | None = None

    @field_validator("qty", "price")
    @classmethod
    def validate_non_negative(cls, v: Decimal) -> Decimal:
        """Validate price and quantity are not negative."""
        if v < 0:
            raise ValueError(f"Fill price/qty must be non-negative, got {v}")
        return v

    @property
    def is_populated(self) -> bool:
        return self.qty > 0 and self.date is not None

    @property
    def is_priced(self) -> bool:
        return self.is_populated and self.price > 0

    model_config = ConfigDict(frozen=True)


def _weighted_average(fills: tuple[Fill, ...]) -> Decimal:
    """Quantity-weighted average price over fills with qty and price."""
    usable = [f for f in fills if f.qty > 0 and f.price > 0]
    total_qty = sum((f.qty for f in usable), start=Decimal("0"))
    if total_qty == 0:
        return Decimal("0")
    return sum((f.price * f.qty for f in usable), start=Decimal("0")) / total_qty


class Trade(BaseModel):
    """
    Canonical journal trade.

    Holds up to three entry lots (initial + two pyramids) and up to three
    exit lots, plus aggregates cached by the journal. Derived views such as
    ExitLegView are never written back onto a Trade.

    Attributes:
        trade_id: Unique identifier
        symbol: Ticker symbol
        date: Entry date
        direction: Buy (long) or Sell (short)
        position_status: Open, Closed or Partial
        entries: Entry lots in chronological order
        exits: Exit lots in chronological order
        avg_entry: Cached average entry price
        avg_exit_price: Cached average exit price
        open_qty: Cached open quantity
        exited_qty: Cached exited quantity
        pl_rs: Cached accrual-basis realized P&L (None when not recorded)

    Invariants:
        open_qty + exited_qty == sum(entry qty)
        exited_qty == sum(exit qty)

    Example:
        >>> trade = Trade(
        ...     trade_id="t1",
        ...     symbol="INFY",
        ...     date=date(2023, 1, 10),
        ...     entries=(Fill(price=Decimal("100"), qty=Decimal("10"), date=date(2023, 1, 10)),),
        ...     exits=(Fill(price=Decimal("120"), qty=Decimal("10"), date=date(2023, 2, 5)),),
        ...     position_status=PositionStatus.CLOSED,
        ...     avg_entry=Decimal("100"),
        ...     avg_exit_price=Decimal("120"),
        ...     exited_qty=Decimal("10"),
        ...     pl_rs=Decimal("200"),
        ... )
    """

    trade_id: str = Field(default_factory=lambda: str(uuid4()))
    symbol: str = ""
    date: dt.date
    direction: TradeDirection = TradeDirection.BUY
    position_status: PositionStatus = PositionStatus.OPEN

    entries: tuple[Fill, ...] = ()
    exits: tuple[Fill, ...] = ()

    # Aggregates cached by the journal
    avg_entry: Decimal = Decimal("0")
    avg_exit_price: Decimal = Decimal("0")
    open_qty: Decimal = Decimal("0")
    exited_qty: Decimal = Decimal("0")
    pl_rs: Decimal | None = None

    @field_validator("entries", "exits")
    @classmethod
    def validate_lot_count(cls, v: tuple[Fill, ...]) -> tuple[Fill, ...]:
        """Validate at most three lots per side."""
        if len(v) > MAX_LOTS:
            raise ValueError(f"A trade holds at most {MAX_LOTS} lots per side, got {len(v)}")
        return v

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_lots(
        cls,
        trade_id: str,
        entries: list[Fill] | tuple[Fill, ...],
        exits: list[Fill] | tuple[Fill, ...] = (),
        direction: TradeDirection = TradeDirection.BUY,
        symbol: str = "",
        position_status: PositionStatus | None = None,
        date: dt.date | None = None,
    ) -> "Trade":
        """
        Build a trade from its lots, deriving every cached aggregate.

        pl_rs is computed by FIFO matching of exits against entries. The
        status is derived from quantities when not given.

        Args:
            trade_id: Unique identifier
            entries: Entry lots (initial first)
            exits: Exit lots
            direction: Buy or Sell
            symbol: Ticker symbol
            position_status: Explicit status (derived if None)
            date: Entry date (earliest entry date if None)

        Returns:
            Trade with consistent cached fields

        Raises:
            ValueError: If no entry date can be determined
        """
        from tradejournal.services.accounting.lot_tracker import fifo_realized_pl

        entries = tuple(entries)
        exits = tuple(exits)

        total_qty = sum((f.qty for f in entries), start=Decimal("0"))
        exited_qty = sum((f.qty for f in exits), start=Decimal("0"))
        open_qty = max(total_qty - exited_qty, Decimal("0"))

        if position_status is None:
            if exited_qty == 0:
                position_status = PositionStatus.OPEN
            elif open_qty == 0:
                position_status = PositionStatus.CLOSED
            else:
                position_status = PositionStatus.PARTIAL

        if date is None:
            entry_dates = [f.date for f in entries if f.date is not None]
            if not entry_dates:
                raise ValueError(f"Trade {trade_id} has no entry date")
            date = min(entry_dates)

        return cls(
            trade_id=trade_id,
            symbol=symbol,
            date=date,
            direction=direction,
            position_status=position_status,
            entries=entries,
            exits=exits,
            avg_entry=_weighted_average(entries),
            avg_exit_price=_weighted_average(exits),
            open_qty=open_qty,
            exited_qty=exited_qty,
            pl_rs=fifo_realized_pl(entries, exits, direction),
        )

    @property
    def canonical_id(self) -> str:
        """Trade id with any per-leg "_exit_<n>" suffix removed."""
        return self.trade_id.split("_exit_")[0]

    @property
    def is_short(self) -> bool:
        return self.direction == TradeDirection.SELL

    @property
    def is_settled(self) -> bool:
        """Closed or partially closed (has realized P&L to attribute)."""
        return self.position_status in (PositionStatus.CLOSED, PositionStatus.PARTIAL)

    @property
    def effective_avg_entry(self) -> Decimal:
        """Cached average entry, falling back to the weighted entry lots."""
        if self.avg_entry > 0:
            return self.avg_entry
        return _weighted_average(self.entries)

    @property
    def effective_avg_exit(self) -> Decimal:
        """Cached average exit, falling back to the weighted exit lots."""
        if self.avg_exit_price > 0:
            return self.avg_exit_price
        return _weighted_average(self.exits)

    @property
    def effective_exited_qty(self) -> Decimal:
        """Cached exited quantity, falling back to the sum of exit lots."""
        if self.exited_qty > 0:
            return self.exited_qty
        return sum((f.qty for f in self.exits), start=Decimal("0"))

    @property
    def entry_dates(self) -> list[dt.date]:
        """Dates of all entry lots (initial and pyramids) that have one."""
        dates = [self.date]
        dates.extend(f.date for f in self.entries if f.date is not None)
        return dates

    @property
    def exit_dates(self) -> list[dt.date]:
        """Dates of all exit lots that have one, regardless of quantity."""
        return [f.date for f in self.exits if f.date is not None]

    def consistency_issues(self) -> list[str]:
        """
        Report violations of the quantity invariants.

        Nothing is corrected; callers decide whether to log or surface them.

        Returns:
            Human-readable issue descriptions (empty when consistent)
        """
        issues: list[str] = []
        entry_total = sum((f.qty for f in self.entries), start=Decimal("0"))
        exit_total = sum((f.qty for f in self.exits), start=Decimal("0"))

        if self.entries and self.open_qty + self.exited_qty != entry_total:
            issues.append(
                f"open_qty + exited_qty ({self.open_qty + self.exited_qty}) != entry lot qty ({entry_total})"
            )
        if self.exits and self.exited_qty != exit_total:
            issues.append(f"exited_qty ({self.exited_qty}) != exit lot qty ({exit_total})")
        return issues


class ExitLegView(BaseModel):
    """
    Derived view of a single exit lot of a trade.

    Produced by the accounting resolver for cash-basis grouping. The parent
    trade is referenced, never modified.

    Attributes:
        trade: Parent trade
        leg_index: 1-based exit lot position (1-3)
        date: Exit date
        qty: Exited quantity
        price: Exit price
        synthetic: True when built from aggregates because no exit lot was populated
    """

    trade: Trade
    leg_index: int = Field(ge=1, le=MAX_LOTS)
    date: dt.date
    qty: Decimal
    price: Decimal
    synthetic: bool = False

    model_config = ConfigDict(frozen=True)

    @property
    def trade_id(self) -> str:
        return self.trade.trade_id

    @property
    def canonical_id(self) -> str:
        return self.trade.canonical_id

    @property
    def leg_id(self) -> str:
        return f"{self.canonical_id}_exit_{self.leg_index}"

    @property
    def event_key(self) -> tuple[str, dt.date, Decimal, Decimal]:
        """Identity of the exit event, shared by aggregate and per-leg records."""
        return (self.canonical_id, self.date, self.qty, self.price)


class Lot(BaseModel):
    """
    Open entry lot tracked during FIFO matching.

    Attributes:
        lot_id: Unique identifier
        side: Long or short
        quantity: Shares remaining in lot (positive)
        entry_price: Price per share when opened
        entry_date: When lot was opened
    """

    lot_id: str = Field(default_factory=lambda: str(uuid4()))
    side: LotSide
    quantity: Decimal
    entry_price: Decimal
    entry_date: dt.date | None = None

    @field_validator("quantity")
    @classmethod
    def validate_quantity(cls, v: Decimal) -> Decimal:
        """Validate quantity is positive."""
        if v <= 0:
            raise ValueError(f"Lot quantity must be positive, got {v}")
        return v

    @field_validator("entry_price")
    @classmethod
    def validate_entry_price(cls, v: Decimal) -> Decimal:
        """Validate entry price is positive."""
        if v <= 0:
            raise ValueError(f"Entry price must be positive, got {v}")
        return v

    model_config = ConfigDict(frozen=True)


class CapitalChange(BaseModel):
    """
    Deposit into or withdrawal from the trading account.

    The amount may be recorded with either sign; the type decides the
    direction of the cash movement.

    Attributes:
        change_id: Unique identifier
        date: Date of the movement
        amount: Amount moved
        type: Deposit or withdrawal
        description: Free-form note
    """

    change_id: str = Field(default_factory=lambda: str(uuid4()))
    date: dt.date
    amount: Decimal
    type: CapitalChangeType
    description: str = ""

    model_config = ConfigDict(frozen=True)

    @property
    def signed_amount(self) -> Decimal:
        """Positive for deposits, negative for withdrawals."""
        if self.type == CapitalChangeType.WITHDRAWAL:
            return -abs(self.amount)
        return abs(self.amount)


class YearlyStartingCapital(BaseModel):
    """Starting capital anchoring January of a year."""

    year: int = Field(ge=1900, le=2200)
    capital: Decimal

    model_config = ConfigDict(frozen=True)


class MonthlyCapitalOverride(BaseModel):
    """Explicit starting capital for one month, overriding the cascade."""

    month: str
    year: int = Field(ge=1900, le=2200)
    capital: Decimal

    @field_validator("month", mode="before")
    @classmethod
    def validate_month(cls, v: str | int) -> str:
        """Normalize full/short/numeric month names to the short form."""
        return normalize_month(v)

    model_config = ConfigDict(frozen=True)

    @property
    def key(self) -> MonthKey:
        return MonthKey.of(self.month, self.year)


class MonthlyPortfolio(BaseModel):
    """
    Derived capital row for one calendar month.

    final_capital = starting_capital + deposits - withdrawals + pl

    Attributes:
        month: Short month name ("Jan")
        year: Calendar year
        starting_capital: Resolved starting capital
        deposits: Sum of deposits in the month (positive)
        withdrawals: Sum of withdrawals in the month (positive)
        pl: Realized P&L attributed to the month under the basis
        final_capital: Capital carried into the next month
        is_opening: Leading row showing the starting state of the first month
    """

    month: str
    year: int
    starting_capital: Decimal
    deposits: Decimal = Decimal("0")
    withdrawals: Decimal = Decimal("0")
    pl: Decimal = Decimal("0")
    final_capital: Decimal
    is_opening: bool = False

    model_config = ConfigDict(frozen=True)

    @property
    def key(self) -> MonthKey:
        return MonthKey.of(self.month, self.year)

    @property
    def net_capital_change(self) -> Decimal:
        return self.deposits - self.withdrawals

    @property
    def pl_percentage(self) -> Decimal:
        """P&L as percentage of starting capital (0 when there is no capital)."""
        if self.starting_capital == 0:
            return Decimal("0")
        return self.pl / self.starting_capital * Decimal("100")
