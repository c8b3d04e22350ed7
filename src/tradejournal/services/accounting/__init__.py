"""Accounting service: trade models, FIFO lot matching and basis resolution."""

from tradejournal.services.accounting.lot_tracker import LotTracker, fifo_realized_pl
from tradejournal.services.accounting.models import (
    AccountingBasis,
    CapitalChange,
    CapitalChangeType,
    ExitLegView,
    Fill,
    Lot,
    LotSide,
    MonthKey,
    MonthlyCapitalOverride,
    MonthlyPortfolio,
    PositionStatus,
    Trade,
    TradeDirection,
    YearlyStartingCapital,
    normalize_month,
)
from tradejournal.services.accounting.resolver import TradeAccountingResolver

__all__ = [
    "AccountingBasis",
    "CapitalChange",
    "CapitalChangeType",
    "ExitLegView",
    "Fill",
    "Lot",
    "LotSide",
    "LotTracker",
    "MonthKey",
    "MonthlyCapitalOverride",
    "MonthlyPortfolio",
    "PositionStatus",
    "Trade",
    "TradeAccountingResolver",
    "TradeDirection",
    "YearlyStartingCapital",
    "fifo_realized_pl",
    "normalize_month",
]
