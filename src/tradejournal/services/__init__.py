"""TradeJournal services package.

Each service is a pure, independently testable computation over immutable
journal snapshots. Services communicate through plain method calls and
explicit arguments; the accounting basis is always passed in, never global.
"""

from tradejournal.services.accounting import TradeAccountingResolver
from tradejournal.services.ledger import CapitalLedger
from tradejournal.services.portfolio import PortfolioTimeSeriesBuilder

__all__: list[str] = [
    "TradeAccountingResolver",
    "CapitalLedger",
    "PortfolioTimeSeriesBuilder",
]
