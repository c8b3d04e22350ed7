"""Capital ledger service: starting capital cascade and money-weighted returns."""

from tradejournal.services.ledger.capital_ledger import DEFAULT_STARTING_CAPITAL, CapitalLedger

__all__ = [
    "CapitalLedger",
    "DEFAULT_STARTING_CAPITAL",
]
