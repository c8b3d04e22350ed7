"""
TradeJournal - Portfolio Accounting Engine

Public API for turning journal trades and capital flows into portfolio
value curves, monthly capital tables and risk/return statistics.
"""

from importlib.metadata import version

try:
    __version__ = version("tradejournal")
except Exception:
    __version__ = "0.0.0.dev"  # Fallback for development


__all__ = [
    "__version__",
]
