"""CLI UI components - rich table formatters."""

from tradejournal.cli.ui.formatters import (
    create_monthly_table,
    create_returns_table,
    create_risk_table,
    create_series_table,
    create_statistics_table,
    format_xirr,
)

__all__ = [
    "create_monthly_table",
    "create_returns_table",
    "create_risk_table",
    "create_series_table",
    "create_statistics_table",
    "format_xirr",
]
