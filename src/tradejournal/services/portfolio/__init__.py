"""Portfolio service: value series and monthly capital tables."""

from tradejournal.services.portfolio.builder import DEFAULT_SEED_VALUE, PortfolioTimeSeriesBuilder

__all__ = [
    "DEFAULT_SEED_VALUE",
    "PortfolioTimeSeriesBuilder",
]
