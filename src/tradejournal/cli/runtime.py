"""Shared command setup: system config, log level and engine wiring."""

from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Optional, cast

from tradejournal.cli.snapshot import JournalSnapshot
from tradejournal.libraries.performance import RiskMetricsEngine, XIRRSolver
from tradejournal.services import CapitalLedger, PortfolioTimeSeriesBuilder, TradeAccountingResolver
from tradejournal.services.accounting import AccountingBasis
from tradejournal.system import LoggerFactory, SystemConfig, get_system_config, reload_system_config

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def load_runtime_config(config_file: Optional[Path], log_level: Optional[str]) -> SystemConfig:
    """
    Load the system config and apply a CLI log level override.

    Args:
        config_file: Explicit system.yaml (default search order if None)
        log_level: Level name validated by click, or None

    Returns:
        Active SystemConfig
    """
    reload_system_config(config_file)
    system_config = get_system_config()

    if log_level:
        # click already validated the choice
        level = cast(Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], log_level.upper())
        system_config.logging.level = level
    LoggerFactory.configure(system_config.logging.to_logger_config())
    return system_config


def resolve_basis(basis: Optional[str], config: SystemConfig) -> AccountingBasis:
    """CLI basis option, falling back to the configured default."""
    return AccountingBasis((basis or config.accounting.default_basis).lower())


@dataclass
class JournalEngine:
    """Engine components wired from one system config and snapshot."""

    snapshot: JournalSnapshot
    resolver: TradeAccountingResolver
    ledger: CapitalLedger
    builder: PortfolioTimeSeriesBuilder
    metrics: RiskMetricsEngine

    @classmethod
    def create(cls, snapshot: JournalSnapshot, config: SystemConfig) -> "JournalEngine":
        resolver = TradeAccountingResolver()
        ledger = CapitalLedger(
            capital_changes=snapshot.capital_changes,
            yearly_capitals=snapshot.yearly_capitals,
            monthly_overrides=snapshot.monthly_overrides,
            default_capital=config.accounting.default_starting_capital,
            resolver=resolver,
            xirr_solver=XIRRSolver.from_config(config.analytics),
        )
        return cls(
            snapshot=snapshot,
            resolver=resolver,
            ledger=ledger,
            builder=PortfolioTimeSeriesBuilder.from_config(config, resolver=resolver),
            metrics=RiskMetricsEngine(
                risk_free_rate=config.analytics.risk_free_rate,
                periods_per_year=config.analytics.periods_per_year,
            ),
        )
