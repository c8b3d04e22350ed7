"""
System configuration for the accounting engine.

One configuration for the entire system: accounting defaults, analytics
constants and logging. Loaded from YAML, merged over built-in defaults, with
``${VAR}`` environment substitution.

Search order for the config file:
    1. Explicit path passed to SystemConfig.load()
    2. $TRADEJOURNAL_CONFIG
    3. config/system.yaml (relative to the working directory)
    4. Built-in defaults

Usage:
    >>> from tradejournal.system import get_system_config
    >>> config = get_system_config()
    >>> config.accounting.default_starting_capital
    Decimal('100000')
"""

import os
import re
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any, Literal

import yaml

from tradejournal.system import log_system

CONFIG_ENV_VAR = "TRADEJOURNAL_CONFIG"
DEFAULT_CONFIG_PATH = Path("config/system.yaml")

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")


@dataclass
class AccountingConfig:
    """Accounting defaults (starting capital, series seed, default basis)."""

    default_starting_capital: Decimal = Decimal("100000")
    series_seed_value: Decimal = Decimal("1000")
    default_basis: Literal["cash", "accrual"] = "cash"

    def __post_init__(self) -> None:
        # YAML yields int/float; money stays Decimal
        self.default_starting_capital = Decimal(str(self.default_starting_capital))
        self.series_seed_value = Decimal(str(self.series_seed_value))


@dataclass
class AnalyticsConfig:
    """Constants for risk metrics and the XIRR solver."""

    risk_free_rate: float = 0.05
    periods_per_year: int = 252
    xirr_guess: float = 0.10
    xirr_tolerance: float = 1e-7
    xirr_max_iterations: int = 100
    xirr_day_count: int = 365


@dataclass
class LoggingConfig:
    """Logging section of the system config (plain values from YAML)."""

    level: str = "INFO"
    format: str = "console"
    timestamp_format: str = "compact"
    enable_file: bool = False
    file_path: str = "logs/tradejournal.log"
    file_level: str = "WARNING"
    file_rotation: bool = True
    max_file_size_mb: int = 10
    backup_count: int = 3

    def to_logger_config(self) -> log_system.LoggingConfig:
        """Convert to the LoggerFactory configuration model."""
        return log_system.LoggingConfig(
            level=self.level,  # type: ignore[arg-type]
            format=self.format,  # type: ignore[arg-type]
            timestamp_format=self.timestamp_format,  # type: ignore[arg-type]
            enable_file=self.enable_file,
            file_path=Path(self.file_path),
            file_level=self.file_level,  # type: ignore[arg-type]
            file_rotation=self.file_rotation,
            max_file_size_mb=self.max_file_size_mb,
            backup_count=self.backup_count,
        )


@dataclass
class SystemConfig:
    """Complete system configuration."""

    accounting: AccountingConfig = field(default_factory=AccountingConfig)
    analytics: AnalyticsConfig = field(default_factory=AnalyticsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, path: Path | str | None = None) -> "SystemConfig":
        """
        Load configuration from YAML, falling back to built-in defaults.

        Args:
            path: Explicit config path. If None, uses $TRADEJOURNAL_CONFIG or
                config/system.yaml.

        Returns:
            SystemConfig with file values merged over defaults
        """
        if path is None:
            env_path = os.environ.get(CONFIG_ENV_VAR)
            path = Path(env_path) if env_path else DEFAULT_CONFIG_PATH

        config_path = Path(path)
        if not config_path.exists():
            return cls()

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        return cls._from_dict(_substitute_env_vars(data))

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> "SystemConfig":
        """Build config from a (possibly partial) dictionary."""
        defaults = {
            "accounting": {},
            "analytics": {},
            "logging": {},
        }
        merged = _deep_merge(defaults, data)

        return cls(
            accounting=AccountingConfig(**merged["accounting"]),
            analytics=AnalyticsConfig(**merged["analytics"]),
            logging=LoggingConfig(**merged["logging"]),
        )


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into a copy of base."""
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _substitute_env_vars(value: Any) -> Any:
    """Replace ${VAR} references with environment values (unknown vars kept)."""
    if isinstance(value, dict):
        return {k: _substitute_env_vars(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_substitute_env_vars(v) for v in value]
    if isinstance(value, str):
        return _ENV_PATTERN.sub(lambda m: os.environ.get(m.group(1), m.group(0)), value)
    return value


_system_config: SystemConfig | None = None


def get_system_config(path: Path | str | None = None) -> SystemConfig:
    """
    Get system config singleton.

    Args:
        path: Optional explicit path; when given, reloads from that file.

    Returns:
        Cached SystemConfig instance
    """
    global _system_config
    if path is not None:
        _system_config = SystemConfig.load(path)
    elif _system_config is None:
        _system_config = SystemConfig.load()
    return _system_config


def reload_system_config(path: Path | str | None = None) -> SystemConfig:
    """Force reload of the system config singleton."""
    global _system_config
    _system_config = SystemConfig.load(path)
    return _system_config
