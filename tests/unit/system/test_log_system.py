"""Tests for centralized logging configuration."""

import json
import logging
from logging.handlers import RotatingFileHandler

import pytest

from tradejournal.system import LoggerFactory, LoggingConfig, log_system
from tradejournal.system.log_system import _DomainLogFormatters


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration before and after each test."""
    LoggerFactory.reset()
    yield
    LoggerFactory.reset()


def test_default_configuration():
    """Test logger factory with default configuration."""
    logger = LoggerFactory.get_logger()

    assert LoggerFactory.is_configured()
    assert hasattr(logger, "info")
    assert hasattr(logger, "warning")

    config = LoggerFactory.get_config()
    assert config.level == "INFO"
    assert config.format == "console"
    # Console only unless file output is switched on
    assert config.enable_file is False
    assert config.file_level == "WARNING"


def test_explicit_configuration():
    """Test configuring logger factory explicitly."""
    config = LoggingConfig(level="DEBUG", format="json", enable_file=False)

    LoggerFactory.configure(config)

    assert LoggerFactory.is_configured()
    assert LoggerFactory.get_config().level == "DEBUG"
    assert LoggerFactory.get_config().format == "json"


def test_auto_configure_on_first_use():
    """Test that logger auto-configures with defaults on first use."""
    assert not LoggerFactory.is_configured()

    logger = LoggerFactory.get_logger("tradejournal.services.ledger")

    assert LoggerFactory.is_configured()
    assert hasattr(logger, "info")


def test_file_logging_writes_json_lines(tmp_path):
    """File outputs are JSON lines with the structured context."""
    log_file = tmp_path / "journal.log"
    config = LoggingConfig(
        level="INFO",
        enable_file=True,
        file_path=log_file,
        file_level="DEBUG",
        file_rotation=False,
    )

    LoggerFactory.configure(config)
    LoggerFactory.get_logger().warning("accounting.leg_pl_mismatch", trade_id="T001", difference="5.00")

    record = json.loads(log_file.read_text().strip())
    assert record["event"] == "accounting.leg_pl_mismatch"
    assert record["trade_id"] == "T001"
    assert record["level"].upper() == "WARNING"
    # Renamed so domain fields named 'date' or 'timestamp' are not clobbered
    assert "log_timestamp" in record


def test_file_logging_without_path_uses_default(monkeypatch):
    """Test that enabling file logging without path uses default."""
    config = LoggingConfig(enable_file=True, file_path=None, file_rotation=False)

    monkeypatch.setattr(log_system, "_build_file_handler", lambda cfg, chain: logging.NullHandler())
    LoggerFactory.configure(config)

    assert str(LoggerFactory.get_config().file_path) == "logs/tradejournal.log"


def test_file_logging_creates_directory(tmp_path):
    """Test that file logging creates parent directories."""
    log_file = tmp_path / "logs" / "subdir" / "journal.log"
    config = LoggingConfig(enable_file=True, file_path=log_file, file_rotation=False)

    LoggerFactory.configure(config)
    LoggerFactory.get_logger().warning("ledger.capital_change_deleted", change_id="C001")

    assert log_file.exists()


def test_rotating_file_handler(tmp_path):
    """Test rotating file handler configuration."""
    log_file = tmp_path / "rotating.log"
    config = LoggingConfig(
        enable_file=True,
        file_path=log_file,
        file_rotation=True,
        max_file_size_mb=1,
        backup_count=3,
    )

    LoggerFactory.configure(config)

    handlers = [h for h in logging.getLogger().handlers if isinstance(h, RotatingFileHandler)]
    handler = next((h for h in handlers if str(log_file) in str(h.baseFilename)), None)
    assert handler is not None
    assert handler.maxBytes == 1 * 1024 * 1024
    assert handler.backupCount == 3


def test_file_level_independent_from_console_level(tmp_path):
    """Test that file log level can be different from console level."""
    log_file = tmp_path / "debug.log"
    config = LoggingConfig(
        level="WARNING",
        enable_file=True,
        file_path=log_file,
        file_level="DEBUG",
        file_rotation=False,
    )

    LoggerFactory.configure(config)
    logger = LoggerFactory.get_logger()
    logger.debug("portfolio.series_built", points=3)
    logger.warning("xirr.not_converged", iterations=100)

    events = [json.loads(line)["event"] for line in log_file.read_text().splitlines() if line.strip()]
    assert "portfolio.series_built" in events
    assert "xirr.not_converged" in events


def test_reset_clears_configuration():
    """Test that reset clears configuration."""
    LoggerFactory.configure(LoggingConfig(level="DEBUG"))
    assert LoggerFactory.get_config().level == "DEBUG"

    LoggerFactory.reset()

    assert not LoggerFactory.is_configured()
    assert LoggerFactory.get_config().level == "INFO"


class TestDomainLogFormatters:
    """Test console formatting of engine events."""

    @pytest.mark.parametrize(
        "event, label",
        [
            ("accounting.outcomes_resolved", "Accounting"),
            ("ledger.sweep_completed", "Ledger"),
            ("portfolio.monthly_built", "Portfolio"),
            ("metrics.summary_computed", "Metrics"),
            ("xirr.newton_breakdown", "XIRR"),
        ],
    )
    def test_known_namespace_formatted(self, event, label):
        result = _DomainLogFormatters.format_domain_log(event, {}, "INFO", "231001-120000.00")

        assert result is not None
        assert label in result

    def test_message_title_cased(self):
        result = _DomainLogFormatters.format_domain_log("ledger.sweep_completed", {}, "INFO", "")

        assert "Sweep Completed" in result

    def test_highlighted_keys_come_first(self):
        """Test highlighted context precedes the remaining keys."""
        event_dict = {"zeta": 1, "basis": "cash", "points": 12}

        result = _DomainLogFormatters.format_domain_log("portfolio.series_built", event_dict, "DEBUG", "")

        assert result.index("basis=") < result.index("points=") < result.index("zeta=1")

    def test_unknown_namespace_returns_none(self):
        assert _DomainLogFormatters.format_domain_log("user.login", {"user_id": 1}, "INFO", "") is None
