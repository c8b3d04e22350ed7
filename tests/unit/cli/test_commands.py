"""
Unit tests for the tradejournal CLI commands.

Tests cover:
- report/series/xirr execution against YAML and JSON snapshots
- --basis and --config handling
- Error handling for invalid snapshots and month labels
- Version option of the main group
"""

import json
from unittest.mock import patch

import pytest
import yaml
from click.testing import CliRunner

from tradejournal import __version__
from tradejournal.cli.commands.report import report_command
from tradejournal.cli.commands.series import series_command
from tradejournal.cli.commands.xirr import xirr_command
from tradejournal.cli.main import main
from tradejournal.system import LoggerFactory

SNAPSHOT_YAML = """
trades:
  - trade_id: T001
    symbol: INFY
    date: 2023-01-10
    position_status: Closed
    entries:
      - {price: 100, qty: 10, date: 2023-01-10}
    exits:
      - {price: 120, qty: 5, date: 2023-02-05}
      - {price: 130, qty: 5, date: 2023-03-10}
    avg_entry: 100
    avg_exit_price: 125
    exited_qty: 10
    pl_rs: 250
capital_changes:
  - {change_id: C001, date: 2023-02-20, amount: 5000, type: deposit}
yearly_capitals:
  - {year: 2023, capital: 100000}
"""


@pytest.fixture(autouse=True)
def reset_logging():
    """Commands configure logging against the runner's captured stdout."""
    yield
    LoggerFactory.reset()


@pytest.fixture
def cli_runner():
    """Fixture providing Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def config_file(tmp_path):
    """System config pinned to cash basis with quiet logging."""
    path = tmp_path / "system.yaml"
    path.write_text(
        """
accounting:
  default_basis: cash
logging:
  level: ERROR
"""
    )
    return path


@pytest.fixture
def snapshot_file(tmp_path):
    path = tmp_path / "journal.yaml"
    path.write_text(SNAPSHOT_YAML)
    return path


class TestReportCommand:
    """Test the report command."""

    def test_report_prints_tables(self, cli_runner, snapshot_file, config_file):
        """Test report renders monthly, risk and statistics tables."""
        # Act
        result = cli_runner.invoke(report_command, ["-f", str(snapshot_file), "-c", str(config_file)])

        # Assert
        assert result.exit_code == 0, result.output
        assert "Monthly Portfolio" in result.output
        assert "Risk Metrics" in result.output
        assert "Trade Statistics" in result.output
        assert "Basis: cash" in result.output
        # 100000 + 5000 deposit + 250 realized
        assert "105,250.00" in result.output

    def test_report_accrual_basis(self, cli_runner, snapshot_file, config_file):
        result = cli_runner.invoke(
            report_command, ["-f", str(snapshot_file), "-c", str(config_file), "--basis", "accrual"]
        )

        assert result.exit_code == 0, result.output
        assert "Basis: accrual" in result.output
        assert "105,250.00" in result.output

    def test_report_empty_snapshot(self, cli_runner, tmp_path, config_file):
        empty = tmp_path / "empty.yaml"
        empty.write_text("")

        result = cli_runner.invoke(report_command, ["-f", str(empty), "-c", str(config_file)])

        assert result.exit_code == 0
        assert "No journal data to report." in result.output

    def test_report_invalid_snapshot_exits_with_error(self, cli_runner, tmp_path, config_file):
        """Test a malformed record fails with exit code 1."""
        bad = tmp_path / "bad.yaml"
        bad.write_text("trades:\n  - symbol: INFY\n")

        result = cli_runner.invoke(report_command, ["-f", str(bad), "-c", str(config_file)])

        assert result.exit_code == 1
        assert "Report failed" in result.output

    def test_report_engine_error_exits_with_error(self, cli_runner, snapshot_file, config_file):
        with patch("tradejournal.cli.commands.report.JournalEngine.create", side_effect=RuntimeError("boom")):
            result = cli_runner.invoke(report_command, ["-f", str(snapshot_file), "-c", str(config_file)])

        assert result.exit_code == 1
        assert "boom" in result.output

    def test_report_missing_file(self, cli_runner, tmp_path):
        result = cli_runner.invoke(report_command, ["-f", str(tmp_path / "missing.yaml")])

        assert result.exit_code == 2


class TestSeriesCommand:
    """Test the series command."""

    def test_series_from_json_snapshot(self, cli_runner, tmp_path, config_file):
        """Test JSON snapshots are accepted and every event date is listed."""
        # Arrange
        path = tmp_path / "journal.json"
        path.write_text(json.dumps(yaml.safe_load(SNAPSHOT_YAML), default=str))

        # Act
        result = cli_runner.invoke(series_command, ["-f", str(path), "-c", str(config_file)])

        # Assert
        assert result.exit_code == 0, result.output
        assert "Portfolio Value (4 points)" in result.output
        for day in ("2023-01-10", "2023-02-05", "2023-02-20", "2023-03-10"):
            assert day in result.output
        assert "6,250.00" in result.output

    def test_series_without_events(self, cli_runner, tmp_path, config_file):
        path = tmp_path / "anchors.yaml"
        path.write_text("yearly_capitals:\n  - {year: 2023, capital: 100000}\n")

        result = cli_runner.invoke(series_command, ["-f", str(path), "-c", str(config_file)])

        assert result.exit_code == 0
        assert "No dated events in snapshot." in result.output


class TestXirrCommand:
    """Test the xirr command."""

    def test_xirr_over_period(self, cli_runner, snapshot_file, config_file):
        result = cli_runner.invoke(
            xirr_command,
            ["-f", str(snapshot_file), "-c", str(config_file), "--start", "Jan 2023", "--end", "2023-03"],
        )

        assert result.exit_code == 0, result.output
        assert "Jan 2023 to Mar 2023" in result.output
        # Opening capital, one deposit and the closing value
        assert "Cash Flows: 3" in result.output
        assert "%" in result.output

    def test_xirr_rejects_bad_month(self, cli_runner, snapshot_file):
        result = cli_runner.invoke(
            xirr_command, ["-f", str(snapshot_file), "--start", "Smarch 2023", "--end", "Dec 2023"]
        )

        assert result.exit_code == 2
        assert "Invalid value" in result.output

    def test_xirr_requires_period(self, cli_runner, snapshot_file):
        result = cli_runner.invoke(xirr_command, ["-f", str(snapshot_file)])

        assert result.exit_code == 2


class TestMainGroup:
    """Test the top-level command group."""

    def test_version(self, cli_runner):
        result = cli_runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_commands_registered(self, cli_runner):
        result = cli_runner.invoke(main, ["--help"])

        assert result.exit_code == 0
        for name in ("report", "series", "xirr"):
            assert name in result.output
