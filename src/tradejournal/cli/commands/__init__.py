"""Commands __init__ - exports all commands."""

from tradejournal.cli.commands.report import report_command
from tradejournal.cli.commands.series import series_command
from tradejournal.cli.commands.xirr import xirr_command

__all__ = ["report_command", "series_command", "xirr_command"]
