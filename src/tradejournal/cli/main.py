"""Trade journal CLI main entry point."""

import click

from tradejournal import __version__
from tradejournal.cli.commands import report_command, series_command, xirr_command


@click.group()
@click.version_option(version=__version__)
def main():
    """Trade Journal - Portfolio Accounting and Performance Analytics"""
    pass


# Register commands
main.add_command(report_command)
main.add_command(series_command)
main.add_command(xirr_command)


if __name__ == "__main__":
    main()
