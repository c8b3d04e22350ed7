"""Journal snapshot files for the CLI.

A snapshot is one YAML or JSON document holding the journal state the
engine consumes:

    trades:
      - trade_id: t1
        symbol: INFY
        date: 2023-01-10
        position_status: Closed
        entries: [{price: 100, qty: 10, date: 2023-01-10}]
        exits: [{price: 120, qty: 10, date: 2023-02-05}]
        avg_entry: 100
        avg_exit_price: 120
        exited_qty: 10
        pl_rs: 200
    capital_changes:
      - {date: 2023-03-01, amount: 5000, type: deposit}
    yearly_capitals:
      - {year: 2023, capital: 100000}
    monthly_overrides:
      - {month: Jun, year: 2023, capital: 120000}

Files ending in ``.json`` are parsed as JSON, anything else as YAML.
"""

import json
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict

from tradejournal.services.accounting.models import (
    CapitalChange,
    MonthlyCapitalOverride,
    Trade,
    YearlyStartingCapital,
)


class JournalSnapshot(BaseModel):
    """Validated journal state loaded from a snapshot file."""

    trades: tuple[Trade, ...] = ()
    capital_changes: tuple[CapitalChange, ...] = ()
    yearly_capitals: tuple[YearlyStartingCapital, ...] = ()
    monthly_overrides: tuple[MonthlyCapitalOverride, ...] = ()

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_file(cls, path: Path | str) -> "JournalSnapshot":
        """
        Load and validate a snapshot file.

        Args:
            path: YAML or JSON snapshot path

        Returns:
            Validated JournalSnapshot

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the file cannot be parsed or is not a mapping
            pydantic.ValidationError: If a record is malformed
        """
        snapshot_path = Path(path)
        if not snapshot_path.exists():
            raise FileNotFoundError(f"Snapshot file not found: {snapshot_path}")

        try:
            with open(snapshot_path, "r") as f:
                if snapshot_path.suffix.lower() == ".json":
                    raw = json.load(f)
                else:
                    raw = yaml.safe_load(f)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ValueError(f"Failed to parse snapshot {snapshot_path}: {e}") from e

        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ValueError(f"Snapshot {snapshot_path} must contain a mapping, got {type(raw).__name__}")

        return cls.model_validate(raw)

    @property
    def is_empty(self) -> bool:
        return not (self.trades or self.capital_changes or self.yearly_capitals or self.monthly_overrides)
