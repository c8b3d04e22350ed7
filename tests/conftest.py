"""Root conftest for all tests - shared journal fixtures."""

from datetime import date
from decimal import Decimal

import pytest

from tradejournal.services.accounting.models import (
    CapitalChange,
    CapitalChangeType,
    Fill,
    PositionStatus,
    Trade,
)


@pytest.fixture
def closed_trade() -> Trade:
    """Long trade: 10 @ 100 on 2023-01-10, exited 5 @ 120 (Feb 5) and 5 @ 130 (Mar 10)."""
    return Trade.from_lots(
        trade_id="T001",
        symbol="INFY",
        entries=[Fill(price=Decimal("100"), qty=Decimal("10"), date=date(2023, 1, 10))],
        exits=[
            Fill(price=Decimal("120"), qty=Decimal("5"), date=date(2023, 2, 5)),
            Fill(price=Decimal("130"), qty=Decimal("5"), date=date(2023, 3, 10)),
        ],
    )


@pytest.fixture
def open_trade() -> Trade:
    """Long trade with no exits: 20 @ 50 on 2023-02-15."""
    return Trade(
        trade_id="T002",
        symbol="TCS",
        date=date(2023, 2, 15),
        position_status=PositionStatus.OPEN,
        entries=(Fill(price=Decimal("50"), qty=Decimal("20"), date=date(2023, 2, 15)),),
        avg_entry=Decimal("50"),
        open_qty=Decimal("20"),
    )


@pytest.fixture
def deposit() -> CapitalChange:
    """Deposit of 5000 on 2023-02-20."""
    return CapitalChange(
        change_id="C001",
        date=date(2023, 2, 20),
        amount=Decimal("5000"),
        type=CapitalChangeType.DEPOSIT,
    )
