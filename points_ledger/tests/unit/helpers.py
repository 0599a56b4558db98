"""
tests/unit/helpers.py — Plain helper functions shared by the unit tests.

These are functions, not fixtures, so they can be called with arbitrary
arguments anywhere in a test.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from points_ledger.app.models.allocation_record import AllocationRecord
from points_ledger.app.models.available_remainder import AvailableRemainder
from points_ledger.app.models.deposit import Deposit
from points_ledger.app.models.payer_balance import PayerBalance
from points_ledger.app.models.spend_record import SpendRecord

BASE_TIME = datetime(2020, 10, 31, 0, 0, tzinfo=timezone.utc)


def ts(hours: float) -> datetime:
    """A UTC timestamp `hours` after BASE_TIME."""
    return BASE_TIME + timedelta(hours=hours)


def balances_of(session: Session) -> dict[str, int]:
    """{payer: balance} for every balance row."""
    rows = session.execute(select(PayerBalance).order_by(PayerBalance.id)).scalars().all()
    return {row.payer: row.balance for row in rows}


def remainders_of(session: Session) -> list[AvailableRemainder]:
    stmt = select(AvailableRemainder).order_by(AvailableRemainder.id)
    return list(session.execute(stmt).scalars().all())


def snapshot(session: Session) -> dict:
    """Every column of every ledger row, for before/after comparisons."""

    def rows(model):
        stmt = select(model).order_by(model.id)
        return [
            {col.name: getattr(row, col.key) for col in model.__table__.columns}
            for row in session.execute(stmt).scalars().all()
        ]

    return {
        "balances":    rows(PayerBalance),
        "deposits":    rows(Deposit),
        "remainders":  rows(AvailableRemainder),
        "spends":      rows(SpendRecord),
        "allocations": rows(AllocationRecord),
    }
