"""
models/spend_record.py — SpendRecord table definition.

One row per validated spend request. Immutable once created; the
AllocationRecords that reference it describe how it was paid for.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Integer
from sqlalchemy.orm import Mapped, mapped_column

from points_ledger.app.extensions import db


class SpendRecord(db.Model):
    __tablename__ = "spend_records"

    __table_args__ = (
        # Negative spends are rejected by spend_service before a row exists.
        CheckConstraint("points_spent >= 0", name="ck_spend_records_points_nonnegative"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    points_spent: Mapped[int] = mapped_column(Integer, nullable=False)

    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<SpendRecord id={self.id} points_spent={self.points_spent}>"
