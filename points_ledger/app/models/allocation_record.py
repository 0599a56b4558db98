"""
models/allocation_record.py — AllocationRecord table definition.

Evidence that `points_allocated` points of one AvailableRemainder were
consumed by one SpendRecord. Immutable once created. A spend produces one
row per remainder it touched, and for a committed spend:

    sum(points_allocated) == SpendRecord.points_spent

`points_allocated` is negative when the walk passed over a remainder of a
negative deposit.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from points_ledger.app.extensions import db


class AllocationRecord(db.Model):
    __tablename__ = "allocation_records"

    id: Mapped[int] = mapped_column(primary_key=True)

    spend_record_id: Mapped[int] = mapped_column(
        ForeignKey("spend_records.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    available_remainder_id: Mapped[int] = mapped_column(
        ForeignKey("available_remainders.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    deposit_id: Mapped[int] = mapped_column(
        ForeignKey("deposits.id", ondelete="RESTRICT"),
        nullable=False,
    )

    payer_balance_id: Mapped[int] = mapped_column(
        ForeignKey("payer_balances.id", ondelete="RESTRICT"),
        nullable=False,
    )

    payer: Mapped[str] = mapped_column(String(255), nullable=False)

    points_allocated: Mapped[int] = mapped_column(Integer, nullable=False)

    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<AllocationRecord id={self.id} "
            f"spend_record_id={self.spend_record_id} "
            f"remainder_id={self.available_remainder_id} "
            f"points={self.points_allocated}>"
        )
