"""
models/available_remainder.py — AvailableRemainder table definition.

The mutable "unspent portion" of a Deposit, created in the same unit of
work as the deposit (1:1, enforced by the UNIQUE deposit_id).

Invariants (maintained by allocation_service, not by the database):
  - allocated_points + unallocated_points == original_points
  - fully_allocated is True iff unallocated_points == 0

`unallocated_points` starts negative for a negative deposit. Allocating
"against" such a remainder consumes a negative amount, which pays the
payer's balance back up.

The composite index backs the oldest-first scan in
ledger_store.iter_unallocated_remainders:
  WHERE NOT fully_allocated ORDER BY timestamp, id
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from points_ledger.app.extensions import db


class AvailableRemainder(db.Model):
    __tablename__ = "available_remainders"

    __table_args__ = (
        Index(
            "idx_available_remainders_scan",
            "fully_allocated",
            "timestamp",
            "id",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    deposit_id: Mapped[int] = mapped_column(
        ForeignKey("deposits.id", ondelete="RESTRICT"),
        nullable=False,
        unique=True,
    )

    payer_balance_id: Mapped[int] = mapped_column(
        ForeignKey("payer_balances.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    payer: Mapped[str] = mapped_column(String(255), nullable=False)

    # Copy of Deposit.points, kept for audit.
    original_points: Mapped[int] = mapped_column(Integer, nullable=False)

    allocated_points: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    unallocated_points: Mapped[int] = mapped_column(Integer, nullable=False)

    fully_allocated: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    # Copy of Deposit.timestamp; the oldest-first ordering key.
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<AvailableRemainder id={self.id} "
            f"deposit_id={self.deposit_id} "
            f"payer={self.payer!r} "
            f"allocated={self.allocated_points} "
            f"unallocated={self.unallocated_points}>"
        )
