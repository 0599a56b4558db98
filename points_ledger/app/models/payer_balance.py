"""
models/payer_balance.py — PayerBalance table definition.

No business logic. No imports from services or routes.

Key design points:
  - One row per payer. `payer` is UNIQUE; lookups in ledger_store are
    case-insensitive, so the first spelling seen is the one stored.
  - `balance` is the running total of the payer's unallocated points.
    It may be negative inside an uncommitted unit of work (the spend walk
    can drive it negative transiently) but never after a commit.
  - There are no ORM relationships on any ledger model. Related rows are
    fetched explicitly through services/ledger_store.py.
"""

from __future__ import annotations

from sqlalchemy import CheckConstraint, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from points_ledger.app.extensions import db


class PayerBalance(db.Model):
    __tablename__ = "payer_balances"

    __table_args__ = (
        CheckConstraint(
            "LENGTH(TRIM(payer)) > 0",
            name="ck_payer_balances_payer_nonempty",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    payer: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
    )

    balance: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<PayerBalance id={self.id} payer={self.payer!r} balance={self.balance}>"
