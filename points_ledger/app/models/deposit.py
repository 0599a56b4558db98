"""
models/deposit.py — Deposit table definition.

A Deposit is the permanent audit record of one Add-Points call. It is never
updated or deleted after the unit of work that created it commits; the
spendable part of it lives in its AvailableRemainder companion.

`points` is signed: a negative deposit is legal as long as the payer's
balance stays non-negative (enforced by balance_service.adjust_balance).
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from points_ledger.app.extensions import db


class Deposit(db.Model):
    __tablename__ = "deposits"

    id: Mapped[int] = mapped_column(primary_key=True)

    # ON DELETE RESTRICT: balances are never deleted while deposits exist.
    payer_balance_id: Mapped[int] = mapped_column(
        ForeignKey("payer_balances.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    # Denormalised copy of PayerBalance.payer for the audit trail.
    payer: Mapped[str] = mapped_column(String(255), nullable=False)

    points: Mapped[int] = mapped_column(Integer, nullable=False)

    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Deposit id={self.id} "
            f"payer={self.payer!r} "
            f"points={self.points} "
            f"timestamp={self.timestamp.isoformat()}>"
        )
