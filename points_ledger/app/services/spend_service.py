"""
services/spend_service.py — Spending points (the unit of work for POST /spend).

    validate bounds → stage SpendRecord → allocate_spend → commit

Rejections (all WOULD_CORRUPT_DATA, 422):
  NEGATIVE_SPEND   points_to_spend < 0. Nothing is staged.
  OVERSPEND        points_to_spend > SUM(balance). Nothing is staged.
  NEGATIVE_BALANCE the allocation walk left some payer below zero. The
                   SpendRecord, AllocationRecords and balance/remainder
                   updates it staged are all rolled back.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from points_ledger.app.errors import CorruptionDetail, OperationCancelled, WouldCorruptDataError
from points_ledger.app.models.spend_record import SpendRecord
from points_ledger.app.services import allocation_service, ledger_store
from points_ledger.app.services.deposit_service import as_utc
from points_ledger.app.services.outcome import Outcome

logger = logging.getLogger(__name__)


def create_spend_record(
        session: Session,
        points_to_spend: int,
        timestamp: datetime | None = None,
        cancel: threading.Event | None = None,
) -> Outcome[SpendRecord]:
    """Validates the spend bounds and stages the SpendRecord."""
    if points_to_spend < 0:
        return Outcome.rejected(
            WouldCorruptDataError("spend_points", CorruptionDetail.NEGATIVE_SPEND)
        )

    total_available = ledger_store.get_total_balance(session, cancel=cancel)
    if points_to_spend > total_available:
        return Outcome.rejected(
            WouldCorruptDataError("spend_points", CorruptionDetail.OVERSPEND)
        )

    spend_record = SpendRecord(
        points_spent=points_to_spend,
        timestamp=as_utc(timestamp) if timestamp is not None else datetime.now(timezone.utc),
    )
    ledger_store.add(session, spend_record, cancel=cancel)
    return Outcome.success(spend_record)


def spend_points(
        session: Session,
        points_to_spend: int,
        timestamp: datetime | None = None,
        batch_size: int = ledger_store.DEFAULT_BATCH_SIZE,
        cancel: threading.Event | None = None,
) -> Outcome[list[dict]]:
    """
    Spends points across all payers, oldest deposits first.

    Returns:
        Outcome.success([{"payer": str, "points": int}, ...]) after commit.
        Each entry is the signed change to that payer's balance (negative
        when points were taken from them).
        Outcome.rejected(WouldCorruptDataError) on any rejection; the session
        is rolled back.

    Raises:
        OperationCancelled -- `cancel` was set before the commit. The session
        is rolled back before the exception propagates.
    """
    try:
        created = create_spend_record(session, points_to_spend, timestamp, cancel=cancel)
        if not created.ok:
            session.rollback()
            logger.warning("Rejected spend of %d points: %s", points_to_spend, created.error.message)
            return created

        allocated = allocation_service.allocate_spend(
            session, created.value, batch_size=batch_size, cancel=cancel
        )
        if not allocated.ok:
            session.rollback()
            logger.warning(
                "Rolled back spend of %d points: %s",
                points_to_spend, allocated.error.message,
            )
            return allocated

        ledger_store.raise_if_cancelled(cancel)
    except OperationCancelled:
        session.rollback()
        raise

    session.commit()
    logger.info("Spent %d points across %d payer(s)", points_to_spend, len(allocated.value))
    return allocated
