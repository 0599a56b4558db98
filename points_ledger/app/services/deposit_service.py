"""
services/deposit_service.py — Recording deposits (Add-Points).

add_points() is the unit of work for POST /add:
    adjust_balance → record_deposit → commit

A rejected adjustment is rolled back and returned; nothing is staged for a
rejected call, so the deposit, remainder and balance tables are left exactly
as they were.

Layer rules:
  - No Flask imports.
  - record_deposit() only stages; add_points() is the one function here
    that commits or rolls back the session it is given.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from points_ledger.app.errors import OperationCancelled
from points_ledger.app.models.available_remainder import AvailableRemainder
from points_ledger.app.models.deposit import Deposit
from points_ledger.app.models.payer_balance import PayerBalance
from points_ledger.app.services import balance_service, ledger_store
from points_ledger.app.services.outcome import Outcome

logger = logging.getLogger(__name__)


def as_utc(timestamp: datetime) -> datetime:
    """Normalises a timestamp to UTC. Naive timestamps are taken as UTC."""
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc)


def record_deposit(
        session: Session,
        payer_balance: PayerBalance,
        points: int,
        timestamp: datetime,
        cancel: threading.Event | None = None,
) -> Deposit:
    """
    Stages a Deposit for `payer_balance` and its AvailableRemainder companion.

    The remainder starts with every point unallocated. Its flag follows the
    fully_allocated ⇔ unallocated == 0 invariant, so it is False for every
    non-zero deposit.
    """
    timestamp = as_utc(timestamp)

    deposit = Deposit(
        payer_balance_id=payer_balance.id,
        payer=payer_balance.payer,
        points=points,
        timestamp=timestamp,
    )
    ledger_store.add(session, deposit, cancel=cancel)

    remainder = AvailableRemainder(
        deposit_id=deposit.id,
        payer_balance_id=payer_balance.id,
        payer=payer_balance.payer,
        original_points=points,
        allocated_points=0,
        unallocated_points=points,
        fully_allocated=points == 0,
        timestamp=timestamp,
    )
    ledger_store.add(session, remainder, cancel=cancel)

    return deposit


def add_points(
        session: Session,
        payer: str,
        points: int,
        timestamp: datetime,
        cancel: threading.Event | None = None,
) -> Outcome[Deposit]:
    """
    Adds (or, with negative points, removes) points for a payer.

    Returns:
        Outcome.success(Deposit) after the unit of work is committed.
        Outcome.rejected(WouldCorruptDataError) when the payer's balance
        would go negative. The session is rolled back.

    Raises:
        OperationCancelled -- `cancel` was set before the commit. The session
        is rolled back before the exception propagates.
    """
    try:
        adjusted = balance_service.adjust_balance(session, payer, points, cancel=cancel)
        if not adjusted.ok:
            session.rollback()
            logger.warning(
                "Rejected %+d points for payer %r: %s",
                points, payer, adjusted.error.message,
            )
            return Outcome.rejected(adjusted.error)

        deposit = record_deposit(session, adjusted.value, points, timestamp, cancel=cancel)
        ledger_store.raise_if_cancelled(cancel)
    except OperationCancelled:
        session.rollback()
        raise

    session.commit()
    logger.info("Recorded deposit %s: %+d points for payer %r", deposit.id, points, deposit.payer)
    return Outcome.success(deposit)
