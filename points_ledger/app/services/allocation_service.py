"""
services/allocation_service.py — Oldest-first allocation of a spend.

Algorithm (greedy, oldest first):
  Walk the not-fully-allocated remainders in (timestamp, id) order. From
  each one take min(unallocated, still_needed), subtract that from the
  owning payer's balance, record an AllocationRecord, and stop once the
  spend is covered.

Negative remainders:
  A negative deposit leaves a remainder with negative unallocated points.
  min() then yields a negative amount: the payer's balance goes back up and
  the amount still needed grows by the same number of points. This is how an
  earlier over-allocation of that payer is paid back inside one walk.

Transient negatives:
  Taking points from a payer whose negative deposit comes later in the
  walk drives that balance below zero for a while. Each step only reports
  it; the walk continues regardless. After the walk the staged balances are
  re-read, and if any is still negative the whole spend is rejected. The
  caller (spend_service.spend_points) then rolls back every staged change.

Layer rules:
  - No Flask imports. Never commits or rolls back.
"""

from __future__ import annotations

import threading
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from points_ledger.app.errors import CorruptionDetail, WouldCorruptDataError
from points_ledger.app.models.allocation_record import AllocationRecord
from points_ledger.app.models.available_remainder import AvailableRemainder
from points_ledger.app.models.spend_record import SpendRecord
from points_ledger.app.services import ledger_store
from points_ledger.app.services.outcome import Outcome


class SpendResults:
    """
    Accumulates the points deducted from each payer during one spend.

    Payers keep the order in which the walk first touched them.
    """

    def __init__(self) -> None:
        self._deducted: dict[str, int] = {}

    def subtract(self, payer: str, points: int) -> None:
        self._deducted[payer] = self._deducted.get(payer, 0) + points

    def deducted(self, payer: str) -> int:
        return self._deducted.get(payer, 0)

    @property
    def results(self) -> list[dict]:
        """Signed net change per payer: [{"payer": str, "points": -deducted}]."""
        return [
            {"payer": payer, "points": -points}
            for payer, points in self._deducted.items()
        ]


def allocate_one_remainder(
        session: Session,
        remainder: AvailableRemainder,
        amount_still_needed: int,
        spend_record: SpendRecord,
        cancel: threading.Event | None = None,
) -> tuple[int, bool]:
    """
    Consumes as much of `remainder` as the spend still needs.

    Returns:
        (amount_consumed, balance_went_negative)
        amount_consumed is negative for a negative remainder.
        balance_went_negative reports the payer's staged balance after this
        step; it is a flag for the caller, not a rejection.
    """
    amount_consumed = min(remainder.unallocated_points, amount_still_needed)

    payer_balance = ledger_store.get_balance_by_id(
        session, remainder.payer_balance_id, cancel=cancel
    )
    payer_balance.balance -= amount_consumed

    allocation = AllocationRecord(
        spend_record_id=spend_record.id,
        available_remainder_id=remainder.id,
        deposit_id=remainder.deposit_id,
        payer_balance_id=remainder.payer_balance_id,
        payer=remainder.payer,
        points_allocated=amount_consumed,
        timestamp=datetime.now(timezone.utc),
    )
    ledger_store.add(session, allocation, cancel=cancel)

    remainder.allocated_points += amount_consumed
    remainder.unallocated_points -= amount_consumed
    remainder.fully_allocated = remainder.unallocated_points == 0

    return amount_consumed, payer_balance.balance < 0


def allocate_spend(
        session: Session,
        spend_record: SpendRecord,
        batch_size: int = ledger_store.DEFAULT_BATCH_SIZE,
        prefetch: bool = True,
        cancel: threading.Event | None = None,
) -> Outcome[list[dict]]:
    """
    Allocates `spend_record.points_spent` across remainders, oldest first.

    Args:
        batch_size: Rows per keyset batch when scanning remainders.
        prefetch:   Stop fetching once the fetched remainders cover the
                    spend. Purely an I/O bound; the result is identical
                    with prefetch=False.

    Returns:
        Outcome.success([{"payer": str, "points": int}, ...]) with the signed
        net change per payer.
        Outcome.rejected(WouldCorruptDataError) with the negative-balance
        detail if some payer balance is still negative after the walk. The
        mutations staged by the walk are still in the session; the caller
        must roll back.
    """
    remaining = spend_record.points_spent
    results = SpendResults()
    check_payer_balances = False

    remainders = ledger_store.iter_unallocated_remainders(
        session,
        remaining,
        batch_size=batch_size,
        prefetch=prefetch,
        cancel=cancel,
    )
    for remainder in remainders:
        consumed, went_negative = allocate_one_remainder(
            session, remainder, remaining, spend_record, cancel=cancel
        )
        check_payer_balances = check_payer_balances or went_negative
        results.subtract(remainder.payer, consumed)
        remaining -= consumed
        if remaining == 0:
            break

    if not check_payer_balances:
        return Outcome.success(results.results)

    if not ledger_store.get_negative_balances(session, cancel=cancel):
        return Outcome.success(results.results)

    return Outcome.rejected(
        WouldCorruptDataError("allocate_spend", CorruptionDetail.NEGATIVE_BALANCE)
    )
