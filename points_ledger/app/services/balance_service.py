"""
services/balance_service.py — Payer balance adjustment and balance queries.

This file is the SINGLE place a PayerBalance is created or has a deposit
applied to it. The spend walk (allocation_service.py) is the only other
writer, and it only ever subtracts allocated points.

Layer rules:
  - No Flask imports. No current_app, request, g, or HTTP knowledge.
  - Receives a SQLAlchemy Session as an argument; never commits.
  - Rejections are returned as Outcome values, never raised.

Invariant guarded here:
  A committed PayerBalance.balance is never negative. adjust_balance()
  refuses any delta that would take the balance below zero before it
  touches the session.
"""

from __future__ import annotations

import threading

from sqlalchemy.orm import Session

from points_ledger.app.errors import AppError, CorruptionDetail, ErrorCode, WouldCorruptDataError
from points_ledger.app.models.payer_balance import PayerBalance
from points_ledger.app.services import ledger_store
from points_ledger.app.services.outcome import Outcome


def adjust_balance(
        session: Session,
        payer: str,
        delta: int,
        cancel: threading.Event | None = None,
) -> Outcome[PayerBalance]:
    """
    Applies a signed point delta to a payer's balance.

    The balance row is created on the payer's first deposit. A missing row
    counts as a balance of 0, so a first deposit that is negative is
    rejected and no row is created.

    Returns:
        Outcome.success(PayerBalance) with the staged (created or updated) row.
        Outcome.rejected(WouldCorruptDataError) with the negative-balance
        detail when the new balance would be below zero. Nothing is staged.
    """
    payer_balance = ledger_store.get_balance_by_payer(session, payer, cancel=cancel)
    current = payer_balance.balance if payer_balance is not None else 0
    new_balance = current + delta

    if new_balance < 0:
        return Outcome.rejected(
            WouldCorruptDataError("adjust_balance", CorruptionDetail.NEGATIVE_BALANCE)
        )

    if payer_balance is None:
        payer_balance = PayerBalance(payer=payer, balance=new_balance)
        ledger_store.add(session, payer_balance, cancel=cancel)
        return Outcome.success(payer_balance)

    payer_balance.balance = new_balance
    return Outcome.success(payer_balance)


def check_ledger_integrity(
        session: Session,
        cancel: threading.Event | None = None,
) -> list[str]:
    """
    Returns a description of every broken ledger invariant; empty when sound.

    Checks:
      - balance == sum(unallocated_points) of the payer's remainders
      - balance >= 0
      - allocated + unallocated == original, and fully_allocated matches
        unallocated == 0, for every remainder
    """
    problems: list[str] = []
    unallocated_by_payer = ledger_store.sum_unallocated_by_payer(session, cancel=cancel)

    for payer_balance in ledger_store.list_balances(session, cancel=cancel):
        expected = unallocated_by_payer.get(payer_balance.id, 0)
        if payer_balance.balance != expected:
            problems.append(
                f"Payer {payer_balance.payer!r} has balance {payer_balance.balance} "
                f"but {expected} unallocated points."
            )
        if payer_balance.balance < 0:
            problems.append(
                f"Payer {payer_balance.payer!r} has a negative balance of {payer_balance.balance}."
            )

    for remainder in ledger_store.list_remainders_out_of_balance(session, cancel=cancel):
        problems.append(
            f"Remainder {remainder.id} of deposit {remainder.deposit_id} is inconsistent: "
            f"original={remainder.original_points} allocated={remainder.allocated_points} "
            f"unallocated={remainder.unallocated_points} "
            f"fully_allocated={remainder.fully_allocated}."
        )

    return problems


def get_balances(
        session: Session,
        check_integrity: bool = False,
        cancel: threading.Event | None = None,
) -> list[dict]:
    """
    Builds the payload for GET /balance: [{"payer": str, "points": int}, ...].

    Ordered by balance id, i.e. by the order payers first deposited.

    Args:
        check_integrity: Run check_ledger_integrity() first. It scans every
                         remainder, so the app enables it through
                         LEDGER_CHECK_INTEGRITY_ON_READ (off in production).

    Raises:
        AppError(INTERNAL_ERROR, 500) -- check_integrity is set and stored
        ledger data breaks an invariant. This means the source data is
        corrupt, not that the request was bad.
    """
    problems = check_ledger_integrity(session, cancel=cancel) if check_integrity else []
    if problems:
        raise AppError(
            ErrorCode.INTERNAL_ERROR,
            "Ledger integrity check failed: " + " ".join(problems),
            500,
        )

    return [
        {"payer": payer_balance.payer, "points": payer_balance.balance}
        for payer_balance in ledger_store.list_balances(session, cancel=cancel)
    ]
