"""
services/ledger_store.py — Data access for the points ledger.

These are the ONLY sanctioned ways to read ledger tables. Services never
build their own select() against the ledger models; they call in here.

Layer rules:
  - No Flask imports. Receives a SQLAlchemy Session (the unit of work) as an
    explicit argument and returns ORM objects or plain Python values.
  - Never commits. add() only flushes so that new rows get their ids.
  - Every read/write accepts an optional `cancel` event and checks it first
    (raise_if_cancelled). This is the only suspension point of the core.

Staged state:
  The Session autoflushes before each query, so every read here sees the
  mutations staged earlier in the same unit of work. get_negative_balances()
  depends on that: it must see the balances the spend walk just changed.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session

from points_ledger.app.errors import OperationCancelled
from points_ledger.app.models.allocation_record import AllocationRecord
from points_ledger.app.models.available_remainder import AvailableRemainder
from points_ledger.app.models.payer_balance import PayerBalance

DEFAULT_BATCH_SIZE = 100


def raise_if_cancelled(cancel: threading.Event | None) -> None:
    """Raises OperationCancelled if the caller has set its cancel event."""
    if cancel is not None and cancel.is_set():
        raise OperationCancelled("The ledger operation was cancelled.")


def add(session: Session, obj, cancel: threading.Event | None = None):
    """Stages a new row and flushes it so its primary key is populated."""
    raise_if_cancelled(cancel)
    session.add(obj)
    session.flush()
    return obj


# ── Payer balances ─────────────────────────────────────────────────────────

def get_balance_by_payer(
        session: Session,
        payer: str,
        cancel: threading.Event | None = None,
) -> PayerBalance | None:
    """
    Case-insensitive lookup of a payer's balance row.

    Both sides are lowercased by the database. Backends differ in what
    lower() folds (SQLite only folds ASCII), so mixing it with str.lower()
    could miss a row that the same spelling created.
    """
    raise_if_cancelled(cancel)
    stmt = select(PayerBalance).where(func.lower(PayerBalance.payer) == func.lower(payer))
    return session.execute(stmt).scalar_one_or_none()


def get_balance_by_id(
        session: Session,
        payer_balance_id: int,
        cancel: threading.Event | None = None,
) -> PayerBalance | None:
    raise_if_cancelled(cancel)
    return session.get(PayerBalance, payer_balance_id)


def list_balances(
        session: Session,
        cancel: threading.Event | None = None,
) -> list[PayerBalance]:
    """Every balance row, ordered by id so repeated reads are stable."""
    raise_if_cancelled(cancel)
    stmt = select(PayerBalance).order_by(PayerBalance.id)
    return list(session.execute(stmt).scalars().all())


def get_total_balance(
        session: Session,
        cancel: threading.Event | None = None,
) -> int:
    """SUM(balance) across all payers; 0 for an empty ledger."""
    raise_if_cancelled(cancel)
    stmt = select(func.coalesce(func.sum(PayerBalance.balance), 0))
    return int(session.execute(stmt).scalar_one())


def get_negative_balances(
        session: Session,
        cancel: threading.Event | None = None,
) -> list[PayerBalance]:
    """Balances below zero, including ones only staged in this session."""
    raise_if_cancelled(cancel)
    stmt = select(PayerBalance).where(PayerBalance.balance < 0).order_by(PayerBalance.id)
    return list(session.execute(stmt).scalars().all())


# ── Available remainders ───────────────────────────────────────────────────

def iter_unallocated_remainders(
        session: Session,
        points_to_allocate: int,
        batch_size: int = DEFAULT_BATCH_SIZE,
        prefetch: bool = True,
        cancel: threading.Event | None = None,
) -> Iterator[AvailableRemainder]:
    """
    Yields not-fully-allocated remainders oldest first.

    Ordering is (timestamp, id): equal timestamps fall back to insertion
    order, which keeps the walk deterministic.

    Rows are fetched lazily in keyset-paginated batches. Keyset (rather than
    OFFSET) paging is required because the caller mutates the rows it is
    given, which can flip `fully_allocated` and shift offsets.

    When `prefetch` is True the generator stops as soon as the cumulative
    unallocated points seen exceed `points_to_allocate`. The allocator stops
    on its own once the spend is covered, so this bound only saves reads and
    never changes the outcome. Passing prefetch=False scans every candidate.
    """
    if points_to_allocate <= 0:
        return

    last_key: tuple | None = None
    total_unallocated = 0

    while True:
        raise_if_cancelled(cancel)
        stmt = (
            select(AvailableRemainder)
            .where(AvailableRemainder.fully_allocated.is_(False))
            .order_by(AvailableRemainder.timestamp, AvailableRemainder.id)
            .limit(batch_size)
        )
        if last_key is not None:
            last_timestamp, last_id = last_key
            stmt = stmt.where(
                or_(
                    AvailableRemainder.timestamp > last_timestamp,
                    and_(
                        AvailableRemainder.timestamp == last_timestamp,
                        AvailableRemainder.id > last_id,
                    ),
                )
            )

        batch = list(session.execute(stmt).scalars().all())
        if not batch:
            return

        for remainder in batch:
            last_key = (remainder.timestamp, remainder.id)
            # Read before yielding: the caller consumes from the row.
            total_unallocated += remainder.unallocated_points
            yield remainder
            if prefetch and total_unallocated > points_to_allocate:
                return

        if len(batch) < batch_size:
            return


def sum_unallocated_by_payer(
        session: Session,
        cancel: threading.Event | None = None,
) -> dict[int, int]:
    """{payer_balance_id: SUM(unallocated_points)} over every remainder."""
    raise_if_cancelled(cancel)
    stmt = (
        select(
            AvailableRemainder.payer_balance_id,
            func.sum(AvailableRemainder.unallocated_points),
        )
        .group_by(AvailableRemainder.payer_balance_id)
    )
    return {row[0]: int(row[1]) for row in session.execute(stmt).all()}


def list_remainders_out_of_balance(
        session: Session,
        cancel: threading.Event | None = None,
) -> list[AvailableRemainder]:
    """Remainders whose allocated/unallocated/fully_allocated fields disagree."""
    raise_if_cancelled(cancel)
    stmt = (
        select(AvailableRemainder)
        .where(
            or_(
                AvailableRemainder.allocated_points + AvailableRemainder.unallocated_points
                != AvailableRemainder.original_points,
                and_(
                    AvailableRemainder.fully_allocated.is_(True),
                    AvailableRemainder.unallocated_points != 0,
                ),
                and_(
                    AvailableRemainder.fully_allocated.is_(False),
                    AvailableRemainder.unallocated_points == 0,
                ),
            )
        )
        .order_by(AvailableRemainder.id)
    )
    return list(session.execute(stmt).scalars().all())


# ── Allocation records ─────────────────────────────────────────────────────

def list_allocations_for_spend(
        session: Session,
        spend_record_id: int,
        cancel: threading.Event | None = None,
) -> list[AllocationRecord]:
    raise_if_cancelled(cancel)
    stmt = (
        select(AllocationRecord)
        .where(AllocationRecord.spend_record_id == spend_record_id)
        .order_by(AllocationRecord.id)
    )
    return list(session.execute(stmt).scalars().all())
