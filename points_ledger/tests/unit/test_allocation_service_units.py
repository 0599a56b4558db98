"""
Unit tests for allocation_service without a database.

The store is patched; remainders, balances and spend records are plain
SimpleNamespace stand-ins carrying only the attributes the allocator reads.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from points_ledger.app.errors import CorruptionDetail, ErrorCode
from points_ledger.app.models.allocation_record import AllocationRecord
from points_ledger.app.services import allocation_service
from points_ledger.app.services.allocation_service import SpendResults


def _remainder(rid: int, payer_balance_id: int, payer: str, unallocated: int, allocated: int = 0):
    return SimpleNamespace(
        id=rid,
        deposit_id=rid * 10,
        payer_balance_id=payer_balance_id,
        payer=payer,
        original_points=allocated + unallocated,
        allocated_points=allocated,
        unallocated_points=unallocated,
        fully_allocated=False,
    )


# ── SpendResults ───────────────────────────────────────────────────────────

def test_spend_results_accumulates_per_payer_in_first_touch_order():
    results = SpendResults()
    results.subtract("DANNON", 300)
    results.subtract("UNILEVER", 200)
    results.subtract("DANNON", -200)

    assert results.deducted("DANNON") == 100
    assert results.deducted("NOBODY") == 0
    assert results.results == [
        {"payer": "DANNON", "points": -100},
        {"payer": "UNILEVER", "points": -200},
    ]


def test_spend_results_empty():
    assert SpendResults().results == []


# ── allocate_one_remainder ─────────────────────────────────────────────────

@patch("points_ledger.app.services.ledger_store.get_balance_by_id")
def test_allocate_one_remainder_takes_only_what_is_needed(mock_get_balance):
    session = MagicMock()
    balance = SimpleNamespace(id=1, balance=500)
    mock_get_balance.return_value = balance
    remainder = _remainder(1, 1, "A", unallocated=300)

    consumed, went_negative = allocation_service.allocate_one_remainder(
        session, remainder, 120, SimpleNamespace(id=7),
    )

    assert consumed == 120
    assert went_negative is False
    assert balance.balance == 380
    assert remainder.allocated_points == 120
    assert remainder.unallocated_points == 180
    assert remainder.fully_allocated is False


@patch("points_ledger.app.services.ledger_store.get_balance_by_id")
def test_allocate_one_remainder_exhausts_remainder_and_stages_record(mock_get_balance):
    session = MagicMock()
    mock_get_balance.return_value = SimpleNamespace(id=4, balance=300)
    remainder = _remainder(2, 4, "B", unallocated=300)

    consumed, _ = allocation_service.allocate_one_remainder(
        session, remainder, 1000, SimpleNamespace(id=9),
    )

    assert consumed == 300
    assert remainder.unallocated_points == 0
    assert remainder.fully_allocated is True

    session.add.assert_called_once()
    record = session.add.call_args.args[0]
    assert isinstance(record, AllocationRecord)
    assert record.spend_record_id == 9
    assert record.available_remainder_id == 2
    assert record.deposit_id == 20
    assert record.payer_balance_id == 4
    assert record.payer == "B"
    assert record.points_allocated == 300


@patch("points_ledger.app.services.ledger_store.get_balance_by_id")
def test_allocate_one_remainder_reports_transient_negative(mock_get_balance):
    session = MagicMock()
    balance = SimpleNamespace(id=1, balance=100)
    mock_get_balance.return_value = balance
    remainder = _remainder(1, 1, "A", unallocated=300)

    consumed, went_negative = allocation_service.allocate_one_remainder(
        session, remainder, 300, SimpleNamespace(id=1),
    )

    assert consumed == 300
    assert went_negative is True
    assert balance.balance == -200


@patch("points_ledger.app.services.ledger_store.get_balance_by_id")
def test_allocate_one_remainder_negative_remainder_repays_balance(mock_get_balance):
    session = MagicMock()
    balance = SimpleNamespace(id=1, balance=-200)
    mock_get_balance.return_value = balance
    remainder = _remainder(3, 1, "A", unallocated=-200)

    consumed, went_negative = allocation_service.allocate_one_remainder(
        session, remainder, 4500, SimpleNamespace(id=1),
    )

    assert consumed == -200
    assert went_negative is False
    assert balance.balance == 0
    assert remainder.allocated_points == -200
    assert remainder.unallocated_points == 0
    assert remainder.fully_allocated is True


# ── allocate_spend ─────────────────────────────────────────────────────────

@patch("points_ledger.app.services.ledger_store.get_negative_balances")
@patch("points_ledger.app.services.allocation_service.allocate_one_remainder")
@patch("points_ledger.app.services.ledger_store.iter_unallocated_remainders")
def test_allocate_spend_stops_once_covered_and_skips_negative_check(
    mock_iter,
    mock_allocate_one,
    mock_negatives,
):
    remainders = [
        _remainder(1, 1, "A", 100),
        _remainder(2, 2, "B", 100),
        _remainder(3, 3, "C", 100),
    ]
    mock_iter.return_value = iter(remainders)
    mock_allocate_one.side_effect = [(100, False), (50, False)]

    outcome = allocation_service.allocate_spend(MagicMock(), SimpleNamespace(id=1, points_spent=150))

    assert outcome.ok
    assert outcome.value == [{"payer": "A", "points": -100}, {"payer": "B", "points": -50}]
    assert mock_allocate_one.call_count == 2
    assert mock_allocate_one.call_args_list[1].args[2] == 50
    mock_negatives.assert_not_called()


@patch("points_ledger.app.services.ledger_store.get_negative_balances", return_value=[])
@patch("points_ledger.app.services.allocation_service.allocate_one_remainder")
@patch("points_ledger.app.services.ledger_store.iter_unallocated_remainders")
def test_allocate_spend_accepts_resolved_transient_negative(
    mock_iter,
    mock_allocate_one,
    mock_negatives,
):
    mock_iter.return_value = iter([_remainder(1, 1, "A", 100), _remainder(2, 1, "A", -50)])
    mock_allocate_one.side_effect = [(100, True), (-50, False)]

    outcome = allocation_service.allocate_spend(MagicMock(), SimpleNamespace(id=1, points_spent=50))

    assert outcome.ok
    assert outcome.value == [{"payer": "A", "points": -50}]
    mock_negatives.assert_called_once()


@patch("points_ledger.app.services.ledger_store.get_negative_balances")
@patch("points_ledger.app.services.allocation_service.allocate_one_remainder")
@patch("points_ledger.app.services.ledger_store.iter_unallocated_remainders")
def test_allocate_spend_rejects_unresolved_negative(
    mock_iter,
    mock_allocate_one,
    mock_negatives,
):
    mock_iter.return_value = iter([_remainder(1, 1, "A", 100)])
    mock_allocate_one.side_effect = [(100, True)]
    mock_negatives.return_value = [SimpleNamespace(id=1, payer="A", balance=-100)]

    outcome = allocation_service.allocate_spend(MagicMock(), SimpleNamespace(id=1, points_spent=100))

    assert not outcome.ok
    assert outcome.value is None
    assert outcome.error.code == ErrorCode.WOULD_CORRUPT_DATA
    assert outcome.error.http_status == 422
    assert outcome.error.message == CorruptionDetail.NEGATIVE_BALANCE


@pytest.mark.parametrize("prefetch", [True, False])
@patch("points_ledger.app.services.ledger_store.iter_unallocated_remainders", return_value=iter([]))
def test_allocate_spend_passes_scan_options_to_store(mock_iter, prefetch):
    session = MagicMock()

    allocation_service.allocate_spend(
        session, SimpleNamespace(id=1, points_spent=0), batch_size=7, prefetch=prefetch,
    )

    mock_iter.assert_called_once_with(session, 0, batch_size=7, prefetch=prefetch, cancel=None)
