"""
tests/integration/conftest.py — Fixtures for all integration tests.

Design:
  - The app is created once per session using create_app("testing").
    TestingConfig points at in-memory SQLite unless TEST_DATABASE_URL names
    a real database (e.g. a PostgreSQL pointsledger_test).
  - All tables are created once via db.create_all() at session start.
  - Between tests, all rows are deleted in FK-safe order so tests are isolated.
"""

from __future__ import annotations

import pytest
from sqlalchemy import delete

from points_ledger.app import create_app
from points_ledger.app.extensions import db as _db
from points_ledger.app.models.allocation_record import AllocationRecord
from points_ledger.app.models.available_remainder import AvailableRemainder
from points_ledger.app.models.deposit import Deposit
from points_ledger.app.models.payer_balance import PayerBalance
from points_ledger.app.models.spend_record import SpendRecord


# ═══════════════════════════════════════════════════════════════════════════
# Session-scoped app fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def app():
    """
    Creates the Flask application in 'testing' mode once for the entire test session.

    Steps:
      1. Create app with TestingConfig.
      2. Run db.create_all() to create all tables.
      3. Yield the app for the test session.
      4. Drop all tables at teardown.
    """
    flask_app = create_app("testing")

    with flask_app.app_context():
        _db.create_all()

    yield flask_app

    with flask_app.app_context():
        _db.drop_all()


# ═══════════════════════════════════════════════════════════════════════════
# Function-scoped test isolation
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def clean_tables(app):
    """
    Deletes all rows between tests in FK-safe order.

    Delete order respects FK RESTRICT constraints: allocations reference
    spends, remainders, deposits and balances, so they go first.
    """
    yield  # run the test

    with app.app_context():
        _db.session.rollback()  # discard any uncommitted state from a failed test

        for model in (AllocationRecord, SpendRecord, AvailableRemainder, Deposit, PayerBalance):
            _db.session.execute(delete(model))
        _db.session.commit()


# ═══════════════════════════════════════════════════════════════════════════
# Client fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def client(app):
    """Flask test client. Each test gets a fresh client (function-scoped)."""
    return app.test_client()
