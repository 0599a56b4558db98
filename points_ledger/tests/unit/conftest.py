"""
tests/unit/conftest.py — Fixtures for store-level unit tests.

Unit tests run without Flask. Pure functions are tested with unittest.mock;
the allocation and invariant tests need real SQL ordering and aggregation,
so they get a plain SQLAlchemy Session on a fresh in-memory SQLite engine.
The models are Flask-SQLAlchemy models, but db.metadata and the mapped
classes work on a bare Session with no application context.
"""

from __future__ import annotations

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from points_ledger.app.extensions import db
from points_ledger.app.models import (  # noqa: F401
    allocation_record,
    available_remainder,
    deposit,
    payer_balance,
    spend_record,
)


@pytest.fixture
def engine():
    """A fresh in-memory database per test; nothing leaks between tests."""
    eng = create_engine("sqlite://")
    db.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as s:
        yield s
