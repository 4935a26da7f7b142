"""
Pytest fixtures for the Pfand backend tests.

Provides test database setup, account fixtures, ledger builders, and test client.
"""

from __future__ import annotations

import itertools
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from pfand import create_app
from pfand.extensions import db
from pfand.models import Account
from pfand.services.concurrency import AccountLockRegistry
from pfand.services.return_service import ReturnProcessor
from pfand.services.transaction_log import LedgerEntry, MemoryTransactionLog


UNIT_VALUE = Decimal("2.00")


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'PFAND_UNIT_VALUE': '2.00',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def account_a(db_session):
    """Create Account A."""
    account = Account(name="Mia Schulz", email="mia@uni.example", student_id="100001")
    db_session.add(account)
    db_session.commit()
    return account


@pytest.fixture(scope='function')
def account_b(db_session):
    """Create Account B."""
    account = Account(name="Jonas Weber", email="jonas@uni.example", student_id="100002")
    db_session.add(account)
    db_session.commit()
    return account


class SteppingClock:
    """Deterministic clock: every call is one minute after the previous one."""

    def __init__(self, start: datetime = datetime(2026, 10, 1, 8, 0, 0)):
        self._next = start

    def __call__(self) -> datetime:
        now = self._next
        self._next = now + timedelta(minutes=1)
        return now


@pytest.fixture(scope='function')
def memory_log():
    """In-memory ledger with accounts 1 and 2 registered."""
    return MemoryTransactionLog(accounts=[1, 2], clock=SteppingClock())


@pytest.fixture(scope='function')
def processor(memory_log):
    """ReturnProcessor over the in-memory ledger with a private lock registry."""
    return ReturnProcessor(memory_log, UNIT_VALUE, locks=AccountLockRegistry())


_entry_ids = itertools.count(1)


def make_entry(account_id: int, kind: str, units: int, *, minute: int = 0,
               unit_value: Decimal = UNIT_VALUE, note: str | None = None) -> LedgerEntry:
    """Build a stored LedgerEntry directly, for pure calculator tests."""
    return LedgerEntry(
        id=next(_entry_ids),
        account_id=account_id,
        kind=kind,
        unit_count=units,
        unit_value=unit_value,
        amount=unit_value * units,
        note=note,
        processed_by="Staff" if kind == "RETURN" else None,
        order_id=None,
        created_at=datetime(2026, 10, 1, 8, 0, 0) + timedelta(minutes=minute),
    )
