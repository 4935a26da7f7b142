"""
Concurrency tests for Pfand returns.

Concurrent returns for one account must never drive its balance negative.
"""
import os
import tempfile
import threading
import time
import unittest
from decimal import Decimal

from pfand import create_app
from pfand.errors import InsufficientBalanceError
from pfand.extensions import db
from pfand.models import Account
from pfand.services import balance_service
from pfand.services.concurrency import AccountLockRegistry
from pfand.services.return_service import ReturnProcessor, get_return_processor
from pfand.services.transaction_log import MemoryTransactionLog, SqlTransactionLog


class SlowMemoryLog(MemoryTransactionLog):
    """Widens the gap between reading the balance and appending the return."""

    def entries_for(self, account_id):
        entries = super().entries_for(account_id)
        time.sleep(0.02)
        return entries


def _run_concurrently(worker, args_list):
    results = []
    errors = []
    lock = threading.Lock()
    start = threading.Barrier(len(args_list))

    def run(*args):
        start.wait()
        try:
            value = worker(*args)
            with lock:
                results.append(value)
        except Exception as exc:
            with lock:
                errors.append(exc)

    threads = [threading.Thread(target=run, args=args) for args in args_list]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return results, errors


class MemoryLedgerConcurrencyTests(unittest.TestCase):
    def setUp(self):
        self.log = SlowMemoryLog(accounts=[1, 2])
        self.locks = AccountLockRegistry()
        self.processor = ReturnProcessor(self.log, Decimal("2.00"), locks=self.locks)

    def test_competing_returns_cannot_overdraw(self):
        self.processor.record_deposit(1, 3)

        results, errors = _run_concurrently(
            lambda: self.processor.process_return(1, 2, "Staff"),
            [() for _ in range(8)],
        )

        self.assertEqual(len(results), 1)
        self.assertEqual(len(errors), 7)
        self.assertTrue(all(isinstance(e, InsufficientBalanceError) for e in errors))
        self.assertEqual(balance_service.raw_outstanding_units(self.log.entries_for(1)), 1)

    def test_single_cup_returns_stop_at_zero(self):
        self.processor.record_deposit(1, 4)

        results, errors = _run_concurrently(
            lambda: self.processor.process_return(1, 1, "Staff"),
            [() for _ in range(10)],
        )

        self.assertEqual(len(results), 4)
        self.assertEqual(len(errors), 6)
        self.assertEqual(sorted(r.remaining_units for r in results), [0, 1, 2, 3])
        self.assertEqual(balance_service.raw_outstanding_units(self.log.entries_for(1)), 0)

    def test_lock_slots_are_released(self):
        self.processor.record_deposit(1, 2)
        self.processor.record_deposit(2, 2)

        _run_concurrently(
            lambda account_id: self.processor.process_return(account_id, 1, "Staff"),
            [(1,), (2,), (1,), (2,)],
        )

        self.assertEqual(len(self.locks), 0)
        self.assertEqual(balance_service.raw_outstanding_units(self.log.entries_for(1)), 0)
        self.assertEqual(balance_service.raw_outstanding_units(self.log.entries_for(2)), 0)


class SqlLedgerConcurrencyTests(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        db_path = os.path.join(self.tmpdir.name, "concurrency.db")
        self.app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
        })

        with self.app.app_context():
            db.drop_all()
            db.create_all()

            account = Account(name="Concurrent Customer", email="concurrent@example.com")
            db.session.add(account)
            db.session.commit()
            self.account_id = account.id

            get_return_processor().record_deposit(self.account_id, 5)

    def tearDown(self):
        with self.app.app_context():
            db.session.remove()
            db.drop_all()
            db.session.remove()
            db.engine.dispose()
        self.tmpdir.cleanup()

    def test_concurrent_returns_respect_balance(self):
        def worker():
            with self.app.app_context():
                try:
                    return get_return_processor().process_return(self.account_id, 1, "Staff")
                finally:
                    db.session.remove()

        results, errors = _run_concurrently(worker, [() for _ in range(8)])

        self.assertEqual(len(results), 5)
        self.assertEqual(len(errors), 3)
        self.assertTrue(all(isinstance(e, InsufficientBalanceError) for e in errors))

        with self.app.app_context():
            entries = SqlTransactionLog().entries_for(self.account_id)
            self.assertEqual(balance_service.raw_outstanding_units(entries), 0)


if __name__ == "__main__":
    unittest.main()
