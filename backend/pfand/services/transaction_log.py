# Overview: Append-only storage of Pfand ledger entries, queryable by account.

from __future__ import annotations

import itertools
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..errors import InvalidRequestError, PersistenceError
from ..extensions import db
from ..models import Account, PfandTransaction
from ..money import format_money, from_cents, quantize, to_cents
from ..time_utils import to_utc_z, utcnow
from .concurrency import lock_for_update

"""
Pfand Ledger Invariants (authoritative)

- Append-only: entries are never updated or deleted; corrections are new
  offsetting entries.
- unit_count > 0 for every entry.
- amount = unit_count * unit_value, stored for audit.
- Ordering of entries_for()/all_entries() is a presentation detail; callers
  must not depend on it for correctness.
"""


DEPOSIT = "DEPOSIT"
RETURN = "RETURN"
ENTRY_KINDS = (DEPOSIT, RETURN)


@dataclass(frozen=True)
class LedgerEntryDraft:
    """An entry before the log has assigned id and created_at."""
    account_id: int
    kind: str
    unit_count: int
    unit_value: Decimal
    note: Optional[str] = None
    processed_by: Optional[str] = None
    order_id: Optional[str] = None

    def __post_init__(self):
        if self.kind not in ENTRY_KINDS:
            raise InvalidRequestError(f"Unknown ledger entry kind: {self.kind}")
        if isinstance(self.unit_count, bool) or not isinstance(self.unit_count, int) or self.unit_count <= 0:
            raise InvalidRequestError("unit_count must be a positive integer")

    @property
    def amount(self) -> Decimal:
        return quantize(self.unit_value * self.unit_count)


@dataclass(frozen=True)
class LedgerEntry:
    id: int
    account_id: int
    kind: str
    unit_count: int
    unit_value: Decimal
    amount: Decimal
    note: Optional[str]
    processed_by: Optional[str]
    order_id: Optional[str]
    created_at: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "account_id": self.account_id,
            "kind": self.kind,
            "unit_count": self.unit_count,
            "unit_value": format_money(self.unit_value),
            "amount": format_money(self.amount),
            "note": self.note,
            "processed_by": self.processed_by,
            "order_id": self.order_id,
            "created_at": to_utc_z(self.created_at),
        }


class TransactionLog:
    """
    Interface of the ledger store.

    There is deliberately no update or delete operation.
    """

    def append(self, draft: LedgerEntryDraft) -> LedgerEntry:
        raise NotImplementedError

    def entries_for(self, account_id: int) -> list[LedgerEntry]:
        raise NotImplementedError

    def all_entries(self) -> list[LedgerEntry]:
        raise NotImplementedError

    def account_exists(self, account_id: int) -> bool:
        raise NotImplementedError

    @contextmanager
    def account_scope(self, account_id: int):
        """
        Store-level guard around a read-validate-append sequence.

        The in-process per-account lock is taken by the caller; stores that
        can also lock at the database level do so here.
        """
        yield


class SqlTransactionLog(TransactionLog):
    """TransactionLog backed by the pfand_transactions table."""

    def append(self, draft: LedgerEntryDraft) -> LedgerEntry:
        row = PfandTransaction(
            account_id=draft.account_id,
            transaction_type=draft.kind,
            cups_count=draft.unit_count,
            unit_value_cents=to_cents(draft.unit_value),
            amount_cents=to_cents(draft.amount),
            description=draft.note,
            processed_by=draft.processed_by,
            order_id=draft.order_id,
            created_at=utcnow(),
        )
        try:
            db.session.add(row)
            db.session.flush()  # ensures row.id is assigned before commit
            entry = _row_to_entry(row)
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise PersistenceError("Failed to record Pfand transaction") from exc
        return entry

    def entries_for(self, account_id: int) -> list[LedgerEntry]:
        return self._fetch(lambda: (
            db.session.query(PfandTransaction)
            .filter(PfandTransaction.account_id == account_id)
            .order_by(PfandTransaction.created_at.desc(), PfandTransaction.id.desc())
        ))

    def all_entries(self) -> list[LedgerEntry]:
        return self._fetch(lambda: (
            db.session.query(PfandTransaction)
            .order_by(PfandTransaction.created_at.desc(), PfandTransaction.id.desc())
        ))

    def account_exists(self, account_id: int) -> bool:
        try:
            return db.session.query(Account.id).filter(Account.id == account_id).first() is not None
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise PersistenceError("Failed to look up account") from exc

    @contextmanager
    def account_scope(self, account_id: int):
        try:
            # Row lock on the account serializes writers across processes
            lock_for_update(db.session.query(Account).filter(Account.id == account_id)).first()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise PersistenceError("Failed to lock account") from exc
        try:
            yield
        except BaseException:
            db.session.rollback()
            raise
        else:
            # Releases the row lock when nothing was appended
            db.session.commit()

    def _fetch(self, build_query: Callable) -> list[LedgerEntry]:
        try:
            return [_row_to_entry(row) for row in build_query().all()]
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise PersistenceError("Failed to read Pfand transactions") from exc


class MemoryTransactionLog(TransactionLog):
    """
    In-process TransactionLog for tests and tooling.

    Accounts must be registered before entries can be appended for them.
    """

    def __init__(self, accounts: Iterable[int] = (), clock: Callable[[], datetime] = utcnow):
        self._accounts = set(accounts)
        self._entries: list[LedgerEntry] = []
        self._ids = itertools.count(1)
        self._clock = clock
        self._lock = threading.Lock()

    def register_account(self, account_id: int) -> None:
        with self._lock:
            self._accounts.add(account_id)

    def append(self, draft: LedgerEntryDraft) -> LedgerEntry:
        with self._lock:
            if draft.account_id not in self._accounts:
                raise PersistenceError(f"Account {draft.account_id} is not registered")
            entry = LedgerEntry(
                id=next(self._ids),
                account_id=draft.account_id,
                kind=draft.kind,
                unit_count=draft.unit_count,
                unit_value=quantize(draft.unit_value),
                amount=draft.amount,
                note=draft.note,
                processed_by=draft.processed_by,
                order_id=draft.order_id,
                created_at=self._clock(),
            )
            self._entries.append(entry)
            return entry

    def entries_for(self, account_id: int) -> list[LedgerEntry]:
        with self._lock:
            return [e for e in self._entries if e.account_id == account_id]

    def all_entries(self) -> list[LedgerEntry]:
        with self._lock:
            return list(self._entries)

    def account_exists(self, account_id: int) -> bool:
        with self._lock:
            return account_id in self._accounts


def _row_to_entry(row: PfandTransaction) -> LedgerEntry:
    return LedgerEntry(
        id=row.id,
        account_id=row.account_id,
        kind=row.transaction_type,
        unit_count=row.cups_count,
        unit_value=from_cents(row.unit_value_cents),
        amount=from_cents(row.amount_cents),
        note=row.description,
        processed_by=row.processed_by,
        order_id=row.order_id,
        created_at=row.created_at,
    )
