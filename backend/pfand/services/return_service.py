"""
Pfand Return Processing Service

Cup returns are the only write in the ledger gated by a balance read: staff
may refund at most as many cups as the account still has outstanding.

DESIGN PRINCIPLES:
- Validation uses the raw (unclamped) balance, never the display value
- Read-validate-append runs under a per-account lock; different accounts
  proceed in parallel
- Each operation appends exactly one entry; nothing is updated in place
- Events are sent only after the entry is committed

DEPOSITS:
Deposit entries are written when an order carrying deposit-bearing items is
placed. They only increase the balance, so they need no balance check.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from flask import current_app

from ..errors import AccountNotFoundError, InsufficientBalanceError
from ..money import format_money, quantize
from ..validation import parse_optional_text, parse_positive_int
from . import events
from .balance_service import raw_outstanding_units
from .concurrency import AccountLockRegistry, account_locks
from .transaction_log import (
    DEPOSIT,
    RETURN,
    LedgerEntry,
    LedgerEntryDraft,
    SqlTransactionLog,
    TransactionLog,
)

DEFAULT_PROCESSED_BY = "Staff"


def _cups(count: int) -> str:
    return f"{count} cup{'s' if count != 1 else ''}"


@dataclass(frozen=True)
class ReturnResult:
    transaction: LedgerEntry
    refund_amount: Decimal
    remaining_units: int

    def to_dict(self) -> dict:
        return {
            "transaction": self.transaction.to_dict(),
            "refund_amount": format_money(self.refund_amount),
            "remaining_units": self.remaining_units,
        }


class ReturnProcessor:
    """Validates and records Pfand deposits and cup returns against one TransactionLog."""

    def __init__(
        self,
        log: TransactionLog,
        unit_value: Decimal,
        locks: AccountLockRegistry = account_locks,
    ):
        self.log = log
        self.unit_value = quantize(unit_value)
        self.locks = locks

    def process_return(
        self,
        account_id,
        requested_units,
        processed_by: Optional[str] = DEFAULT_PROCESSED_BY,
    ) -> ReturnResult:
        """
        Refund `requested_units` cups for an account.

        Raises:
            InvalidRequestError: account_id or requested_units malformed
            AccountNotFoundError: account does not exist
            InsufficientBalanceError: more cups requested than outstanding
            PersistenceError: store failure
        """
        account_id = parse_positive_int(account_id, "account_id", maximum=None)
        units = parse_positive_int(requested_units, "units_requested")
        processed_by = parse_optional_text(processed_by, "processed_by", max_length=128) or DEFAULT_PROCESSED_BY

        with self.locks.hold(account_id):
            with self.log.account_scope(account_id):
                if not self.log.account_exists(account_id):
                    raise AccountNotFoundError(account_id)

                available = raw_outstanding_units(self.log.entries_for(account_id))
                if units > available:
                    raise InsufficientBalanceError(requested=units, available=max(0, available))

                entry = self.log.append(LedgerEntryDraft(
                    account_id=account_id,
                    kind=RETURN,
                    unit_count=units,
                    unit_value=self.unit_value,
                    note=f"Returned {_cups(units)} - processed by {processed_by}",
                    processed_by=processed_by,
                ))

        result = ReturnResult(
            transaction=entry,
            refund_amount=entry.amount,
            remaining_units=available - units,
        )
        events.send_after_commit(events.return_processed, account_id, result=result)
        return result

    def record_deposit(
        self,
        account_id,
        unit_count,
        order_id: Optional[str] = None,
        note: Optional[str] = None,
    ) -> LedgerEntry:
        """
        Record the deposit paid for cups handed out with an order.

        Raises:
            InvalidRequestError: account_id or unit_count malformed
            AccountNotFoundError: account does not exist
            PersistenceError: store failure
        """
        account_id = parse_positive_int(account_id, "account_id", maximum=None)
        units = parse_positive_int(unit_count, "unit_count")
        order_id = parse_optional_text(order_id, "order_id", max_length=64)
        note = parse_optional_text(note, "note", max_length=255) or f"Paid deposit for {_cups(units)}"

        with self.locks.hold(account_id):
            with self.log.account_scope(account_id):
                if not self.log.account_exists(account_id):
                    raise AccountNotFoundError(account_id)

                entry = self.log.append(LedgerEntryDraft(
                    account_id=account_id,
                    kind=DEPOSIT,
                    unit_count=units,
                    unit_value=self.unit_value,
                    note=note,
                    order_id=order_id,
                ))

        events.send_after_commit(events.deposit_recorded, account_id, entry=entry)
        return entry


def get_return_processor() -> ReturnProcessor:
    """ReturnProcessor bound to the database and the configured unit value."""
    return ReturnProcessor(SqlTransactionLog(), current_app.config["PFAND_UNIT_VALUE"])
