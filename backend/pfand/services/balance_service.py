# Overview: Pure balance calculations over Pfand ledger entries.

"""
Balance Calculator

Every function here is a pure fold over the entries it is given: no
database access, no module-level state, no caching. Calling any of them
twice with the same entries yields equal results.

Two views of the outstanding balance:
- raw (unclamped): deposits - returns, used by the return validator
- display (clamped at 0): what customers and staff see
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from ..money import format_money, quantize
from ..time_utils import to_utc_z
from .transaction_log import DEPOSIT, RETURN, LedgerEntry

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class ActivityItem:
    kind: str
    amount: Decimal
    unit_count: int
    note: Optional[str]
    created_at: datetime

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "amount": format_money(self.amount),
            "unit_count": self.unit_count,
            "note": self.note,
            "created_at": to_utc_z(self.created_at),
        }


@dataclass(frozen=True)
class AccountSummary:
    outstanding_units: int
    outstanding_value: Decimal
    total_returned: int
    total_deposit_paid: Decimal
    total_returns_issued: Decimal
    activity: tuple[ActivityItem, ...]

    def to_dict(self) -> dict:
        return {
            "outstanding_units": self.outstanding_units,
            "outstanding_value": format_money(self.outstanding_value),
            "total_returned": self.total_returned,
            "total_deposit_paid": format_money(self.total_deposit_paid),
            "total_deposit_returned": format_money(self.total_returns_issued),
            "activity": [item.to_dict() for item in self.activity],
        }


@dataclass(frozen=True)
class AccountBalance:
    account_id: int
    outstanding_units: int
    outstanding_value: Decimal
    last_activity: datetime

    def to_dict(self) -> dict:
        return {
            "account_id": self.account_id,
            "outstanding_units": self.outstanding_units,
            "outstanding_value": format_money(self.outstanding_value),
            "last_activity": to_utc_z(self.last_activity),
        }


@dataclass(frozen=True)
class SystemSummary:
    total_units_outstanding: int
    total_value_outstanding: Decimal
    accounts_with_outstanding_units: int
    total_units_returned: int
    total_value_refunded: Decimal
    accounts: tuple[AccountBalance, ...]

    def to_dict(self) -> dict:
        # Per-account breakdown is served separately by /outstanding
        return {
            "total_units_outstanding": self.total_units_outstanding,
            "total_value_outstanding": format_money(self.total_value_outstanding),
            "accounts_with_outstanding_units": self.accounts_with_outstanding_units,
            "total_units_returned": self.total_units_returned,
            "total_value_refunded": format_money(self.total_value_refunded),
        }


def raw_outstanding_units(entries: Iterable[LedgerEntry]) -> int:
    """deposits - returns, unclamped."""
    deposited = 0
    returned = 0
    for entry in entries:
        if entry.kind == DEPOSIT:
            deposited += entry.unit_count
        elif entry.kind == RETURN:
            returned += entry.unit_count
    return deposited - returned


def outstanding_units(entries: Iterable[LedgerEntry]) -> int:
    """Display balance; never negative."""
    return max(0, raw_outstanding_units(entries))


def outstanding_value(entries: Iterable[LedgerEntry], unit_value: Decimal) -> Decimal:
    return quantize(Decimal(outstanding_units(entries)) * unit_value)


def account_summary(entries: Iterable[LedgerEntry], unit_value: Decimal) -> AccountSummary:
    entries = list(entries)

    total_returned = sum(e.unit_count for e in entries if e.kind == RETURN)
    total_deposit_paid = sum((e.amount for e in entries if e.kind == DEPOSIT), ZERO)
    total_returns_issued = sum((e.amount for e in entries if e.kind == RETURN), ZERO)

    newest_first = sorted(entries, key=lambda e: (e.created_at, e.id), reverse=True)
    activity = tuple(
        ActivityItem(
            kind=e.kind,
            amount=e.amount,
            unit_count=e.unit_count,
            note=e.note,
            created_at=e.created_at,
        )
        for e in newest_first
    )

    return AccountSummary(
        outstanding_units=outstanding_units(entries),
        outstanding_value=outstanding_value(entries, unit_value),
        total_returned=total_returned,
        total_deposit_paid=quantize(total_deposit_paid),
        total_returns_issued=quantize(total_returns_issued),
        activity=activity,
    )


def system_summary(entries: Iterable[LedgerEntry], unit_value: Decimal) -> SystemSummary:
    """
    Aggregate across all accounts.

    The per-account breakdown keeps only accounts with outstanding units,
    sorted by outstanding units descending. Ties keep the order in which
    accounts were first seen in `entries` (sorted() is stable).
    """
    # account_id -> [deposited, returned, last_activity]; local to this call
    grouped: dict[int, list] = {}
    total_units_returned = 0
    total_value_refunded = ZERO

    for entry in entries:
        slot = grouped.get(entry.account_id)
        if slot is None:
            slot = grouped[entry.account_id] = [0, 0, entry.created_at]
        elif entry.created_at > slot[2]:
            slot[2] = entry.created_at

        if entry.kind == DEPOSIT:
            slot[0] += entry.unit_count
        elif entry.kind == RETURN:
            slot[1] += entry.unit_count
            total_units_returned += entry.unit_count
            total_value_refunded += entry.amount

    balances = []
    for account_id, (deposited, returned, last_activity) in grouped.items():
        units = max(0, deposited - returned)
        if units > 0:
            balances.append(AccountBalance(
                account_id=account_id,
                outstanding_units=units,
                outstanding_value=quantize(Decimal(units) * unit_value),
                last_activity=last_activity,
            ))
    balances.sort(key=lambda b: b.outstanding_units, reverse=True)

    total_units = sum(b.outstanding_units for b in balances)

    return SystemSummary(
        total_units_outstanding=total_units,
        total_value_outstanding=quantize(Decimal(total_units) * unit_value),
        accounts_with_outstanding_units=len(balances),
        total_units_returned=total_units_returned,
        total_value_refunded=quantize(total_value_refunded),
        accounts=tuple(balances),
    )
