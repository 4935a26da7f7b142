# Overview: Typed ledger errors; routes branch on the class, never on the message.

from __future__ import annotations


class LedgerError(Exception):
    """Base class for every failure the ledger reports to its callers."""

    kind = "LEDGER_ERROR"
    http_status = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message}


class InvalidRequestError(LedgerError):
    """400-level input problem (missing or malformed field)."""

    kind = "INVALID_REQUEST"


class AccountNotFoundError(LedgerError):
    kind = "ACCOUNT_NOT_FOUND"
    http_status = 404

    def __init__(self, account_id):
        super().__init__(f"Account {account_id} not found")
        self.account_id = account_id


class InsufficientBalanceError(LedgerError):
    """Requested return exceeds the account's true outstanding balance."""

    kind = "INSUFFICIENT_BALANCE"

    def __init__(self, requested: int, available: int):
        super().__init__(
            f"Cannot return {requested} cups. Account only has {available} outstanding."
        )
        self.requested = requested
        self.available = available

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["requested"] = self.requested
        data["available"] = self.available
        return data


class PersistenceError(LedgerError):
    """Backing store unreachable or the write was rejected."""

    kind = "PERSISTENCE_ERROR"
    http_status = 500
