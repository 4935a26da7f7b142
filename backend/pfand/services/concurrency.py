# Overview: Per-account serialization for read-validate-write sequences.

from __future__ import annotations

import threading
from contextlib import contextmanager


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


class AccountLockRegistry:
    """
    Process-wide mutexes keyed by account id.

    Different accounts never contend; a slot is dropped once no thread
    holds or waits on it, so the registry does not grow with the number
    of accounts ever seen.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._slots: dict = {}  # account_id -> [lock, holders]

    @contextmanager
    def hold(self, account_id):
        with self._guard:
            slot = self._slots.setdefault(account_id, [threading.Lock(), 0])
            slot[1] += 1
        try:
            with slot[0]:
                yield
        finally:
            with self._guard:
                slot[1] -= 1
                if slot[1] == 0:
                    del self._slots[account_id]

    def __len__(self) -> int:
        with self._guard:
            return len(self._slots)


# Shared by every request in this process
account_locks = AccountLockRegistry()
