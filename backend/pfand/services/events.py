# Overview: Post-commit ledger events; subscribers (stats, notifications) stay outside the core.

import logging

from blinker import Namespace

# Child of the Flask app logger ("pfand"), usable without an app context
logger = logging.getLogger(__name__)

_ledger_signals = Namespace()

# Sent after a DEPOSIT entry is committed. sender: account_id, entry=LedgerEntry
deposit_recorded = _ledger_signals.signal("deposit-recorded")

# Sent after a RETURN entry is committed. sender: account_id, result=ReturnResult
return_processed = _ledger_signals.signal("return-processed")


def send_after_commit(signal, sender, **kwargs) -> None:
    """
    Notify subscribers of a committed write.

    The entry is already durable, so a failing subscriber is logged and
    never reported to the caller as a failed write.
    """
    for receiver in signal.receivers_for(sender):
        try:
            receiver(sender, **kwargs)
        except Exception:
            logger.exception("Subscriber %r failed for %s", receiver, signal.name)
