from __future__ import annotations

from ..extensions import db


class PfandTransaction(db.Model):
    """
    Append-only ledger of cup deposit events.

    TRANSACTION TYPES:
    - DEPOSIT: Customer paid a deposit for cups handed out with an order
    - RETURN: Staff took cups back and refunded the deposit

    IMMUTABLE: Records are never updated or deleted. Corrections are new
    offsetting rows.
    """
    __tablename__ = "pfand_transactions"
    __table_args__ = (
        db.CheckConstraint("cups_count > 0", name="ck_pfand_transactions_cups_positive"),
        db.CheckConstraint(
            "transaction_type IN ('DEPOSIT', 'RETURN')",
            name="ck_pfand_transactions_type",
        ),
        db.Index("ix_pfand_txns_account_created", "account_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False, index=True)

    transaction_type = db.Column(db.String(16), nullable=False, index=True)  # DEPOSIT, RETURN
    cups_count = db.Column(db.Integer, nullable=False)

    # Money in cents; amount is derivable but stored for audit
    unit_value_cents = db.Column(db.Integer, nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)

    description = db.Column(db.String(255), nullable=True)
    processed_by = db.Column(db.String(128), nullable=True)
    order_id = db.Column(db.String(64), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    account = db.relationship("Account", backref=db.backref("pfand_transactions", lazy=True))

