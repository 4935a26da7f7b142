"""Add accounts and Pfand ledger tables

Revision ID: 20261019_pfand_ledger
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_pfand_ledger"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "accounts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("student_id", sa.String(64), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_accounts_email"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("accounts", schema=None) as batch_op:
        batch_op.create_index("ix_accounts_student_id", ["student_id"], unique=False)
        batch_op.create_index("ix_accounts_is_active", ["is_active"], unique=False)

    op.create_table(
        "pfand_transactions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("transaction_type", sa.String(16), nullable=False),
        sa.Column("cups_count", sa.Integer(), nullable=False),
        sa.Column("unit_value_cents", sa.Integer(), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("description", sa.String(255), nullable=True),
        sa.Column("processed_by", sa.String(128), nullable=True),
        sa.Column("order_id", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("cups_count > 0", name="ck_pfand_transactions_cups_positive"),
        sa.CheckConstraint("transaction_type IN ('DEPOSIT', 'RETURN')", name="ck_pfand_transactions_type"),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("pfand_transactions", schema=None) as batch_op:
        batch_op.create_index("ix_pfand_transactions_account_id", ["account_id"], unique=False)
        batch_op.create_index("ix_pfand_transactions_transaction_type", ["transaction_type"], unique=False)
        batch_op.create_index("ix_pfand_transactions_order_id", ["order_id"], unique=False)
        batch_op.create_index("ix_pfand_transactions_created_at", ["created_at"], unique=False)
        batch_op.create_index("ix_pfand_txns_account_created", ["account_id", "created_at"], unique=False)


def downgrade():
    op.drop_table("pfand_transactions")
    op.drop_table("accounts")
