"""initial ledger store schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


account_kind = sa.Enum("BANK", "CASH", name="account_kind_enum", create_constraint=True)
credit_source = sa.Enum(
    "TRANSACTION", "ADMIN", "IMPORT", name="credit_source_enum", create_constraint=True
)
match_tier = sa.Enum(
    "SEQUENCE", "UNIT_DATE_AMOUNT", "UNIT_AMOUNT", "DATE_AMOUNT", "AMOUNT",
    name="match_tier_enum", create_constraint=True,
)


def upgrade() -> None:
    op.create_table(
        "clients",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("fiscal_year_start_month", sa.Integer(), nullable=True),
        sa.Column("balance_snapshot_year", sa.Integer(), nullable=True),
        sa.Column("balances_computed_at", sa.DateTime(), nullable=True),
    )
    op.create_table(
        "accounts",
        sa.Column("client_id", sa.String(64), sa.ForeignKey("clients.id"), primary_key=True),
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("kind", account_kind, nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("balance", sa.BigInteger(), nullable=False),
        sa.Column("last_updated", sa.DateTime(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
    )
    op.create_table(
        "transactions",
        sa.Column("client_id", sa.String(64), sa.ForeignKey("clients.id"), primary_key=True),
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("date", sa.DateTime(), nullable=False),
        sa.Column("amount", sa.BigInteger(), nullable=False),
        sa.Column("account_id", sa.String(64), nullable=True),
        sa.Column("account_name", sa.String(100), nullable=True),
        sa.Column("account_type", sa.String(50), nullable=True),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column("unit_ref", sa.String(100), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("sequence_number", sa.String(32), nullable=True),
    )
    op.create_index("ix_transactions_date", "transactions", ["date"])
    op.create_index("ix_transactions_category", "transactions", ["category"])
    op.create_table(
        "snapshots",
        sa.Column("client_id", sa.String(64), sa.ForeignKey("clients.id"), primary_key=True),
        sa.Column("fiscal_year", sa.String(4), primary_key=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "snapshot_accounts",
        sa.Column("client_id", sa.String(64), primary_key=True),
        sa.Column("fiscal_year", sa.String(4), primary_key=True),
        sa.Column("account_id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("balance", sa.BigInteger(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["client_id", "fiscal_year"],
            ["snapshots.client_id", "snapshots.fiscal_year"],
        ),
    )
    op.create_table(
        "credit_ledger_entries",
        sa.Column("client_id", sa.String(64), sa.ForeignKey("clients.id"), primary_key=True),
        sa.Column("unit_id", sa.String(64), primary_key=True),
        sa.Column("id", sa.String(100), primary_key=True),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.Column("amount", sa.BigInteger(), nullable=False),
        sa.Column("note", sa.Text(), nullable=False),
        sa.Column("source", credit_source, nullable=False),
        sa.Column("transaction_ref", sa.String(64), nullable=True),
    )
    op.create_table(
        "record_links",
        sa.Column("client_id", sa.String(64), sa.ForeignKey("clients.id"), primary_key=True),
        sa.Column("record_id", sa.String(100), primary_key=True),
        sa.Column("unit_id", sa.String(64), nullable=True),
        sa.Column("transaction_id", sa.String(64), nullable=False),
        sa.Column("tier", match_tier, nullable=False),
        sa.Column("linked_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_record_links_transaction_id", "record_links", ["transaction_id"])


def downgrade() -> None:
    op.drop_index("ix_record_links_transaction_id", table_name="record_links")
    op.drop_table("record_links")
    op.drop_table("credit_ledger_entries")
    op.drop_table("snapshot_accounts")
    op.drop_table("snapshots")
    op.drop_index("ix_transactions_category", table_name="transactions")
    op.drop_index("ix_transactions_date", table_name="transactions")
    op.drop_table("transactions")
    op.drop_table("accounts")
    op.drop_table("clients")
