"""
Database models package.

All models must be imported here so that Alembic can discover
them through Base.metadata when generating migrations.
"""

from ledger_reconciler.models.base import Base
from ledger_reconciler.models.enums import (
    AccountKind,
    CreditSource,
    MatchTier,
)
from ledger_reconciler.models.client import Client
from ledger_reconciler.models.account import Account
from ledger_reconciler.models.transaction import Transaction
from ledger_reconciler.models.snapshot import Snapshot, SnapshotAccount
from ledger_reconciler.models.credit_ledger_entry import CreditLedgerEntry
from ledger_reconciler.models.record_link import RecordLink

__all__ = [
    "Base",
    "AccountKind",
    "CreditSource",
    "MatchTier",
    "Client",
    "Account",
    "Transaction",
    "Snapshot",
    "SnapshotAccount",
    "CreditLedgerEntry",
    "RecordLink",
]
