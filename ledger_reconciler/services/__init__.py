"""Business logic services."""

from ledger_reconciler.services.store import LedgerStore, WriteOp
from ledger_reconciler.services.snapshot_service import SnapshotService
from ledger_reconciler.services.balance_service import BalanceService
from ledger_reconciler.services.link_service import RecordLinkService
from ledger_reconciler.services.credit_service import CreditLedgerService
from ledger_reconciler.services.purge_service import ClientDataService

__all__ = [
    "LedgerStore",
    "WriteOp",
    "SnapshotService",
    "BalanceService",
    "RecordLinkService",
    "CreditLedgerService",
    "ClientDataService",
]
