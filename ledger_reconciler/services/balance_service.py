"""
Balance service — rebuilds account balances by snapshot + replay.

The transaction log is ground truth. An account's balance is

    snapshot balance at the fiscal-year boundary
    + sum of every transaction for that account dated after it

rebuild() recomputes that for every account of a client and writes
the whole account list back in one atomic batch. Transactions whose
account can't be resolved are skipped and reported, never guessed.
"""

import logging

from pydantic import ValidationError as PydanticValidationError

from ledger_reconciler.config import MAX_BATCH_SIZE, get_settings
from ledger_reconciler.domain.fiscal_calendar import get_fiscal_year_bounds
from ledger_reconciler.domain.instant import end_of_day, to_storage, utc_now
from ledger_reconciler.errors import (
    ConfigurationError,
    DataIntegrityError,
    IssueLog,
    ValidationError,
)
from ledger_reconciler.models.account import Account
from ledger_reconciler.models.client import Client
from ledger_reconciler.models.transaction import Transaction
from ledger_reconciler.schemas.account import (
    AccountState,
    BalanceAdjustment,
    ReconciliationAccount,
)
from ledger_reconciler.schemas.records import TransactionRecord
from ledger_reconciler.schemas.report import IssueData, RebuildReport
from ledger_reconciler.services.snapshot_service import SnapshotService
from ledger_reconciler.services.store import LedgerStore, WriteOp

logger = logging.getLogger(__name__)


def resolve_account(
    txn: TransactionRecord,
    accounts: list[AccountState],
    legacy_account_types: dict[str, list[str]],
) -> AccountState:
    """
    Find the account a transaction belongs to.

    Tries the account id, then the account name, then the legacy
    account-type label ("Cash", "Bank"). Raises DataIntegrityError
    when nothing matches.
    """
    if txn.account_id:
        for account in accounts:
            if account.id == txn.account_id:
                return account

    if txn.account_name:
        for account in accounts:
            if account.name == txn.account_name:
                return account

    if txn.account_type:
        keys = legacy_account_types.get(txn.account_type, [])
        for key in keys:
            for account in accounts:
                if account.id == key or account.name == key:
                    return account

    raise DataIntegrityError(
        f"Transaction {txn.id} references no known account "
        f"(id={txn.account_id!r}, name={txn.account_name!r}, type={txn.account_type!r})",
        record_id=txn.id,
        kind="account-unresolved",
    )


class BalanceService:

    def __init__(
        self,
        store: LedgerStore,
        legacy_account_types: dict[str, list[str]] | None = None,
        default_fiscal_start_month: int | None = None,
    ):
        settings = get_settings()
        self.store = store
        self.snapshots = SnapshotService(store)
        self.legacy_account_types = (
            settings.LEGACY_ACCOUNT_TYPES
            if legacy_account_types is None else legacy_account_types
        )
        self.default_fiscal_start_month = (
            default_fiscal_start_month or settings.DEFAULT_FISCAL_START_MONTH
        )

    def _load_client(self, client_id: str) -> Client:
        client = self.store.get(Client, client_id, client_id)
        if client is None:
            raise ConfigurationError("Client not found", client_id=client_id, resource="client")
        if not client.accounts:
            raise ConfigurationError(
                "No accounts configured", client_id=client_id, resource="accounts"
            )
        return client

    def rebuild(self, client_id: str, start_year: int, dry_run: bool = False) -> RebuildReport:
        """
        Recompute every account balance from the start_year snapshot.

        Steps:
        1. Load the client's accounts and fiscal start month
        2. Load the snapshot for start_year (missing is fatal)
        3. Seed balances from the snapshot by id, then by name, else 0
        4. Replay every transaction dated after the fiscal-year end
        5. Write the account list back (skipped in dry-run)
        """
        client = self._load_client(client_id)
        fiscal_start_month = client.fiscal_year_start_month or self.default_fiscal_start_month
        # accounts plus the client tag must fit in one atomic batch
        if len(client.accounts) + 1 > MAX_BATCH_SIZE:
            raise ConfigurationError(
                f"{len(client.accounts)} accounts exceed the single-batch write-back limit",
                client_id=client_id,
                resource="accounts",
            )
        current = [AccountState.model_validate(a) for a in client.accounts]

        snapshot = self.snapshots.get_snapshot(client_id, start_year)
        if snapshot is None:
            raise ConfigurationError(
                "Snapshot not found", client_id=client_id, year=start_year, resource="snapshot"
            )

        working = []
        for account in current:
            seed = snapshot.balance_for(account.id, account.name)
            working.append(account.model_copy(update={"balance": seed or 0}))

        bounds = get_fiscal_year_bounds(start_year, fiscal_start_month)
        boundary = end_of_day(bounds.end_date)

        rows = self.store.query(
            Transaction,
            client_id,
            filters=[Transaction.date > to_storage(boundary)],
            order_by=[Transaction.date.asc(), Transaction.id.asc()],
        )

        issues = IssueLog()
        processed = 0
        for row in rows:
            try:
                txn = TransactionRecord.model_validate(row)
            except PydanticValidationError as e:
                issues.record(ValidationError(
                    f"Transaction {row.id} is malformed: {e.errors()[0]['msg']}",
                    record_id=row.id,
                    kind="malformed-transaction",
                ))
                continue

            try:
                target = resolve_account(txn, working, self.legacy_account_types)
            except DataIntegrityError as e:
                issues.record(e)
                continue

            target.balance += txn.amount
            if target.last_updated is None or txn.date > target.last_updated:
                target.last_updated = txn.date
            processed += 1

        computed_at = utc_now()
        report = RebuildReport(
            client_id=client_id,
            start_year=start_year,
            boundary=boundary,
            computed_at=computed_at,
            accounts=working,
            processed_count=processed,
            skipped_count=issues.count,
            issues=[IssueData(**issue.to_dict()) for issue in issues.issues],
            dry_run=dry_run,
        )

        logger.info(
            "Rebuilt %d account(s) for %s from FY%s: %d transaction(s) applied, %d skipped",
            len(working), client_id, start_year, processed, issues.count,
        )
        for line in issues.summary_lines():
            logger.info(line)

        if dry_run:
            return report

        ops = [
            WriteOp.put(Account(
                client_id=client_id,
                id=account.id,
                name=account.name,
                kind=account.kind,
                currency=account.currency,
                balance=account.balance,
                last_updated=to_storage(account.last_updated) if account.last_updated else None,
                is_active=account.is_active,
                position=position,
            ))
            for position, account in enumerate(working)
        ]
        ops.append(WriteOp.put(Client(
            id=client_id,
            balance_snapshot_year=start_year,
            balances_computed_at=to_storage(computed_at),
        )))
        # All accounts and the client tag commit together
        self.store.batch_write(ops, max_size=len(ops))
        report.committed = True
        return report

    def accounts_for_reconciliation(self, client_id: str) -> list[ReconciliationAccount]:
        """Active bank and cash accounts with their recorded balances."""
        client = self._load_client(client_id)
        return [
            ReconciliationAccount(
                id=a.id, name=a.name, kind=a.kind, recorded_balance=a.balance
            )
            for a in client.accounts
            if a.is_active
        ]

    def plan_adjustments(
        self, client_id: str, actual_balances: dict[str, int]
    ) -> list[BalanceAdjustment]:
        """
        Differences between recorded and real-world balances.

        Accounts whose difference is zero are left out. Posting the
        adjustment transactions is up to the caller.
        """
        accounts = {a.id: a for a in self.accounts_for_reconciliation(client_id)}
        adjustments = []
        for account_id, actual in actual_balances.items():
            account = accounts.get(account_id)
            if account is None:
                raise ConfigurationError(
                    "Account not found", client_id=client_id, resource=f"account {account_id}"
                )
            difference = actual - account.recorded_balance
            if difference == 0:
                continue
            adjustments.append(BalanceAdjustment(
                account_id=account.id,
                account_name=account.name,
                recorded_balance=account.recorded_balance,
                actual_balance=actual,
                difference=difference,
            ))
        return adjustments
