"""
Tests for snapshot + replay balance rebuilds.
"""

from datetime import datetime

import pytest

from ledger_reconciler.errors import ConfigurationError, DataIntegrityError
from ledger_reconciler.models import Account, AccountKind, Client
from ledger_reconciler.schemas.account import AccountState
from ledger_reconciler.schemas.records import TransactionRecord
from ledger_reconciler.services.balance_service import BalanceService, resolve_account

BANK = "bank-cibanco-001"
CASH = "cash-001"
LEGACY = {"Cash": ["cash-001", "Cash"], "Bank": ["bank-cibanco-001", "CiBanco"]}


@pytest.fixture
def fy2025(make_client, make_snapshot, make_transaction):
    """
    July fiscal year client with a FY2025 snapshot.

    Bank: 100000 + 50000 - 20000 + 5000 = 135000 after replay.
    """
    make_client("MTC", fiscal_year_start_month=7)
    make_snapshot(2025, [(BANK, "CiBanco", 100000), (CASH, "Cash", 2500)])
    # Inside FY2025: already in the snapshot
    make_transaction("t0", datetime(2025, 6, 30, 12, 0), 99999, account_id=BANK)
    make_transaction("t1", datetime(2025, 7, 5), 50000, account_id=BANK)
    make_transaction("t2", datetime(2025, 8, 1), -20000, account_name="CiBanco")
    make_transaction("t3", datetime(2025, 9, 10), 5000, account_type="Bank")
    make_transaction("t4", datetime(2025, 7, 10), 777, account_id="ghost")


def balances(report):
    return {a.id: a.balance for a in report.accounts}


class TestResolveAccount:

    accounts = [
        AccountState(id=BANK, name="CiBanco", kind=AccountKind.BANK),
        AccountState(id=CASH, name="Cash", kind=AccountKind.CASH),
    ]

    def resolve(self, **fields):
        txn = TransactionRecord(id="t", date="2025-07-01", amount=1, **fields)
        return resolve_account(txn, self.accounts, LEGACY).id

    def test_by_id(self):
        assert self.resolve(account_id=CASH) == CASH

    def test_by_name(self):
        assert self.resolve(account_id="renamed", account_name="CiBanco") == BANK

    def test_by_legacy_type(self):
        assert self.resolve(account_type="Cash") == CASH

    def test_unresolved(self):
        with pytest.raises(DataIntegrityError) as exc:
            self.resolve(account_id="ghost", account_type="Crypto")
        assert exc.value.kind == "account-unresolved"
        assert exc.value.record_id == "t"


class TestRebuild:

    def test_snapshot_plus_replay(self, store, fy2025):
        report = BalanceService(store, legacy_account_types=LEGACY).rebuild("MTC", 2025, dry_run=True)

        assert balances(report) == {BANK: 135000, CASH: 2500}
        assert report.processed_count == 3
        assert report.boundary == datetime.fromisoformat("2025-06-30T23:59:59.999+00:00")

    def test_unresolved_transaction_is_skipped_and_reported(self, store, fy2025):
        report = BalanceService(store, legacy_account_types=LEGACY).rebuild("MTC", 2025, dry_run=True)

        assert report.skipped_count == 1
        assert report.issues[0].kind == "account-unresolved"
        assert report.issues[0].record_id == "t4"

    def test_last_updated_is_latest_applied_transaction(self, store, fy2025):
        report = BalanceService(store, legacy_account_types=LEGACY).rebuild("MTC", 2025, dry_run=True)
        bank = next(a for a in report.accounts if a.id == BANK)
        assert bank.last_updated == datetime.fromisoformat("2025-09-10T00:00:00+00:00")

    def test_dry_run_writes_nothing(self, store, db_session, fy2025):
        report = BalanceService(store, legacy_account_types=LEGACY).rebuild("MTC", 2025, dry_run=True)

        assert report.dry_run is True
        assert report.committed is False
        assert store.writes_committed == 0
        assert db_session.get(Account, ("MTC", BANK)).balance == 0

    def test_live_run_writes_accounts_and_tags_client(self, store, db_session, fy2025):
        report = BalanceService(store, legacy_account_types=LEGACY).rebuild("MTC", 2025)

        assert report.committed is True
        db_session.expire_all()
        bank = db_session.get(Account, ("MTC", BANK))
        assert bank.balance == 135000
        assert bank.last_updated == datetime(2025, 9, 10)
        assert db_session.get(Account, ("MTC", CASH)).balance == 2500

        client = db_session.get(Client, "MTC")
        assert client.balance_snapshot_year == 2025
        assert client.balances_computed_at is not None
        assert client.name == "Client MTC"

    def test_rerun_is_idempotent(self, store, db_session, fy2025):
        service = BalanceService(store, legacy_account_types=LEGACY)
        first = service.rebuild("MTC", 2025)
        second = service.rebuild("MTC", 2025)
        assert balances(first) == balances(second)

    def test_dry_run_matches_live_run(self, store, fy2025):
        service = BalanceService(store, legacy_account_types=LEGACY)
        preview = service.rebuild("MTC", 2025, dry_run=True)
        live = service.rebuild("MTC", 2025)
        assert balances(preview) == balances(live)
        assert preview.issues == live.issues

    def test_boundary_instant_is_excluded(self, store, make_client, make_snapshot, make_transaction):
        make_client("MTC", fiscal_year_start_month=7)
        make_snapshot(2025, [(BANK, "CiBanco", 0)])
        make_transaction("edge", datetime(2025, 6, 30, 23, 59, 59, 999000), 1, account_id=BANK)
        make_transaction("first", datetime(2025, 7, 1), 10, account_id=BANK)

        report = BalanceService(store).rebuild("MTC", 2025, dry_run=True)
        assert balances(report)[BANK] == 10

    def test_snapshot_matched_by_name(self, store, make_client, make_snapshot):
        make_client("MTC", fiscal_year_start_month=7)
        make_snapshot(2025, [("old-bank-id", "CiBanco", 42000)])

        report = BalanceService(store).rebuild("MTC", 2025, dry_run=True)
        assert balances(report) == {BANK: 42000, CASH: 0}

    def test_calendar_year_client(self, store, make_client, make_snapshot, make_transaction):
        make_client("CAL", fiscal_year_start_month=1)
        make_snapshot(2024, [(BANK, "CiBanco", 1000)], client_id="CAL")
        make_transaction("dec", datetime(2024, 12, 31, 18), 5, client_id="CAL", account_id=BANK)
        make_transaction("jan", datetime(2025, 1, 1), 7, client_id="CAL", account_id=BANK)

        report = BalanceService(store).rebuild("CAL", 2024, dry_run=True)
        assert balances(report)[BANK] == 1007

    def test_missing_snapshot_is_fatal(self, store, make_client):
        make_client("MTC")
        with pytest.raises(ConfigurationError, match="Snapshot not found") as exc:
            BalanceService(store).rebuild("MTC", 2030)
        assert exc.value.year == 2030
        assert exc.value.resource == "snapshot"

    def test_unknown_client_is_fatal(self, store):
        with pytest.raises(ConfigurationError, match="client=NOPE"):
            BalanceService(store).rebuild("NOPE", 2025)

    def test_client_without_accounts_is_fatal(self, store, db_session):
        db_session.add(Client(id="EMPTY", name="Empty"))
        db_session.commit()
        with pytest.raises(ConfigurationError, match="No accounts"):
            BalanceService(store).rebuild("EMPTY", 2025)

    def test_write_back_larger_than_one_batch_is_fatal(self, store, fy2025, monkeypatch):
        # two accounts plus the client tag need three slots
        monkeypatch.setattr("ledger_reconciler.services.balance_service.MAX_BATCH_SIZE", 2)
        with pytest.raises(ConfigurationError, match="single-batch"):
            BalanceService(store).rebuild("MTC", 2025, dry_run=True)
        assert store.writes_committed == 0


class TestReconciliation:

    def test_accounts_for_reconciliation(self, store, make_client):
        make_client("MTC", accounts=[
            (BANK, "CiBanco", AccountKind.BANK, 135000),
            (CASH, "Cash", AccountKind.CASH, 2500),
        ])
        accounts = BalanceService(store).accounts_for_reconciliation("MTC")
        assert [(a.id, a.recorded_balance) for a in accounts] == [(BANK, 135000), (CASH, 2500)]

    def test_plan_adjustments_skips_balanced_accounts(self, store, make_client):
        make_client("MTC", accounts=[
            (BANK, "CiBanco", AccountKind.BANK, 135000),
            (CASH, "Cash", AccountKind.CASH, 2500),
        ])
        adjustments = BalanceService(store).plan_adjustments(
            "MTC", {BANK: 134000, CASH: 2500}
        )
        assert len(adjustments) == 1
        assert adjustments[0].account_id == BANK
        assert adjustments[0].difference == -1000

    def test_plan_adjustments_unknown_account(self, store, make_client):
        make_client("MTC")
        with pytest.raises(ConfigurationError):
            BalanceService(store).plan_adjustments("MTC", {"nope": 1})
