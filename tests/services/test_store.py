"""
Tests for the ledger store: batching, retries and tree operations.
"""

from datetime import datetime

import pytest
from sqlalchemy.exc import OperationalError

from ledger_reconciler.errors import ReconciliationError, TransientStoreError
from ledger_reconciler.models import Account, Client, SnapshotAccount, Transaction
from ledger_reconciler.services.retry import with_retry
from ledger_reconciler.services.store import LedgerStore, WriteOp


def transient(message="connection reset"):
    return OperationalError("COMMIT", {}, Exception(message))


def txn(txn_id, client_id="MTC"):
    return Transaction(client_id=client_id, id=txn_id, date=datetime(2025, 7, 1), amount=100)


class TestWithRetry:

    def test_recovers_from_transient_errors(self):
        calls = []
        delays = []

        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise transient()
            return "ok"

        result = with_retry(flaky, "flaky op", attempts=3, base_delay=0.5, sleep=delays.append)
        assert result == "ok"
        assert delays == [0.5, 1.0]

    def test_gives_up_after_attempts(self):
        rollbacks = []

        def always_down():
            raise transient()

        with pytest.raises(TransientStoreError, match="after 3 attempts"):
            with_retry(
                always_down, "dead op", attempts=3,
                on_failure=lambda: rollbacks.append(1), sleep=lambda _: None,
            )
        assert len(rollbacks) == 3

    def test_non_transient_errors_propagate_immediately(self):
        calls = []

        def broken():
            calls.append(1)
            raise ValueError("bad data")

        with pytest.raises(ValueError):
            with_retry(broken, "broken op", sleep=lambda _: None)
        assert len(calls) == 1


class TestBatchWrite:

    def test_chunks_are_bounded(self, db_session, make_client):
        make_client("MTC")
        store = LedgerStore(db_session, batch_size=3)
        batches = store.batch_write([WriteOp.put(txn(f"t{i}")) for i in range(7)])

        assert batches == 3
        assert store.writes_committed == 7
        assert len(store.query(Transaction, "MTC")) == 7

    def test_put_overwrites(self, store, make_client):
        make_client("MTC")
        store.batch_write([WriteOp.put(txn("t1"))])
        replacement = txn("t1")
        replacement.amount = 999
        store.batch_write([WriteOp.put(replacement)])

        assert store.get(Transaction, "MTC", "t1").amount == 999

    def test_delete(self, store, make_client):
        make_client("MTC")
        store.batch_write([WriteOp.put(txn("t1"))])
        store.batch_write([WriteOp.delete(store.get(Transaction, "MTC", "t1"))])
        assert store.get(Transaction, "MTC", "t1") is None

    def test_commit_retried_after_transient_failure(self, store, db_session, make_client, monkeypatch):
        make_client("MTC")
        real_commit = db_session.commit
        attempts = []

        def flaky_commit():
            attempts.append(1)
            if len(attempts) == 1:
                raise transient()
            real_commit()

        monkeypatch.setattr(db_session, "commit", flaky_commit)
        store.batch_write([WriteOp.put(txn("t1"))])

        assert len(attempts) == 2
        assert store.get(Transaction, "MTC", "t1") is not None

    def test_commit_gives_up(self, store, db_session, make_client, monkeypatch):
        make_client("MTC")

        def down():
            raise transient()

        monkeypatch.setattr(db_session, "commit", down)
        with pytest.raises(TransientStoreError):
            store.batch_write([WriteOp.put(txn("t1"))])


class TestReads:

    def test_get_with_composite_key(self, store, make_client, make_snapshot):
        make_client("MTC")
        make_snapshot(2025, [("bank", "CiBanco", 5)])
        row = store.get(SnapshotAccount, "MTC", ("2025", "bank"))
        assert row.balance == 5

    def test_query_is_scoped_to_client(self, store, make_client):
        make_client("MTC")
        make_client("OTHER")
        store.batch_write([WriteOp.put(txn("a")), WriteOp.put(txn("b", client_id="OTHER"))])
        assert [t.id for t in store.query(Transaction, "MTC")] == ["a"]


class TestCollectionTree:

    def test_walk_tree_pre_order(self, store):
        assert list(store.walk_tree()) == [
            ("clients", 0),
            ("accounts", 1),
            ("transactions", 1),
            ("snapshots", 1),
            ("snapshotAccounts", 2),
            ("creditLedger", 1),
            ("recordLinks", 1),
        ]

    def test_walk_tree_depth_guard(self, store):
        with pytest.raises(ReconciliationError, match="deeper than 1"):
            list(store.walk_tree(max_depth=1))

    def test_unknown_collection(self, store):
        with pytest.raises(ReconciliationError):
            store.list_subcollections("nope")

    @pytest.fixture
    def populated(self, store, make_client, make_snapshot):
        make_client("MTC")
        make_client("OTHER")
        make_snapshot(2025, [("bank", "CiBanco", 1), ("cash", "Cash", 2)])
        store.batch_write([WriteOp.put(txn(f"t{i}")) for i in range(5)])
        store.batch_write([WriteOp.put(txn("keep", client_id="OTHER"))])

    def test_delete_tree_dry_run_counts_only(self, store, populated):
        deleted, batches = store.delete_tree("MTC", dry_run=True)

        assert deleted["transactions"] == 5
        assert deleted["snapshotAccounts"] == 2
        assert deleted["clients"] == 1
        assert batches == 0
        assert len(store.query(Transaction, "MTC")) == 5

    def test_delete_tree_in_small_batches(self, db_session, populated):
        store = LedgerStore(db_session, batch_size=2)
        deleted, batches = store.delete_tree("MTC")

        assert deleted == {
            "recordLinks": 0,
            "creditLedger": 0,
            "snapshotAccounts": 2,
            "snapshots": 1,
            "transactions": 5,
            "accounts": 2,
            "clients": 1,
        }
        assert batches == 1 + 1 + 3 + 1 + 1
        assert store.get(Client, "MTC", "MTC") is None
        assert store.query(Account, "MTC") == []
        assert [t.id for t in store.query(Transaction, "OTHER")] == ["keep"]

    def test_delete_tree_is_resumable(self, store, populated):
        store.delete_tree("MTC")
        deleted, batches = store.delete_tree("MTC")
        assert sum(deleted.values()) == 0
        assert batches == 0

    def test_export_tree(self, store, populated):
        export = store.export_tree("MTC")
        assert [row["id"] for row in export["clients"]] == ["MTC"]
        assert len(export["transactions"]) == 5
        assert export["accounts"][0]["kind"] in ("bank", "cash")
        assert isinstance(export["transactions"][0]["date"], str)
