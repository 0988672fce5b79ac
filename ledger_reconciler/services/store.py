"""
Ledger store — the engine's only door to the database.

Exposes the handful of operations the reconciliation services need:

- get(model, client_id, id)
- query(model, client_id, filters, order_by)
- batch_write(ops, max_size): bounded atomic batches, one commit each
- list_subcollections(collection) / walk_tree / delete_tree / export_tree

Every read and every batch commit is retried on transient errors.
A failure part-way through batch_write leaves earlier batches
committed; all writes are full overwrites or deletes, so re-running
the same job converges on the same final state.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Iterator

from sqlalchemy import inspect, select
from sqlalchemy.orm import Session

from ledger_reconciler.config import MAX_BATCH_SIZE, get_settings
from ledger_reconciler.errors import ReconciliationError
from ledger_reconciler.models.account import Account
from ledger_reconciler.models.client import Client
from ledger_reconciler.models.credit_ledger_entry import CreditLedgerEntry
from ledger_reconciler.models.record_link import RecordLink
from ledger_reconciler.models.snapshot import Snapshot, SnapshotAccount
from ledger_reconciler.models.transaction import Transaction
from ledger_reconciler.services.retry import with_retry

logger = logging.getLogger(__name__)


# Collection name -> (model, child collections). Children must be
# removed before their parent because of foreign keys.
COLLECTION_TREE: dict[str, tuple[type, tuple[str, ...]]] = {
    "clients": (Client, ("accounts", "transactions", "snapshots", "creditLedger", "recordLinks")),
    "accounts": (Account, ()),
    "transactions": (Transaction, ()),
    "snapshots": (Snapshot, ("snapshotAccounts",)),
    "snapshotAccounts": (SnapshotAccount, ()),
    "creditLedger": (CreditLedgerEntry, ()),
    "recordLinks": (RecordLink, ()),
}

DEFAULT_MAX_DEPTH = 8


@dataclass(frozen=True)
class WriteOp:
    """A single document write: 'put' overwrites, 'delete' removes."""
    kind: str
    obj: Any

    @classmethod
    def put(cls, obj) -> "WriteOp":
        return cls("put", obj)

    @classmethod
    def delete(cls, obj) -> "WriteOp":
        return cls("delete", obj)


def _client_filter(model, client_id: str):
    if model is Client:
        return Client.id == client_id
    return model.client_id == client_id


def _row_to_dict(obj) -> dict:
    row = {}
    for attr in inspect(obj).mapper.column_attrs:
        value = getattr(obj, attr.key)
        if isinstance(value, datetime):
            value = value.isoformat()
        elif isinstance(value, Enum):
            value = value.value
        row[attr.key] = value
    return row


class LedgerStore:
    """
    Store handle built once per run and passed to every service.

    The caller owns the session; the store commits only inside
    batch_write and delete_tree, one commit per bounded batch.
    """

    def __init__(
        self,
        db: Session,
        batch_size: int | None = None,
        max_retries: int | None = None,
        retry_base_delay: float | None = None,
        sleep=None,
    ):
        settings = get_settings()
        self.db = db
        self.batch_size = min(batch_size or settings.BATCH_SIZE, MAX_BATCH_SIZE)
        self.max_retries = max_retries or settings.MAX_RETRIES
        self.retry_base_delay = (
            settings.RETRY_BASE_DELAY if retry_base_delay is None else retry_base_delay
        )
        self._sleep = sleep
        self.writes_committed = 0

    def _retry(self, operation, description: str):
        kwargs = {}
        if self._sleep is not None:
            kwargs["sleep"] = self._sleep
        return with_retry(
            operation,
            description,
            attempts=self.max_retries,
            base_delay=self.retry_base_delay,
            on_failure=self.db.rollback,
            **kwargs,
        )

    # --- Reads ---

    def get(self, model, client_id: str, record_id):
        """Fetch one record, or None when it doesn't exist."""
        if model is Client:
            key = record_id
        elif isinstance(record_id, tuple):
            key = (client_id, *record_id)
        else:
            key = (client_id, record_id)
        return self._retry(
            lambda: self.db.get(model, key),
            f"get {model.__tablename__}/{record_id}",
        )

    def query(self, model, client_id: str, filters=(), order_by=()) -> list:
        stmt = select(model).where(_client_filter(model, client_id), *filters)
        if order_by:
            stmt = stmt.order_by(*order_by)
        return self._retry(
            lambda: list(self.db.execute(stmt).scalars().all()),
            f"query {model.__tablename__}",
        )

    # --- Writes ---

    def batch_write(self, ops: list[WriteOp], max_size: int | None = None) -> int:
        """
        Apply ops in chunks of at most max_size, committing each chunk.

        Returns the number of batches committed.
        """
        size = min(max_size or self.batch_size, MAX_BATCH_SIZE)
        if size < 1:
            raise ValueError("batch size must be at least 1")

        batches = 0
        for start in range(0, len(ops), size):
            chunk = ops[start:start + size]
            self._retry(
                lambda chunk=chunk: self._commit_chunk(chunk),
                f"batch write {start // size + 1}",
            )
            batches += 1
            self.writes_committed += len(chunk)
            logger.debug("Committed batch %d (%d ops)", batches, len(chunk))
        return batches

    def _commit_chunk(self, chunk: list[WriteOp]) -> None:
        for op in chunk:
            if op.kind == "put":
                self.db.merge(op.obj)
            elif op.kind == "delete":
                self.db.delete(self.db.merge(op.obj))
            else:
                raise ValueError(f"unknown write op: {op.kind}")
        self.db.commit()

    # --- Collection tree ---

    def list_subcollections(self, collection: str) -> list[str]:
        if collection not in COLLECTION_TREE:
            raise ReconciliationError(f"unknown collection: {collection}")
        return list(COLLECTION_TREE[collection][1])

    def walk_tree(self, root: str = "clients", max_depth: int = DEFAULT_MAX_DEPTH) -> Iterator[tuple[str, int]]:
        """
        Yield (collection, depth) in pre-order using an explicit stack.

        Raises if the declared tree is deeper than max_depth.
        """
        stack = [(root, 0)]
        seen: set[str] = set()
        while stack:
            collection, depth = stack.pop()
            if depth > max_depth:
                raise ReconciliationError(
                    f"collection tree deeper than {max_depth} at {collection}"
                )
            if collection in seen:
                raise ReconciliationError(f"collection tree cycle at {collection}")
            seen.add(collection)
            yield collection, depth
            for child in reversed(self.list_subcollections(collection)):
                stack.append((child, depth + 1))

    def count(self, collection: str, client_id: str) -> int:
        model = COLLECTION_TREE[collection][0]
        return len(self.query(model, client_id))

    def delete_tree(
        self,
        client_id: str,
        root: str = "clients",
        dry_run: bool = False,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> tuple[dict[str, int], int]:
        """
        Delete every document under a client, leaves first.

        Each collection is emptied in bounded batches with a commit per
        batch, so an interrupted purge is resumed by running it again.
        Returns (deleted counts per collection, batches committed).
        In dry-run mode nothing is deleted and the counts are what
        would be deleted.
        """
        order = [collection for collection, _ in self.walk_tree(root, max_depth)]
        deleted: dict[str, int] = {}
        batches = 0

        for collection in reversed(order):
            model = COLLECTION_TREE[collection][0]
            if dry_run:
                deleted[collection] = self.count(collection, client_id)
                continue

            total = 0
            while True:
                stmt = (
                    select(model)
                    .where(_client_filter(model, client_id))
                    .limit(self.batch_size)
                )
                rows = self._retry(
                    lambda stmt=stmt: list(self.db.execute(stmt).scalars().all()),
                    f"scan {collection}",
                )
                if not rows:
                    break
                batches += self.batch_write([WriteOp.delete(row) for row in rows])
                total += len(rows)
            deleted[collection] = total
            logger.info("Deleted %d document(s) from %s for %s", total, collection, client_id)

        return deleted, batches

    def export_tree(
        self,
        client_id: str,
        root: str = "clients",
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> dict[str, list[dict]]:
        """Backup every document under a client as plain dicts."""
        export: dict[str, list[dict]] = {}
        for collection, _ in self.walk_tree(root, max_depth):
            model = COLLECTION_TREE[collection][0]
            export[collection] = [_row_to_dict(row) for row in self.query(model, client_id)]
        return export
