"""
Snapshot service — year-end balance snapshots.

A snapshot is the replay base for a fiscal year. Reading a missing
snapshot never writes anything: get_or_init_snapshot() hands back a
zero-balance stand-in flagged as missing, and persisting it is a
separate, explicit create_snapshot() call.
"""

import logging

from ledger_reconciler.domain.instant import to_instant, to_storage, utc_now
from ledger_reconciler.errors import AlreadyExists, ConfigurationError
from ledger_reconciler.models.client import Client
from ledger_reconciler.models.snapshot import Snapshot, SnapshotAccount
from ledger_reconciler.schemas.account import AccountState
from ledger_reconciler.schemas.snapshot import (
    SnapshotAccountData,
    SnapshotData,
    SnapshotLookup,
    SnapshotSummary,
)
from ledger_reconciler.services.store import LedgerStore, WriteOp

logger = logging.getLogger(__name__)


def _year_key(year: int) -> str:
    return str(int(year))


def _snapshot_data(year: int, accounts: list[AccountState], created_at) -> SnapshotData:
    return SnapshotData(
        fiscal_year=year,
        accounts=[
            SnapshotAccountData(id=a.id, name=a.name, balance=a.balance)
            for a in accounts
        ],
        created_at=created_at,
    )


def _to_data(snapshot: Snapshot) -> SnapshotData:
    return SnapshotData(
        fiscal_year=int(snapshot.fiscal_year),
        accounts=[SnapshotAccountData.model_validate(a) for a in snapshot.accounts],
        created_at=to_instant(snapshot.created_at),
    )


class SnapshotService:

    def __init__(self, store: LedgerStore):
        self.store = store

    def get_snapshot(self, client_id: str, year: int) -> SnapshotData | None:
        """The stored snapshot for a fiscal year, or None."""
        snapshot = self.store.get(Snapshot, client_id, _year_key(year))
        if snapshot is None:
            return None
        return _to_data(snapshot)

    def get_or_init_snapshot(
        self, client_id: str, year: int, accounts: list[AccountState]
    ) -> SnapshotLookup:
        """
        Stored snapshot, or a zero-balance stand-in for the given accounts.

        The stand-in is flagged missing=True and is not persisted.
        """
        existing = self.get_snapshot(client_id, year)
        if existing is not None:
            return SnapshotLookup(snapshot=existing, missing=False)

        logger.warning("No snapshot for %s/%s; using zero balances", client_id, year)
        return SnapshotLookup(
            snapshot=SnapshotData(
                fiscal_year=year,
                accounts=[
                    SnapshotAccountData(id=a.id, name=a.name, balance=0)
                    for a in accounts
                ],
                created_at=None,
            ),
            missing=True,
        )

    def create_snapshot(
        self,
        client_id: str,
        year: int,
        accounts: list[AccountState],
        overwrite: bool = False,
        dry_run: bool = False,
    ) -> SnapshotData:
        """
        Persist a snapshot of the given account balances.

        Raises AlreadyExists if one is already stored for this year,
        unless overwrite=True. In dry-run mode the same snapshot is
        returned and nothing is written.
        """
        existing = self.store.get(Snapshot, client_id, _year_key(year))
        if existing is not None and not overwrite:
            raise AlreadyExists(
                f"Snapshot for client {client_id} fiscal year {year} already exists"
            )

        created_at = utc_now()
        if dry_run:
            return _snapshot_data(year, accounts, created_at)

        snapshot = Snapshot(
            client_id=client_id,
            fiscal_year=_year_key(year),
            created_at=to_storage(created_at),
            accounts=[
                SnapshotAccount(
                    client_id=client_id,
                    fiscal_year=_year_key(year),
                    account_id=a.id,
                    name=a.name,
                    balance=a.balance,
                    position=i,
                )
                for i, a in enumerate(accounts)
            ],
        )

        # merge() replaces the account rows of an existing snapshot;
        # rows for accounts no longer present are deleted as orphans.
        self.store.batch_write([WriteOp.put(snapshot)])

        logger.info(
            "%s snapshot %s/%s with %d account(s)",
            "Overwrote" if existing is not None else "Created",
            client_id, year, len(accounts),
        )
        return _snapshot_data(year, accounts, created_at)

    def capture_current_balances(
        self, client_id: str, year: int, overwrite: bool = False, dry_run: bool = False
    ) -> SnapshotData:
        """Year-end close: snapshot the client's current account balances."""
        client = self.store.get(Client, client_id, client_id)
        if client is None:
            raise ConfigurationError("Client not found", client_id=client_id, resource="client")
        if not client.accounts:
            raise ConfigurationError(
                "No accounts configured", client_id=client_id, resource="accounts"
            )
        accounts = [AccountState.model_validate(a) for a in client.accounts]
        return self.create_snapshot(
            client_id, year, accounts, overwrite=overwrite, dry_run=dry_run
        )

    def list_snapshots(self, client_id: str) -> list[SnapshotSummary]:
        rows = self.store.query(
            Snapshot, client_id, order_by=[Snapshot.fiscal_year.asc()]
        )
        return [
            SnapshotSummary(fiscal_year=int(row.fiscal_year), created_at=to_instant(row.created_at))
            for row in rows
        ]
