"""
Pydantic schemas for year-end snapshots.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class SnapshotAccountData(BaseModel):
    id: str = Field(validation_alias="account_id")
    name: str
    balance: int

    model_config = {"from_attributes": True, "populate_by_name": True}


class SnapshotData(BaseModel):
    """Account balances as of one fiscal-year boundary."""
    fiscal_year: int
    accounts: list[SnapshotAccountData]
    created_at: datetime | None = None

    def balance_for(self, account_id: str, name: str) -> int | None:
        """Snapshot balance for an account, matched by id, then by name."""
        for entry in self.accounts:
            if entry.id == account_id:
                return entry.balance
        for entry in self.accounts:
            if entry.name == name:
                return entry.balance
        return None


class SnapshotLookup(BaseModel):
    """
    Result of get_or_init_snapshot.

    missing=True means the snapshot was synthesized with zero
    balances and has NOT been persisted.
    """
    snapshot: SnapshotData
    missing: bool


class SnapshotSummary(BaseModel):
    fiscal_year: int
    created_at: datetime
