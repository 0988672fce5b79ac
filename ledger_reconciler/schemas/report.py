"""
Pydantic schemas for run reports.

A report carries the full computed effect of a run. Dry-run and
live runs produce the same report; only `committed` differs.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from ledger_reconciler.models.enums import MatchTier
from ledger_reconciler.schemas.account import AccountState
from ledger_reconciler.schemas.credit import CreditLedgerEntryData


class IssueData(BaseModel):
    kind: str
    record_id: str | None
    message: str
    category: str


class RebuildReport(BaseModel):
    client_id: str
    start_year: int
    boundary: datetime
    computed_at: datetime
    accounts: list[AccountState]
    processed_count: int = 0
    skipped_count: int = 0
    issues: list[IssueData] = Field(default_factory=list)
    dry_run: bool = True
    committed: bool = False


class LinkResult(BaseModel):
    record_id: str | None
    unit_id: str | None
    transaction_id: str
    tier: MatchTier


class LinkReport(BaseModel):
    client_id: str
    records_processed: int = 0
    already_linked: int = 0
    links: list[LinkResult] = Field(default_factory=list)
    unmatched: list[str | None] = Field(default_factory=list)
    issues: list[IssueData] = Field(default_factory=list)
    dry_run: bool = True
    committed: bool = False

    def tier_counts(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for link in self.links:
            counts[link.tier.value] = counts.get(link.tier.value, 0) + 1
        return counts


class UnitCreditReport(BaseModel):
    unit_id: str
    entries: list[CreditLedgerEntryData]
    final_balance: int


class CreditRebuildReport(BaseModel):
    client_id: str
    units: list[UnitCreditReport] = Field(default_factory=list)
    issues: list[IssueData] = Field(default_factory=list)
    dry_run: bool = True
    committed: bool = False


class PurgeReport(BaseModel):
    client_id: str
    deleted: dict[str, int] = Field(default_factory=dict)
    batches_committed: int = 0
    dry_run: bool = True
