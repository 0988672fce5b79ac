"""
Pydantic schemas for per-unit credit ledgers.
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from ledger_reconciler.domain.instant import to_instant
from ledger_reconciler.errors import ValidationError as RecordValidationError
from ledger_reconciler.models.enums import CreditSource


class BalanceObservation(BaseModel):
    """A historically recorded absolute credit balance ("adjusted to" value)."""
    absolute_balance: int
    timestamp: datetime
    note: str = ""

    model_config = {"frozen": True}

    @field_validator("timestamp", mode="before")
    @classmethod
    def normalize_timestamp(cls, v) -> datetime:
        try:
            return to_instant(v)
        except RecordValidationError as e:
            raise ValueError(str(e))

    @field_validator("absolute_balance", mode="before")
    @classmethod
    def balance_must_be_integer(cls, v) -> int:
        if isinstance(v, bool) or not isinstance(v, int):
            raise ValueError("absolute_balance must be integer minor units")
        return v


class CreditLedgerEntryData(BaseModel):
    """One delta entry. The unit's credit balance is the sum of amounts."""
    id: str
    timestamp: datetime
    amount: int
    note: str
    source: CreditSource
    transaction_ref: str | None = None

    model_config = {"from_attributes": True, "frozen": True}


class NormalizeRequest(BaseModel):
    unit_id: str = "unit"
    starting_balance: int = 0
    observations: list[BalanceObservation] = Field(default_factory=list)
    opening_timestamp: datetime | None = None


class NormalizeResponse(BaseModel):
    unit_id: str
    entries: list[CreditLedgerEntryData]
    final_balance: int
