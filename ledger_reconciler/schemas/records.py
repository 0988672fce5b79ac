"""
Pydantic schemas for ledger records consumed by the matcher and
the replay engine.

Dates are validated into Instants (aware UTC datetimes) and amounts
must already be integer minor units; nothing is coerced silently.
"""

from datetime import datetime

from pydantic import BaseModel, field_validator

from ledger_reconciler.domain.instant import to_instant
from ledger_reconciler.domain.money import require_minor_units
from ledger_reconciler.errors import ValidationError as RecordValidationError


def _instant(value) -> datetime:
    try:
        return to_instant(value)
    except RecordValidationError as e:
        # pydantic reports ValueError as a field error
        raise ValueError(str(e))


def _minor_units(value) -> int:
    try:
        return require_minor_units(value)
    except RecordValidationError as e:
        raise ValueError(str(e))


class TransactionRecord(BaseModel):
    """Read-only view of a ledger transaction."""
    id: str
    date: datetime
    amount: int
    account_id: str | None = None
    account_name: str | None = None
    account_type: str | None = None
    category: str | None = None
    unit_ref: str | None = None
    notes: str = ""
    sequence_number: str | None = None

    model_config = {"from_attributes": True, "frozen": True}

    @field_validator("date", mode="before")
    @classmethod
    def normalize_date(cls, v) -> datetime:
        return _instant(v)

    @field_validator("amount", mode="before")
    @classmethod
    def amount_must_be_integer(cls, v) -> int:
        return _minor_units(v)

    @field_validator("notes", mode="before")
    @classmethod
    def notes_default(cls, v) -> str:
        return v or ""


class ExternalRecord(BaseModel):
    """
    A legacy or external record to be linked to one transaction.

    record_id is the caller's key for persisting the link; it is not
    used for matching.
    """
    unit_id: str | None = None
    date: datetime
    amount: int
    raw_notes: str = ""
    record_id: str | None = None

    model_config = {"frozen": True}

    @field_validator("date", mode="before")
    @classmethod
    def normalize_date(cls, v) -> datetime:
        return _instant(v)

    @field_validator("amount", mode="before")
    @classmethod
    def amount_must_be_integer(cls, v) -> int:
        return _minor_units(v)
