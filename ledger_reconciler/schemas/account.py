"""
Pydantic schemas for client accounts.
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from ledger_reconciler.domain.instant import to_instant
from ledger_reconciler.models.enums import AccountKind


class AccountState(BaseModel):
    """An account with its (possibly recomputed) balance in minor units."""
    id: str
    name: str
    kind: AccountKind
    currency: str = Field(default="MXN", min_length=3, max_length=3)
    balance: int = 0
    last_updated: datetime | None = None
    is_active: bool = True

    model_config = {"from_attributes": True}

    @field_validator("last_updated", mode="before")
    @classmethod
    def normalize_last_updated(cls, v):
        # Stored as naive UTC
        return None if v is None else to_instant(v)


class ReconciliationAccount(BaseModel):
    """Bank/cash account as shown to an operator reconciling statements."""
    id: str
    name: str
    kind: AccountKind
    recorded_balance: int


class BalanceAdjustment(BaseModel):
    """Difference between the recorded balance and the real-world one."""
    account_id: str
    account_name: str
    recorded_balance: int
    actual_balance: int
    difference: int


class AdjustmentRequest(BaseModel):
    """Actual statement balances per account id, in minor units."""
    actual_balances: dict[str, int]
