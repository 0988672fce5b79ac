"""
Credit ledger entry model.

Per-unit delta entries. A unit's credit balance is the sum of its
entries' amounts. The list is regenerated wholesale from source
history, never appended to incrementally.
"""

from datetime import datetime

from sqlalchemy import String, BigInteger, DateTime, ForeignKey, Text, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from ledger_reconciler.models.base import Base
from ledger_reconciler.models.enums import CreditSource


class CreditLedgerEntry(Base):
    __tablename__ = "credit_ledger_entries"

    client_id: Mapped[str] = mapped_column(
        ForeignKey("clients.id"), primary_key=True
    )
    unit_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    note: Mapped[str] = mapped_column(Text, nullable=False, default="")
    source: Mapped[CreditSource] = mapped_column(
        SAEnum(CreditSource, name="credit_source_enum", create_constraint=True),
        nullable=False,
    )
    transaction_ref: Mapped[str | None] = mapped_column(String(64), nullable=True)

    def __repr__(self) -> str:
        return f"<CreditLedgerEntry {self.unit_id}/{self.id} {self.amount}>"
