"""
Transaction model.

The append-only ledger: ground truth for every derived balance.
The reconciliation engine only ever reads these rows.

Historical rows reference their account three different ways
(account_id, account_name, or a legacy account_type label like
"Cash"); all three columns are kept so replay can resolve them.
"""

from datetime import datetime

from sqlalchemy import String, BigInteger, DateTime, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column

from ledger_reconciler.models.base import Base


class Transaction(Base):
    __tablename__ = "transactions"

    client_id: Mapped[str] = mapped_column(
        ForeignKey("clients.id"), primary_key=True
    )
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    date: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    # Signed, minor units
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)

    account_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    account_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    account_type: Mapped[str | None] = mapped_column(String(50), nullable=True)

    category: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    unit_ref: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    sequence_number: Mapped[str | None] = mapped_column(String(32), nullable=True)

    def __repr__(self) -> str:
        return f"<Transaction {self.id} {self.amount} {self.date:%Y-%m-%d}>"
