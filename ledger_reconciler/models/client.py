"""
Client model.

A client is one organization whose books are reconciled. It owns
the account list, the fiscal calendar setting, and the tags left by
the last balance rebuild.
"""

from datetime import datetime

from sqlalchemy import String, Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_reconciler.models.base import Base


class Client(Base):
    __tablename__ = "clients"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    fiscal_year_start_month: Mapped[int | None] = mapped_column(
        Integer, nullable=True, default=None
    )

    # Written by each balance rebuild
    balance_snapshot_year: Mapped[int | None] = mapped_column(
        Integer, nullable=True
    )
    balances_computed_at: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True
    )

    accounts: Mapped[list["Account"]] = relationship(
        back_populates="client", order_by="Account.position"
    )

    def __repr__(self) -> str:
        return f"<Client {self.id}>"
