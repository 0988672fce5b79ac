"""
Year-end snapshot models.

A snapshot records every account's balance as of a fiscal-year
boundary and is the base that replay starts from. One snapshot per
(client, fiscal year); once written it is not edited unless an
overwrite is explicitly requested.
"""

from datetime import datetime

from sqlalchemy import String, Integer, BigInteger, DateTime, ForeignKey, ForeignKeyConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_reconciler.models.base import Base


class Snapshot(Base):
    __tablename__ = "snapshots"

    client_id: Mapped[str] = mapped_column(
        ForeignKey("clients.id"), primary_key=True
    )
    # Keyed by the fiscal year string, e.g. "2025"
    fiscal_year: Mapped[str] = mapped_column(String(4), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    accounts: Mapped[list["SnapshotAccount"]] = relationship(
        back_populates="snapshot",
        cascade="all, delete-orphan",
        order_by="SnapshotAccount.position",
    )

    def __repr__(self) -> str:
        return f"<Snapshot {self.client_id}/{self.fiscal_year}>"


class SnapshotAccount(Base):
    """One account's balance inside a snapshot."""

    __tablename__ = "snapshot_accounts"
    __table_args__ = (
        ForeignKeyConstraint(
            ["client_id", "fiscal_year"],
            ["snapshots.client_id", "snapshots.fiscal_year"],
        ),
    )

    client_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    fiscal_year: Mapped[str] = mapped_column(String(4), primary_key=True)
    account_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    balance: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    snapshot: Mapped["Snapshot"] = relationship(back_populates="accounts")
