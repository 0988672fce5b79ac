"""
Record link model.

Annotation written by a matching run: which ledger transaction an
external record (e.g. a historical dues payment) corresponds to,
and how confident the match was.
"""

from datetime import datetime

from sqlalchemy import String, DateTime, ForeignKey, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from ledger_reconciler.models.base import Base
from ledger_reconciler.models.enums import MatchTier


class RecordLink(Base):
    __tablename__ = "record_links"

    client_id: Mapped[str] = mapped_column(
        ForeignKey("clients.id"), primary_key=True
    )
    record_id: Mapped[str] = mapped_column(String(100), primary_key=True)
    unit_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    transaction_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    tier: Mapped[MatchTier] = mapped_column(
        SAEnum(MatchTier, name="match_tier_enum", create_constraint=True),
        nullable=False,
    )
    linked_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    def __repr__(self) -> str:
        return f"<RecordLink {self.record_id} -> {self.transaction_id} ({self.tier.value})>"
