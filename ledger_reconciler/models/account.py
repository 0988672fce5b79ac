"""
Account model.

A bank or cash account owned by a client. The balance column is a
projection: it is rewritten wholesale by each replay run (or by a
direct administrative correction), never incremented.
"""

from datetime import datetime

from sqlalchemy import (
    String, Integer, BigInteger, Boolean, DateTime, ForeignKey,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_reconciler.models.base import Base
from ledger_reconciler.models.enums import AccountKind


class Account(Base):
    __tablename__ = "accounts"

    # Account ids are only unique within a client
    client_id: Mapped[str] = mapped_column(
        ForeignKey("clients.id"), primary_key=True
    )
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    kind: Mapped[AccountKind] = mapped_column(
        SAEnum(AccountKind, name="account_kind_enum", create_constraint=True),
        nullable=False,
    )
    currency: Mapped[str] = mapped_column(
        String(3), nullable=False, default="MXN"
    )
    balance: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0
    )
    last_updated: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    # Display order within the client's account list
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    client: Mapped["Client"] = relationship(back_populates="accounts")

    def __repr__(self) -> str:
        return f"<Account {self.client_id}/{self.id} {self.kind.value}>"
