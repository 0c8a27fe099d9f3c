from datetime import datetime, timezone
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column, Session
from sqlalchemy import (
    Integer,
    String,
    DateTime,
    CheckConstraint,
    Index,
    select,
)
from .base import Base
from .id_type import AMOUNT_TYPE, ID_TYPE


class LedgerAccount(Base):
    """Balance held by one identity in the payment ledger."""

    def __init__(self, owner: str, balance: int = 0):
        self.owner = owner
        self.balance = balance
        self.updated_at = datetime.now(timezone.utc)

    __tablename__ = "ledger_accounts"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    owner: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    balance: Mapped[int] = mapped_column(AMOUNT_TYPE, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (CheckConstraint("balance >= 0", name="non_negative_balance"),)

    def __repr__(self) -> str:
        return f"<LedgerAccount(id={self.id}, owner='{self.owner}', balance={self.balance})>"

    @classmethod
    def get_by_owner(cls, session: Session, owner: str) -> Optional["LedgerAccount"]:
        return session.scalar(select(cls).where(cls.owner == owner))


class LedgerTransfer(Base):
    """Journal entry of a completed ledger movement.

    ``source`` is ``None`` for deposits minted into the ledger from outside.
    """

    __tablename__ = "ledger_transfers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    source: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    destination: Mapped[str] = mapped_column(String(128), nullable=False)
    amount: Mapped[int] = mapped_column(AMOUNT_TYPE, nullable=False)
    memo: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint("kind IN ('deposit','transfer')", name="kind_enum"),
        CheckConstraint("amount > 0", name="positive_amount"),
        Index("ix_ledger_source", "source"),
        Index("ix_ledger_destination", "destination"),
    )

    def __repr__(self) -> str:
        return (
            f"<LedgerTransfer(id={self.id}, kind='{self.kind}', source={self.source}, "
            f"destination='{self.destination}', amount={self.amount})>"
        )
