"""Database model backing the SQL randomness oracle."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Index, String, Text, select
from sqlalchemy.orm import Mapped, Session, mapped_column

from .base import Base
from .id_type import AMOUNT_TYPE, ID_TYPE


class RandomnessCommitment(Base):
    """A two-phase random value: committed at ``created_height``, revealed later."""

    __tablename__ = "randomness_commitments"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    """Primary key."""

    commitment_id: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    """Opaque identifier handed to consumers."""

    lottery_ref: Mapped[str] = mapped_column(String(64), nullable=False)
    """Seed of the lottery the commitment was requested for."""

    created_height: Mapped[int] = mapped_column(AMOUNT_TYPE, nullable=False)
    """Height at which the commitment was fixed."""

    reveal_value: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    """Decimal string of the revealed value; ``None`` while pending."""

    revealed_height: Mapped[Optional[int]] = mapped_column(AMOUNT_TYPE, nullable=True)
    """Height at which the value was published."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (Index("ix_randomness_lottery_ref", "lottery_ref"),)

    def __init__(
        self,
        *,
        commitment_id: str,
        lottery_ref: str,
        created_height: int,
        reveal_value: Optional[str] = None,
        revealed_height: Optional[int] = None,
        created_at: Optional[datetime] = None,
    ) -> None:
        self.commitment_id = commitment_id
        self.lottery_ref = lottery_ref
        self.created_height = created_height
        self.reveal_value = reveal_value
        self.revealed_height = revealed_height
        if created_at is not None:
            self.created_at = created_at

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<RandomnessCommitment(id={id}, commitment_id={cid}, created_height={h}, revealed={r})>".format(
            id=self.id,
            cid=self.commitment_id,
            h=self.created_height,
            r=self.reveal_value is not None,
        )

    @property
    def is_revealed(self) -> bool:
        return self.reveal_value is not None

    @classmethod
    def get_by_commitment_id(
        cls, session: Session, commitment_id: str
    ) -> Optional["RandomnessCommitment"]:
        """Return the commitment matching ``commitment_id`` if it exists."""

        return session.scalar(select(cls).where(cls.commitment_id == commitment_id))


__all__ = ["RandomnessCommitment"]
