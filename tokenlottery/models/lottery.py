"""Database models for lottery configuration and issued tickets."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
    func,
    select,
)
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from ..constants import DEFAULT_LOTTERY_SEED
from ..db.utils import dt_iso
from .base import Base
from .id_type import AMOUNT_TYPE, ID_TYPE

if TYPE_CHECKING:
    from ..lottery.state import LotteryState


class LotteryConfig(Base):
    """The single configuration record of one lottery instance.

    The record is never deleted; once settled it remains as the historical
    account of the draw. Its logical state is not stored but derived from the
    fields below together with the current height, see
    :func:`tokenlottery.lottery.state.derive_state`.
    """

    def __init__(
        self,
        authority: str,
        start_time: int,
        end_time: int,
        ticket_price: int,
        seed: str = DEFAULT_LOTTERY_SEED,
        pot_account: Optional[str] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ):
        """Create a new :class:`LotteryConfig`.

        Parameters
        ----------
        authority : str
            Identity permitted to run administrative operations.
        start_time : int
            First height at which tickets can be bought.
        end_time : int
            First height at which ticket sales are closed.
        ticket_price : int
            Fixed price of one ticket in ledger base units.
        seed : str, optional
            Unique handle of the lottery. Defaults to ``"token_lottery"``.
        pot_account : str, optional
            Ledger identity holding the pot. Defaults to ``"{seed}:pot"``.
        created_at : datetime, optional
            Explicit creation timestamp.
        updated_at : datetime, optional
            Explicit last update timestamp.
        """

        self.seed = seed
        self.authority = authority
        self.start_time = start_time
        self.end_time = end_time
        self.ticket_price = ticket_price
        self.pot_account = pot_account or f"{seed}:pot"
        self.total_tickets = 0
        self.pot_amount = 0
        self.collection_ref = None
        self.randomness_ref = None
        self.winner_number = None
        self.winner_chosen = False
        self.created_at = created_at or datetime.now(timezone.utc)
        self.updated_at = updated_at or datetime.now(timezone.utc)

    __tablename__ = "lottery_configs"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    seed: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    authority: Mapped[str] = mapped_column(String(128), nullable=False)
    start_time: Mapped[int] = mapped_column(AMOUNT_TYPE, nullable=False)
    end_time: Mapped[int] = mapped_column(AMOUNT_TYPE, nullable=False)
    ticket_price: Mapped[int] = mapped_column(AMOUNT_TYPE, nullable=False)
    total_tickets: Mapped[int] = mapped_column(AMOUNT_TYPE, nullable=False, default=0)
    pot_amount: Mapped[int] = mapped_column(AMOUNT_TYPE, nullable=False, default=0)
    pot_account: Mapped[str] = mapped_column(String(128), nullable=False)
    collection_ref: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    randomness_ref: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    winner_number: Mapped[Optional[int]] = mapped_column(AMOUNT_TYPE, nullable=True)
    winner_chosen: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    claimed_by: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    claimed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    tickets: Mapped[list["Ticket"]] = relationship(
        back_populates="lottery", order_by="Ticket.sequence_number"
    )

    __table_args__ = (
        CheckConstraint("start_time < end_time", name="window_order"),
        CheckConstraint("ticket_price > 0", name="positive_price"),
        CheckConstraint("total_tickets >= 0", name="non_negative_tickets"),
        CheckConstraint("pot_amount >= 0", name="non_negative_pot"),
    )

    def __repr__(self) -> str:
        return (
            f"<LotteryConfig(id={self.id}, seed='{self.seed}', "
            f"total_tickets={self.total_tickets}, pot_amount={self.pot_amount}, "
            f"winner_chosen={self.winner_chosen}, winner_number={self.winner_number})>"
        )

    @classmethod
    def get_by_seed(cls, session: Session, seed: str) -> Optional["LotteryConfig"]:
        """Retrieve a lottery by its unique seed."""

        return session.scalar(select(cls).where(cls.seed == seed))

    def state_at(self, height: int) -> "LotteryState":
        """Return the logical state of this lottery at ``height``."""
        from ..lottery.state import derive_state

        return derive_state(self, height)

    def to_json(self, height: Optional[int] = None) -> dict[str, Any]:
        """Return a JSON-serializable representation.

        When ``height`` is given, the derived ``state`` is included.
        """
        data: dict[str, Any] = {
            "id": self.id,
            "seed": self.seed,
            "authority": self.authority,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "ticket_price": self.ticket_price,
            "total_tickets": self.total_tickets,
            "pot_amount": self.pot_amount,
            "pot_account": self.pot_account,
            "collection_ref": self.collection_ref,
            "randomness_ref": self.randomness_ref,
            "winner_number": self.winner_number if self.winner_chosen else None,
            "winner_chosen": self.winner_chosen,
            "claimed_by": self.claimed_by,
            "claimed_at": dt_iso(self.claimed_at),
            "created_at": dt_iso(self.created_at),
            "updated_at": dt_iso(self.updated_at),
        }
        if height is not None:
            data["state"] = self.state_at(height).value
        return data


class Ticket(Base):
    """One purchased lottery entry, keyed by its sequence number."""

    def __init__(
        self,
        lottery_id: int,
        sequence_number: int,
        asset_id: str,
        collection_ref: str,
        purchaser: str,
        recipient: str,
        price_paid: int,
        minted_height: int,
        created_at: Optional[datetime] = None,
    ):
        """Create a new :class:`Ticket` record.

        Parameters
        ----------
        lottery_id : int
            Owning :class:`LotteryConfig`.
        sequence_number : int
            Value of ``total_tickets`` when the ticket was minted.
        asset_id : str
            Identifier of the asset minted in the asset registry.
        collection_ref : str
            Collection the asset was minted into.
        purchaser : str
            Identity that paid for the ticket.
        recipient : str
            Identity that initially held the minted asset.
        price_paid : int
            Amount debited from ``purchaser``.
        minted_height : int
            Height at which the ticket was bought.
        created_at : datetime, optional
            Explicit creation timestamp.
        """

        self.lottery_id = lottery_id
        self.sequence_number = sequence_number
        self.asset_id = asset_id
        self.collection_ref = collection_ref
        self.purchaser = purchaser
        self.recipient = recipient
        self.price_paid = price_paid
        self.minted_height = minted_height
        self.created_at = created_at or datetime.now(timezone.utc)

    __tablename__ = "tickets"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    lottery_id: Mapped[int] = mapped_column(
        ForeignKey("lottery_configs.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    sequence_number: Mapped[int] = mapped_column(AMOUNT_TYPE, nullable=False)
    asset_id: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    collection_ref: Mapped[str] = mapped_column(String(255), nullable=False)
    purchaser: Mapped[str] = mapped_column(String(128), nullable=False)
    recipient: Mapped[str] = mapped_column(String(128), nullable=False)
    price_paid: Mapped[int] = mapped_column(AMOUNT_TYPE, nullable=False)
    minted_height: Mapped[int] = mapped_column(AMOUNT_TYPE, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        default=lambda: datetime.now(timezone.utc),
    )

    lottery: Mapped[LotteryConfig] = relationship(back_populates="tickets")

    __table_args__ = (
        UniqueConstraint("lottery_id", "sequence_number", name="uq_lottery_sequence"),
        CheckConstraint("sequence_number >= 0", name="non_negative_sequence"),
        Index("ix_tickets_purchaser", "purchaser"),
    )

    def __repr__(self) -> str:
        return (
            f"<Ticket(id={self.id}, lottery_id={self.lottery_id}, "
            f"sequence_number={self.sequence_number}, asset_id='{self.asset_id}')>"
        )

    @property
    def label(self) -> str:
        """Human readable name the asset was minted with."""
        from ..lottery.numbering import ticket_label

        return ticket_label(self.sequence_number)

    @classmethod
    def get_by_asset_id(cls, session: Session, asset_id: str) -> Optional["Ticket"]:
        """Retrieve the ticket minted as ``asset_id``."""

        return session.scalar(select(cls).where(cls.asset_id == asset_id))

    @classmethod
    def get_by_sequence(
        cls, session: Session, lottery: "LotteryConfig | int", sequence_number: int
    ) -> Optional["Ticket"]:
        """Retrieve the ticket numbered ``sequence_number`` in ``lottery``.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session.
        lottery : LotteryConfig | int
            The lottery or its primary key.
        sequence_number : int
            Ticket number to look up.

        Returns
        -------
        Optional[Ticket]
            The matching ticket or ``None`` if that number was never sold.
        """

        lottery_id = lottery if isinstance(lottery, int) else lottery.id
        return session.scalar(
            select(cls).where(
                cls.lottery_id == lottery_id, cls.sequence_number == sequence_number
            )
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "lottery_id": self.lottery_id,
            "sequence_number": self.sequence_number,
            "label": self.label,
            "asset_id": self.asset_id,
            "collection_ref": self.collection_ref,
            "purchaser": self.purchaser,
            "recipient": self.recipient,
            "price_paid": self.price_paid,
            "minted_height": self.minted_height,
            "created_at": dt_iso(self.created_at),
        }
