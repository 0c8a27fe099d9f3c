from datetime import datetime, timezone
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column, relationship, Session
from sqlalchemy import (
    Boolean,
    String,
    DateTime,
    ForeignKey,
    UniqueConstraint,
    CheckConstraint,
    Index,
    select,
)
from .base import Base
from .id_type import AMOUNT_TYPE, ID_TYPE


class AssetCollection(Base):
    """A named set of assets; membership is what makes a ticket genuine."""

    def __init__(
        self,
        collection_ref: str,
        authority: str,
        name: str,
        symbol: str,
        uri: Optional[str] = None,
        lottery_ref: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ):
        self.collection_ref = collection_ref
        self.authority = authority
        self.name = name
        self.symbol = symbol
        self.uri = uri
        self.lottery_ref = lottery_ref
        self.created_at = created_at or datetime.now(timezone.utc)

    __tablename__ = "asset_collections"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    collection_ref: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    authority: Mapped[str] = mapped_column(String(128), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    symbol: Mapped[str] = mapped_column(String(16), nullable=False)
    uri: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    lottery_ref: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    assets: Mapped[list["TicketAsset"]] = relationship(back_populates="collection")

    def __repr__(self) -> str:
        return (
            f"<AssetCollection(id={self.id}, collection_ref='{self.collection_ref}', "
            f"name='{self.name}')>"
        )

    @classmethod
    def get_by_ref(cls, session: Session, collection_ref: str) -> Optional["AssetCollection"]:
        return session.scalar(select(cls).where(cls.collection_ref == collection_ref))


class TicketAsset(Base):
    """A non-fungible asset minted into a collection.

    ``verified`` mirrors the registry's collection verification flag: an asset
    that merely claims a collection without being verified is not a member.
    """

    def __init__(
        self,
        asset_id: str,
        collection_id: int,
        sequence_number: int,
        name: str,
        symbol: str,
        uri: Optional[str] = None,
        verified: bool = True,
        created_at: Optional[datetime] = None,
    ):
        """Create a new asset record.

        Parameters
        ----------
        asset_id : str
            Unique identifier of the asset.
        collection_id : int
            ID of the owning :class:`AssetCollection`.
        sequence_number : int
            Number the asset was minted with inside its collection.
        name : str
            Human readable label, e.g. ``"Token Lottery Ticket #5"``.
        symbol : str
            Short symbol of the asset.
        uri : str, optional
            Metadata URI.
        verified : bool, optional
            Whether the collection membership has been verified. Defaults to ``True``.
        created_at : datetime, optional
            Explicit creation timestamp.
        """

        self.asset_id = asset_id
        self.collection_id = collection_id
        self.sequence_number = sequence_number
        self.name = name
        self.symbol = symbol
        self.uri = uri
        self.verified = verified
        self.created_at = created_at or datetime.now(timezone.utc)

    __tablename__ = "ticket_assets"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    asset_id: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    collection_id: Mapped[int] = mapped_column(
        ForeignKey("asset_collections.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    sequence_number: Mapped[int] = mapped_column(AMOUNT_TYPE, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    symbol: Mapped[str] = mapped_column(String(16), nullable=False)
    uri: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    collection: Mapped[AssetCollection] = relationship(back_populates="assets")
    holdings: Mapped[list["AssetHolding"]] = relationship(back_populates="asset")

    __table_args__ = (
        UniqueConstraint("collection_id", "sequence_number", name="uq_collection_sequence"),
    )

    def __repr__(self) -> str:
        return (
            f"<TicketAsset(id={self.id}, asset_id='{self.asset_id}', "
            f"name='{self.name}', verified={self.verified})>"
        )

    @classmethod
    def get_by_asset_id(cls, session: Session, asset_id: str) -> Optional["TicketAsset"]:
        return session.scalar(select(cls).where(cls.asset_id == asset_id))


class AssetHolding(Base):
    """Association table recording how many units of an asset an owner holds."""

    def __init__(
        self,
        owner: str,
        asset_pk: int,
        balance: int,
        acquired_at: Optional[datetime] = None,
    ):
        self.owner = owner
        self.asset_pk = asset_pk
        self.balance = balance
        self.acquired_at = acquired_at or datetime.now(timezone.utc)

    __tablename__ = "asset_holdings"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    owner: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    asset_pk: Mapped[int] = mapped_column(
        ForeignKey("ticket_assets.id", ondelete="CASCADE"), nullable=False, index=True
    )
    balance: Mapped[int] = mapped_column(AMOUNT_TYPE, nullable=False, default=0)
    acquired_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    asset: Mapped[TicketAsset] = relationship(back_populates="holdings")

    __table_args__ = (
        UniqueConstraint("owner", "asset_pk", name="uq_owner_asset"),
        CheckConstraint("balance >= 0", name="non_negative_balance"),
        Index("ix_holding_owner_asset", "owner", "asset_pk"),
    )

    def __repr__(self) -> str:
        return (
            f"<AssetHolding(id={self.id}, owner='{self.owner}', "
            f"asset_pk={self.asset_pk}, balance={self.balance})>"
        )

    @classmethod
    def get_by_owner_and_asset(
        cls,
        session: Session,
        owner: str,
        asset: "TicketAsset | int",
    ) -> Optional["AssetHolding"]:
        """Retrieve the holding linking ``owner`` to ``asset``.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session.
        owner : str
            Identity of the holder.
        asset : TicketAsset | int
            The asset or its primary key.

        Returns
        -------
        Optional[AssetHolding]
            The matching holding or ``None`` if the owner never held the asset.
        """

        asset_pk = asset if isinstance(asset, int) else asset.id
        return session.scalar(
            select(cls).where(cls.owner == owner, cls.asset_pk == asset_pk)
        )
