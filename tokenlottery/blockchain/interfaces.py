"""Contracts of the external collaborators the lottery engine relies on.

The engine never talks to a network or a registry directly; it is handed
objects satisfying these protocols. :class:`tokenlottery.blockchain.api.ChainClient`
implements all of them over HTTP, and :mod:`tokenlottery.backends.sql`
implements them on top of the engine's own database session.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol


@dataclass(frozen=True)
class CommitmentInfo:
    """Public part of a randomness commitment.

    Attributes
    ----------
    commitment_id : str
        Opaque identifier of the commitment.
    lottery_ref : str
        Lottery the commitment was requested for.
    created_height : int
        Height at which the commitment was fixed. Its value is revealed only
        at a strictly greater height.
    """

    commitment_id: str
    lottery_ref: str
    created_height: int


@dataclass(frozen=True)
class TicketProof:
    """Evidence a claimant presents for a ticket.

    Attributes
    ----------
    asset_id : str
        Asset the claimant says they hold.
    label : str
        Human readable name recorded in the asset's metadata, e.g.
        ``"Token Lottery Ticket #5"``. Fixed-width metadata stores may pad it
        with NUL characters. Claims re-read it from the registry rather than
        trusting the value presented.
    """

    asset_id: str
    label: str


class Clock(Protocol):
    def current_height(self) -> int:
        ...


class RandomnessOracle(Protocol):
    def create_commitment(self, lottery_ref: str) -> str:
        """Fix a future random value for ``lottery_ref`` and return its id."""
        ...

    def get_commitment(self, commitment_id: str) -> Optional[CommitmentInfo]:
        ...

    def get_reveal_value(self, commitment_id: str) -> Optional[int]:
        """Return the revealed value, or ``None`` while it is still pending."""
        ...


class AssetRegistry(Protocol):
    def create_collection(self, authority: str, lottery_ref: str) -> str:
        ...

    def mint(self, owner: str, collection_ref: str, sequence_number: int) -> str:
        ...

    def balance_of(self, owner: str, asset_id: str) -> int:
        ...

    def membership_proof(self, asset_id: str) -> Optional[str]:
        """Return the verified collection of ``asset_id``, or ``None``."""
        ...

    def ticket_proof(self, asset_id: str) -> TicketProof:
        ...


class PaymentLedger(Protocol):
    def transfer(self, source: str, destination: str, amount: int) -> None:
        """Move ``amount`` atomically; raises ``InsufficientFunds``."""
        ...


@dataclass
class ManualClock:
    """Clock whose height only moves when told to."""

    height: int = 0

    def current_height(self) -> int:
        return self.height

    def advance(self, blocks: int = 1) -> int:
        if blocks < 0:
            raise ValueError("blocks must be non-negative")
        self.height += blocks
        return self.height

    def set(self, height: int) -> None:
        if height < self.height:
            raise ValueError("height cannot move backwards")
        self.height = height


__all__ = [
    "AssetRegistry",
    "Clock",
    "CommitmentInfo",
    "ManualClock",
    "PaymentLedger",
    "RandomnessOracle",
    "TicketProof",
]
