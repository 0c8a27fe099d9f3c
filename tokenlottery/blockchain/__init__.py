"""Collaborator contracts and the HTTP gateway client."""

from .interfaces import (
    AssetRegistry,
    Clock,
    CommitmentInfo,
    ManualClock,
    PaymentLedger,
    RandomnessOracle,
    TicketProof,
)

__all__ = [
    "AssetRegistry",
    "Clock",
    "CommitmentInfo",
    "ManualClock",
    "PaymentLedger",
    "RandomnessOracle",
    "TicketProof",
]
