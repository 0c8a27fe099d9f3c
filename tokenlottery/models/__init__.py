from .base import Base

# import models so Alembic/autoloaders can discover mappers
from .lottery import LotteryConfig, Ticket  # noqa: F401
from .ownership import AssetCollection, TicketAsset, AssetHolding  # noqa: F401
from .ledger import LedgerAccount, LedgerTransfer  # noqa: F401
from .randomness import RandomnessCommitment  # noqa: F401

__all__ = [
    "Base",
    "LotteryConfig",
    "Ticket",
    "AssetCollection",
    "TicketAsset",
    "AssetHolding",
    "LedgerAccount",
    "LedgerTransfer",
    "RandomnessCommitment",
]
