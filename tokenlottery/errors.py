"""Error kinds raised by lottery operations.

Every lottery operation either applies fully or raises exactly one
:class:`LotteryError` subclass. The ``code`` attribute is stable and is what
the CLI prints, so callers can branch on it without matching messages.
"""

from __future__ import annotations


class LotteryError(Exception):
    """Base class for all recoverable lottery failures."""

    code = "LotteryError"
    default_message = "Lottery operation failed."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self.args[0]) if self.args else self.default_message


class LotteryNotOpen(LotteryError):
    code = "LotteryNotOpen"
    default_message = "Lottery is not open."


class Unauthorized(LotteryError):
    code = "Unauthorized"
    default_message = "Caller is not the lottery authority."


class RandomnessAlreadyCommitted(LotteryError):
    code = "RandomnessAlreadyCommitted"
    default_message = "Randomness has already been committed."


class RandomnessNotYetFixed(LotteryError):
    code = "RandomnessNotYetFixed"
    default_message = "Randomness commitment was not created before the current height."


class LotteryNotCompleted(LotteryError):
    code = "LotteryNotCompleted"
    default_message = "Lottery sale window has not ended."


class WinnerAlreadyChosen(LotteryError):
    code = "WinnerAlreadyChosen"
    default_message = "Winner has already been chosen."


class WinnerNotChosen(LotteryError):
    code = "WinnerNotChosen"
    default_message = "Winner has not been chosen."


class RandomnessNotResolved(LotteryError):
    code = "RandomnessNotResolved"
    default_message = "Randomness has not been revealed yet."


class NoTicketsSold(LotteryError):
    code = "NoTicketsSold"
    default_message = "No tickets were sold."


class NotVerifiedTicket(LotteryError):
    code = "NotVerifiedTicket"
    default_message = "Ticket is not a verified member of the lottery collection."


class IncorrectTicket(LotteryError):
    code = "IncorrectTicket"
    default_message = "Ticket is not the winning ticket held by the claimant."


class AlreadyClaimed(LotteryError):
    code = "AlreadyClaimed"
    default_message = "Prize has already been claimed."


class InvalidLotteryConfig(LotteryError):
    code = "InvalidLotteryConfig"
    default_message = "Lottery configuration is invalid."


class ConfigAlreadyInitialized(LotteryError):
    code = "ConfigAlreadyInitialized"
    default_message = "Lottery configuration already exists."


class CollectionAlreadyInitialized(LotteryError):
    code = "CollectionAlreadyInitialized"
    default_message = "Ticket collection has already been initialized."


class CollectionNotInitialized(LotteryError):
    code = "CollectionNotInitialized"
    default_message = "Ticket collection has not been initialized."


class CommitmentNotFound(LotteryError):
    code = "CommitmentNotFound"
    default_message = "Randomness commitment is unknown to the oracle."


class RandomnessNotCommitted(LotteryError):
    code = "RandomnessNotCommitted"
    default_message = "No randomness commitment is bound to the lottery."


class CommitmentLotteryMismatch(LotteryError):
    code = "CommitmentLotteryMismatch"
    default_message = "Randomness commitment was requested for another lottery."


class LedgerError(LotteryError):
    code = "LedgerError"
    default_message = "Ledger transfer failed."


class InsufficientFunds(LedgerError):
    code = "InsufficientFunds"
    default_message = "Source account has insufficient funds."


__all__ = [
    "LotteryError",
    "LotteryNotOpen",
    "Unauthorized",
    "RandomnessAlreadyCommitted",
    "RandomnessNotYetFixed",
    "LotteryNotCompleted",
    "WinnerAlreadyChosen",
    "WinnerNotChosen",
    "RandomnessNotResolved",
    "NoTicketsSold",
    "NotVerifiedTicket",
    "IncorrectTicket",
    "AlreadyClaimed",
    "InvalidLotteryConfig",
    "ConfigAlreadyInitialized",
    "CollectionAlreadyInitialized",
    "CollectionNotInitialized",
    "CommitmentNotFound",
    "RandomnessNotCommitted",
    "CommitmentLotteryMismatch",
    "LedgerError",
    "InsufficientFunds",
]
