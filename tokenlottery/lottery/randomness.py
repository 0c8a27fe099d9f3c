"""Commit-before-read checks and winner derivation."""

from __future__ import annotations

from typing import Optional

from ..blockchain.interfaces import CommitmentInfo
from ..errors import (
    CommitmentLotteryMismatch,
    CommitmentNotFound,
    NoTicketsSold,
    RandomnessNotYetFixed,
)


def ensure_commitment_fixed(
    commitment: Optional[CommitmentInfo],
    commitment_id: str,
    height: int,
    lottery_ref: Optional[str] = None,
) -> CommitmentInfo:
    """Check that ``commitment`` was fixed strictly before ``height``.

    A commitment created at the acting height (or later) could have been
    chosen after its value became predictable, so it is rejected. When
    ``lottery_ref`` is given, the commitment must have been requested for
    that lottery.

    Raises
    ------
    CommitmentNotFound
        If the oracle does not know ``commitment_id``.
    CommitmentLotteryMismatch
        If the commitment was requested for a different lottery.
    RandomnessNotYetFixed
        If ``commitment.created_height >= height``.
    """

    if commitment is None:
        raise CommitmentNotFound(f"Unknown randomness commitment {commitment_id!r}.")
    if lottery_ref is not None and commitment.lottery_ref != lottery_ref:
        raise CommitmentLotteryMismatch(
            f"Commitment {commitment_id!r} belongs to {commitment.lottery_ref!r}, "
            f"not {lottery_ref!r}."
        )
    if commitment.created_height >= height:
        raise RandomnessNotYetFixed(
            f"Commitment {commitment_id!r} was created at height "
            f"{commitment.created_height}, not before current height {height}."
        )
    return commitment


def compute_winner_number(reveal_value: int, total_tickets: int) -> int:
    """Map a revealed random value onto the sold ticket range.

    Returns
    -------
    int
        ``reveal_value % total_tickets``, always in ``[0, total_tickets)``.

    Raises
    ------
    NoTicketsSold
        If ``total_tickets`` is zero.
    ValueError
        If ``reveal_value`` is negative.
    """

    if total_tickets <= 0:
        raise NoTicketsSold()
    if reveal_value < 0:
        raise ValueError("reveal_value must be non-negative")
    return reveal_value % total_tickets


__all__ = ["compute_winner_number", "ensure_commitment_fixed"]
