"""Lifecycle states of a lottery, derived rather than stored."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..models.lottery import LotteryConfig


class LotteryState(str, Enum):
    CONFIGURING = "configuring"
    OPEN = "open"
    CLOSED = "closed"
    RANDOMNESS_COMMITTED = "randomness_committed"
    WINNER_CHOSEN = "winner_chosen"
    SETTLED = "settled"


# States in which ``now >= end_time`` holds.
COMPLETED_STATES = frozenset(
    {
        LotteryState.CLOSED,
        LotteryState.RANDOMNESS_COMMITTED,
        LotteryState.WINNER_CHOSEN,
        LotteryState.SETTLED,
    }
)


def derive_state(config: "LotteryConfig", height: int) -> LotteryState:
    """Compute the state of ``config`` at ``height``.

    Parameters
    ----------
    config : LotteryConfig
        Lottery whose stored fields are inspected.
    height : int
        Current height of the clock.

    Returns
    -------
    LotteryState
        Later lifecycle facts (a chosen winner, a bound commitment) take
        precedence over the sale window, which only decides between the
        first three states.
    """

    if config.winner_chosen:
        return LotteryState.SETTLED if config.pot_amount == 0 else LotteryState.WINNER_CHOSEN
    if config.randomness_ref is not None:
        return LotteryState.RANDOMNESS_COMMITTED
    if height < config.start_time:
        return LotteryState.CONFIGURING
    if height < config.end_time:
        return LotteryState.OPEN
    return LotteryState.CLOSED


__all__ = ["COMPLETED_STATES", "LotteryState", "derive_state"]
