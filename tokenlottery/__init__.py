"""Single-winner ticket lottery with commit-reveal randomness."""

from .errors import LotteryError
from .lottery import LotteryEngine, LotteryState

__all__ = ["LotteryEngine", "LotteryError", "LotteryState"]
