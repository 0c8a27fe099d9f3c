"""Lottery lifecycle, randomness binding, and settlement."""

from .engine import LotteryEngine
from .numbering import parse_ticket_label, ticket_label
from .randomness import compute_winner_number, ensure_commitment_fixed
from .settlement import validate_ticket_proof
from .state import LotteryState, derive_state

__all__ = [
    "LotteryEngine",
    "LotteryState",
    "compute_winner_number",
    "derive_state",
    "ensure_commitment_fixed",
    "parse_ticket_label",
    "ticket_label",
    "validate_ticket_proof",
]
