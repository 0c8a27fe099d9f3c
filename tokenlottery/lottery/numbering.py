"""Helpers for naming tickets and reading their numbers back."""

from __future__ import annotations

from typing import Optional

from ..constants import TICKET_NAME_PREFIX


def ticket_label(sequence_number: int) -> str:
    """Return the human readable name a ticket is minted with."""

    if sequence_number < 0:
        raise ValueError("sequence_number must be non-negative")
    return f"{TICKET_NAME_PREFIX}{sequence_number}"


def _normalize_label(label: str) -> str:
    """Strip NUL padding and surrounding whitespace from a metadata label."""

    if not isinstance(label, str):
        raise TypeError("label must be a string")
    return label.replace("\x00", "").strip()


def parse_ticket_label(label: str) -> Optional[int]:
    """Extract the sequence number from a ticket label.

    Parameters
    ----------
    label : str
        Label as stored in asset metadata; fixed-width stores may pad it with
        NUL characters.

    Returns
    -------
    Optional[int]
        The sequence number, or ``None`` when the label is not a ticket label
        in canonical form (``"Token Lottery Ticket #05"`` is rejected).
    """

    normalized = _normalize_label(label)
    if not normalized.startswith(TICKET_NAME_PREFIX):
        return None
    digits = normalized[len(TICKET_NAME_PREFIX) :]
    if not digits.isdigit() or not digits.isascii():
        return None
    number = int(digits)
    if ticket_label(number) != normalized:
        return None
    return number


__all__ = ["parse_ticket_label", "ticket_label"]
