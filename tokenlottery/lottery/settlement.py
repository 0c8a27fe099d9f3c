"""Validation of winning-ticket claims."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from ..blockchain.interfaces import AssetRegistry, TicketProof
from ..errors import IncorrectTicket, NotVerifiedTicket
from ..models.lottery import LotteryConfig, Ticket
from .numbering import parse_ticket_label

logger = logging.getLogger(__name__)


def validate_ticket_proof(
    session: Session,
    lottery: LotteryConfig,
    claimant: str,
    proof: TicketProof,
    registry: AssetRegistry,
) -> Ticket:
    """Check that ``claimant`` holds the winning ticket of ``lottery``.

    Parameters
    ----------
    session : Session
        Session used to look up the lottery's own ticket records.
    lottery : LotteryConfig
        Lottery with a chosen winner.
    claimant : str
        Identity asking for the pot.
    proof : TicketProof
        Asset and label presented by the claimant.
    registry : AssetRegistry
        Source of truth for collection membership, labels and balances.

    Returns
    -------
    Ticket
        The lottery's record of the winning ticket.

    Notes
    -----
    The claimant only chooses which asset to present. Its label is read back
    from the registry, so ``proof.label`` never decides the ticket number.
    Checks run in order:

    1. The registry reports ``proof.asset_id`` as a verified member of the
       lottery's collection.
    2. The registry label, stripped of padding, names the winning number.
    3. The lottery has its own ticket record for the asset with that number.
       Assets minted into the collection outside ``buy_ticket`` have none.
    4. The registry reports a positive balance of the asset for ``claimant``.

    Raises
    ------
    NotVerifiedTicket
        If check 1 fails or the registry cannot produce the asset.
    IncorrectTicket
        If check 2, 3 or 4 fails.
    """

    if lottery.collection_ref is None:
        raise NotVerifiedTicket("Lottery has no ticket collection.")

    member_of = registry.membership_proof(proof.asset_id)
    if member_of is None or member_of != lottery.collection_ref:
        logger.debug(
            "Asset %s is not a verified member of collection %s",
            proof.asset_id,
            lottery.collection_ref,
        )
        raise NotVerifiedTicket()

    try:
        label = registry.ticket_proof(proof.asset_id).label
    except KeyError:
        raise NotVerifiedTicket(f"Registry has no asset {proof.asset_id}.") from None

    claimed_number = parse_ticket_label(label)
    if claimed_number is None or claimed_number != lottery.winner_number:
        raise IncorrectTicket(
            f"Ticket label {label.rstrip(chr(0))!r} does not name winning "
            f"ticket #{lottery.winner_number}."
        )

    ticket = Ticket.get_by_asset_id(session, proof.asset_id)
    if ticket is None or ticket.lottery_id != lottery.id:
        raise IncorrectTicket(
            f"Asset {proof.asset_id} was not sold by lottery {lottery.seed}."
        )
    if ticket.sequence_number != claimed_number:
        raise IncorrectTicket(
            f"Asset {proof.asset_id} was minted as ticket #{ticket.sequence_number}."
        )

    if registry.balance_of(claimant, proof.asset_id) <= 0:
        raise IncorrectTicket(f"{claimant} does not hold asset {proof.asset_id}.")

    return ticket


__all__ = ["validate_ticket_proof"]
