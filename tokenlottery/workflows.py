from typing import TYPE_CHECKING, Any, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from .constants import DEFAULT_LOTTERY_SEED
from .models import LotteryConfig, Ticket

if TYPE_CHECKING:
    from .blockchain.interfaces import RandomnessOracle
    from .lottery.engine import LotteryEngine


def create_lottery(
    engine: "LotteryEngine",
    authority: str,
    start_time: int,
    end_time: int,
    ticket_price: int,
    *,
    seed: str = DEFAULT_LOTTERY_SEED,
) -> LotteryConfig:
    """Configure a lottery and create its ticket collection.

    The workflow performs the two administrative set-up steps in order:

    1. ``initialize_config`` creates the :class:`LotteryConfig` record.
    2. ``initialize_collection`` asks the asset registry for the collection
       every ticket will be minted into.

    Parameters
    ----------
    engine : LotteryEngine
        Engine bound to the session and collaborators to use.
    authority : str
        Identity allowed to run administrative operations.
    start_time : int
        First height at which tickets can be bought.
    end_time : int
        First height at which sales are closed.
    ticket_price : int
        Fixed price per ticket.
    seed : str, optional
        Unique handle of the lottery.

    Returns
    -------
    LotteryConfig
        The persisted lottery with ``collection_ref`` populated.
    """

    lottery = engine.initialize_config(
        authority, start_time, end_time, ticket_price, seed=seed
    )
    engine.initialize_collection(authority, lottery)
    return lottery


def buy_tickets(
    engine: "LotteryEngine",
    lottery: LotteryConfig,
    payers: Sequence[str],
) -> list[Ticket]:
    """Buy one ticket per entry of ``payers``, in order.

    Purchases are applied one at a time; if one fails, the tickets bought
    before it are kept and the error propagates.
    """

    return [engine.buy_ticket(payer, lottery) for payer in payers]


def request_randomness(oracle: "RandomnessOracle", lottery: LotteryConfig) -> str:
    """Ask ``oracle`` for a commitment dedicated to ``lottery``.

    The returned id can only be bound with
    :meth:`LotteryEngine.commit_randomness` at a later height than the one
    at which it was created.
    """

    return oracle.create_commitment(lottery.seed)


def list_tickets(session: Session, lottery: LotteryConfig) -> list[Ticket]:
    """Return the tickets of ``lottery`` ordered by sequence number."""

    if lottery.id is None:
        raise ValueError("Lottery must be persisted before listing tickets")
    stmt = (
        select(Ticket)
        .where(Ticket.lottery_id == lottery.id)
        .order_by(Ticket.sequence_number.asc())
    )
    return list(session.scalars(stmt).all())


def winning_ticket(session: Session, lottery: LotteryConfig) -> Optional[Ticket]:
    """Return the winning ticket record, or ``None`` before a winner is chosen."""

    if not lottery.winner_chosen or lottery.winner_number is None:
        return None
    return Ticket.get_by_sequence(session, lottery, lottery.winner_number)


def lottery_summary(
    session: Session, lottery: LotteryConfig, height: int
) -> dict[str, Any]:
    """Return a JSON-serializable overview of ``lottery`` at ``height``.

    Includes the derived state and, once chosen, the winning ticket record.
    """

    summary = lottery.to_json(height)
    winner = winning_ticket(session, lottery)
    summary["winning_ticket"] = winner.to_json() if winner is not None else None
    return summary
