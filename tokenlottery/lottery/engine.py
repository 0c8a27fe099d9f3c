"""State machine driving a lottery from configuration to settlement."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from ..blockchain.interfaces import (
    AssetRegistry,
    Clock,
    PaymentLedger,
    RandomnessOracle,
    TicketProof,
)
from ..constants import DEFAULT_LOTTERY_SEED
from ..errors import (
    AlreadyClaimed,
    CollectionAlreadyInitialized,
    CollectionNotInitialized,
    ConfigAlreadyInitialized,
    InvalidLotteryConfig,
    LotteryError,
    LotteryNotCompleted,
    LotteryNotOpen,
    NoTicketsSold,
    RandomnessAlreadyCommitted,
    RandomnessNotCommitted,
    RandomnessNotResolved,
    Unauthorized,
    WinnerAlreadyChosen,
    WinnerNotChosen,
)
from ..models.lottery import LotteryConfig, Ticket
from .randomness import compute_winner_number, ensure_commitment_fixed
from .settlement import validate_ticket_proof
from .state import COMPLETED_STATES, LotteryState, derive_state

logger = logging.getLogger(__name__)


class LotteryEngine:
    """Engine that applies lottery operations against one database session.

    Every operation reloads the lottery row under ``SELECT ... FOR UPDATE``,
    re-derives its :class:`LotteryState` at the clock's current height and
    applies its effects inside a SAVEPOINT. An operation therefore either
    applies completely or raises a single :class:`LotteryError` and leaves
    the database as it found it.

    Collaborators such as :class:`tokenlottery.blockchain.api.ChainClient`
    act outside the session and cannot be rolled back with it. Operations
    that move funds therefore write their own rows and flush them first,
    and make the ledger transfer the last step inside the SAVEPOINT:

    - ``buy_ticket`` mints, records the ticket, then debits the payer. A
      failed mint or flush charges nobody. A failed debit leaves at most an
      unrecorded asset, which can never win because claims require the
      lottery's own ticket record.
    - ``claim_winnings`` zeroes the pot and records the claimant, then pays.
      A failed payment rolls the claim back so it can be retried.

    The caller commits the surrounding transaction. A commit failure after a
    successful transfer is outside what the engine can compensate.
    """

    def __init__(
        self,
        session: Session,
        *,
        oracle: RandomnessOracle,
        registry: AssetRegistry,
        ledger: PaymentLedger,
        clock: Clock,
    ) -> None:
        """Create a lottery engine bound to a SQLAlchemy session.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session used for lookups and persistence.
        oracle : RandomnessOracle
            Source of committed random values.
        registry : AssetRegistry
            Registry that mints ticket assets and tracks who holds them.
        ledger : PaymentLedger
            Ledger that moves ticket payments and the prize.
        clock : Clock
            Provides the current height for window checks.
        """

        self._session = session
        self._oracle = oracle
        self._registry = registry
        self._ledger = ledger
        self._clock = clock

    # -------- helpers --------
    def _load(self, lottery: LotteryConfig) -> LotteryConfig:
        if lottery.id is None:
            raise ValueError("Lottery must be persisted before running operations")
        config = self._session.get(
            LotteryConfig,
            lottery.id,
            with_for_update=True,
            populate_existing=True,
        )
        if config is None:
            raise ValueError(f"Lottery {lottery.id} does not exist")
        return config

    @staticmethod
    def _reject(operation: str, config: LotteryConfig, error: LotteryError) -> LotteryError:
        logger.debug("%s rejected for lottery %s: %s", operation, config.seed, error.code)
        return error

    def _require_authority(
        self, operation: str, config: LotteryConfig, caller: str
    ) -> None:
        if caller != config.authority:
            raise self._reject(operation, config, Unauthorized())

    def state(self, lottery: LotteryConfig) -> LotteryState:
        """Return the state of ``lottery`` at the current height."""

        return derive_state(self._load(lottery), self._clock.current_height())

    # -------- lifecycle --------
    def initialize_config(
        self,
        authority: str,
        start_time: int,
        end_time: int,
        ticket_price: int,
        *,
        seed: str = DEFAULT_LOTTERY_SEED,
    ) -> LotteryConfig:
        """Create the configuration record of a new lottery.

        Raises
        ------
        InvalidLotteryConfig
            If ``start_time >= end_time``, ``ticket_price <= 0`` or a bound is negative.
        ConfigAlreadyInitialized
            If a lottery with ``seed`` already exists.
        """

        if start_time < 0 or end_time < 0:
            raise InvalidLotteryConfig("Window bounds must be non-negative.")
        if start_time >= end_time:
            raise InvalidLotteryConfig("start_time must be earlier than end_time.")
        if ticket_price <= 0:
            raise InvalidLotteryConfig("ticket_price must be positive.")
        if LotteryConfig.get_by_seed(self._session, seed) is not None:
            raise ConfigAlreadyInitialized(f"Lottery {seed!r} already exists.")

        with self._session.begin_nested():
            config = LotteryConfig(
                authority=authority,
                start_time=start_time,
                end_time=end_time,
                ticket_price=ticket_price,
                seed=seed,
            )
            self._session.add(config)
            self._session.flush()

        logger.info(
            "Initialized lottery %s: window [%d, %d), price %d",
            seed,
            start_time,
            end_time,
            ticket_price,
        )
        return config

    def initialize_collection(self, caller: str, lottery: LotteryConfig) -> str:
        """Create the ticket collection for ``lottery`` in the asset registry."""

        config = self._load(lottery)
        self._require_authority("initialize_collection", config, caller)
        if config.collection_ref is not None:
            raise self._reject(
                "initialize_collection", config, CollectionAlreadyInitialized()
            )

        with self._session.begin_nested():
            collection_ref = self._registry.create_collection(config.authority, config.seed)
            config.collection_ref = collection_ref
            self._session.flush()

        logger.info("Lottery %s bound to collection %s", config.seed, collection_ref)
        return collection_ref

    # -------- ticket issuance --------
    def buy_ticket(
        self,
        payer: str,
        lottery: LotteryConfig,
        *,
        recipient: Optional[str] = None,
    ) -> Ticket:
        """Sell the next ticket of ``lottery`` to ``payer``.

        Parameters
        ----------
        payer : str
            Identity debited ``ticket_price``.
        lottery : LotteryConfig
            Lottery to buy into.
        recipient : Optional[str], default: None
            Identity that receives the minted asset. Defaults to ``payer``.

        Returns
        -------
        Ticket
            The persisted ticket. Its ``sequence_number`` equals
            ``total_tickets`` before the purchase.

        Raises
        ------
        LotteryNotOpen
            If the current height is outside ``[start_time, end_time)``.
        CollectionNotInitialized
            If no ticket collection exists yet.
        InsufficientFunds
            If the ledger cannot debit ``payer``.
        """

        height = self._clock.current_height()
        config = self._load(lottery)
        state = derive_state(config, height)
        if state is not LotteryState.OPEN:
            raise self._reject(
                "buy_ticket",
                config,
                LotteryNotOpen(f"Lottery {config.seed} is {state.value} at height {height}."),
            )
        if config.collection_ref is None:
            raise self._reject("buy_ticket", config, CollectionNotInitialized())

        owner = recipient or payer
        sequence_number = config.total_tickets
        with self._session.begin_nested():
            asset_id = self._registry.mint(owner, config.collection_ref, sequence_number)
            ticket = Ticket(
                lottery_id=config.id,
                sequence_number=sequence_number,
                asset_id=asset_id,
                collection_ref=config.collection_ref,
                purchaser=payer,
                recipient=owner,
                price_paid=config.ticket_price,
                minted_height=height,
            )
            self._session.add(ticket)
            config.pot_amount = config.pot_amount + config.ticket_price
            config.total_tickets = sequence_number + 1
            self._session.flush()
            self._ledger.transfer(payer, config.pot_account, config.ticket_price)

        logger.info(
            "Sold ticket #%d of lottery %s to %s (asset %s)",
            sequence_number,
            config.seed,
            owner,
            asset_id,
        )
        return ticket

    # -------- randomness --------
    def commit_randomness(
        self, caller: str, lottery: LotteryConfig, commitment_id: str
    ) -> None:
        """Bind the oracle commitment ``commitment_id`` to ``lottery``.

        Raises
        ------
        Unauthorized
            If ``caller`` is not the lottery authority.
        LotteryNotCompleted
            If the sale window has not ended.
        RandomnessAlreadyCommitted
            If a commitment is already bound.
        CommitmentNotFound
            If the oracle does not know ``commitment_id``.
        CommitmentLotteryMismatch
            If the commitment was requested for another lottery.
        RandomnessNotYetFixed
            If the commitment was not created strictly before the current height.
        """

        height = self._clock.current_height()
        config = self._load(lottery)
        self._require_authority("commit_randomness", config, caller)

        state = derive_state(config, height)
        if state not in COMPLETED_STATES:
            raise self._reject("commit_randomness", config, LotteryNotCompleted())
        if config.randomness_ref is not None:
            raise self._reject("commit_randomness", config, RandomnessAlreadyCommitted())

        try:
            ensure_commitment_fixed(
                self._oracle.get_commitment(commitment_id),
                commitment_id,
                height,
                lottery_ref=config.seed,
            )
        except LotteryError as exc:
            self._reject("commit_randomness", config, exc)
            raise

        with self._session.begin_nested():
            config.randomness_ref = commitment_id
            self._session.flush()

        logger.info(
            "Lottery %s committed to randomness %s at height %d",
            config.seed,
            commitment_id,
            height,
        )

    def reveal_winner(self, caller: str, lottery: LotteryConfig) -> int:
        """Derive the winning ticket number from the revealed randomness.

        Returns
        -------
        int
            The winning sequence number, in ``[0, total_tickets)``.

        Raises
        ------
        Unauthorized
            If ``caller`` is not the lottery authority.
        LotteryNotCompleted
            If the sale window has not ended.
        WinnerAlreadyChosen
            If a winner was chosen before.
        RandomnessNotCommitted
            If no commitment is bound yet.
        NoTicketsSold
            If no ticket was sold.
        RandomnessNotResolved
            If the oracle has not revealed the value yet.
        """

        height = self._clock.current_height()
        config = self._load(lottery)
        self._require_authority("reveal_winner", config, caller)

        state = derive_state(config, height)
        if state not in COMPLETED_STATES:
            raise self._reject("reveal_winner", config, LotteryNotCompleted())
        if config.winner_chosen:
            raise self._reject("reveal_winner", config, WinnerAlreadyChosen())
        if config.randomness_ref is None:
            raise self._reject("reveal_winner", config, RandomnessNotCommitted())

        if config.total_tickets == 0:
            raise self._reject("reveal_winner", config, NoTicketsSold())

        reveal_value = self._oracle.get_reveal_value(config.randomness_ref)
        if reveal_value is None:
            raise self._reject("reveal_winner", config, RandomnessNotResolved())

        winner_number = compute_winner_number(reveal_value, config.total_tickets)
        with self._session.begin_nested():
            config.winner_number = winner_number
            config.winner_chosen = True
            self._session.flush()

        logger.info(
            "Lottery %s winner is ticket #%d of %d",
            config.seed,
            winner_number,
            config.total_tickets,
        )
        return winner_number

    # -------- settlement --------
    def claim_winnings(
        self, claimant: str, lottery: LotteryConfig, proof: TicketProof
    ) -> int:
        """Pay the whole pot of ``lottery`` to the holder of the winning ticket.

        Returns
        -------
        int
            The amount transferred to ``claimant``.

        Raises
        ------
        WinnerNotChosen
            If the winner has not been revealed.
        AlreadyClaimed
            If the pot was already paid out.
        NotVerifiedTicket
            If the asset is not a verified member of the lottery's collection.
        IncorrectTicket
            If the asset is not the winning ticket or ``claimant`` does not hold it.
        """

        config = self._load(lottery)
        if not config.winner_chosen:
            raise self._reject("claim_winnings", config, WinnerNotChosen())
        if config.pot_amount == 0:
            raise self._reject("claim_winnings", config, AlreadyClaimed())

        try:
            validate_ticket_proof(self._session, config, claimant, proof, self._registry)
        except LotteryError as exc:
            self._reject("claim_winnings", config, exc)
            raise

        amount = config.pot_amount
        with self._session.begin_nested():
            config.pot_amount = 0
            config.claimed_by = claimant
            config.claimed_at = datetime.now(timezone.utc)
            self._session.flush()
            self._ledger.transfer(config.pot_account, claimant, amount)

        logger.info(
            "Lottery %s settled: %d paid to %s for ticket #%d",
            config.seed,
            amount,
            claimant,
            config.winner_number,
        )
        return amount


__all__ = ["LotteryEngine"]
