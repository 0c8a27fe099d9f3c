"""Collaborators backed by the lottery's own database.

These satisfy the protocols in :mod:`tokenlottery.blockchain.interfaces`
without a network, so a whole lottery can run against one SQLAlchemy
session: in tests, in the CLI against a local SQLite file, or as a
reference for gateway implementations. All writes share the caller's
session, so they commit or roll back together with the engine's changes.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from ..blockchain.interfaces import Clock, CommitmentInfo, TicketProof
from ..constants import (
    COLLECTION_NAME,
    COLLECTION_SYMBOL,
    COLLECTION_URI,
    TICKET_SYMBOL,
    TICKET_URI,
)
from ..errors import InsufficientFunds, LedgerError
from ..lottery.numbering import ticket_label
from ..models.ledger import LedgerAccount, LedgerTransfer
from ..models.ownership import AssetCollection, AssetHolding, TicketAsset
from ..models.randomness import RandomnessCommitment
from ..models.utils import generate_unique_ref

logger = logging.getLogger(__name__)


class SQLRandomnessOracle:
    """Oracle storing commitments in ``randomness_commitments``.

    Values are published by :meth:`fulfil`, which stands in for the oracle
    network's reveal step and refuses to publish at the commitment height.
    """

    def __init__(self, session: Session, clock: Clock) -> None:
        self._session = session
        self._clock = clock

    def create_commitment(self, lottery_ref: str) -> str:
        commitment = RandomnessCommitment(
            commitment_id=generate_unique_ref(
                "rnd", RandomnessCommitment, "commitment_id", self._session
            ),
            lottery_ref=lottery_ref,
            created_height=self._clock.current_height(),
        )
        self._session.add(commitment)
        self._session.flush()
        logger.debug(
            "Created commitment %s for %s at height %d",
            commitment.commitment_id,
            lottery_ref,
            commitment.created_height,
        )
        return commitment.commitment_id

    def get_commitment(self, commitment_id: str) -> Optional[CommitmentInfo]:
        commitment = RandomnessCommitment.get_by_commitment_id(self._session, commitment_id)
        if commitment is None:
            return None
        return CommitmentInfo(
            commitment_id=commitment.commitment_id,
            lottery_ref=commitment.lottery_ref,
            created_height=commitment.created_height,
        )

    def get_reveal_value(self, commitment_id: str) -> Optional[int]:
        commitment = RandomnessCommitment.get_by_commitment_id(self._session, commitment_id)
        if commitment is None or commitment.reveal_value is None:
            return None
        return int(commitment.reveal_value)

    def fulfil(self, commitment_id: str, value: int) -> None:
        """Publish ``value`` for ``commitment_id``.

        Raises
        ------
        KeyError
            If the commitment does not exist.
        ValueError
            If the value is negative, already published, or the clock has not
            moved past the commitment height.
        """

        commitment = RandomnessCommitment.get_by_commitment_id(self._session, commitment_id)
        if commitment is None:
            raise KeyError(commitment_id)
        if value < 0:
            raise ValueError("Reveal value must be non-negative")
        if commitment.is_revealed:
            raise ValueError(f"Commitment {commitment_id} has already been revealed")
        height = self._clock.current_height()
        if height <= commitment.created_height:
            raise ValueError(
                f"Commitment {commitment_id} can only be revealed after height "
                f"{commitment.created_height}"
            )
        commitment.reveal_value = str(value)
        commitment.revealed_height = height
        self._session.flush()


class SQLAssetRegistry:
    """Registry keeping collections, assets and holdings in the database."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def create_collection(self, authority: str, lottery_ref: str) -> str:
        collection = AssetCollection(
            collection_ref=generate_unique_ref(
                "col", AssetCollection, "collection_ref", self._session
            ),
            authority=authority,
            name=COLLECTION_NAME,
            symbol=COLLECTION_SYMBOL,
            uri=COLLECTION_URI,
            lottery_ref=lottery_ref,
        )
        self._session.add(collection)
        self._session.flush()
        return collection.collection_ref

    def mint(self, owner: str, collection_ref: str, sequence_number: int) -> str:
        collection = AssetCollection.get_by_ref(self._session, collection_ref)
        if collection is None:
            raise KeyError(collection_ref)

        asset = TicketAsset(
            asset_id=generate_unique_ref("tkt", TicketAsset, "asset_id", self._session),
            collection_id=collection.id,
            sequence_number=sequence_number,
            name=ticket_label(sequence_number),
            symbol=TICKET_SYMBOL,
            uri=TICKET_URI,
        )
        self._session.add(asset)
        self._session.flush()
        self._session.add(AssetHolding(owner=owner, asset_pk=asset.id, balance=1))
        self._session.flush()
        return asset.asset_id

    def balance_of(self, owner: str, asset_id: str) -> int:
        asset = TicketAsset.get_by_asset_id(self._session, asset_id)
        if asset is None:
            return 0
        holding = AssetHolding.get_by_owner_and_asset(self._session, owner, asset)
        return holding.balance if holding is not None else 0

    def membership_proof(self, asset_id: str) -> Optional[str]:
        asset = TicketAsset.get_by_asset_id(self._session, asset_id)
        if asset is None or not asset.verified:
            return None
        return asset.collection.collection_ref

    def ticket_proof(self, asset_id: str) -> TicketProof:
        asset = TicketAsset.get_by_asset_id(self._session, asset_id)
        if asset is None:
            raise KeyError(asset_id)
        return TicketProof(asset_id=asset.asset_id, label=asset.name)

    def transfer_asset(self, asset_id: str, source: str, destination: str) -> None:
        """Move one unit of ``asset_id`` from ``source`` to ``destination``."""

        asset = TicketAsset.get_by_asset_id(self._session, asset_id)
        if asset is None:
            raise KeyError(asset_id)
        held = AssetHolding.get_by_owner_and_asset(self._session, source, asset)
        if held is None or held.balance <= 0:
            raise ValueError(f"{source} does not hold asset {asset_id}")

        receiving = AssetHolding.get_by_owner_and_asset(self._session, destination, asset)
        if receiving is None:
            receiving = AssetHolding(owner=destination, asset_pk=asset.id, balance=0)
            self._session.add(receiving)
        held.balance -= 1
        receiving.balance += 1
        receiving.acquired_at = datetime.now(timezone.utc)
        self._session.flush()


class SQLLedger:
    """Ledger of balances per identity with a transfer journal."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def _get_or_create(self, owner: str) -> LedgerAccount:
        account = LedgerAccount.get_by_owner(self._session, owner)
        if account is None:
            account = LedgerAccount(owner=owner, balance=0)
            self._session.add(account)
            self._session.flush()
        return account

    def balance(self, owner: str) -> int:
        account = LedgerAccount.get_by_owner(self._session, owner)
        return account.balance if account is not None else 0

    def deposit(self, owner: str, amount: int, memo: Optional[str] = None) -> int:
        """Credit ``amount`` to ``owner`` from outside the ledger."""

        if amount <= 0:
            raise LedgerError("Deposit amount must be positive.")
        account = self._get_or_create(owner)
        account.balance += amount
        self._session.add(
            LedgerTransfer(kind="deposit", destination=owner, amount=amount, memo=memo)
        )
        self._session.flush()
        return account.balance

    def transfer(self, source: str, destination: str, amount: int) -> None:
        if amount <= 0:
            raise LedgerError("Transfer amount must be positive.")
        if source == destination:
            raise LedgerError("Source and destination must differ.")

        with self._session.begin_nested():
            debit = LedgerAccount.get_by_owner(self._session, source)
            if debit is None or debit.balance < amount:
                available = debit.balance if debit is not None else 0
                raise InsufficientFunds(
                    f"{source} has {available}, needs {amount}."
                )
            credit = self._get_or_create(destination)
            debit.balance -= amount
            credit.balance += amount
            self._session.add(
                LedgerTransfer(
                    kind="transfer",
                    source=source,
                    destination=destination,
                    amount=amount,
                )
            )
            self._session.flush()


__all__ = ["SQLAssetRegistry", "SQLLedger", "SQLRandomnessOracle"]
