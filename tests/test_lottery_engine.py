import unittest

from sqlalchemy import func, select

from tokenlottery.backends import SQLAssetRegistry, SQLLedger, SQLRandomnessOracle
from tokenlottery.blockchain.interfaces import ManualClock, TicketProof
from tokenlottery.db.engine import get_sessionmaker, make_engine
from tokenlottery.errors import (
    AlreadyClaimed,
    CollectionAlreadyInitialized,
    CollectionNotInitialized,
    CommitmentLotteryMismatch,
    CommitmentNotFound,
    ConfigAlreadyInitialized,
    IncorrectTicket,
    InsufficientFunds,
    InvalidLotteryConfig,
    LedgerError,
    LotteryNotCompleted,
    LotteryNotOpen,
    NoTicketsSold,
    NotVerifiedTicket,
    RandomnessAlreadyCommitted,
    RandomnessNotCommitted,
    RandomnessNotResolved,
    RandomnessNotYetFixed,
    Unauthorized,
    WinnerAlreadyChosen,
    WinnerNotChosen,
)
from tokenlottery.lottery import LotteryEngine, LotteryState
from tokenlottery.models import Base, LotteryConfig, Ticket, TicketAsset

PRICE = 10


class _MemoryLedger:
    """Ledger outside the database session, like a remote gateway."""

    def __init__(self, balances=None, unavailable=()):
        self.balances = dict(balances or {})
        self.unavailable = set(unavailable)

    def transfer(self, source, destination, amount):
        if source in self.unavailable:
            raise LedgerError(f"{source} is unavailable")
        if self.balances.get(source, 0) < amount:
            raise InsufficientFunds()
        self.balances[source] -= amount
        self.balances[destination] = self.balances.get(destination, 0) + amount


class _FailingMintRegistry:
    def __init__(self, inner):
        self._inner = inner

    def mint(self, owner, collection_ref, sequence_number):
        raise RuntimeError("gateway 502")

    def __getattr__(self, name):
        return getattr(self._inner, name)


class LotteryEngineTestCase(unittest.TestCase):
    def setUp(self):
        self.engine = make_engine("sqlite+pysqlite:///:memory:")
        Base.metadata.create_all(self.engine)
        self.Session = get_sessionmaker(self.engine)
        self.session = self.Session()

        self.clock = ManualClock(height=0)
        self.oracle = SQLRandomnessOracle(self.session, self.clock)
        self.registry = SQLAssetRegistry(self.session)
        self.ledger = SQLLedger(self.session)
        self.lottery_engine = LotteryEngine(
            self.session,
            oracle=self.oracle,
            registry=self.registry,
            ledger=self.ledger,
            clock=self.clock,
        )

    def tearDown(self):
        self.session.close()
        self.engine.dispose()

    # -------- helpers --------
    def _create(self, seed="token_lottery", start=0, end=100) -> LotteryConfig:
        lottery = self.lottery_engine.initialize_config(
            "admin", start, end, PRICE, seed=seed
        )
        self.lottery_engine.initialize_collection("admin", lottery)
        return lottery

    def _sell(self, lottery, count, height=10, prefix="p"):
        self.clock.set(height)
        tickets = []
        for i in range(count):
            payer = f"{prefix}{i}"
            self.ledger.deposit(payer, PRICE)
            tickets.append(self.lottery_engine.buy_ticket(payer, lottery))
        return tickets

    def _commit(self, lottery, created_at=99, committed_at=100) -> str:
        self.clock.set(created_at)
        commitment_id = self.oracle.create_commitment(lottery.seed)
        self.clock.set(committed_at)
        self.lottery_engine.commit_randomness("admin", lottery, commitment_id)
        return commitment_id

    def _draw(self, lottery, value) -> int:
        commitment_id = self._commit(lottery)
        self.clock.set(101)
        self.oracle.fulfil(commitment_id, value)
        return self.lottery_engine.reveal_winner("admin", lottery)

    def _proof(self, ticket) -> TicketProof:
        return self.registry.ticket_proof(ticket.asset_id)

    def _engine_with(self, *, ledger=None, registry=None) -> LotteryEngine:
        return LotteryEngine(
            self.session,
            oracle=self.oracle,
            registry=registry or self.registry,
            ledger=ledger or self.ledger,
            clock=self.clock,
        )

    def _reload(self, lottery) -> LotteryConfig:
        return self.session.get(LotteryConfig, lottery.id, populate_existing=True)

    # -------- full run --------
    def test_eight_ticket_lottery_pays_holder_of_winning_ticket(self):
        lottery = self._create()
        self.assertIs(self.lottery_engine.state(lottery), LotteryState.OPEN)

        tickets = self._sell(lottery, 8)
        self.assertEqual(lottery.total_tickets, 8)
        self.assertEqual(lottery.pot_amount, 80)
        self.assertEqual(self.ledger.balance(lottery.pot_account), 80)

        commitment_id = self._commit(lottery)
        self.assertEqual(lottery.randomness_ref, commitment_id)
        self.assertIs(self.lottery_engine.state(lottery), LotteryState.RANDOMNESS_COMMITTED)

        self.clock.set(101)
        self.oracle.fulfil(commitment_id, 37)
        self.assertEqual(self.lottery_engine.reveal_winner("admin", lottery), 5)
        self.assertTrue(lottery.winner_chosen)
        self.assertIs(self.lottery_engine.state(lottery), LotteryState.WINNER_CHOSEN)

        amount = self.lottery_engine.claim_winnings("p5", lottery, self._proof(tickets[5]))
        self.assertEqual(amount, 80)
        self.assertEqual(lottery.pot_amount, 0)
        self.assertEqual(lottery.claimed_by, "p5")
        self.assertIsNotNone(lottery.claimed_at)
        self.assertEqual(self.ledger.balance("p5"), 80)
        self.assertEqual(self.ledger.balance(lottery.pot_account), 0)
        self.assertIs(self.lottery_engine.state(lottery), LotteryState.SETTLED)

        with self.assertRaises(AlreadyClaimed):
            self.lottery_engine.claim_winnings("p5", lottery, self._proof(tickets[5]))
        self.assertEqual(self.ledger.balance("p5"), 80)

    # -------- configuration --------
    def test_initialize_config_validates_parameters(self):
        with self.assertRaises(InvalidLotteryConfig):
            self.lottery_engine.initialize_config("admin", 100, 100, PRICE)
        with self.assertRaises(InvalidLotteryConfig):
            self.lottery_engine.initialize_config("admin", 100, 50, PRICE)
        with self.assertRaises(InvalidLotteryConfig):
            self.lottery_engine.initialize_config("admin", 0, 100, 0)
        with self.assertRaises(InvalidLotteryConfig):
            self.lottery_engine.initialize_config("admin", -1, 100, PRICE)
        self.assertEqual(self.session.scalar(select(func.count(LotteryConfig.id))), 0)

    def test_initialize_config_once_per_seed(self):
        self.lottery_engine.initialize_config("admin", 0, 100, PRICE)
        with self.assertRaises(ConfigAlreadyInitialized):
            self.lottery_engine.initialize_config("other", 5, 50, PRICE)
        second = self.lottery_engine.initialize_config("admin", 0, 100, PRICE, seed="weekly")
        self.assertEqual(second.pot_account, "weekly:pot")

    def test_initialize_collection_requires_authority_and_runs_once(self):
        lottery = self.lottery_engine.initialize_config("admin", 0, 100, PRICE)
        with self.assertRaises(Unauthorized):
            self.lottery_engine.initialize_collection("mallory", lottery)
        self.assertIsNone(lottery.collection_ref)

        collection_ref = self.lottery_engine.initialize_collection("admin", lottery)
        self.assertEqual(lottery.collection_ref, collection_ref)
        with self.assertRaises(CollectionAlreadyInitialized):
            self.lottery_engine.initialize_collection("admin", lottery)

    # -------- buying --------
    def test_buy_respects_half_open_window(self):
        lottery = self._create(start=10, end=20)
        self.ledger.deposit("alice", 3 * PRICE)

        self.clock.set(9)
        with self.assertRaises(LotteryNotOpen):
            self.lottery_engine.buy_ticket("alice", lottery)
        self.clock.set(10)
        self.lottery_engine.buy_ticket("alice", lottery)
        self.clock.set(19)
        self.lottery_engine.buy_ticket("alice", lottery)
        self.clock.set(20)
        with self.assertRaises(LotteryNotOpen):
            self.lottery_engine.buy_ticket("alice", lottery)

        self.assertEqual(lottery.total_tickets, 2)
        self.assertEqual(self.ledger.balance("alice"), PRICE)

    def test_buy_requires_collection(self):
        lottery = self.lottery_engine.initialize_config("admin", 0, 100, PRICE)
        self.ledger.deposit("alice", PRICE)
        with self.assertRaises(CollectionNotInitialized):
            self.lottery_engine.buy_ticket("alice", lottery)
        self.assertEqual(self.ledger.balance("alice"), PRICE)

    def test_ticket_numbers_are_contiguous_and_pot_matches_sales(self):
        lottery = self._create()
        tickets = self._sell(lottery, 5)
        self.assertEqual([t.sequence_number for t in tickets], [0, 1, 2, 3, 4])
        self.assertEqual(
            [self.registry.ticket_proof(t.asset_id).label for t in tickets],
            [f"Token Lottery Ticket #{n}" for n in range(5)],
        )
        self.assertEqual(lottery.pot_amount, lottery.total_tickets * PRICE)
        self.assertEqual(self.ledger.balance(lottery.pot_account), lottery.pot_amount)

    def test_buy_for_recipient_mints_to_recipient(self):
        lottery = self._create()
        self.clock.set(10)
        self.ledger.deposit("alice", PRICE)
        ticket = self.lottery_engine.buy_ticket("alice", lottery, recipient="bob")
        self.assertEqual(ticket.purchaser, "alice")
        self.assertEqual(ticket.recipient, "bob")
        self.assertEqual(self.registry.balance_of("bob", ticket.asset_id), 1)
        self.assertEqual(self.registry.balance_of("alice", ticket.asset_id), 0)

    def test_failed_payment_leaves_lottery_unchanged(self):
        lottery = self._create()
        self._sell(lottery, 2)
        self.ledger.deposit("poor", PRICE - 1)

        with self.assertRaises(InsufficientFunds):
            self.lottery_engine.buy_ticket("poor", lottery)

        lottery = self.session.get(LotteryConfig, lottery.id, populate_existing=True)
        self.assertEqual(lottery.total_tickets, 2)
        self.assertEqual(lottery.pot_amount, 2 * PRICE)
        self.assertEqual(self.ledger.balance("poor"), PRICE - 1)
        self.assertEqual(self.session.scalar(select(func.count(Ticket.id))), 2)
        self.assertEqual(self.session.scalar(select(func.count(TicketAsset.id))), 2)

        self.ledger.deposit("poor", 1)
        ticket = self.lottery_engine.buy_ticket("poor", lottery)
        self.assertEqual(ticket.sequence_number, 2)

    def test_failed_mint_charges_nobody(self):
        lottery = self._create()
        ledger = _MemoryLedger({"alice": PRICE})
        lottery_engine = self._engine_with(
            ledger=ledger, registry=_FailingMintRegistry(self.registry)
        )
        self.clock.set(10)

        with self.assertRaises(RuntimeError):
            lottery_engine.buy_ticket("alice", lottery)

        lottery = self._reload(lottery)
        self.assertEqual(ledger.balances, {"alice": PRICE})
        self.assertEqual(lottery.total_tickets, 0)
        self.assertEqual(lottery.pot_amount, 0)
        self.assertEqual(self.session.scalar(select(func.count(Ticket.id))), 0)

    def test_external_ledger_receives_ticket_price(self):
        lottery = self._create()
        ledger = _MemoryLedger({"alice": PRICE})
        lottery_engine = self._engine_with(ledger=ledger)
        self.clock.set(10)

        ticket = lottery_engine.buy_ticket("alice", lottery)
        self.assertEqual(ticket.sequence_number, 0)
        self.assertEqual(ledger.balances, {"alice": 0, lottery.pot_account: PRICE})
        self.assertEqual(lottery.pot_amount, PRICE)

    # -------- randomness --------
    def test_commit_requires_authority_and_closed_window(self):
        lottery = self._create()
        self._sell(lottery, 1)
        self.clock.set(50)
        commitment_id = self.oracle.create_commitment(lottery.seed)

        self.clock.set(60)
        with self.assertRaises(LotteryNotCompleted):
            self.lottery_engine.commit_randomness("admin", lottery, commitment_id)
        self.clock.set(100)
        with self.assertRaises(Unauthorized):
            self.lottery_engine.commit_randomness("mallory", lottery, commitment_id)
        self.assertIsNone(lottery.randomness_ref)

    def test_commit_rejects_unknown_and_fresh_commitments(self):
        lottery = self._create()
        self.clock.set(100)
        with self.assertRaises(CommitmentNotFound):
            self.lottery_engine.commit_randomness("admin", lottery, "rnd-missing")

        fresh = self.oracle.create_commitment(lottery.seed)
        with self.assertRaises(RandomnessNotYetFixed):
            self.lottery_engine.commit_randomness("admin", lottery, fresh)
        self.assertIs(self.lottery_engine.state(lottery), LotteryState.CLOSED)

        self.clock.advance()
        self.lottery_engine.commit_randomness("admin", lottery, fresh)
        self.assertEqual(lottery.randomness_ref, fresh)

    def test_commit_rejects_commitment_for_other_lottery(self):
        lottery = self._create()
        self._sell(lottery, 2)
        self.clock.set(99)
        foreign = self.oracle.create_commitment("other")
        self.clock.set(100)

        with self.assertRaises(CommitmentLotteryMismatch):
            self.lottery_engine.commit_randomness("admin", lottery, foreign)
        self.assertIsNone(lottery.randomness_ref)
        self.assertIs(self.lottery_engine.state(lottery), LotteryState.CLOSED)

        own = self.oracle.create_commitment(lottery.seed)
        self.clock.advance()
        self.lottery_engine.commit_randomness("admin", lottery, own)
        self.assertEqual(lottery.randomness_ref, own)

    def test_commit_only_once(self):
        lottery = self._create()
        first = self._commit(lottery)
        other = self.oracle.create_commitment(lottery.seed)
        self.clock.advance()
        with self.assertRaises(RandomnessAlreadyCommitted):
            self.lottery_engine.commit_randomness("admin", lottery, other)
        self.assertEqual(lottery.randomness_ref, first)

    def test_reveal_requires_commitment_and_resolved_value(self):
        lottery = self._create()
        self._sell(lottery, 3)
        self.clock.set(150)
        with self.assertRaises(RandomnessNotCommitted):
            self.lottery_engine.reveal_winner("admin", lottery)

        commitment_id = self.oracle.create_commitment(lottery.seed)
        self.clock.advance()
        self.lottery_engine.commit_randomness("admin", lottery, commitment_id)
        with self.assertRaises(RandomnessNotResolved):
            self.lottery_engine.reveal_winner("admin", lottery)
        with self.assertRaises(Unauthorized):
            self.lottery_engine.reveal_winner("mallory", lottery)

        self.oracle.fulfil(commitment_id, 7)
        self.assertEqual(self.lottery_engine.reveal_winner("admin", lottery), 1)
        with self.assertRaises(WinnerAlreadyChosen):
            self.lottery_engine.reveal_winner("admin", lottery)
        self.assertEqual(lottery.winner_number, 1)

    def test_reveal_before_end_is_rejected(self):
        lottery = self._create()
        self._sell(lottery, 1)
        with self.assertRaises(LotteryNotCompleted):
            self.lottery_engine.reveal_winner("admin", lottery)

    def test_reveal_without_tickets(self):
        lottery = self._create()
        commitment_id = self._commit(lottery)
        self.clock.advance()
        self.oracle.fulfil(commitment_id, 37)
        with self.assertRaises(NoTicketsSold):
            self.lottery_engine.reveal_winner("admin", lottery)
        self.assertFalse(lottery.winner_chosen)
        self.assertIs(self.lottery_engine.state(lottery), LotteryState.RANDOMNESS_COMMITTED)

    # -------- claims --------
    def test_claim_before_reveal(self):
        lottery = self._create()
        tickets = self._sell(lottery, 2)
        self.clock.set(100)
        with self.assertRaises(WinnerNotChosen):
            self.lottery_engine.claim_winnings("p0", lottery, self._proof(tickets[0]))

    def test_claim_with_losing_ticket(self):
        lottery = self._create()
        tickets = self._sell(lottery, 8)
        self._draw(lottery, 37)
        with self.assertRaises(IncorrectTicket):
            self.lottery_engine.claim_winnings("p4", lottery, self._proof(tickets[4]))
        self.assertEqual(lottery.pot_amount, 80)

    def test_claim_by_non_holder(self):
        lottery = self._create()
        tickets = self._sell(lottery, 8)
        self._draw(lottery, 37)
        with self.assertRaises(IncorrectTicket):
            self.lottery_engine.claim_winnings("p4", lottery, self._proof(tickets[5]))
        self.assertIsNone(lottery.claimed_by)

    def test_claim_with_forged_label(self):
        lottery = self._create()
        tickets = self._sell(lottery, 8)
        self._draw(lottery, 37)
        forged = TicketProof(asset_id=tickets[4].asset_id, label="Token Lottery Ticket #5")
        with self.assertRaises(IncorrectTicket):
            self.lottery_engine.claim_winnings("p4", lottery, forged)

    def test_claim_with_padded_label(self):
        lottery = self._create()
        tickets = self._sell(lottery, 8)
        self._draw(lottery, 37)
        asset = TicketAsset.get_by_asset_id(self.session, tickets[5].asset_id)
        asset.name = "Token Lottery Ticket #5" + "\x00" * 8
        self.session.flush()
        self.assertEqual(
            self.lottery_engine.claim_winnings("p5", lottery, self._proof(tickets[5])), 80
        )

    def test_claim_ignores_label_supplied_by_claimant(self):
        lottery = self._create()
        tickets = self._sell(lottery, 8)
        self._draw(lottery, 37)
        mislabelled = TicketProof(asset_id=tickets[5].asset_id, label="anything")
        self.assertEqual(self.lottery_engine.claim_winnings("p5", lottery, mislabelled), 80)

    def test_claim_with_asset_minted_outside_sales(self):
        lottery = self._create()
        tickets = self._sell(lottery, 8)
        self._draw(lottery, 37)
        asset_id = self.registry.mint("mallory", lottery.collection_ref, 999)
        asset = TicketAsset.get_by_asset_id(self.session, asset_id)
        asset.name = "Token Lottery Ticket #5"
        self.session.flush()

        with self.assertRaises(IncorrectTicket):
            self.lottery_engine.claim_winnings(
                "mallory", lottery, TicketProof(asset_id, "Token Lottery Ticket #5")
            )
        self.assertEqual(lottery.pot_amount, 80)
        self.assertIsNone(lottery.claimed_by)
        self.assertEqual(self.ledger.balance("mallory"), 0)

        self.assertEqual(
            self.lottery_engine.claim_winnings("p5", lottery, self._proof(tickets[5])), 80
        )

    def test_failed_payout_leaves_claim_open(self):
        lottery = self._create()
        tickets = self._sell(lottery, 8)
        self._draw(lottery, 37)
        ledger = _MemoryLedger({lottery.pot_account: 80}, unavailable={lottery.pot_account})

        with self.assertRaises(LedgerError):
            self._engine_with(ledger=ledger).claim_winnings(
                "p5", lottery, self._proof(tickets[5])
            )

        lottery = self._reload(lottery)
        self.assertEqual(lottery.pot_amount, 80)
        self.assertIsNone(lottery.claimed_by)
        self.assertIsNone(lottery.claimed_at)
        self.assertIs(self.lottery_engine.state(lottery), LotteryState.WINNER_CHOSEN)
        self.assertEqual(ledger.balances, {lottery.pot_account: 80})

        ledger.unavailable.clear()
        amount = self._engine_with(ledger=ledger).claim_winnings(
            "p5", lottery, self._proof(tickets[5])
        )
        self.assertEqual(amount, 80)
        self.assertEqual(ledger.balances["p5"], 80)
        self.assertEqual(lottery.claimed_by, "p5")

    def test_claim_with_unverified_asset(self):
        lottery = self._create()
        tickets = self._sell(lottery, 8)
        self._draw(lottery, 37)
        asset = TicketAsset.get_by_asset_id(self.session, tickets[5].asset_id)
        asset.verified = False
        self.session.flush()
        with self.assertRaises(NotVerifiedTicket):
            self.lottery_engine.claim_winnings("p5", lottery, self._proof(tickets[5]))

    def test_claim_with_ticket_from_other_lottery(self):
        lottery = self._create()
        other = self._create(seed="other")
        tickets = self._sell(lottery, 8)
        foreign = self._sell(other, 6, height=10, prefix="q")
        self._draw(lottery, 37)
        with self.assertRaises(NotVerifiedTicket):
            self.lottery_engine.claim_winnings("q5", lottery, self._proof(foreign[5]))
        self.assertEqual(len(tickets), 8)

    def test_transferred_ticket_pays_current_holder(self):
        lottery = self._create()
        tickets = self._sell(lottery, 8)
        self.registry.transfer_asset(tickets[5].asset_id, "p5", "buyer")
        self._draw(lottery, 37)

        with self.assertRaises(IncorrectTicket):
            self.lottery_engine.claim_winnings("p5", lottery, self._proof(tickets[5]))
        amount = self.lottery_engine.claim_winnings("buyer", lottery, self._proof(tickets[5]))
        self.assertEqual(amount, 80)
        self.assertEqual(self.ledger.balance("buyer"), 80)

    def test_rejections_are_logged(self):
        lottery = self._create()
        with self.assertLogs("tokenlottery.lottery.engine", level="DEBUG") as captured:
            with self.assertRaises(Unauthorized):
                self.lottery_engine.commit_randomness("mallory", lottery, "rnd-x")
        self.assertTrue(any("Unauthorized" in line for line in captured.output))

    def test_unpersisted_lottery_is_rejected(self):
        with self.assertRaises(ValueError):
            self.lottery_engine.state(LotteryConfig("admin", 0, 100, PRICE))


if __name__ == "__main__":
    unittest.main()
