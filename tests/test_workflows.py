import unittest

from tokenlottery.backends import SQLAssetRegistry, SQLLedger, SQLRandomnessOracle
from tokenlottery.blockchain.interfaces import ManualClock
from tokenlottery.db.engine import get_sessionmaker, make_engine
from tokenlottery.errors import InsufficientFunds
from tokenlottery.lottery import LotteryEngine
from tokenlottery.models import Base, RandomnessCommitment
from tokenlottery.workflows import (
    buy_tickets,
    create_lottery,
    list_tickets,
    lottery_summary,
    request_randomness,
    winning_ticket,
)


class LotteryWorkflowTestCase(unittest.TestCase):
    def setUp(self):
        self.engine = make_engine("sqlite+pysqlite:///:memory:")
        Base.metadata.create_all(self.engine)
        self.Session = get_sessionmaker(self.engine)
        self.clock = ManualClock(height=0)

    def tearDown(self):
        self.engine.dispose()

    def _wire(self, session):
        oracle = SQLRandomnessOracle(session, self.clock)
        ledger = SQLLedger(session)
        lottery_engine = LotteryEngine(
            session,
            oracle=oracle,
            registry=SQLAssetRegistry(session),
            ledger=ledger,
            clock=self.clock,
        )
        return lottery_engine, oracle, ledger

    def test_create_lottery_binds_collection(self):
        with self.Session.begin() as session:
            lottery_engine, _, _ = self._wire(session)
            lottery = create_lottery(lottery_engine, "admin", 0, 100, 10, seed="weekly")
            self.assertEqual(lottery.seed, "weekly")
            self.assertIsNotNone(lottery.collection_ref)
            self.assertEqual(lottery.authority, "admin")

    def test_buy_tickets_and_list(self):
        with self.Session.begin() as session:
            lottery_engine, _, ledger = self._wire(session)
            lottery = create_lottery(lottery_engine, "admin", 0, 100, 10)
            ledger.deposit("alice", 20)
            ledger.deposit("bob", 10)

            bought = buy_tickets(lottery_engine, lottery, ["alice", "bob", "alice"])
            self.assertEqual([t.purchaser for t in bought], ["alice", "bob", "alice"])
            self.assertEqual(
                [t.sequence_number for t in list_tickets(session, lottery)], [0, 1, 2]
            )

    def test_buy_tickets_keeps_earlier_purchases_on_failure(self):
        with self.Session.begin() as session:
            lottery_engine, _, ledger = self._wire(session)
            lottery = create_lottery(lottery_engine, "admin", 0, 100, 10)
            ledger.deposit("alice", 10)

            with self.assertRaises(InsufficientFunds):
                buy_tickets(lottery_engine, lottery, ["alice", "alice"])
            self.assertEqual(len(list_tickets(session, lottery)), 1)
            self.assertEqual(lottery.total_tickets, 1)

    def test_summary_includes_winning_ticket(self):
        with self.Session.begin() as session:
            lottery_engine, oracle, ledger = self._wire(session)
            lottery = create_lottery(lottery_engine, "admin", 0, 100, 10)
            for payer in ("alice", "bob", "carol"):
                ledger.deposit(payer, 10)
            buy_tickets(lottery_engine, lottery, ["alice", "bob", "carol"])

            summary = lottery_summary(session, lottery, 50)
            self.assertEqual(summary["state"], "open")
            self.assertIsNone(summary["winning_ticket"])
            self.assertIsNone(winning_ticket(session, lottery))

            self.clock.set(100)
            commitment_id = request_randomness(oracle, lottery)
            commitment = RandomnessCommitment.get_by_commitment_id(session, commitment_id)
            self.assertEqual(commitment.lottery_ref, lottery.seed)
            self.assertEqual(commitment.created_height, 100)

            self.clock.advance()
            lottery_engine.commit_randomness("admin", lottery, commitment_id)
            oracle.fulfil(commitment_id, 4)
            lottery_engine.reveal_winner("admin", lottery)

            summary = lottery_summary(session, lottery, self.clock.current_height())
            self.assertEqual(summary["state"], "winner_chosen")
            self.assertEqual(summary["winner_number"], 1)
            self.assertEqual(summary["winning_ticket"]["purchaser"], "bob")


if __name__ == "__main__":
    unittest.main()
