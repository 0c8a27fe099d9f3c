"""Populate the development database with a demo lottery.

The schema is dropped and recreated, three players are funded and each buys
tickets in an open lottery spanning heights 0 to 100.
"""

from sqlalchemy.orm import sessionmaker

from tokenlottery.backends import SQLAssetRegistry, SQLLedger, SQLRandomnessOracle
from tokenlottery.blockchain import ManualClock
from tokenlottery.db.engine import make_engine
from tokenlottery.lottery import LotteryEngine
from tokenlottery.models import Base
from tokenlottery.workflows import buy_tickets, create_lottery, request_randomness

PLAYERS = {"alice": 50, "bob": 30, "carol": 20}
TICKET_PRICE = 10


def main() -> None:
    engine = make_engine()

    # SQLite refuses to drop tables with live foreign keys.
    with engine.connect() as conn:
        if conn.dialect.name == "sqlite":
            conn.exec_driver_sql("PRAGMA foreign_keys=OFF")
        Base.metadata.drop_all(bind=conn)
        if conn.dialect.name == "sqlite":
            conn.exec_driver_sql("PRAGMA foreign_keys=ON")
        conn.commit()

    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine, expire_on_commit=False)

    clock = ManualClock(height=0)
    with Session.begin() as session:
        ledger = SQLLedger(session)
        oracle = SQLRandomnessOracle(session, clock)
        lottery_engine = LotteryEngine(
            session,
            oracle=oracle,
            registry=SQLAssetRegistry(session),
            ledger=ledger,
            clock=clock,
        )

        for player, funds in PLAYERS.items():
            ledger.deposit(player, funds, memo="dev seed")

        lottery = create_lottery(lottery_engine, "admin", 0, 100, TICKET_PRICE)
        clock.set(10)
        payers = [name for name, funds in PLAYERS.items() for _ in range(funds // TICKET_PRICE)]
        tickets = buy_tickets(lottery_engine, lottery, payers)

        clock.set(99)
        commitment_id = request_randomness(oracle, lottery)

    print(f"Seeded lottery {lottery.seed!r} with {len(tickets)} tickets.")
    print(f"Pending commitment: {commitment_id} (created at height 99)")


if __name__ == "__main__":
    main()
