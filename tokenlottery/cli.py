from __future__ import annotations

import argparse
import json
import logging
from typing import Any, Callable, Dict, Optional

from sqlalchemy.orm import Session

from .backends.sql import SQLAssetRegistry, SQLLedger, SQLRandomnessOracle
from .blockchain.interfaces import ManualClock
from .config import Settings
from .db.engine import ROOT_DIR, get_sessionmaker, make_engine
from .db.utils import resolve_sqlite_url
from .errors import LotteryError
from .lottery.engine import LotteryEngine
from .models import Base, LotteryConfig
from .workflows import lottery_summary, request_randomness

log = logging.getLogger("tokenlottery")


def setup_logging(level: str, verbose: bool) -> None:
    resolved = logging.DEBUG if verbose else getattr(logging, level, logging.INFO)
    logging.basicConfig(level=resolved, format="%(levelname)s: %(message)s")


class Context:
    """Session-scoped wiring of the engine to the SQL collaborators."""

    def __init__(self, session: Session, height: int, seed: str) -> None:
        self.session = session
        self.clock = ManualClock(height=height)
        self.oracle = SQLRandomnessOracle(session, self.clock)
        self.registry = SQLAssetRegistry(session)
        self.ledger = SQLLedger(session)
        self.engine = LotteryEngine(
            session,
            oracle=self.oracle,
            registry=self.registry,
            ledger=self.ledger,
            clock=self.clock,
        )
        self.seed = seed

    def lottery(self) -> LotteryConfig:
        lottery = LotteryConfig.get_by_seed(self.session, self.seed)
        if lottery is None:
            raise SystemExit(f"No lottery with seed {self.seed!r}; run init-config first.")
        return lottery


def _emit(payload: Dict[str, Any]) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def cmd_init_db(ctx: Context, args: argparse.Namespace) -> None:
    Base.metadata.create_all(ctx.session.connection())
    log.info("Created tables")


def cmd_init_config(ctx: Context, args: argparse.Namespace) -> None:
    lottery = ctx.engine.initialize_config(
        args.authority, args.start, args.end, args.price, seed=ctx.seed
    )
    _emit(lottery.to_json(ctx.clock.current_height()))


def cmd_init_collection(ctx: Context, args: argparse.Namespace) -> None:
    collection_ref = ctx.engine.initialize_collection(args.caller, ctx.lottery())
    _emit({"collection_ref": collection_ref})


def cmd_deposit(ctx: Context, args: argparse.Namespace) -> None:
    balance = ctx.ledger.deposit(args.owner, args.amount, memo="cli deposit")
    _emit({"owner": args.owner, "balance": balance})


def cmd_buy(ctx: Context, args: argparse.Namespace) -> None:
    ticket = ctx.engine.buy_ticket(args.payer, ctx.lottery(), recipient=args.recipient)
    _emit(ticket.to_json())


def cmd_request_randomness(ctx: Context, args: argparse.Namespace) -> None:
    commitment_id = request_randomness(ctx.oracle, ctx.lottery())
    _emit({"commitment_id": commitment_id, "created_height": ctx.clock.current_height()})


def cmd_fulfil_randomness(ctx: Context, args: argparse.Namespace) -> None:
    ctx.oracle.fulfil(args.commitment, args.value)
    _emit({"commitment_id": args.commitment, "revealed": True})


def cmd_commit(ctx: Context, args: argparse.Namespace) -> None:
    lottery = ctx.lottery()
    ctx.engine.commit_randomness(args.caller, lottery, args.commitment)
    _emit(lottery.to_json(ctx.clock.current_height()))


def cmd_reveal(ctx: Context, args: argparse.Namespace) -> None:
    winner_number = ctx.engine.reveal_winner(args.caller, ctx.lottery())
    _emit({"winner_number": winner_number})


def cmd_claim(ctx: Context, args: argparse.Namespace) -> None:
    proof = ctx.registry.ticket_proof(args.asset)
    amount = ctx.engine.claim_winnings(args.claimant, ctx.lottery(), proof)
    _emit({"claimant": args.claimant, "amount": amount})


def cmd_status(ctx: Context, args: argparse.Namespace) -> None:
    _emit(lottery_summary(ctx.session, ctx.lottery(), ctx.clock.current_height()))


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="tokenlottery",
        description="Administer a token lottery against the local database.",
    )
    p.add_argument("--db-url", default=None, help="Override DB_URL.")
    p.add_argument("--seed", default=None, help="Lottery seed (default: LOTTERY_SEED).")
    p.add_argument("--height", type=int, default=0, help="Current chain height.")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")

    sub = p.add_subparsers(dest="cmd", required=True)

    def add(name: str, handler: Callable[[Context, argparse.Namespace], None], help_text: str):
        sp = sub.add_parser(name, help=help_text)
        sp.set_defaults(handler=handler)
        return sp

    add("init-db", cmd_init_db, "Create all tables (development only).")

    sp = add("init-config", cmd_init_config, "Create the lottery configuration.")
    sp.add_argument("--authority", required=True)
    sp.add_argument("--start", type=int, required=True)
    sp.add_argument("--end", type=int, required=True)
    sp.add_argument("--price", type=int, required=True)

    sp = add("init-collection", cmd_init_collection, "Create the ticket collection.")
    sp.add_argument("--caller", required=True)

    sp = add("deposit", cmd_deposit, "Fund a ledger account.")
    sp.add_argument("--owner", required=True)
    sp.add_argument("--amount", type=int, required=True)

    sp = add("buy", cmd_buy, "Buy a ticket.")
    sp.add_argument("--payer", required=True)
    sp.add_argument("--recipient", default=None)

    add("request-randomness", cmd_request_randomness, "Create an oracle commitment.")

    sp = add("fulfil-randomness", cmd_fulfil_randomness, "Publish a commitment's value.")
    sp.add_argument("--commitment", required=True)
    sp.add_argument("--value", type=int, required=True)

    sp = add("commit", cmd_commit, "Bind a commitment to the lottery.")
    sp.add_argument("--caller", required=True)
    sp.add_argument("--commitment", required=True)

    sp = add("reveal", cmd_reveal, "Choose the winner from revealed randomness.")
    sp.add_argument("--caller", required=True)

    sp = add("claim", cmd_claim, "Claim the pot with a winning ticket.")
    sp.add_argument("--claimant", required=True)
    sp.add_argument("--asset", required=True, help="Asset id of the ticket.")

    add("status", cmd_status, "Show the lottery and its derived state.")
    return p


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = Settings.from_env(db_url_override=args.db_url)
    setup_logging(settings.log_level, args.verbose)

    database_url = (
        resolve_sqlite_url(settings.db_url, ROOT_DIR) if settings.db_url else None
    )
    engine = make_engine(database_url)
    Session = get_sessionmaker(engine)
    seed = args.seed or settings.lottery_seed

    try:
        with Session.begin() as session:
            args.handler(Context(session, args.height, seed), args)
    except LotteryError as exc:
        log.error("%s: %s", exc.code, exc.message)
        return 1
    except (KeyError, ValueError) as exc:
        log.error("%s", exc)
        return 2
    finally:
        engine.dispose()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
