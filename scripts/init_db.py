from __future__ import annotations

import argparse
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import inspect

from tokenlottery.db.engine import make_engine

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def upgrade_db(target_revision: str = "head") -> None:
    """Apply the lottery migrations up to ``target_revision``."""
    alembic_cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    command.upgrade(alembic_cfg, target_revision)


def print_tables() -> None:
    engine = make_engine()
    try:
        names = sorted(inspect(engine).get_table_names())
    finally:
        engine.dispose()
    print("Lottery tables:", ", ".join(names))


def main() -> None:
    parser = argparse.ArgumentParser(description="Migrate the lottery database.")
    parser.add_argument("--revision", default="head", help="Target Alembic revision.")
    args = parser.parse_args()
    upgrade_db(args.revision)
    print_tables()


if __name__ == "__main__":
    main()
