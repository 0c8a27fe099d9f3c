"""Compare the live database schema with the lottery models.

Exit codes: 0 when in sync, 1 when differences exist, 2 on error.
"""

from __future__ import annotations

import sys

from alembic.autogenerate import api as ag_api
from alembic.runtime.migration import MigrationContext
from sqlalchemy.exc import SQLAlchemyError

from tokenlottery.db.engine import make_engine
from tokenlottery.models import Base


def _print_ops(ops, indent: int = 0) -> None:
    for op in ops:
        print(f"{'  ' * indent}- {op}")
        nested = getattr(op, "ops", None)
        if nested:
            _print_ops(nested, indent + 1)


def main() -> int:
    engine = make_engine()
    url_display = engine.url.render_as_string(hide_password=True)
    try:
        with engine.connect() as connection:
            migration_context = MigrationContext.configure(
                connection=connection,
                opts={
                    "compare_type": True,
                    "compare_server_default": True,
                    "render_as_batch": connection.dialect.name == "sqlite",
                },
            )
            upgrade_ops = ag_api.produce_migrations(migration_context, Base.metadata).upgrade_ops
    except SQLAlchemyError as exc:
        print(f"Schema drift check: ERROR for {url_display}: {exc}", file=sys.stderr)
        return 2
    finally:
        engine.dispose()

    if upgrade_ops is None or upgrade_ops.is_empty():
        print(f"Schema drift check: OK for {url_display}.")
        return 0
    print(f"Schema drift check: FAILED for {url_display}:")
    _print_ops(upgrade_ops.ops or [])
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
