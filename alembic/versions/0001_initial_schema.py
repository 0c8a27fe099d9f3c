"""initial lottery schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ID_TYPE = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def upgrade() -> None:
    op.create_table(
        "lottery_configs",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("seed", sa.String(length=64), nullable=False),
        sa.Column("authority", sa.String(length=128), nullable=False),
        sa.Column("start_time", sa.BigInteger(), nullable=False),
        sa.Column("end_time", sa.BigInteger(), nullable=False),
        sa.Column("ticket_price", sa.BigInteger(), nullable=False),
        sa.Column("total_tickets", sa.BigInteger(), nullable=False),
        sa.Column("pot_amount", sa.BigInteger(), nullable=False),
        sa.Column("pot_account", sa.String(length=128), nullable=False),
        sa.Column("collection_ref", sa.String(length=255), nullable=True),
        sa.Column("randomness_ref", sa.String(length=255), nullable=True),
        sa.Column("winner_number", sa.BigInteger(), nullable=True),
        sa.Column("winner_chosen", sa.Boolean(), nullable=False),
        sa.Column("claimed_by", sa.String(length=128), nullable=True),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
            nullable=False,
        ),
        sa.CheckConstraint("start_time < end_time", name=op.f("ck_lottery_configs_window_order")),
        sa.CheckConstraint("ticket_price > 0", name=op.f("ck_lottery_configs_positive_price")),
        sa.CheckConstraint(
            "total_tickets >= 0", name=op.f("ck_lottery_configs_non_negative_tickets")
        ),
        sa.CheckConstraint("pot_amount >= 0", name=op.f("ck_lottery_configs_non_negative_pot")),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_lottery_configs")),
        sa.UniqueConstraint("seed", name=op.f("uq_lottery_configs_seed")),
    )

    op.create_table(
        "tickets",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("lottery_id", ID_TYPE, nullable=False),
        sa.Column("sequence_number", sa.BigInteger(), nullable=False),
        sa.Column("asset_id", sa.String(length=255), nullable=False),
        sa.Column("collection_ref", sa.String(length=255), nullable=False),
        sa.Column("purchaser", sa.String(length=128), nullable=False),
        sa.Column("recipient", sa.String(length=128), nullable=False),
        sa.Column("price_paid", sa.BigInteger(), nullable=False),
        sa.Column("minted_height", sa.BigInteger(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
            nullable=False,
        ),
        sa.CheckConstraint("sequence_number >= 0", name=op.f("ck_tickets_non_negative_sequence")),
        sa.ForeignKeyConstraint(
            ["lottery_id"],
            ["lottery_configs.id"],
            name=op.f("fk_tickets_lottery_id_lottery_configs"),
            ondelete="RESTRICT",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_tickets")),
        sa.UniqueConstraint("asset_id", name=op.f("uq_tickets_asset_id")),
        sa.UniqueConstraint("lottery_id", "sequence_number", name="uq_lottery_sequence"),
    )
    op.create_index(op.f("ix_tickets_lottery_id"), "tickets", ["lottery_id"], unique=False)
    op.create_index("ix_tickets_purchaser", "tickets", ["purchaser"], unique=False)

    op.create_table(
        "asset_collections",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("collection_ref", sa.String(length=255), nullable=False),
        sa.Column("authority", sa.String(length=128), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("symbol", sa.String(length=16), nullable=False),
        sa.Column("uri", sa.String(length=255), nullable=True),
        sa.Column("lottery_ref", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_asset_collections")),
        sa.UniqueConstraint("collection_ref", name=op.f("uq_asset_collections_collection_ref")),
    )

    op.create_table(
        "ticket_assets",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("asset_id", sa.String(length=255), nullable=False),
        sa.Column("collection_id", ID_TYPE, nullable=False),
        sa.Column("sequence_number", sa.BigInteger(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("symbol", sa.String(length=16), nullable=False),
        sa.Column("uri", sa.String(length=255), nullable=True),
        sa.Column("verified", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["collection_id"],
            ["asset_collections.id"],
            name=op.f("fk_ticket_assets_collection_id_asset_collections"),
            ondelete="RESTRICT",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_ticket_assets")),
        sa.UniqueConstraint("asset_id", name=op.f("uq_ticket_assets_asset_id")),
        sa.UniqueConstraint("collection_id", "sequence_number", name="uq_collection_sequence"),
    )
    op.create_index(
        op.f("ix_ticket_assets_collection_id"), "ticket_assets", ["collection_id"], unique=False
    )

    op.create_table(
        "asset_holdings",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("owner", sa.String(length=128), nullable=False),
        sa.Column("asset_pk", ID_TYPE, nullable=False),
        sa.Column("balance", sa.BigInteger(), nullable=False),
        sa.Column("acquired_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("balance >= 0", name=op.f("ck_asset_holdings_non_negative_balance")),
        sa.ForeignKeyConstraint(
            ["asset_pk"],
            ["ticket_assets.id"],
            name=op.f("fk_asset_holdings_asset_pk_ticket_assets"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_asset_holdings")),
        sa.UniqueConstraint("owner", "asset_pk", name="uq_owner_asset"),
    )
    op.create_index(op.f("ix_asset_holdings_owner"), "asset_holdings", ["owner"], unique=False)
    op.create_index(
        op.f("ix_asset_holdings_asset_pk"), "asset_holdings", ["asset_pk"], unique=False
    )
    op.create_index(
        "ix_holding_owner_asset", "asset_holdings", ["owner", "asset_pk"], unique=False
    )

    op.create_table(
        "ledger_accounts",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("owner", sa.String(length=128), nullable=False),
        sa.Column("balance", sa.BigInteger(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("balance >= 0", name=op.f("ck_ledger_accounts_non_negative_balance")),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_ledger_accounts")),
        sa.UniqueConstraint("owner", name=op.f("uq_ledger_accounts_owner")),
    )

    op.create_table(
        "ledger_transfers",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("kind", sa.String(length=20), nullable=False),
        sa.Column("source", sa.String(length=128), nullable=True),
        sa.Column("destination", sa.String(length=128), nullable=False),
        sa.Column("amount", sa.BigInteger(), nullable=False),
        sa.Column("memo", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "kind IN ('deposit','transfer')", name=op.f("ck_ledger_transfers_kind_enum")
        ),
        sa.CheckConstraint("amount > 0", name=op.f("ck_ledger_transfers_positive_amount")),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_ledger_transfers")),
    )
    op.create_index("ix_ledger_source", "ledger_transfers", ["source"], unique=False)
    op.create_index("ix_ledger_destination", "ledger_transfers", ["destination"], unique=False)

    op.create_table(
        "randomness_commitments",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("commitment_id", sa.String(length=255), nullable=False),
        sa.Column("lottery_ref", sa.String(length=64), nullable=False),
        sa.Column("created_height", sa.BigInteger(), nullable=False),
        sa.Column("reveal_value", sa.Text(), nullable=True),
        sa.Column("revealed_height", sa.BigInteger(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_randomness_commitments")),
        sa.UniqueConstraint(
            "commitment_id", name=op.f("uq_randomness_commitments_commitment_id")
        ),
    )
    op.create_index(
        "ix_randomness_lottery_ref", "randomness_commitments", ["lottery_ref"], unique=False
    )


def downgrade() -> None:
    op.drop_index("ix_randomness_lottery_ref", table_name="randomness_commitments")
    op.drop_table("randomness_commitments")
    op.drop_index("ix_ledger_destination", table_name="ledger_transfers")
    op.drop_index("ix_ledger_source", table_name="ledger_transfers")
    op.drop_table("ledger_transfers")
    op.drop_table("ledger_accounts")
    op.drop_index("ix_holding_owner_asset", table_name="asset_holdings")
    op.drop_index(op.f("ix_asset_holdings_asset_pk"), table_name="asset_holdings")
    op.drop_index(op.f("ix_asset_holdings_owner"), table_name="asset_holdings")
    op.drop_table("asset_holdings")
    op.drop_index(op.f("ix_ticket_assets_collection_id"), table_name="ticket_assets")
    op.drop_table("ticket_assets")
    op.drop_table("asset_collections")
    op.drop_index("ix_tickets_purchaser", table_name="tickets")
    op.drop_index(op.f("ix_tickets_lottery_id"), table_name="tickets")
    op.drop_table("tickets")
    op.drop_table("lottery_configs")
