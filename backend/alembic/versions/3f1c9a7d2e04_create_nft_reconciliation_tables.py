"""create_nft_reconciliation_tables

Revision ID: 3f1c9a7d2e04
Revises:
Create Date: 2026-10-19 10:12:41.083512

"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f1c9a7d2e04"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create collections, tiers, nfts and alchemy_webhooks tables."""
    op.create_table(
        "collections",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("chain_id", sa.Integer(), nullable=True),
        sa.Column("token_address", sa.String(length=42), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_collections_chain_id", "collections", ["chain_id"])
    op.create_index("ix_collections_token_address", "collections", ["token_address"])
    # Lookups compare LOWER(token_address)
    op.create_index(
        "ix_collections_token_address_lower",
        "collections",
        [sa.text("lower(token_address)")],
    )

    op.create_table(
        "tiers",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("collection_id", sa.Uuid(), nullable=False),
        sa.Column("tier_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("start_id", sa.String(length=78), nullable=True),
        sa.Column("end_id", sa.String(length=78), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(["collection_id"], ["collections.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("collection_id", "tier_id", name="uq_tiers_collection_tier"),
    )
    op.create_index("ix_tiers_collection_id", "tiers", ["collection_id"])

    op.create_table(
        "nfts",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("collection_id", sa.Uuid(), nullable=False),
        sa.Column("tier_id", sa.Uuid(), nullable=True),
        sa.Column("token_id", sa.String(length=78), nullable=False),
        sa.Column("owner_address", sa.String(length=42), nullable=True),
        sa.Column("properties", sa.JSON(), nullable=False),
        sa.Column("materialized", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["collection_id"], ["collections.id"]),
        sa.ForeignKeyConstraint(["tier_id"], ["tiers.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("collection_id", "token_id", name="uq_nfts_collection_token"),
    )
    op.create_index("ix_nfts_collection_id", "nfts", ["collection_id"])
    op.create_index("ix_nfts_owner_address", "nfts", ["owner_address"])

    op.create_table(
        "alchemy_webhooks",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "type",
            sa.Enum("NFT_ACTIVITY", "ADDRESS_ACTIVITY", name="webhooktype"),
            nullable=False,
        ),
        sa.Column("address", sa.String(length=42), nullable=False),
        sa.Column("network", sa.String(length=50), nullable=False),
        sa.Column("alchemy_id", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("address"),
    )
    op.create_index("ix_alchemy_webhooks_type", "alchemy_webhooks", ["type"])


def downgrade() -> None:
    """Drop reconciliation tables."""
    op.drop_index("ix_alchemy_webhooks_type", table_name="alchemy_webhooks")
    op.drop_table("alchemy_webhooks")
    sa.Enum(name="webhooktype").drop(op.get_bind(), checkfirst=True)
    op.drop_index("ix_nfts_owner_address", table_name="nfts")
    op.drop_index("ix_nfts_collection_id", table_name="nfts")
    op.drop_table("nfts")
    op.drop_index("ix_tiers_collection_id", table_name="tiers")
    op.drop_table("tiers")
    op.drop_index("ix_collections_token_address_lower", table_name="collections")
    op.drop_index("ix_collections_token_address", table_name="collections")
    op.drop_index("ix_collections_chain_id", table_name="collections")
    op.drop_table("collections")
