"""Initial database schema

Revision ID: 001_initial
Revises:
Create Date: 2025-07-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    ]


def upgrade() -> None:
    # Create marketplace_credentials table
    op.create_table(
        "marketplace_credentials",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("account_id", sa.String(length=255), nullable=False),
        sa.Column("provider", sa.String(length=50), nullable=False, server_default="ebay"),
        sa.Column("username", sa.String(length=255), nullable=True),
        sa.Column("access_token", sa.Text(), nullable=False),
        sa.Column("refresh_token", sa.Text(), nullable=True),
        sa.Column(
            "token_type", sa.String(length=50), nullable=False, server_default="Bearer"
        ),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("refresh_token_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "scopes",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default="[]",
        ),
        sa.Column("fulfillment_policy_id", sa.String(length=64), nullable=True),
        sa.Column("payment_policy_id", sa.String(length=64), nullable=True),
        sa.Column("return_policy_id", sa.String(length=64), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "account_id", "provider", name="uq_credential_account_provider"
        ),
    )
    op.create_index(
        "ix_marketplace_credentials_account_id",
        "marketplace_credentials",
        ["account_id"],
    )
    op.create_index(
        "idx_marketplace_credentials_expires_at",
        "marketplace_credentials",
        ["expires_at"],
    )

    # Create ebay_categories table
    op.create_table(
        "ebay_categories",
        sa.Column("marketplace_id", sa.String(length=32), nullable=False),
        sa.Column("category_id", sa.String(length=32), nullable=False),
        sa.Column("category_name", sa.String(length=255), nullable=False),
        sa.Column("parent_category_id", sa.String(length=32), nullable=True),
        sa.Column("category_path", sa.Text(), nullable=False, server_default=""),
        sa.Column("level", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("leaf_category", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column(
            "required_aspects",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default="[]",
        ),
        sa.Column(
            "suggested_aspects",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default="[]",
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("marketplace_id", "category_id"),
    )
    op.create_index(
        "idx_ebay_categories_parent",
        "ebay_categories",
        ["marketplace_id", "parent_category_id"],
    )

    # Create catalog_sync_states table
    sync_outcome_enum = sa.Enum(
        "success", "failure", "in_progress", name="syncoutcome"
    )
    op.create_table(
        "catalog_sync_states",
        sa.Column("marketplace_id", sa.String(length=32), nullable=False),
        sa.Column("record_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_synced_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("outcome", sync_outcome_enum, nullable=True),
        sa.Column("detail", sa.Text(), nullable=True),
        sa.Column("failed_cursor", sa.String(length=64), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("marketplace_id"),
    )


def downgrade() -> None:
    op.drop_table("catalog_sync_states")
    sa.Enum(name="syncoutcome").drop(op.get_bind(), checkfirst=True)

    op.drop_index("idx_ebay_categories_parent", table_name="ebay_categories")
    op.drop_table("ebay_categories")

    op.drop_index(
        "idx_marketplace_credentials_expires_at", table_name="marketplace_credentials"
    )
    op.drop_index(
        "ix_marketplace_credentials_account_id", table_name="marketplace_credentials"
    )
    op.drop_table("marketplace_credentials")
