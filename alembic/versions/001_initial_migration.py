"""Initial migration - markets, products and user overrides.

Revision ID: 001
Revises:
Create Date: 2026-10-17

"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # Create markets table
    op.create_table(
        "markets",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(255), nullable=False, index=True),
        sa.Column("keyword", sa.String(500), nullable=False),
        # Averages stored at research time
        sa.Column("avg_price", sa.Float(), nullable=True),
        sa.Column("avg_monthly_sales", sa.Integer(), nullable=True),
        sa.Column("avg_monthly_revenue", sa.Float(), nullable=True),
        sa.Column("avg_daily_revenue", sa.Float(), nullable=True),
        sa.Column("avg_profit_margin", sa.Float(), nullable=True),
        sa.Column("avg_profit_per_unit", sa.Float(), nullable=True),
        sa.Column("avg_reviews", sa.Integer(), nullable=True),
        sa.Column("avg_rating", sa.Float(), nullable=True),
        sa.Column("avg_bsr", sa.Integer(), nullable=True),
        sa.Column("avg_cpc", sa.Float(), nullable=True),
        sa.Column("avg_launch_budget", sa.Float(), nullable=True),
        # Market-level analysis
        sa.Column("market_grade", sa.String(4), nullable=True),
        sa.Column("market_consistency", sa.String(20), nullable=True),
        sa.Column("market_risk", sa.String(20), nullable=True),
        sa.Column("opportunity_score", sa.Integer(), nullable=True),
        sa.Column("total_products_analyzed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("products_verified", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("research_date", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    # Create products table (market_id NULL = legacy product)
    op.create_table(
        "products",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(255), nullable=False, index=True),
        sa.Column(
            "market_id",
            sa.String(36),
            sa.ForeignKey("markets.id", ondelete="SET NULL"),
            nullable=True,
            index=True,
        ),
        sa.Column("asin", sa.String(20), nullable=False, index=True),
        sa.Column("title", sa.String(1000), nullable=False, server_default=""),
        sa.Column("brand", sa.String(255), nullable=True),
        sa.Column("price", sa.Float(), nullable=False, server_default="0"),
        sa.Column("bsr", sa.Integer(), nullable=True),
        sa.Column("reviews", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("rating", sa.Float(), nullable=True),
        # Sales signals
        sa.Column("monthly_sales", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("monthly_revenue", sa.Float(), nullable=True),
        sa.Column("monthly_profit", sa.Float(), nullable=True),
        sa.Column("margin", sa.Float(), nullable=True),
        sa.Column("profit_per_unit", sa.Float(), nullable=True),
        sa.Column("cogs", sa.Float(), nullable=True),
        # Launch metrics
        sa.Column("daily_revenue", sa.Float(), nullable=True),
        sa.Column("launch_budget", sa.Float(), nullable=True),
        sa.Column("fulfillment_fees", sa.Float(), nullable=True),
        sa.Column("variations", sa.Integer(), nullable=True),
        sa.Column("weight", sa.Float(), nullable=True),
        # Qualitative analysis
        sa.Column("risk", sa.String(20), nullable=False, server_default="No Risk"),
        sa.Column("consistency", sa.String(20), nullable=False, server_default="Consistent"),
        sa.Column("opportunity_score", sa.Float(), nullable=True),
        sa.Column("grade", sa.String(4), nullable=True),
        sa.Column("verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )

    # Create product_keywords table
    op.create_table(
        "product_keywords",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "product_id",
            sa.String(36),
            sa.ForeignKey("products.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("keyword", sa.String(500), nullable=False),
        sa.Column("search_volume", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("cpc", sa.Float(), nullable=False, server_default="0"),
    )

    # Create product_overrides table (NULL column = not overridden)
    op.create_table(
        "product_overrides",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(255), nullable=False, index=True),
        sa.Column(
            "product_id",
            sa.String(36),
            sa.ForeignKey("products.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("asin", sa.String(20), nullable=False),
        sa.Column("override_reason", sa.Text(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("title", sa.String(1000), nullable=True),
        sa.Column("brand", sa.String(255), nullable=True),
        sa.Column("price", sa.Float(), nullable=True),
        sa.Column("bsr", sa.Integer(), nullable=True),
        sa.Column("reviews", sa.Integer(), nullable=True),
        sa.Column("rating", sa.Float(), nullable=True),
        sa.Column("monthly_sales", sa.Integer(), nullable=True),
        sa.Column("monthly_revenue", sa.Float(), nullable=True),
        sa.Column("monthly_profit", sa.Float(), nullable=True),
        sa.Column("cogs", sa.Float(), nullable=True),
        sa.Column("margin", sa.Float(), nullable=True),
        sa.Column("profit_per_unit", sa.Float(), nullable=True),
        sa.Column("daily_revenue", sa.Float(), nullable=True),
        sa.Column("launch_budget", sa.Float(), nullable=True),
        sa.Column("fulfillment_fees", sa.Float(), nullable=True),
        sa.Column("variations", sa.Integer(), nullable=True),
        sa.Column("weight", sa.Float(), nullable=True),
        sa.Column("avg_cpc", sa.Float(), nullable=True),
        sa.Column("risk", sa.String(20), nullable=True),
        sa.Column("consistency", sa.String(20), nullable=True),
        sa.Column("opportunity_score", sa.Float(), nullable=True),
        sa.Column("keywords", sa.JSON(), nullable=True),
        sa.Column("grade", sa.String(4), nullable=True),
        sa.Column("cleared_fields", sa.JSON(), nullable=False, server_default="[]"),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "product_id", name="uq_product_overrides_user_product"),
    )

    # Create market_overrides table (latest recalculation per user and market)
    op.create_table(
        "market_overrides",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(255), nullable=False, index=True),
        sa.Column(
            "market_id",
            sa.String(36),
            sa.ForeignKey("markets.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("keyword", sa.String(500), nullable=False),
        sa.Column("avg_price", sa.Float(), nullable=False),
        sa.Column("avg_monthly_sales", sa.Integer(), nullable=False),
        sa.Column("avg_monthly_revenue", sa.Float(), nullable=False),
        sa.Column("avg_daily_revenue", sa.Float(), nullable=False),
        sa.Column("avg_profit_margin", sa.Float(), nullable=False),
        sa.Column("avg_profit_per_unit", sa.Float(), nullable=False),
        sa.Column("avg_reviews", sa.Integer(), nullable=False),
        sa.Column("avg_rating", sa.Float(), nullable=False),
        sa.Column("avg_bsr", sa.Integer(), nullable=False),
        sa.Column("avg_cpc", sa.Float(), nullable=False),
        sa.Column("avg_launch_budget", sa.Float(), nullable=False),
        sa.Column("market_grade", sa.String(4), nullable=False),
        sa.Column("market_consistency", sa.String(20), nullable=False),
        sa.Column("market_risk", sa.String(20), nullable=False),
        sa.Column("opportunity_score", sa.Integer(), nullable=False),
        sa.Column("total_products_analyzed", sa.Integer(), nullable=False),
        sa.Column("products_verified", sa.Integer(), nullable=False),
        sa.Column("override_reason", sa.Text(), nullable=False),
        sa.Column("recalculated_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "market_id", name="uq_market_overrides_user_market"),
    )


def downgrade() -> None:
    op.drop_table("market_overrides")
    op.drop_table("product_overrides")
    op.drop_table("product_keywords")
    op.drop_table("products")
    op.drop_table("markets")
