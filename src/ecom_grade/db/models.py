"""Database models for products, markets and user overrides."""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from ecom_grade.db.base import Base


def new_id() -> str:
    return str(uuid.uuid4())


class Market(Base):
    """Market researched around one keyword."""

    __tablename__ = "markets"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(255), index=True)
    keyword: Mapped[str] = mapped_column(String(500))

    # Averages stored at research time
    avg_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    avg_monthly_sales: Mapped[int | None] = mapped_column(Integer, nullable=True)
    avg_monthly_revenue: Mapped[float | None] = mapped_column(Float, nullable=True)
    avg_daily_revenue: Mapped[float | None] = mapped_column(Float, nullable=True)
    avg_profit_margin: Mapped[float | None] = mapped_column(Float, nullable=True)
    avg_profit_per_unit: Mapped[float | None] = mapped_column(Float, nullable=True)
    avg_reviews: Mapped[int | None] = mapped_column(Integer, nullable=True)
    avg_rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    avg_bsr: Mapped[int | None] = mapped_column(Integer, nullable=True)
    avg_cpc: Mapped[float | None] = mapped_column(Float, nullable=True)
    avg_launch_budget: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Market-level analysis
    market_grade: Mapped[str | None] = mapped_column(String(4), nullable=True)
    market_consistency: Mapped[str | None] = mapped_column(String(20), nullable=True)
    market_risk: Mapped[str | None] = mapped_column(String(20), nullable=True)
    opportunity_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_products_analyzed: Mapped[int] = mapped_column(Integer, default=0)
    products_verified: Mapped[int] = mapped_column(Integer, default=0)

    # Timestamps
    research_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return f"<Market {self.id}: {self.keyword}>"


class Product(Base):
    """Researched product. market_id is NULL for legacy products."""

    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(255), index=True)
    market_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("markets.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    asin: Mapped[str] = mapped_column(String(20), index=True)

    # Descriptive
    title: Mapped[str] = mapped_column(String(1000), default="")
    brand: Mapped[str | None] = mapped_column(String(255), nullable=True)
    price: Mapped[float] = mapped_column(Float, default=0.0)

    # Market fit
    bsr: Mapped[int | None] = mapped_column(Integer, nullable=True)
    reviews: Mapped[int] = mapped_column(Integer, default=0)
    rating: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Sales signals
    monthly_sales: Mapped[int] = mapped_column(Integer, default=0)
    monthly_revenue: Mapped[float | None] = mapped_column(Float, nullable=True)
    monthly_profit: Mapped[float | None] = mapped_column(Float, nullable=True)
    margin: Mapped[float | None] = mapped_column(Float, nullable=True)
    profit_per_unit: Mapped[float | None] = mapped_column(Float, nullable=True)
    cogs: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Launch metrics
    daily_revenue: Mapped[float | None] = mapped_column(Float, nullable=True)
    launch_budget: Mapped[float | None] = mapped_column(Float, nullable=True)
    fulfillment_fees: Mapped[float | None] = mapped_column(Float, nullable=True)
    variations: Mapped[int | None] = mapped_column(Integer, nullable=True)
    weight: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Qualitative analysis
    risk: Mapped[str] = mapped_column(String(20), default="No Risk")
    consistency: Mapped[str] = mapped_column(String(20), default="Consistent")
    opportunity_score: Mapped[float | None] = mapped_column(Float, nullable=True)

    grade: Mapped[str | None] = mapped_column(String(4), nullable=True)
    verified: Mapped[bool] = mapped_column(Boolean, default=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    # Relationships
    keywords: Mapped[list["ProductKeyword"]] = relationship(
        back_populates="product",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ProductKeyword.position",
    )

    def __repr__(self) -> str:
        return f"<Product {self.asin}: {self.title[:40]}>"


class ProductKeyword(Base):
    """Keyword a product ranks for, with its advertising cost."""

    __tablename__ = "product_keywords"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("products.id", ondelete="CASCADE"),
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, default=0)
    keyword: Mapped[str] = mapped_column(String(500))
    search_volume: Mapped[int] = mapped_column(Integer, default=0)
    cpc: Mapped[float] = mapped_column(Float, default=0.0)

    product: Mapped["Product"] = relationship(back_populates="keywords")


class ProductOverride(Base):
    """User override of one product.

    A NULL column means "not overridden". Fields explicitly reset to empty
    are listed in cleared_fields.
    """

    __tablename__ = "product_overrides"
    __table_args__ = (
        UniqueConstraint("user_id", "product_id", name="uq_product_overrides_user_product"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(255), index=True)
    product_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("products.id", ondelete="CASCADE"),
        index=True,
    )
    asin: Mapped[str] = mapped_column(String(20))
    override_reason: Mapped[str] = mapped_column(Text)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    title: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    brand: Mapped[str | None] = mapped_column(String(255), nullable=True)
    price: Mapped[float | None] = mapped_column(Float, nullable=True)
    bsr: Mapped[int | None] = mapped_column(Integer, nullable=True)
    reviews: Mapped[int | None] = mapped_column(Integer, nullable=True)
    rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    monthly_sales: Mapped[int | None] = mapped_column(Integer, nullable=True)
    monthly_revenue: Mapped[float | None] = mapped_column(Float, nullable=True)
    monthly_profit: Mapped[float | None] = mapped_column(Float, nullable=True)
    cogs: Mapped[float | None] = mapped_column(Float, nullable=True)
    margin: Mapped[float | None] = mapped_column(Float, nullable=True)
    profit_per_unit: Mapped[float | None] = mapped_column(Float, nullable=True)
    daily_revenue: Mapped[float | None] = mapped_column(Float, nullable=True)
    launch_budget: Mapped[float | None] = mapped_column(Float, nullable=True)
    fulfillment_fees: Mapped[float | None] = mapped_column(Float, nullable=True)
    variations: Mapped[int | None] = mapped_column(Integer, nullable=True)
    weight: Mapped[float | None] = mapped_column(Float, nullable=True)
    avg_cpc: Mapped[float | None] = mapped_column(Float, nullable=True)
    risk: Mapped[str | None] = mapped_column(String(20), nullable=True)
    consistency: Mapped[str | None] = mapped_column(String(20), nullable=True)
    opportunity_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    keywords: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON, nullable=True)
    grade: Mapped[str | None] = mapped_column(String(4), nullable=True)

    cleared_fields: Mapped[list[str]] = mapped_column(JSON, default=list)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return f"<ProductOverride {self.user_id}/{self.product_id}>"


class MarketOverride(Base):
    """Latest recalculation of a market for one user."""

    __tablename__ = "market_overrides"
    __table_args__ = (
        UniqueConstraint("user_id", "market_id", name="uq_market_overrides_user_market"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(255), index=True)
    market_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("markets.id", ondelete="CASCADE"),
        index=True,
    )
    keyword: Mapped[str] = mapped_column(String(500))

    avg_price: Mapped[float] = mapped_column(Float)
    avg_monthly_sales: Mapped[int] = mapped_column(Integer)
    avg_monthly_revenue: Mapped[float] = mapped_column(Float)
    avg_daily_revenue: Mapped[float] = mapped_column(Float)
    avg_profit_margin: Mapped[float] = mapped_column(Float)
    avg_profit_per_unit: Mapped[float] = mapped_column(Float)
    avg_reviews: Mapped[int] = mapped_column(Integer)
    avg_rating: Mapped[float] = mapped_column(Float)
    avg_bsr: Mapped[int] = mapped_column(Integer)
    avg_cpc: Mapped[float] = mapped_column(Float)
    avg_launch_budget: Mapped[float] = mapped_column(Float)

    market_grade: Mapped[str] = mapped_column(String(4))
    market_consistency: Mapped[str] = mapped_column(String(20))
    market_risk: Mapped[str] = mapped_column(String(20))
    opportunity_score: Mapped[int] = mapped_column(Integer)
    total_products_analyzed: Mapped[int] = mapped_column(Integer)
    products_verified: Mapped[int] = mapped_column(Integer)

    override_reason: Mapped[str] = mapped_column(Text)
    recalculated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return f"<MarketOverride {self.user_id}/{self.market_id}: {self.market_grade}>"
