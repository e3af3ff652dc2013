"""Typed product and market records shared by the merge, aggregation and store layers."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ecom_grade.scoring.models import Consistency, Grade, RiskClass, SignalBundle


class KeywordSignal(BaseModel):
    """Keyword associated with a product."""

    model_config = ConfigDict(from_attributes=True)

    keyword: str
    search_volume: int = Field(0, ge=0, description="Monthly search volume")
    cpc: float = Field(0.0, ge=0, description="Average cost-per-click (USD)")


class ProductRecord(BaseModel):
    """Product as produced by the ingestion pipeline."""

    model_config = ConfigDict(from_attributes=True)

    # Identity
    id: str
    user_id: str
    market_id: Optional[str] = None
    asin: str = Field(..., description="External catalog id")

    # Descriptive
    title: str = ""
    brand: Optional[str] = None
    price: float = 0.0

    # Market fit
    bsr: Optional[int] = None
    reviews: int = 0
    rating: Optional[float] = Field(None, ge=0, le=5)

    # Sales signals
    monthly_sales: int = 0
    monthly_revenue: Optional[float] = None
    monthly_profit: Optional[float] = None
    margin: Optional[float] = None
    profit_per_unit: Optional[float] = None
    cogs: Optional[float] = None

    # Launch metrics
    daily_revenue: Optional[float] = None
    launch_budget: Optional[float] = None
    fulfillment_fees: Optional[float] = None
    variations: Optional[int] = None
    weight: Optional[float] = None

    # Qualitative analysis
    risk: RiskClass = RiskClass.NO_RISK
    consistency: Consistency = Consistency.CONSISTENT
    opportunity_score: Optional[float] = Field(None, ge=0, le=10)

    keywords: list[KeywordSignal] = Field(default_factory=list)
    grade: Optional[Grade] = None

    # Set by the ingestion collaborator once the sales estimator confirmed the data
    verified: bool = False

    def average_cpc(self) -> float:
        """Mean CPC over the product's keywords (0 without keywords)."""
        if not self.keywords:
            return 0.0
        return sum(kw.cpc for kw in self.keywords) / len(self.keywords)

    def to_signals(self) -> SignalBundle:
        """Signal bundle for the grading engine."""
        return SignalBundle(
            monthly_profit=self.monthly_profit or 0,
            price=self.price or 0,
            margin=self.margin or 0,
            reviews=self.reviews or 0,
            avg_cpc=self.average_cpc(),
            risk=self.risk,
            consistency=self.consistency,
            profit_per_unit=self.profit_per_unit or 0,
            bsr=self.bsr,
            rating=self.rating,
            opportunity_score=self.opportunity_score,
        )


class MarketRecord(BaseModel):
    """Named group of products sharing a research context."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    keyword: str
    product_ids: list[str] = Field(default_factory=list)

    # Averages stored at research time
    avg_price: Optional[float] = None
    avg_monthly_sales: Optional[int] = None
    avg_monthly_revenue: Optional[float] = None
    avg_daily_revenue: Optional[float] = None
    avg_profit_margin: Optional[float] = None
    avg_profit_per_unit: Optional[float] = None
    avg_reviews: Optional[int] = None
    avg_rating: Optional[float] = None
    avg_bsr: Optional[int] = None
    avg_cpc: Optional[float] = None
    avg_launch_budget: Optional[float] = None

    market_grade: Optional[Grade] = None
    market_consistency: Optional[Consistency] = None
    market_risk: Optional[RiskClass] = None
    opportunity_score: Optional[int] = None
    total_products_analyzed: int = 0
    products_verified: int = 0

    research_date: Optional[datetime] = None


class MarketSnapshot(BaseModel):
    """Latest recalculation of a market (at most one per user and market)."""

    model_config = ConfigDict(from_attributes=True)

    id: Optional[str] = None
    user_id: str
    market_id: str
    keyword: str

    avg_price: float
    avg_monthly_sales: int
    avg_monthly_revenue: float
    avg_daily_revenue: float
    avg_profit_margin: float
    avg_profit_per_unit: float
    avg_reviews: int
    avg_rating: float
    avg_bsr: int
    avg_cpc: float
    avg_launch_budget: float

    market_grade: Grade
    market_consistency: Consistency
    market_risk: RiskClass
    opportunity_score: int = Field(..., ge=1, le=100)
    total_products_analyzed: int
    products_verified: int

    override_reason: str
    recalculated_at: datetime
