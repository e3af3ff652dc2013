"""Market aggregation engine.

Derives market statistics from the effective records of a market's members.
The same calculation runs at research time and on every recalculation.

Only verified members with a positive price count. Averages use the valid
member count as denominator; a missing value counts as 0.

Opportunity score (1-100):
    min(40, margin x 100)
    + min(30, revenue / 10,000 x 30)
    + max(0, 20 - reviews / 1,000 x 20)
    + consistency bonus (High 10, Medium 7, Low 4, else 2)
"""

import logging
import math
from datetime import datetime, timezone
from typing import Optional, Sequence

from pydantic import BaseModel, Field

from ecom_grade.errors import AggregationError
from ecom_grade.records import MarketSnapshot, ProductRecord
from ecom_grade.scoring.models import (
    Consistency,
    Grade,
    GradeBreakdown,
    GradingConfig,
    RiskClass,
    SignalBundle,
)
from ecom_grade.scoring.scorer import grade_signals

logger = logging.getLogger(__name__)

CONSISTENCY_BONUS: dict[Consistency, int] = {
    Consistency.HIGH: 10,
    Consistency.MEDIUM: 7,
    Consistency.LOW: 4,
}


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _average(values: list[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


class MarketMetrics(BaseModel):
    """Aggregated statistics of one market."""

    avg_price: float
    avg_monthly_sales: float
    avg_monthly_revenue: float
    avg_daily_revenue: float
    avg_profit_margin: float
    avg_profit_per_unit: float
    avg_reviews: float
    avg_rating: float
    avg_bsr: float
    avg_cpc: float
    avg_launch_budget: float

    market_grade: Grade
    market_consistency: Consistency
    market_risk: RiskClass
    opportunity_score: int = Field(..., ge=1, le=100)

    total_products_analyzed: int
    products_verified: int

    grade_breakdown: Optional[GradeBreakdown] = None

    def to_snapshot(
        self,
        user_id: str,
        market_id: str,
        keyword: str,
        reason: str,
        recalculated_at: datetime | None = None,
    ) -> MarketSnapshot:
        """Snapshot row for the market_overrides table.

        Sales, reviews and BSR are stored as whole numbers.
        """
        return MarketSnapshot(
            user_id=user_id,
            market_id=market_id,
            keyword=keyword,
            avg_price=self.avg_price,
            avg_monthly_sales=_round_half_up(self.avg_monthly_sales),
            avg_monthly_revenue=self.avg_monthly_revenue,
            avg_daily_revenue=self.avg_daily_revenue,
            avg_profit_margin=self.avg_profit_margin,
            avg_profit_per_unit=self.avg_profit_per_unit,
            avg_reviews=_round_half_up(self.avg_reviews),
            avg_rating=self.avg_rating,
            avg_bsr=_round_half_up(self.avg_bsr),
            avg_cpc=self.avg_cpc,
            avg_launch_budget=self.avg_launch_budget,
            market_grade=self.market_grade,
            market_consistency=self.market_consistency,
            market_risk=self.market_risk,
            opportunity_score=self.opportunity_score,
            total_products_analyzed=self.total_products_analyzed,
            products_verified=self.products_verified,
            override_reason=reason,
            recalculated_at=recalculated_at or datetime.now(timezone.utc),
        )


def valid_members(members: Sequence[ProductRecord]) -> list[ProductRecord]:
    """Members that count toward market statistics."""
    return [m for m in members if m.verified and (m.price or 0) > 0]


def calculate_market_consistency(members: Sequence[ProductRecord]) -> Consistency:
    """Consistency from the number of distinct grades among members."""
    if len(members) <= 1:
        return Consistency.HIGH

    distinct = {m.grade for m in members if m.grade is not None}
    if len(distinct) <= 1:
        return Consistency.HIGH
    if len(distinct) == 2:
        return Consistency.MEDIUM
    if len(distinct) == 3:
        return Consistency.LOW
    return Consistency.VARIABLE


def calculate_market_risk(members: Sequence[ProductRecord]) -> RiskClass:
    """Most common member risk classification, ties broken by first seen."""
    counts: dict[RiskClass, int] = {}
    for member in members:
        if member.risk is not None:
            counts[member.risk] = counts.get(member.risk, 0) + 1

    if not counts:
        return RiskClass.UNKNOWN

    # max() keeps the first maximal key in insertion order
    return max(counts, key=lambda risk: counts[risk])


def calculate_opportunity_score(
    avg_profit_margin: float,
    avg_monthly_revenue: float,
    avg_reviews: float,
    consistency: Consistency,
) -> int:
    """Market opportunity score on a 1-100 scale."""
    margin_score = min(40.0, avg_profit_margin * 100)
    revenue_score = min(30.0, avg_monthly_revenue / 10000 * 30)
    competition_score = max(0.0, 20 - avg_reviews / 1000 * 20)
    consistency_score = CONSISTENCY_BONUS.get(consistency, 2)

    total = _round_half_up(margin_score + revenue_score + competition_score + consistency_score)
    return min(100, max(1, total))


def aggregate_market(
    members: Sequence[ProductRecord],
    config: GradingConfig | None = None,
) -> MarketMetrics:
    """Aggregate a market from the effective records of its members.

    Args:
        members: Effective (override-merged) member records
        config: Grading configuration for the market grade

    Returns:
        MarketMetrics

    Raises:
        AggregationError: If there are no members or none is valid
    """
    if not members:
        raise AggregationError("Cannot calculate metrics for empty product set")

    valid = valid_members(members)
    if not valid:
        raise AggregationError("No valid products found for market analysis")

    avg_price = _average([m.price or 0 for m in valid])
    avg_monthly_sales = _average([m.monthly_sales or 0 for m in valid])
    avg_monthly_revenue = _average([m.monthly_revenue or 0 for m in valid])
    avg_reviews = _average([m.reviews or 0 for m in valid])
    avg_rating = _average([m.rating or 0 for m in valid])
    avg_bsr = _average([m.bsr or 0 for m in valid])
    avg_profit_margin = _average([m.margin or 0 for m in valid])
    avg_cpc = _average([m.average_cpc() for m in valid])
    avg_daily_revenue = _average([m.daily_revenue or 0 for m in valid])
    avg_launch_budget = _average([m.launch_budget or 0 for m in valid])
    avg_profit_per_unit = _average([m.profit_per_unit or 0 for m in valid])

    consistency = calculate_market_consistency(valid)
    risk = calculate_market_risk(valid)

    # Grade the averaged market as if it were one product
    signals = SignalBundle(
        monthly_profit=avg_monthly_revenue * avg_profit_margin,
        price=avg_price,
        margin=avg_profit_margin,
        reviews=avg_reviews,
        avg_cpc=avg_cpc,
        risk=risk,
        consistency=consistency,
        profit_per_unit=avg_profit_per_unit,
        bsr=avg_bsr,
        rating=avg_rating,
    )
    result = grade_signals(signals, config)

    opportunity = calculate_opportunity_score(
        avg_profit_margin, avg_monthly_revenue, avg_reviews, consistency
    )

    logger.debug(
        f"Aggregated {len(valid)}/{len(members)} members: "
        f"grade {result.grade.value}, opportunity {opportunity}"
    )

    return MarketMetrics(
        avg_price=avg_price,
        avg_monthly_sales=avg_monthly_sales,
        avg_monthly_revenue=avg_monthly_revenue,
        avg_daily_revenue=avg_daily_revenue,
        avg_profit_margin=avg_profit_margin,
        avg_profit_per_unit=avg_profit_per_unit,
        avg_reviews=avg_reviews,
        avg_rating=avg_rating,
        avg_bsr=avg_bsr,
        avg_cpc=avg_cpc,
        avg_launch_budget=avg_launch_budget,
        market_grade=result.grade,
        market_consistency=consistency,
        market_risk=risk,
        opportunity_score=opportunity,
        total_products_analyzed=len(members),
        products_verified=len(valid),
        grade_breakdown=result.breakdown,
    )
