"""Market-level aggregation of product signals."""

from ecom_grade.markets.aggregator import (
    MarketMetrics,
    aggregate_market,
    calculate_market_consistency,
    calculate_market_risk,
    calculate_opportunity_score,
    valid_members,
)

__all__ = [
    "MarketMetrics",
    "aggregate_market",
    "calculate_market_consistency",
    "calculate_market_risk",
    "calculate_opportunity_score",
    "valid_members",
]
