"""Merge base product records with user overrides.

Effective value of every field = override value if the override provides
one, else the base value. Profit and grade are always re-derived from the
merged values, never copied from either side (unless a manual grade is set).
"""

import logging
from typing import Iterable, Optional

from ecom_grade.overrides.models import (
    EffectiveMarketRecord,
    EffectiveProductRecord,
    ProductOverride,
)
from ecom_grade.records import MarketRecord, MarketSnapshot, ProductRecord
from ecom_grade.scoring.models import GradingConfig
from ecom_grade.scoring.scorer import grade_signals

logger = logging.getLogger(__name__)

# Fields copied by plain coalescing. monthly_profit, grade and avg_cpc are
# derived separately.
COALESCED_FIELDS: tuple[str, ...] = (
    "title",
    "brand",
    "price",
    "bsr",
    "reviews",
    "rating",
    "monthly_sales",
    "monthly_revenue",
    "cogs",
    "margin",
    "profit_per_unit",
    "daily_revenue",
    "launch_budget",
    "fulfillment_fees",
    "variations",
    "weight",
    "risk",
    "consistency",
    "opportunity_score",
    "keywords",
)

# Snapshot columns that replace the stored market values
MARKET_SNAPSHOT_FIELDS: tuple[str, ...] = (
    "avg_price",
    "avg_monthly_sales",
    "avg_monthly_revenue",
    "avg_daily_revenue",
    "avg_profit_margin",
    "avg_profit_per_unit",
    "avg_reviews",
    "avg_rating",
    "avg_bsr",
    "avg_cpc",
    "avg_launch_budget",
    "market_grade",
    "market_consistency",
    "market_risk",
    "opportunity_score",
    "total_products_analyzed",
    "products_verified",
)


def calculate_profit(
    monthly_revenue: Optional[float],
    margin: Optional[float],
    fallback_profit: Optional[float],
) -> Optional[float]:
    """Monthly profit from revenue and margin.

    Profit = Revenue x max(Margin, 0)

    Falls back to the stored profit only when revenue or margin is unknown.
    """
    if monthly_revenue is None or margin is None:
        return fallback_profit
    return round(monthly_revenue * max(margin, 0.0), 2)


def overridden_fields(product: ProductRecord, override: ProductOverride) -> list[str]:
    """Names of the fields whose value the override actually changes."""
    changed: list[str] = []

    for name, patch in override.patches().items():
        if patch.is_unset:
            continue

        if name == "avg_cpc":
            base = product.average_cpc()
        else:
            base = getattr(product, name)

        if patch.apply(base) != base:
            changed.append(name)

    return changed


def merge_override(
    product: ProductRecord,
    override: Optional[ProductOverride] = None,
    config: GradingConfig | None = None,
) -> EffectiveProductRecord:
    """Merge a product with its override.

    Args:
        product: Base product record
        override: User override (None = no override)
        config: Grading configuration for the grade recompute

    Returns:
        Effective record. Without an override every value equals the base.
    """
    data = product.model_dump()

    if override is None:
        return EffectiveProductRecord.model_validate(data)

    if override.product_id != product.id:
        raise ValueError(
            f"Override for product {override.product_id} applied to product {product.id}"
        )

    metadata = {
        "has_override": True,
        "override_id": override.id,
        "override_reason": override.override_reason,
        "override": override,
    }

    # Nothing set or cleared: base values and grade stand as stored
    if override.is_empty:
        return EffectiveProductRecord.model_validate({**data, **metadata})

    for name in COALESCED_FIELDS:
        data[name] = getattr(override, name).apply(getattr(product, name))

    data["monthly_profit"] = calculate_profit(
        data["monthly_revenue"],
        data["margin"],
        override.monthly_profit.apply(product.monthly_profit),
    )

    effective = EffectiveProductRecord.model_validate(
        {
            **data,
            **metadata,
            "overridden_fields": overridden_fields(product, override),
            "cpc_override": override.avg_cpc.apply(None),
        }
    )

    # Grade last: it depends on every merged signal
    if override.grade.is_set:
        effective.grade = override.grade.value
    else:
        result = grade_signals(effective.to_signals(), config)
        effective.grade = result.grade
        effective.grade_breakdown = result.breakdown

    return effective


def merge_overrides(
    products: Iterable[ProductRecord],
    overrides: Iterable[ProductOverride] = (),
    config: GradingConfig | None = None,
) -> list[EffectiveProductRecord]:
    """Merge each product with its override, if any."""
    by_product = {override.product_id: override for override in overrides}

    merged = [
        merge_override(product, by_product.get(product.id), config) for product in products
    ]

    overridden = sum(1 for p in merged if p.has_override)
    if overridden:
        logger.debug(f"Merged {len(merged)} products, {overridden} with overrides")

    return merged


def merge_market_snapshot(
    market: MarketRecord,
    snapshot: Optional[MarketSnapshot] = None,
) -> EffectiveMarketRecord:
    """Apply the latest recalculation snapshot to a market."""
    data = market.model_dump()

    if snapshot is None:
        return EffectiveMarketRecord.model_validate(data)

    for name in MARKET_SNAPSHOT_FIELDS:
        value = getattr(snapshot, name)
        if value is not None:
            data[name] = value

    return EffectiveMarketRecord.model_validate(
        {
            **data,
            "has_override": True,
            "override_reason": snapshot.override_reason,
            "recalculated_at": snapshot.recalculated_at,
        }
    )
