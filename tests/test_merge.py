"""Tests for merging products with user overrides."""

from datetime import datetime, timezone

import pytest

from ecom_grade.errors import ValidationError
from ecom_grade.overrides import (
    Patch,
    ProductOverride,
    calculate_profit,
    merge_market_snapshot,
    merge_override,
    merge_overrides,
    overridden_fields,
)
from ecom_grade.records import KeywordSignal, MarketRecord, MarketSnapshot
from ecom_grade.scoring import Consistency, Grade, RiskClass


def make_override(product_id: str = "p1", **patches) -> ProductOverride:
    return ProductOverride(
        user_id="user-1",
        product_id=product_id,
        asin="B0TEST",
        override_reason="Supplier quote",
        **patches,
    )


@pytest.fixture
def product(product_factory):
    return product_factory("p1", brand="Acme", grade="B6")


class TestPatch:
    """Tests for the three override states."""

    def test_apply(self):
        assert Patch().apply(5) == 5
        assert Patch.clear().apply(5) is None
        assert Patch.of(7).apply(5) == 7

    def test_set_to_zero_is_not_unset(self):
        patch = Patch.of(0)
        assert patch.is_set
        assert patch.apply(12) == 0

    def test_clear_rejected_on_required_field(self):
        with pytest.raises(ValidationError) as exc:
            make_override(price=Patch.clear())
        assert exc.value.field == "price"

    def test_active_fields(self):
        override = make_override(price=Patch.of(30.0), brand=Patch.clear())
        assert override.active_fields() == ["brand", "price"]
        assert not override.is_empty
        assert make_override().is_empty


class TestMergeOverride:
    """Tests for merge_override."""

    def test_no_override_returns_base_values(self, product):
        effective = merge_override(product)

        assert not effective.has_override
        assert effective.overridden_fields == []
        assert effective.grade == Grade.B6
        assert effective.model_dump(include=set(type(product).model_fields)) == product.model_dump()

    def test_empty_override_keeps_base_values(self, product):
        override = make_override()
        override.id = "ov-1"
        effective = merge_override(product, override)

        assert effective.has_override
        assert effective.override_id == "ov-1"
        assert effective.overridden_fields == []
        assert effective.grade == Grade.B6
        assert effective.monthly_profit == product.monthly_profit
        assert effective.grade_breakdown is None
        assert effective.model_dump(include=set(type(product).model_fields)) == product.model_dump()

    @pytest.mark.parametrize(
        "field,value",
        [
            ("reviews", 5),
            ("title", "Renamed"),
            ("risk", RiskClass.BREAKABLE),
            ("bsr", 9000),
        ],
    )
    def test_single_field_override_leaves_other_fields(self, product, field, value):
        effective = merge_override(product, make_override(**{field: Patch.of(value)}))

        derived = {"monthly_profit", "grade"}
        untouched = set(type(product).model_fields) - derived - {field}
        assert getattr(effective, field) == value
        assert effective.model_dump(include=untouched) == product.model_dump(include=untouched)

    def test_profit_recomputed_from_revenue_and_margin(self, product):
        effective = merge_override(product, make_override(margin=Patch.of(0.45)))

        assert effective.has_override
        assert effective.margin == 0.45
        assert effective.monthly_profit == 9000.0
        assert effective.overridden_fields == ["margin"]

    def test_grade_recomputed_after_merge(self, product):
        """
        - Profit 20,000 x 0.45 = 9,000 -> B9
        - Penalties: 100 reviews (1)
        - Boosts: CPC <$1.00 (1), 45% margin without 20% PPU (2)
        - Net +2 -> A1
        """
        effective = merge_override(product, make_override(margin=Patch.of(0.45)))

        assert effective.grade == Grade.A1
        assert effective.grade_breakdown.base_grade == Grade.B9
        assert effective.grade_breakdown.net_adjustment == 2

    def test_stored_profit_never_used_when_revenue_and_margin_known(self, product):
        override = make_override(monthly_profit=Patch.of(999999.0))
        effective = merge_override(product, override)
        assert effective.monthly_profit == 6000.0

    def test_profit_falls_back_without_revenue(self, product_factory):
        product = product_factory("p1", monthly_revenue=None, monthly_profit=1500.0)

        assert merge_override(product, make_override()).monthly_profit == 1500.0

        override = make_override(monthly_profit=Patch.of(3000.0))
        assert merge_override(product, override).monthly_profit == 3000.0

    def test_negative_margin_gives_zero_profit_and_disqualifies(self, product):
        effective = merge_override(product, make_override(margin=Patch.of(-0.10)))

        assert effective.monthly_profit == 0.0
        assert effective.grade == Grade.F1
        assert effective.grade_breakdown.disqualifiers

    def test_manual_grade_wins(self, product):
        override = make_override(grade=Patch.of(Grade.A3), margin=Patch.of(0.10))
        effective = merge_override(product, override)

        assert effective.grade == Grade.A3
        assert effective.grade_breakdown is None

    def test_cleared_field_becomes_none(self, product):
        effective = merge_override(product, make_override(brand=Patch.clear()))

        assert effective.brand is None
        assert effective.overridden_fields == ["brand"]

    def test_qualitative_override(self, product):
        override = make_override(consistency=Patch.of(Consistency.TRENDY))
        effective = merge_override(product, override)

        assert effective.consistency == Consistency.TRENDY
        assert effective.grade == Grade.F1

    def test_keywords_preserved_with_cpc_override(self, product):
        effective = merge_override(product, make_override(avg_cpc=Patch.of(0.30)))

        assert effective.keywords == product.keywords
        assert effective.average_cpc() == 0.30
        assert effective.cpc_override == 0.30
        assert product.average_cpc() == 0.80

    def test_keywords_replaced(self, product):
        keywords = [
            KeywordSignal(keyword="a", cpc=1.00),
            KeywordSignal(keyword="b", cpc=2.00),
        ]
        effective = merge_override(product, make_override(keywords=Patch.of(keywords)))

        assert [kw.keyword for kw in effective.keywords] == ["a", "b"]
        assert effective.average_cpc() == 1.50

    def test_override_for_other_product_rejected(self, product):
        with pytest.raises(ValueError):
            merge_override(product, make_override(product_id="p9"))

    def test_metadata_carried(self, product):
        override = make_override(price=Patch.of(45.0))
        override.id = "ov-1"
        effective = merge_override(product, override)

        assert effective.override_id == "ov-1"
        assert effective.override_reason == "Supplier quote"
        assert effective.override is override
        assert "override" not in effective.model_dump()


class TestOverriddenFields:
    """Tests for overridden_fields."""

    def test_only_changed_fields(self, product):
        override = make_override(
            price=Patch.of(product.price),
            reviews=Patch.of(5),
            risk=Patch.of(RiskClass.NO_RISK),
        )
        assert overridden_fields(product, override) == ["reviews"]

    def test_cpc_compared_with_keyword_average(self, product):
        assert overridden_fields(product, make_override(avg_cpc=Patch.of(0.80))) == []
        assert overridden_fields(product, make_override(avg_cpc=Patch.of(0.50))) == ["avg_cpc"]


class TestMergeOverrides:
    """Tests for batch merging."""

    def test_merges_by_product_id(self, product_factory):
        products = [product_factory("p1"), product_factory("p2"), product_factory("p3")]
        overrides = [make_override("p2", price=Patch.of(55.0))]

        merged = merge_overrides(products, overrides)

        assert [p.id for p in merged] == ["p1", "p2", "p3"]
        assert [p.has_override for p in merged] == [False, True, False]
        assert merged[1].price == 55.0


class TestCalculateProfit:
    """Tests for the profit formula."""

    def test_rounded_to_cents(self):
        assert calculate_profit(10000.555, 0.333, None) == 3330.18

    def test_fallback(self):
        assert calculate_profit(None, 0.3, 120.0) == 120.0
        assert calculate_profit(5000.0, None, None) is None


class TestMergeMarketSnapshot:
    """Tests for applying a recalculation snapshot to a market."""

    def test_snapshot_values_win(self):
        market = MarketRecord(
            id="m1", user_id="user-1", keyword="kneeler", avg_price=30.0, market_grade=Grade.C1
        )
        snapshot = MarketSnapshot(
            user_id="user-1",
            market_id="m1",
            keyword="kneeler",
            avg_price=42.0,
            avg_monthly_sales=300,
            avg_monthly_revenue=12600.0,
            avg_daily_revenue=420.0,
            avg_profit_margin=0.32,
            avg_profit_per_unit=0.12,
            avg_reviews=80,
            avg_rating=4.4,
            avg_bsr=12000,
            avg_cpc=0.7,
            avg_launch_budget=3000.0,
            market_grade=Grade.B3,
            market_consistency=Consistency.MEDIUM,
            market_risk=RiskClass.NO_RISK,
            opportunity_score=67,
            total_products_analyzed=3,
            products_verified=2,
            override_reason="Recalculated",
            recalculated_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        )

        effective = merge_market_snapshot(market, snapshot)

        assert effective.has_override
        assert effective.avg_price == 42.0
        assert effective.market_grade == Grade.B3
        assert effective.override_reason == "Recalculated"

    def test_without_snapshot(self):
        market = MarketRecord(id="m1", user_id="user-1", keyword="kneeler", avg_price=30.0)
        effective = merge_market_snapshot(market)
        assert not effective.has_override
        assert effective.avg_price == 30.0
