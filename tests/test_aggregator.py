"""Tests for the market aggregation engine."""

import pytest

from ecom_grade.errors import AggregationError
from ecom_grade.markets import (
    aggregate_market,
    calculate_market_consistency,
    calculate_market_risk,
    calculate_opportunity_score,
    valid_members,
)
from ecom_grade.overrides import Patch, ProductOverride, merge_override
from ecom_grade.records import KeywordSignal
from ecom_grade.scoring import Consistency, Grade, RiskClass


class TestValidMembers:
    """Tests for member filtering."""

    def test_unverified_and_unpriced_excluded(self, product_factory):
        members = [
            product_factory("p1"),
            product_factory("p2", verified=False),
            product_factory("p3", price=0.0),
        ]
        assert [m.id for m in valid_members(members)] == ["p1"]

    def test_empty_market_rejected(self):
        with pytest.raises(AggregationError):
            aggregate_market([])

    def test_no_valid_member_rejected(self, product_factory):
        with pytest.raises(AggregationError, match="No valid products"):
            aggregate_market([product_factory("p1", verified=False)])


class TestConsistencyAndRisk:
    """Tests for market-level classifications."""

    @pytest.mark.parametrize(
        "grades,expected",
        [
            (["A1"], Consistency.HIGH),
            (["B2", "B2", "B2"], Consistency.HIGH),
            (["B2", "C1"], Consistency.MEDIUM),
            (["B2", "C1", "C1", "D4"], Consistency.LOW),
            (["A1", "B2", "C3", "D4"], Consistency.VARIABLE),
        ],
    )
    def test_consistency_from_distinct_grades(self, product_factory, grades, expected):
        members = [product_factory(f"p{i}", grade=g) for i, g in enumerate(grades)]
        assert calculate_market_consistency(members) == expected

    def test_ungraded_members_ignored(self, product_factory):
        members = [product_factory("p1", grade="B2"), product_factory("p2")]
        assert calculate_market_consistency(members) == Consistency.HIGH

    def test_risk_mode(self, product_factory):
        members = [
            product_factory("p1", risk=RiskClass.BREAKABLE),
            product_factory("p2", risk=RiskClass.ELECTRIC),
            product_factory("p3", risk=RiskClass.ELECTRIC),
        ]
        assert calculate_market_risk(members) == RiskClass.ELECTRIC

    def test_risk_tie_goes_to_first_seen(self, product_factory):
        members = [
            product_factory("p1", risk=RiskClass.MEDICAL),
            product_factory("p2", risk=RiskClass.NO_RISK),
        ]
        assert calculate_market_risk(members) == RiskClass.MEDICAL

    def test_risk_unknown_without_members(self):
        assert calculate_market_risk([]) == RiskClass.UNKNOWN


class TestOpportunityScore:
    """Tests for the 1-100 market opportunity score."""

    def test_hand_calculated(self):
        """
        - Margin 35% -> 35
        - Revenue $30,000 -> 90, capped at 30
        - 150 reviews -> 20 - 3 = 17
        - Medium consistency -> 7
        = 89
        """
        assert calculate_opportunity_score(0.35, 30000, 150, Consistency.MEDIUM) == 89

    def test_clamped_to_one(self):
        assert calculate_opportunity_score(-2.0, 0, 5000, Consistency.VARIABLE) == 1

    def test_clamped_to_hundred(self):
        assert calculate_opportunity_score(0.9, 90000, 0, Consistency.HIGH) == 100

    def test_rounds_half_up(self):
        # 12.5 + 0 + 0 + 2 = 14.5 -> 15
        assert calculate_opportunity_score(0.125, 0, 1000, Consistency.VARIABLE) == 15


class TestAggregateMarket:
    """Tests for full market aggregation."""

    @pytest.fixture
    def members(self, product_factory):
        return [
            product_factory(
                "p1",
                price=40.0,
                monthly_sales=500,
                monthly_revenue=20000.0,
                reviews=100,
                rating=4.5,
                bsr=20000,
                margin=0.30,
                grade="B6",
            ),
            product_factory(
                "p2",
                price=60.0,
                monthly_sales=700,
                monthly_revenue=40000.0,
                reviews=300,
                rating=4.1,
                bsr=None,
                margin=0.42,
                keywords=[KeywordSignal(keyword="x", cpc=0.4), KeywordSignal(keyword="y", cpc=0.6)],
                grade="A1",
            ),
            product_factory("p3", verified=False, price=999.0, grade="F1"),
        ]

    def test_averages_over_valid_members(self, members):
        metrics = aggregate_market(members)

        assert metrics.total_products_analyzed == 3
        assert metrics.products_verified == 2
        assert metrics.avg_price == 50.0
        assert metrics.avg_monthly_sales == 600
        assert metrics.avg_monthly_revenue == 30000.0
        assert metrics.avg_reviews == 200
        assert metrics.avg_profit_margin == pytest.approx(0.36)
        assert metrics.avg_rating == pytest.approx(4.3)
        # Missing values count as zero
        assert metrics.avg_bsr == 10000
        # Per-product keyword means: 0.80 and 0.50
        assert metrics.avg_cpc == pytest.approx(0.65)

    def test_classifications_and_score(self, members):
        metrics = aggregate_market(members)

        assert metrics.market_consistency == Consistency.MEDIUM
        assert metrics.market_risk == RiskClass.NO_RISK
        # 36 + 30 + (20 - 4) + 7
        assert metrics.opportunity_score == 89

    def test_market_grade(self, members):
        """
        - Profit 30,000 x 0.36 = 10,800 -> B10
        - Penalties: 200 reviews (5)
        - Boosts: CPC <$1.00 (1), 36% margin (2)
        - Net -2 -> B8
        """
        metrics = aggregate_market(members)

        assert metrics.grade_breakdown.base_grade == Grade.B10
        assert metrics.market_grade == Grade.B8

    def test_effective_cpc_override_used(self, members):
        override = ProductOverride(
            user_id="user-1",
            product_id="p1",
            asin="B0TEST",
            override_reason="Measured CPC",
            avg_cpc=Patch.of(0.20),
        )
        effective = [merge_override(members[0], override), *members[1:]]

        metrics = aggregate_market(effective)
        assert metrics.avg_cpc == pytest.approx(0.35)

    def test_to_snapshot_rounds_counts(self, members):
        members[0].monthly_sales = 501
        snapshot = aggregate_market(members).to_snapshot(
            user_id="user-1", market_id="market-1", keyword="kneeler", reason="Test"
        )

        assert snapshot.avg_monthly_sales == 601
        assert snapshot.avg_reviews == 200
        assert snapshot.avg_bsr == 10000
        assert snapshot.market_grade == Grade.B8
        assert snapshot.override_reason == "Test"
        assert snapshot.recalculated_at is not None
