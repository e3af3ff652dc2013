"""Tests for the grading engine.

These tests validate grades and scores against hand-calculated examples.
"""

import pytest

from ecom_grade.scoring import (
    GRADE_LADDER,
    GRADE_THRESHOLDS,
    Consistency,
    Grade,
    GradingConfig,
    RiskClass,
    SignalBundle,
    base_grade,
    calculate_boosts,
    calculate_penalties,
    check_disqualifiers,
    compare_grades,
    grade_description,
    grade_index,
    grade_signals,
    is_grade_at_least,
    parse_grade,
    passes_top_gate,
    shift_grade,
)


# --- Test Fixtures ---


@pytest.fixture
def top_signals() -> SignalBundle:
    """Signals that earn the top rung.

    - Base: $120,000 -> A10
    - Boosts: CPC <$0.50 (+2), 55% margin + 25% PPU (+4), 10 reviews (+2) = +8
    - Penalties: none
    - Gate: every requirement met
    - Score = 100,000 + 8 x 1,000 = 108,000
    """
    return SignalBundle(
        monthly_profit=120000,
        price=40.00,
        margin=0.55,
        reviews=10,
        avg_cpc=0.40,
        profit_per_unit=0.25,
    )


@pytest.fixture
def weak_signals() -> SignalBundle:
    """Signals that collect every penalty.

    - Base: $5,000 -> B6
    - Penalties: 500+ reviews (9), CPC $2.50+ (3), Electric (4),
      margin <25% (3) and <20% (3), BSR >100k (2), rating <4.0 (3) = 27
    - Net -27 -> clamped to F1
    """
    return SignalBundle(
        monthly_profit=5000,
        price=30.00,
        margin=0.18,
        reviews=600,
        avg_cpc=3.00,
        risk=RiskClass.ELECTRIC,
        bsr=150000,
        rating=3.5,
    )


# --- Ladder Tests ---


class TestLadder:
    """Tests for grade ladder arithmetic."""

    def test_ladder_has_41_rungs_best_first(self):
        assert len(GRADE_LADDER) == 41
        assert GRADE_LADDER[0] == Grade.A10
        assert GRADE_LADDER[-1] == Grade.F1

    def test_thresholds_strictly_descending(self):
        values = [GRADE_THRESHOLDS[g] for g in GRADE_LADDER]
        assert values == sorted(values, reverse=True)
        assert len(set(values)) == len(values)

    @pytest.mark.parametrize(
        "profit,expected",
        [
            (100000, Grade.A10),
            (99999, Grade.A9),
            (12000, Grade.A1),
            (10000, Grade.B10),
            (5000, Grade.B6),
            (300, Grade.C1),
            (50, Grade.D1),
            (49.99, Grade.F1),
            (-500, Grade.F1),
        ],
    )
    def test_base_grade(self, profit, expected):
        assert base_grade(profit) == expected

    def test_shift_up_and_down(self):
        assert shift_grade(Grade.B6, 1) == Grade.B7
        assert shift_grade(Grade.B6, -2) == Grade.B4
        assert shift_grade(Grade.A1, 1) == Grade.A2
        assert shift_grade(Grade.B10, -1) == Grade.B9

    def test_shift_is_clamped(self):
        assert shift_grade(Grade.A9, 10) == Grade.A10
        assert shift_grade(Grade.D2, -10) == Grade.F1

    def test_parse_grade(self):
        assert parse_grade(" a5 ") == Grade.A5
        assert parse_grade(Grade.C3) == Grade.C3
        assert parse_grade("Z9") is None
        assert parse_grade(None) is None

    def test_grade_index_rejects_unknown(self):
        assert grade_index("A10") == 0
        with pytest.raises(ValueError):
            grade_index("Q1")

    def test_compare_grades(self):
        assert compare_grades("A1", "B10") < 0
        assert compare_grades("C2", "C3") < 0
        assert compare_grades("D1", "D1") == 0
        # Unknown grades sort after every rung
        assert compare_grades("unknown", "F1") > 0
        assert compare_grades("F1", None) < 0

    def test_is_grade_at_least(self):
        assert is_grade_at_least("A3", "B10")
        assert is_grade_at_least("B10", "B10")
        assert not is_grade_at_least("C10", "B1")
        assert not is_grade_at_least(None, "F1")

    def test_grade_description(self):
        assert grade_description("A4") == "Excellent Opportunity"
        assert grade_description("D10") == "Poor Opportunity"
        assert grade_description("F1") == "Not Recommended"


# --- Filter Tests ---


class TestDisqualifiers:
    """Tests for instant disqualifiers and the top-rung gate."""

    def test_healthy_signals_pass(self, top_signals):
        assert check_disqualifiers(top_signals).passed

    def test_price_below_floor(self, top_signals):
        signals = top_signals.model_copy(update={"price": 24.99})
        result = check_disqualifiers(signals)
        assert not result.passed
        assert any("Price" in r for r in result.reasons)

    def test_margin_below_floor(self, top_signals):
        signals = top_signals.model_copy(update={"margin": 0.14})
        assert not check_disqualifiers(signals).passed

    def test_banned_and_trendy(self, top_signals):
        signals = top_signals.model_copy(
            update={"risk": RiskClass.BANNED, "consistency": Consistency.TRENDY}
        )
        result = check_disqualifiers(signals)
        assert len(result.reasons) == 2

    def test_market_level_low_consistency_does_not_disqualify(self, top_signals):
        signals = top_signals.model_copy(update={"consistency": Consistency.LOW})
        assert check_disqualifiers(signals).passed

    def test_custom_config(self, top_signals):
        config = GradingConfig(min_price=50)
        assert not check_disqualifiers(top_signals, config).passed

    def test_top_gate(self, top_signals):
        assert passes_top_gate(top_signals)
        assert not passes_top_gate(top_signals.model_copy(update={"reviews": 50}))
        assert not passes_top_gate(top_signals.model_copy(update={"avg_cpc": 0.50}))
        assert not passes_top_gate(top_signals.model_copy(update={"profit_per_unit": 0.19}))


# --- Points Tests ---


class TestPoints:
    """Tests for penalty and boost points."""

    def test_no_penalties_for_top_signals(self, top_signals):
        total, details = calculate_penalties(top_signals)
        assert total == 0
        assert details == []

    def test_every_penalty(self, weak_signals):
        total, details = calculate_penalties(weak_signals)
        assert total == 27
        assert len(details) == 7

    def test_review_bands(self, top_signals):
        for reviews, expected in [(49, 0), (50, 1), (200, 5), (500, 9)]:
            signals = top_signals.model_copy(update={"reviews": reviews})
            assert calculate_penalties(signals)[0] == expected

    @pytest.mark.parametrize(
        "risk,expected",
        [
            (RiskClass.NO_RISK, 0),
            (RiskClass.ELECTRIC, 4),
            (RiskClass.BREAKABLE, 5),
            (RiskClass.MEDICAL, 6),
        ],
    )
    def test_risk_penalties(self, top_signals, risk, expected):
        signals = top_signals.model_copy(update={"risk": risk})
        assert calculate_penalties(signals)[0] == expected

    def test_top_boosts(self, top_signals):
        total, _ = calculate_boosts(top_signals)
        assert total == 8

    def test_margin_boost_without_ppu(self, top_signals):
        # 55% margin but PPU too low for the top band -> "good margin"
        signals = top_signals.model_copy(update={"profit_per_unit": 0.10})
        total, details = calculate_boosts(signals)
        assert total == 6
        assert any("35%+" in d for d in details)

    def test_opportunity_and_bsr_boosts(self, top_signals):
        signals = top_signals.model_copy(update={"opportunity_score": 8, "bsr": 5000})
        assert calculate_boosts(signals)[0] == 11


# --- Grading Tests ---


class TestGradeSignals:
    """Tests for full ladder grading."""

    def test_top_rung(self, top_signals):
        result = grade_signals(top_signals)

        assert result.grade == Grade.A10
        assert result.score == 108000
        assert result.breakdown.base_grade == Grade.A10
        assert result.breakdown.net_adjustment == 8
        assert not result.breakdown.gate_applied
        assert not result.disqualified

    def test_gate_demotes_to_a9(self, top_signals):
        # 48% margin still earns the +4 band but fails the 50% gate
        signals = top_signals.model_copy(update={"margin": 0.48})
        result = grade_signals(signals)

        assert result.breakdown.adjusted_grade == Grade.A10
        assert result.breakdown.gate_applied
        assert result.grade == Grade.A9
        assert result.score == 74000 + 8000

    def test_penalties_clamp_to_bottom(self, weak_signals):
        result = grade_signals(weak_signals)

        assert result.breakdown.base_grade == Grade.B6
        assert result.grade == Grade.F1
        assert result.score == -27000
        assert not result.disqualified

    def test_mixed_adjustment(self):
        """
        - Base: $5,000 -> B6
        - Penalties: 250 reviews (5)
        - Boosts: CPC <$1.00 (1), 36% margin (2), BSR <10k (1), opportunity 9 (2) = 6
        - Net +1 -> B7, score 6,000 + 1,000
        """
        signals = SignalBundle(
            monthly_profit=5000,
            price=35.00,
            margin=0.36,
            reviews=250,
            avg_cpc=0.80,
            bsr=5000,
            rating=4.2,
            opportunity_score=9,
        )
        result = grade_signals(signals)

        assert result.grade == Grade.B7
        assert result.score == 7000

    def test_disqualified_is_f1_with_zero_score(self, top_signals):
        signals = top_signals.model_copy(update={"consistency": Consistency.TRENDY})
        result = grade_signals(signals)

        assert result.grade == Grade.F1
        assert result.score == 0
        assert result.disqualified
        assert result.breakdown.penalty_points == 0

    def test_deterministic(self, top_signals):
        assert grade_signals(top_signals) == grade_signals(top_signals)


class TestMonotonicity:
    """Worse inputs never produce a better grade or score."""

    @pytest.fixture
    def mid_signals(self) -> SignalBundle:
        return SignalBundle(
            monthly_profit=50000,
            price=40.00,
            margin=0.35,
            reviews=100,
            avg_cpc=0.80,
            profit_per_unit=0.25,
        )

    def test_lower_margin_never_improves(self, mid_signals):
        margins = [0.60, 0.50, 0.45, 0.40, 0.35, 0.30, 0.25, 0.20, 0.15, 0.10]
        results = [
            grade_signals(mid_signals.model_copy(update={"margin": m})) for m in margins
        ]

        for better, worse in zip(results, results[1:]):
            assert compare_grades(worse.grade, better.grade) >= 0
            assert worse.score <= better.score

    @pytest.mark.parametrize("below,at", [(19, 20), (49, 50), (199, 200), (499, 500)])
    def test_more_reviews_never_improves(self, mid_signals, below, at):
        fewer = grade_signals(mid_signals.model_copy(update={"reviews": below}))
        more = grade_signals(mid_signals.model_copy(update={"reviews": at}))

        assert compare_grades(more.grade, fewer.grade) >= 0
        assert more.score <= fewer.score

    def test_more_profit_never_worsens(self, mid_signals):
        profits = [0, 50, 300, 2000, 5000, 12000, 50000, 74000, 100000, 250000]
        results = [
            grade_signals(mid_signals.model_copy(update={"monthly_profit": p})) for p in profits
        ]

        for lower, higher in zip(results, results[1:]):
            assert compare_grades(higher.grade, lower.grade) <= 0
            assert higher.score >= lower.score
