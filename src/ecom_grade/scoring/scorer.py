"""Ladder grading for product and market opportunities.

Grading steps:
1. Base grade from monthly profit (ladder threshold lookup)
2. Instant disqualifiers -> F1, score 0
3. Penalty points (competition, CPC, risk, margin, BSR, rating)
4. Boost points (CPC, margin + PPU, low competition, opportunity, BSR)
5. Shift the base grade by (boosts - penalties) rungs
6. Top-rung gate (A10 only if every requirement holds, else A9)

Score = ladder base value of the final grade + net adjustment x 1000
"""

from ecom_grade.scoring.filters import check_disqualifiers, passes_top_gate
from ecom_grade.scoring.ladder import base_grade, grade_value, shift_grade
from ecom_grade.scoring.models import (
    RISK_PENALTIES,
    TOP_GRADE,
    WORST_GRADE,
    GradeBreakdown,
    GradeResult,
    GradingConfig,
    SignalBundle,
)


def calculate_penalties(signals: SignalBundle) -> tuple[int, list[str]]:
    """Calculate penalty points for a signal bundle.

    Args:
        signals: Signals to evaluate

    Returns:
        Tuple of (total_points, detail_lines)
    """
    total = 0
    details: list[str] = []

    # --- Competition (review count bands) ---
    if signals.reviews >= 500:
        total += 9
        details.append("High competition: 500+ reviews (-9 pts)")
    elif signals.reviews >= 200:
        total += 5
        details.append("Medium competition: 200+ reviews (-5 pts)")
    elif signals.reviews >= 50:
        total += 1
        details.append("Low competition: 50+ reviews (-1 pt)")

    # --- Advertising cost ---
    if signals.avg_cpc >= 2.50:
        total += 3
        details.append("High advertising cost: $2.50+ CPC (-3 pts)")

    # --- Risk classification ---
    risk_points = RISK_PENALTIES.get(signals.risk, 0)
    if risk_points:
        total += risk_points
        details.append(f"{signals.risk.value} product risk (-{risk_points} pts)")

    # --- Margin bands (both can apply) ---
    if signals.margin < 0.25:
        total += 3
        details.append("Low margin: <25% (-3 pts)")
    if signals.margin < 0.20:
        total += 3
        details.append("Very low margin: <20% (-3 pts)")

    # --- Market fit ---
    if signals.bsr and signals.bsr > 100000:
        total += 2
        details.append("Poor BSR: >100,000 (-2 pts)")

    if signals.rating and signals.rating < 4.0:
        total += 3
        details.append("Low rating: <4.0 stars (-3 pts)")

    return total, details


def calculate_boosts(signals: SignalBundle) -> tuple[int, list[str]]:
    """Calculate boost points for a signal bundle.

    Args:
        signals: Signals to evaluate

    Returns:
        Tuple of (total_points, detail_lines)
    """
    total = 0
    details: list[str] = []

    # --- Advertising cost ---
    if signals.avg_cpc < 0.50:
        total += 2
        details.append("Low advertising cost: <$0.50 CPC (+2 pts)")
    elif signals.avg_cpc < 1.00:
        total += 1
        details.append("Moderate advertising cost: <$1.00 CPC (+1 pt)")

    # --- Margin, with profit per unit for the top band ---
    if signals.margin >= 0.45 and signals.profit_per_unit >= 0.20:
        total += 4
        details.append("Excellent margins: 45%+ margin + 20%+ PPU (+4 pts)")
    elif signals.margin >= 0.35:
        total += 2
        details.append("Good margin: 35%+ (+2 pts)")
    elif signals.margin >= 0.30:
        total += 1
        details.append("Decent margin: 30%+ (+1 pt)")

    # --- Competition ---
    if signals.reviews < 20:
        total += 2
        details.append("Very low competition: <20 reviews (+2 pts)")

    # --- Qualitative opportunity ---
    if signals.opportunity_score and signals.opportunity_score >= 8:
        total += 2
        details.append("High opportunity score: 8+ (+2 pts)")

    # --- Market fit ---
    if signals.bsr and signals.bsr < 10000:
        total += 1
        details.append("Good BSR: <10,000 (+1 pt)")

    return total, details


def grade_signals(
    signals: SignalBundle,
    config: GradingConfig | None = None,
) -> GradeResult:
    """Grade a signal bundle on the ladder.

    This is the main entry point of the grading engine. It is a pure
    function: identical bundles always produce identical results.

    Args:
        signals: Product or market signals
        config: Grading configuration

    Returns:
        GradeResult with final grade, sortable score and breakdown
    """
    if config is None:
        config = GradingConfig()

    base = base_grade(signals.monthly_profit)
    breakdown = GradeBreakdown(base_grade=base)
    breakdown.details.append(
        f"Base grade from ${signals.monthly_profit:,.0f}/month profit: {base.value}"
    )

    filter_result = check_disqualifiers(signals, config)
    if not filter_result.passed:
        breakdown.disqualifiers = filter_result.reasons
        breakdown.final_grade = WORST_GRADE
        breakdown.details.append(
            f"Instant disqualifier: {', '.join(filter_result.reasons)}"
        )
        return GradeResult(grade=WORST_GRADE, score=0, breakdown=breakdown)

    penalty_points, penalty_details = calculate_penalties(signals)
    boost_points, boost_details = calculate_boosts(signals)
    breakdown.penalty_points = penalty_points
    breakdown.boost_points = boost_points
    breakdown.details.extend(penalty_details)
    breakdown.details.extend(boost_details)

    net = breakdown.net_adjustment
    adjusted = shift_grade(base, net)
    breakdown.adjusted_grade = adjusted
    breakdown.details.append(f"Net adjustment: {net:+d} points")

    final = adjusted
    if adjusted is TOP_GRADE and not passes_top_gate(signals, config):
        final = shift_grade(adjusted, -1)
        breakdown.gate_applied = True
        breakdown.details.append(f"Top-rung gate applied: {adjusted.value} -> {final.value}")

    breakdown.final_grade = final
    score = grade_value(final) + net * 1000

    return GradeResult(grade=final, score=score, breakdown=breakdown)
