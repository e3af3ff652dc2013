"""Instant disqualifiers and the top-rung gate.

Signals that trip a disqualifier skip ladder scoring entirely and land
on the worst rung with a score of zero.
"""

from dataclasses import dataclass, field

from ecom_grade.scoring.models import (
    Consistency,
    GradingConfig,
    RiskClass,
    SignalBundle,
)


@dataclass
class FilterResult:
    """Result of checking a signal bundle for disqualifiers."""

    passed: bool
    reasons: list[str] = field(default_factory=list)

    def add_rejection(self, reason: str) -> None:
        """Add a disqualifier reason."""
        self.passed = False
        self.reasons.append(reason)


def check_disqualifiers(
    signals: SignalBundle,
    config: GradingConfig | None = None,
) -> FilterResult:
    """Check every instant disqualifier.

    - Price below the floor
    - Margin below the floor
    - Banned risk classification
    - Trend-only demand

    Args:
        signals: Signal bundle to evaluate
        config: Grading configuration (uses defaults if None)

    Returns:
        FilterResult listing every disqualifier that applies
    """
    if config is None:
        config = GradingConfig()

    result = FilterResult(passed=True)

    if signals.price < config.min_price:
        result.add_rejection(
            f"Price ${signals.price:.2f} below ${config.min_price:.2f}"
        )

    if signals.margin < config.min_margin:
        result.add_rejection(
            f"Margin {signals.margin:.1%} below {config.min_margin:.1%}"
        )

    if signals.risk is RiskClass.BANNED:
        result.add_rejection("Prohibited product")

    if signals.consistency is Consistency.TRENDY:
        result.add_rejection("Risky consistency pattern (trend-only demand)")

    return result


def passes_top_gate(
    signals: SignalBundle,
    config: GradingConfig | None = None,
) -> bool:
    """Whether the bundle may hold the single best rung.

    All requirements must hold at once; any miss demotes one rung.
    """
    if config is None:
        config = GradingConfig()

    requirements = [
        signals.monthly_profit >= config.top_min_profit,
        signals.reviews < config.top_max_reviews,
        signals.avg_cpc < config.top_max_cpc,
        signals.margin >= config.top_min_margin,
        signals.profit_per_unit >= config.top_min_ppu,
    ]
    return all(requirements)
