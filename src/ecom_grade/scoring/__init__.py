"""Opportunity grading module."""

from ecom_grade.scoring.filters import FilterResult, check_disqualifiers, passes_top_gate
from ecom_grade.scoring.ladder import (
    GRADE_LADDER,
    base_grade,
    compare_grades,
    grade_description,
    grade_index,
    is_grade_at_least,
    parse_grade,
    shift_grade,
)
from ecom_grade.scoring.models import (
    GRADE_THRESHOLDS,
    Consistency,
    Grade,
    GradeBreakdown,
    GradeResult,
    GradingConfig,
    RiskClass,
    SignalBundle,
)
from ecom_grade.scoring.scorer import calculate_boosts, calculate_penalties, grade_signals

__all__ = [
    # Models
    "Consistency",
    "Grade",
    "GradeBreakdown",
    "GradeResult",
    "GradingConfig",
    "GRADE_THRESHOLDS",
    "RiskClass",
    "SignalBundle",
    # Ladder
    "GRADE_LADDER",
    "base_grade",
    "compare_grades",
    "grade_description",
    "grade_index",
    "is_grade_at_least",
    "parse_grade",
    "shift_grade",
    # Filters
    "FilterResult",
    "check_disqualifiers",
    "passes_top_gate",
    # Scorer
    "calculate_boosts",
    "calculate_penalties",
    "grade_signals",
]
