"""Grade ladder arithmetic.

The ladder runs best to worst:
    A10 ... A1, B10 ... B1, C10 ... C1, D10 ... D1, F1

Index 0 is the best rung. Moving "up" the ladder means a lower index.
"""

from typing import Optional, Union

from ecom_grade.scoring.models import GRADE_THRESHOLDS, Grade

GRADE_LADDER: list[Grade] = list(Grade)


def parse_grade(value: Union[str, Grade, None]) -> Optional[Grade]:
    """Convert a stored grade string to a ladder rung, None if unknown."""
    if value is None or isinstance(value, Grade):
        return value
    try:
        return Grade(value.strip().upper())
    except ValueError:
        return None


def grade_index(grade: Union[str, Grade]) -> int:
    """Position of a rung on the ladder (0 = best).

    Raises:
        ValueError: If the grade is not a ladder rung.
    """
    rung = parse_grade(grade)
    if rung is None:
        raise ValueError(f"Unknown grade: {grade!r}")
    return GRADE_LADDER.index(rung)


def base_grade(monthly_profit: float) -> Grade:
    """Highest rung whose profit threshold is met."""
    for grade, threshold in GRADE_THRESHOLDS.items():
        if monthly_profit >= threshold:
            return grade
    return Grade.F1


def shift_grade(grade: Grade, steps: int) -> Grade:
    """Move a grade `steps` rungs toward the top (negative = toward the bottom).

    Clamped to the ladder bounds.
    """
    index = GRADE_LADDER.index(grade) - steps
    index = max(0, min(len(GRADE_LADDER) - 1, index))
    return GRADE_LADDER[index]


def grade_value(grade: Grade) -> int:
    """Ladder base value used for the numeric score."""
    return GRADE_THRESHOLDS[grade]


def compare_grades(grade_a: Union[str, Grade, None], grade_b: Union[str, Grade, None]) -> int:
    """Compare two grades.

    Returns negative if grade_a is better, positive if grade_b is better,
    0 if equal. Unknown grades sort after every ladder rung.
    """
    rung_a = parse_grade(grade_a)
    rung_b = parse_grade(grade_b)

    if rung_a is None and rung_b is None:
        return 0
    if rung_a is None:
        return 1
    if rung_b is None:
        return -1

    return GRADE_LADDER.index(rung_a) - GRADE_LADDER.index(rung_b)


def is_grade_at_least(grade: Union[str, Grade, None], minimum: Union[str, Grade]) -> bool:
    """Whether a grade is equal to or better than the minimum grade."""
    if parse_grade(grade) is None:
        return False
    return compare_grades(grade, minimum) <= 0


def grade_description(grade: Union[str, Grade, None]) -> str:
    """Human-readable label for a grade family."""
    rung = parse_grade(grade)
    if rung is None or rung is Grade.F1:
        return "Not Recommended"

    family = rung.value[0]
    return {
        "A": "Excellent Opportunity",
        "B": "Good Opportunity",
        "C": "Fair Opportunity",
        "D": "Poor Opportunity",
    }[family]
