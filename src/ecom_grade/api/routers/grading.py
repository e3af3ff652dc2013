"""Grading API endpoint.

Endpoints:
- POST /grade - grade a raw signal bundle
"""

from fastapi import APIRouter
from pydantic import BaseModel, Field

from ecom_grade.scoring import GradeBreakdown, GradingConfig, SignalBundle, grade_signals
from ecom_grade.scoring.ladder import grade_description

router = APIRouter(tags=["grading"])


class GradeRequest(BaseModel):
    """Signals to grade, with optional threshold overrides."""

    signals: SignalBundle
    config: GradingConfig | None = None


class GradeResponse(BaseModel):
    """Grade with its audit trail."""

    grade: str
    score: float = Field(..., description="Sortable score")
    description: str
    disqualified: bool
    breakdown: GradeBreakdown


@router.post("/grade", response_model=GradeResponse)
async def grade(request: GradeRequest) -> GradeResponse:
    """Grade a signal bundle on the ladder. Pure, nothing is stored."""
    result = grade_signals(request.signals, request.config)

    return GradeResponse(
        grade=result.grade.value,
        score=result.score,
        description=grade_description(result.grade),
        disqualified=result.disqualified,
        breakdown=result.breakdown,
    )
