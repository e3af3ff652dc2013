"""Data models for opportunity grading."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class Grade(str, Enum):
    """Grade ladder rungs, best first."""

    A10 = "A10"
    A9 = "A9"
    A8 = "A8"
    A7 = "A7"
    A6 = "A6"
    A5 = "A5"
    A4 = "A4"
    A3 = "A3"
    A2 = "A2"
    A1 = "A1"
    B10 = "B10"
    B9 = "B9"
    B8 = "B8"
    B7 = "B7"
    B6 = "B6"
    B5 = "B5"
    B4 = "B4"
    B3 = "B3"
    B2 = "B2"
    B1 = "B1"
    C10 = "C10"
    C9 = "C9"
    C8 = "C8"
    C7 = "C7"
    C6 = "C6"
    C5 = "C5"
    C4 = "C4"
    C3 = "C3"
    C2 = "C2"
    C1 = "C1"
    D10 = "D10"
    D9 = "D9"
    D8 = "D8"
    D7 = "D7"
    D6 = "D6"
    D5 = "D5"
    D4 = "D4"
    D3 = "D3"
    D2 = "D2"
    D1 = "D1"
    F1 = "F1"


# Minimum monthly profit (USD) for each rung, strictly descending
GRADE_THRESHOLDS: dict[Grade, int] = {
    Grade.A10: 100000,
    Grade.A9: 74000,
    Grade.A8: 62000,
    Grade.A7: 50000,
    Grade.A6: 40000,
    Grade.A5: 32000,
    Grade.A4: 26000,
    Grade.A3: 20000,
    Grade.A2: 16000,
    Grade.A1: 12000,
    Grade.B10: 10000,
    Grade.B9: 8500,
    Grade.B8: 7000,
    Grade.B7: 6000,
    Grade.B6: 5000,
    Grade.B5: 4200,
    Grade.B4: 3500,
    Grade.B3: 3000,
    Grade.B2: 2500,
    Grade.B1: 2000,
    Grade.C10: 1700,
    Grade.C9: 1400,
    Grade.C8: 1200,
    Grade.C7: 1000,
    Grade.C6: 850,
    Grade.C5: 700,
    Grade.C4: 600,
    Grade.C3: 500,
    Grade.C2: 400,
    Grade.C1: 300,
    Grade.D10: 250,
    Grade.D9: 200,
    Grade.D8: 170,
    Grade.D7: 140,
    Grade.D6: 120,
    Grade.D5: 100,
    Grade.D4: 85,
    Grade.D3: 70,
    Grade.D2: 60,
    Grade.D1: 50,
    Grade.F1: 0,
}

TOP_GRADE = Grade.A10
WORST_GRADE = Grade.F1


class RiskClass(str, Enum):
    """Qualitative product risk classification."""

    NO_RISK = "No Risk"
    ELECTRIC = "Electric"
    BREAKABLE = "Breakable"
    MEDICAL = "Medical"
    BANNED = "Banned"

    # Market level, when no member carries a classification
    UNKNOWN = "Unknown"


# Ladder penalty points by risk classification
RISK_PENALTIES: dict[RiskClass, int] = {
    RiskClass.ELECTRIC: 4,
    RiskClass.BREAKABLE: 5,
    RiskClass.MEDICAL: 6,
}


class Consistency(str, Enum):
    """Demand consistency classification."""

    # Product level
    CONSISTENT = "Consistent"
    SEASONAL = "Seasonal"
    TRENDY = "Trendy"  # trend-only demand, disqualifying

    # Market level, derived from grade spread among members
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"
    VARIABLE = "Variable"


class SignalBundle(BaseModel):
    """Input signals for grading a product or a market."""

    monthly_profit: float = Field(..., description="Estimated monthly profit (USD)")
    price: float = Field(..., description="Selling price (USD)")
    margin: float = Field(..., description="Profit margin as decimal (0.30 = 30%)")
    reviews: float = Field(..., ge=0, description="Review count (competition proxy)")
    avg_cpc: float = Field(0.0, ge=0, description="Average keyword cost-per-click (USD)")
    risk: RiskClass = Field(RiskClass.NO_RISK, description="Risk classification")
    consistency: Consistency = Field(
        Consistency.CONSISTENT, description="Demand consistency classification"
    )
    profit_per_unit: float = Field(0.0, description="Profit per unit after launch")

    # Optional market-fit signals
    bsr: Optional[float] = Field(None, description="Best-seller rank")
    rating: Optional[float] = Field(None, ge=0, le=5, description="Average star rating")
    opportunity_score: Optional[float] = Field(
        None, ge=0, le=10, description="Qualitative opportunity score (0-10)"
    )


class GradingConfig(BaseModel):
    """Thresholds for disqualifiers and the top-rung gate."""

    # Instant disqualifiers
    min_price: float = Field(25.0, description="Disqualify if price < this")
    min_margin: float = Field(0.15, description="Disqualify if margin < this")

    # Top-rung gate
    top_min_profit: float = Field(100000.0, description="Top rung needs profit >= this")
    top_max_reviews: float = Field(50, description="Top rung needs reviews < this")
    top_max_cpc: float = Field(0.50, description="Top rung needs CPC < this")
    top_min_margin: float = Field(0.50, description="Top rung needs margin >= this")
    top_min_ppu: float = Field(0.20, description="Top rung needs profit per unit >= this")


class GradeBreakdown(BaseModel):
    """Audit trail of every rule that fired while grading."""

    base_grade: Grade
    penalty_points: int = 0
    boost_points: int = 0
    disqualifiers: list[str] = Field(default_factory=list)
    adjusted_grade: Optional[Grade] = None
    gate_applied: bool = False
    final_grade: Optional[Grade] = None
    details: list[str] = Field(default_factory=list)

    @property
    def net_adjustment(self) -> int:
        """Boosts minus penalties."""
        return self.boost_points - self.penalty_points


class GradeResult(BaseModel):
    """Final grade and sortable score."""

    grade: Grade
    score: float = Field(..., description="Ladder base value + net adjustment x 1000")
    breakdown: GradeBreakdown

    @property
    def disqualified(self) -> bool:
        return bool(self.breakdown.disqualifiers)
