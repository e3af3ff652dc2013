"""Sparse user overrides and the effective records built from them.

Every overridable field carries a Patch instead of a bare optional value:

    Patch()            -> UNSET, keep the base value
    Patch.clear()      -> CLEAR, replace the base value with None
    Patch.of(value)    -> SET, replace the base value with `value`

so "no override" and "explicitly cleared" are never confused.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

from pydantic import Field

from ecom_grade.errors import ValidationError
from ecom_grade.records import KeywordSignal, MarketRecord, ProductRecord
from ecom_grade.scoring.models import Consistency, Grade, GradeBreakdown, RiskClass

T = TypeVar("T")


class PatchKind(str, Enum):
    """State of a single override field."""

    UNSET = "unset"
    CLEAR = "clear"
    SET = "set"


@dataclass(frozen=True)
class Patch(Generic[T]):
    """Override value for one field."""

    kind: PatchKind = PatchKind.UNSET
    value: Optional[T] = None

    @classmethod
    def of(cls, value: T) -> "Patch[T]":
        """Replace the base value."""
        return cls(PatchKind.SET, value)

    @classmethod
    def clear(cls) -> "Patch[T]":
        """Replace the base value with None."""
        return cls(PatchKind.CLEAR)

    @property
    def is_unset(self) -> bool:
        return self.kind is PatchKind.UNSET

    @property
    def is_set(self) -> bool:
        return self.kind is PatchKind.SET

    @property
    def is_clear(self) -> bool:
        return self.kind is PatchKind.CLEAR

    def apply(self, base: Any) -> Any:
        """Coalesce with a base value."""
        if self.kind is PatchKind.UNSET:
            return base
        if self.kind is PatchKind.CLEAR:
            return None
        return self.value


UNSET: Patch[Any] = Patch()

# Fields that may be cleared back to None. Everything else is required on
# ProductRecord, so only SET or UNSET makes sense for it.
CLEARABLE_FIELDS: frozenset[str] = frozenset(
    {
        "brand",
        "bsr",
        "rating",
        "monthly_profit",
        "cogs",
        "profit_per_unit",
        "daily_revenue",
        "launch_budget",
        "fulfillment_fees",
        "variations",
        "weight",
        "avg_cpc",
        "opportunity_score",
        "grade",
    }
)


@dataclass
class ProductOverride:
    """User override of a product, unique per (user_id, product_id)."""

    user_id: str
    product_id: str
    asin: str
    override_reason: str
    notes: Optional[str] = None
    id: Optional[str] = None

    # Descriptive
    title: Patch[str] = UNSET
    brand: Patch[str] = UNSET
    price: Patch[float] = UNSET

    # Market fit
    bsr: Patch[int] = UNSET
    reviews: Patch[int] = UNSET
    rating: Patch[float] = UNSET

    # Sales signals. monthly_profit is only a fallback: effective profit is
    # recomputed from revenue and margin whenever both are known.
    monthly_sales: Patch[int] = UNSET
    monthly_revenue: Patch[float] = UNSET
    monthly_profit: Patch[float] = UNSET
    cogs: Patch[float] = UNSET
    margin: Patch[float] = UNSET
    profit_per_unit: Patch[float] = UNSET

    # Launch metrics
    daily_revenue: Patch[float] = UNSET
    launch_budget: Patch[float] = UNSET
    fulfillment_fees: Patch[float] = UNSET
    variations: Patch[int] = UNSET
    weight: Patch[float] = UNSET

    # Advertising cost. Replaces the keyword-derived average, keywords stay.
    avg_cpc: Patch[float] = UNSET

    # Qualitative analysis
    risk: Patch[RiskClass] = UNSET
    consistency: Patch[Consistency] = UNSET
    opportunity_score: Patch[float] = UNSET

    keywords: Patch[list[KeywordSignal]] = UNSET
    grade: Patch[Grade] = UNSET

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        for name, patch in self.patches().items():
            if patch.is_clear and name not in CLEARABLE_FIELDS:
                raise ValidationError(f"Field '{name}' cannot be cleared", field=name)

    def patches(self) -> dict[str, Patch[Any]]:
        """All override fields with their patches."""
        return {name: getattr(self, name) for name in OVERRIDE_FIELDS}

    def active_fields(self) -> list[str]:
        """Names of fields the override sets or clears."""
        return [name for name, patch in self.patches().items() if not patch.is_unset]

    @property
    def is_empty(self) -> bool:
        return not self.active_fields()


OVERRIDE_FIELDS: tuple[str, ...] = (
    "title",
    "brand",
    "price",
    "bsr",
    "reviews",
    "rating",
    "monthly_sales",
    "monthly_revenue",
    "monthly_profit",
    "cogs",
    "margin",
    "profit_per_unit",
    "daily_revenue",
    "launch_budget",
    "fulfillment_fees",
    "variations",
    "weight",
    "avg_cpc",
    "risk",
    "consistency",
    "opportunity_score",
    "keywords",
    "grade",
)


class EffectiveProductRecord(ProductRecord):
    """Product values after applying a user override. Never persisted."""

    has_override: bool = False
    overridden_fields: list[str] = Field(default_factory=list)
    override_id: Optional[str] = None
    override_reason: Optional[str] = None
    cpc_override: Optional[float] = None
    grade_breakdown: Optional[GradeBreakdown] = None

    # The ProductOverride that produced this record
    override: Any = Field(None, exclude=True, repr=False)

    def average_cpc(self) -> float:
        if self.cpc_override is not None:
            return self.cpc_override
        return super().average_cpc()


class EffectiveMarketRecord(MarketRecord):
    """Market values with the latest recalculation snapshot applied."""

    has_override: bool = False
    override_reason: Optional[str] = None
    recalculated_at: Optional[datetime] = None
