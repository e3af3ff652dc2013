"""Business logic services."""

from ecom_grade.services.recalculation import (
    BatchOverrideResult,
    MarketRecalculation,
    RecalcState,
    RecalculationService,
)

__all__ = [
    "BatchOverrideResult",
    "MarketRecalculation",
    "RecalcState",
    "RecalculationService",
]
