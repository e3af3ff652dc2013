"""Error taxonomy shared by the grading, merge and recalculation layers."""

from typing import Optional


class GradingError(Exception):
    """Base class for all ecom-grade errors."""


class ValidationError(GradingError):
    """Override payload rejected before anything was persisted."""

    def __init__(self, message: str, field: Optional[str] = None, index: Optional[int] = None):
        super().__init__(message)
        self.field = field
        self.index = index


class NotFoundError(GradingError):
    """Referenced product or market is missing or owned by another user."""

    def __init__(self, message: str, resource: str = "", resource_id: str = ""):
        super().__init__(message)
        self.resource = resource
        self.resource_id = resource_id


class AggregationError(GradingError):
    """Market has no valid (verified, priced) members to aggregate."""

    def __init__(self, message: str, market_id: Optional[str] = None):
        super().__init__(message)
        self.market_id = market_id


class RecalculationFailure(GradingError):
    """Recalculation broke after the override write had already committed.

    Never surfaced as a failure of the override write itself.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class CacheInconsistency(GradingError):
    """Cache key still present after delete and one retry. Logged only."""

    def __init__(self, key: str):
        super().__init__(f"Cache key {key!r} still present after delete retry")
        self.key = key
