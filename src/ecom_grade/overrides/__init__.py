"""User overrides of product data and the effective records built from them."""

from ecom_grade.overrides.merge import (
    calculate_profit,
    merge_market_snapshot,
    merge_override,
    merge_overrides,
    overridden_fields,
)
from ecom_grade.overrides.models import (
    CLEARABLE_FIELDS,
    OVERRIDE_FIELDS,
    UNSET,
    EffectiveMarketRecord,
    EffectiveProductRecord,
    Patch,
    PatchKind,
    ProductOverride,
)
from ecom_grade.overrides.validation import (
    RESET,
    parse_override_batch,
    parse_override_payload,
    sanitize_integer,
    sanitize_number,
)

__all__ = [
    # Models
    "CLEARABLE_FIELDS",
    "EffectiveMarketRecord",
    "EffectiveProductRecord",
    "OVERRIDE_FIELDS",
    "Patch",
    "PatchKind",
    "ProductOverride",
    "UNSET",
    # Merge
    "calculate_profit",
    "merge_market_snapshot",
    "merge_override",
    "merge_overrides",
    "overridden_fields",
    # Validation
    "RESET",
    "parse_override_batch",
    "parse_override_payload",
    "sanitize_integer",
    "sanitize_number",
]
