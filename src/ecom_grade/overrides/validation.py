"""Validation and sanitization of raw override payloads.

Raw payloads come from the transport layer as plain dicts. Sanitization
rules per field:

- absent, null, empty or non-numeric numeric values -> UNSET (never zero)
- integer fields are truncated toward zero
- the RESET sentinel -> CLEAR, accepted on nullable fields only
- out-of-range numbers and unknown enum values -> ValidationError
"""

import logging
import math
from typing import Any, Iterable, Optional

from ecom_grade.errors import ValidationError
from ecom_grade.overrides.models import (
    CLEARABLE_FIELDS,
    UNSET,
    Patch,
    ProductOverride,
)
from ecom_grade.records import KeywordSignal
from ecom_grade.scoring.ladder import parse_grade
from ecom_grade.scoring.models import Consistency, RiskClass

logger = logging.getLogger(__name__)

RESET = "__reset__"

# Legacy payload names still sent by older clients
FIELD_ALIASES: dict[str, str] = {
    "profit_estimate": "monthly_profit",
    "profit_per_unit_after_launch": "profit_per_unit",
    "risk_classification": "risk",
    "consistency_rating": "consistency",
}

STRING_FIELDS: tuple[str, ...] = ("title", "brand")

INTEGER_FIELDS: tuple[str, ...] = ("bsr", "reviews", "monthly_sales", "variations")

FLOAT_FIELDS: tuple[str, ...] = (
    "price",
    "rating",
    "monthly_revenue",
    "monthly_profit",
    "cogs",
    "margin",
    "profit_per_unit",
    "daily_revenue",
    "launch_budget",
    "fulfillment_fees",
    "weight",
    "avg_cpc",
    "opportunity_score",
)

NON_NEGATIVE_FIELDS: frozenset[str] = frozenset(
    {
        "price",
        "bsr",
        "reviews",
        "monthly_sales",
        "monthly_revenue",
        "cogs",
        "daily_revenue",
        "launch_budget",
        "fulfillment_fees",
        "variations",
        "weight",
        "avg_cpc",
    }
)

FIELD_RANGES: dict[str, tuple[float, float]] = {
    "rating": (0.0, 5.0),
    "opportunity_score": (0.0, 10.0),
}


def sanitize_number(value: Any) -> Optional[float]:
    """Coerce a raw value to a finite float, None if it is not numeric."""
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None

    if not math.isfinite(number):
        return None
    return number


def sanitize_integer(value: Any) -> Optional[int]:
    """Coerce a raw value to an int (truncated), None if it is not numeric."""
    number = sanitize_number(value)
    if number is None:
        return None
    return int(number)


def _is_reset(value: Any) -> bool:
    return isinstance(value, str) and value.strip() == RESET


def _check_range(name: str, number: float, index: Optional[int]) -> None:
    if name in NON_NEGATIVE_FIELDS and number < 0:
        raise ValidationError(f"Field '{name}' must not be negative", field=name, index=index)

    bounds = FIELD_RANGES.get(name)
    if bounds and not bounds[0] <= number <= bounds[1]:
        raise ValidationError(
            f"Field '{name}' must be between {bounds[0]:g} and {bounds[1]:g}",
            field=name,
            index=index,
        )


def _parse_field(name: str, raw: Any, index: Optional[int]) -> Patch[Any]:
    """Turn one raw field value into a Patch."""
    if _is_reset(raw):
        if name not in CLEARABLE_FIELDS:
            raise ValidationError(f"Field '{name}' cannot be reset", field=name, index=index)
        return Patch.clear()

    if name in STRING_FIELDS:
        if raw is None:
            return UNSET
        if not isinstance(raw, str):
            raise ValidationError(f"Field '{name}' must be a string", field=name, index=index)
        text = raw.strip()
        return Patch.of(text) if text else UNSET

    if name in INTEGER_FIELDS:
        number = sanitize_integer(raw)
        if number is None:
            return UNSET
        _check_range(name, number, index)
        return Patch.of(number)

    if name in FLOAT_FIELDS:
        number = sanitize_number(raw)
        if number is None:
            return UNSET
        _check_range(name, number, index)
        return Patch.of(number)

    if raw is None or raw == "":
        return UNSET

    if name == "risk":
        try:
            return Patch.of(RiskClass(raw))
        except ValueError:
            raise ValidationError(
                f"Invalid risk classification: {raw!r}", field=name, index=index
            ) from None

    if name == "consistency":
        try:
            return Patch.of(Consistency(raw))
        except ValueError:
            raise ValidationError(
                f"Invalid consistency rating: {raw!r}", field=name, index=index
            ) from None

    if name == "grade":
        grade = parse_grade(raw) if isinstance(raw, str) else None
        if grade is None:
            raise ValidationError(f"Invalid grade: {raw!r}", field=name, index=index)
        return Patch.of(grade)

    if name == "keywords":
        if not isinstance(raw, list):
            raise ValidationError("Field 'keywords' must be a list", field=name, index=index)
        try:
            return Patch.of([KeywordSignal.model_validate(item) for item in raw])
        except ValueError as e:
            raise ValidationError(
                f"Invalid keyword entry: {e}", field=name, index=index
            ) from None

    raise ValidationError(f"Unknown override field '{name}'", field=name, index=index)


def _required_string(payload: dict[str, Any], name: str, index: Optional[int]) -> str:
    value = payload.get(name)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Missing required field '{name}'", field=name, index=index)
    return value.strip()


def parse_override_payload(
    payload: dict[str, Any],
    user_id: str,
    index: Optional[int] = None,
) -> ProductOverride:
    """Validate one raw override payload.

    Any user_id carried by the payload is ignored: ownership always comes
    from the authenticated caller.

    Args:
        payload: Raw override fields as sent by the client
        user_id: Authenticated caller
        index: Position in the batch (for error reporting)

    Returns:
        Sanitized ProductOverride

    Raises:
        ValidationError: On missing required fields or invalid values
    """
    if not isinstance(payload, dict):
        raise ValidationError("Override must be an object", index=index)

    product_id = _required_string(payload, "product_id", index)
    asin = _required_string(payload, "asin", index)
    reason = _required_string(payload, "override_reason", index)

    notes = payload.get("notes")
    if notes is not None and not isinstance(notes, str):
        raise ValidationError("Field 'notes' must be a string", field="notes", index=index)

    patches: dict[str, Patch[Any]] = {}
    for key, raw in payload.items():
        if key in ("product_id", "asin", "override_reason", "notes", "user_id", "id"):
            continue
        name = FIELD_ALIASES.get(key, key)
        patch = _parse_field(name, raw, index)
        if not patch.is_unset:
            patches[name] = patch

    return ProductOverride(
        user_id=user_id,
        product_id=product_id,
        asin=asin,
        override_reason=reason,
        notes=notes or None,
        **patches,
    )


def parse_override_batch(
    payloads: Iterable[dict[str, Any]],
    user_id: str,
) -> list[ProductOverride]:
    """Validate a batch of override payloads.

    The whole batch is rejected if any entry is invalid. Duplicate product
    ids collapse to the last entry.

    Raises:
        ValidationError: If the batch is empty or any entry is invalid
    """
    if payloads is None or isinstance(payloads, (str, bytes, dict)):
        raise ValidationError("Invalid overrides data")

    parsed = [
        parse_override_payload(payload, user_id, index)
        for index, payload in enumerate(payloads)
    ]
    if not parsed:
        raise ValidationError("Invalid overrides data: batch is empty")

    by_product: dict[str, ProductOverride] = {}
    for override in parsed:
        by_product.pop(override.product_id, None)
        by_product[override.product_id] = override

    if len(by_product) < len(parsed):
        logger.info(
            f"Collapsed {len(parsed) - len(by_product)} duplicate overrides in batch "
            f"for user {user_id}"
        )

    return list(by_product.values())
