"""Product Overrides API endpoints.

Endpoints:
- POST /product-overrides/batch - save overrides and recalculate affected markets
- GET /product-overrides - list the caller's overrides
- DELETE /product-overrides - delete one (?product_id=) or all overrides
"""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from ecom_grade.api.deps import get_service, get_user_id
from ecom_grade.errors import NotFoundError, ValidationError
from ecom_grade.overrides.models import EffectiveProductRecord, ProductOverride
from ecom_grade.services.recalculation import RecalculationService

router = APIRouter(prefix="/product-overrides", tags=["overrides"])


class BatchOverrideRequest(BaseModel):
    """Batch of raw override payloads."""

    overrides: list[dict[str, Any]] | None = Field(
        None, description="One entry per product; product_id, asin and override_reason required"
    )


class OverrideResponse(BaseModel):
    """Stored product override."""

    id: str | None
    product_id: str
    asin: str
    override_reason: str
    notes: str | None
    fields: dict[str, Any] = Field(default_factory=dict, description="Overridden values")
    cleared_fields: list[str] = Field(default_factory=list, description="Fields reset to empty")
    created_at: datetime | None = None
    updated_at: datetime | None = None


class AffectedMarket(BaseModel):
    """Market recalculated after an override batch."""

    market_id: str
    keyword: str
    market_grade: str
    opportunity_score: int


class BatchOverrideResponse(BaseModel):
    """Response for a batch override request."""

    success: bool = True
    message: str
    overrides: list[OverrideResponse]
    updated_products: list[EffectiveProductRecord]
    market_recalculations: int
    affected_markets: list[AffectedMarket]
    failed_markets: dict[str, str] = Field(default_factory=dict)
    warning: str | None = None
    reoverride_count: int = 0
    cache_invalidated: bool = False


class OverrideListResponse(BaseModel):
    """Response for listing overrides."""

    success: bool = True
    data: list[OverrideResponse]


class DeleteResponse(BaseModel):
    """Response for delete requests."""

    success: bool = True
    message: str
    deleted: int


def to_response(override: ProductOverride) -> OverrideResponse:
    """Flatten an override's patches into set values and cleared names."""
    fields: dict[str, Any] = {}
    cleared: list[str] = []

    for name, patch in override.patches().items():
        if patch.is_set:
            fields[name] = patch.value
        elif patch.is_clear:
            cleared.append(name)

    return OverrideResponse(
        id=override.id,
        product_id=override.product_id,
        asin=override.asin,
        override_reason=override.override_reason,
        notes=override.notes,
        fields=fields,
        cleared_fields=cleared,
        created_at=override.created_at,
        updated_at=override.updated_at,
    )


@router.post("/batch", response_model=BatchOverrideResponse)
async def batch_upsert_overrides(
    request: BatchOverrideRequest,
    user_id: str = Depends(get_user_id),
    service: RecalculationService = Depends(get_service),
) -> BatchOverrideResponse:
    """Save product overrides, then recalculate every affected market.

    The overrides are saved even when market recalculation fails; the
    response then carries a warning.
    """
    try:
        result = await service.batch_upsert_overrides(user_id, request.overrides)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return BatchOverrideResponse(
        message=f"Successfully saved {len(result.overrides)} product overrides",
        overrides=[to_response(o) for o in result.overrides],
        updated_products=result.products,
        market_recalculations=len(result.snapshots),
        affected_markets=[
            AffectedMarket(
                market_id=s.market_id,
                keyword=s.keyword,
                market_grade=s.market_grade.value,
                opportunity_score=s.opportunity_score,
            )
            for s in result.snapshots
        ],
        failed_markets=result.failures,
        warning=result.warning,
        reoverride_count=result.reoverride_count,
        cache_invalidated=result.cache_invalidated,
    )


@router.get("", response_model=OverrideListResponse)
async def list_overrides(
    user_id: str = Depends(get_user_id),
    service: RecalculationService = Depends(get_service),
) -> OverrideListResponse:
    """List the caller's overrides, most recently updated first."""
    overrides = await service.list_overrides(user_id)
    return OverrideListResponse(data=[to_response(o) for o in overrides])


@router.delete("", response_model=DeleteResponse)
async def delete_overrides(
    product_id: str | None = Query(None, description="Delete only this product's override"),
    user_id: str = Depends(get_user_id),
    service: RecalculationService = Depends(get_service),
) -> DeleteResponse:
    """Delete one override, or all of the caller's overrides."""
    removed = await service.delete_overrides(user_id, product_id)

    if product_id:
        message = "Successfully deleted product override"
    else:
        message = "Successfully deleted all overrides for user"

    return DeleteResponse(message=message, deleted=len(removed))
