"""Market Overrides API endpoints.

Endpoints:
- POST /market-overrides - recalculate one market from its members
- GET /market-overrides - list the caller's market snapshots
- DELETE /market-overrides - delete one (?market_id=) or all snapshots
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from ecom_grade.api.deps import get_service, get_user_id
from ecom_grade.errors import AggregationError, NotFoundError
from ecom_grade.records import MarketSnapshot
from ecom_grade.services.recalculation import RecalculationService

router = APIRouter(prefix="/market-overrides", tags=["markets"])


class MarketRecalculationRequest(BaseModel):
    """Manual market recalculation request."""

    market_id: str = Field(..., min_length=1)
    override_reason: str | None = Field(None, description="Defaults to a manual recalculation note")


class MarketRecalculationResponse(BaseModel):
    """Response for a market recalculation."""

    success: bool = True
    message: str
    is_reoverride: bool
    data: MarketSnapshot


class MarketSnapshotListResponse(BaseModel):
    """Response for listing market snapshots."""

    success: bool = True
    data: list[MarketSnapshot]


class MarketDeleteResponse(BaseModel):
    """Response for deleting market snapshots."""

    success: bool = True
    message: str
    deleted: int


@router.post("", response_model=MarketRecalculationResponse)
async def recalculate_market(
    request: MarketRecalculationRequest,
    user_id: str = Depends(get_user_id),
    service: RecalculationService = Depends(get_service),
) -> MarketRecalculationResponse:
    """Recalculate a market and invalidate the caller's dashboard cache."""
    existing = await service.store.get_market_snapshot(user_id, request.market_id)

    try:
        snapshot = await service.refresh_market(
            user_id,
            request.market_id,
            request.override_reason or "Manual market recalculation",
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except AggregationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    return MarketRecalculationResponse(
        message="Market recalculated successfully",
        is_reoverride=existing is not None,
        data=snapshot,
    )


@router.get("", response_model=MarketSnapshotListResponse)
async def list_market_snapshots(
    user_id: str = Depends(get_user_id),
    service: RecalculationService = Depends(get_service),
) -> MarketSnapshotListResponse:
    """List the caller's market snapshots, most recent first."""
    return MarketSnapshotListResponse(data=await service.list_market_snapshots(user_id))


@router.delete("", response_model=MarketDeleteResponse)
async def delete_market_snapshots(
    market_id: str | None = Query(None, description="Delete only this market's snapshot"),
    user_id: str = Depends(get_user_id),
    service: RecalculationService = Depends(get_service),
) -> MarketDeleteResponse:
    """Delete one market snapshot, or all of the caller's snapshots."""
    count = await service.delete_market_snapshots(user_id, market_id)

    if market_id:
        message = "Successfully deleted market override"
    else:
        message = "Successfully deleted all market overrides for user"

    return MarketDeleteResponse(message=message, deleted=count)
