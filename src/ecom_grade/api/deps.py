"""Request-scoped dependencies."""

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from ecom_grade.cache import CacheService, get_cache
from ecom_grade.config import get_settings
from ecom_grade.db.base import get_db
from ecom_grade.db.store import RecordStore
from ecom_grade.services.recalculation import RecalculationService


async def get_user_id(x_user_id: str | None = Header(None)) -> str:
    """Authenticated caller, resolved upstream and passed in the X-User-Id header."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized - please login",
        )
    return x_user_id.strip()


async def get_service(
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
) -> RecalculationService:
    """Recalculation service bound to the request's session."""
    return RecalculationService(RecordStore(db), cache, get_settings())
