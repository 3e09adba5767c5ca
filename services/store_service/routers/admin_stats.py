"""Admin dashboard statistics routes."""

from typing import Optional

from fastapi import APIRouter, Depends
from libs.auth.dependencies import get_optional_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.store_service.schemas import RevenueSummary
from services.store_service.services.reporting import (
    get_revenue_summary,
    get_status_counts,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["admin-store"])


@router.get("/stats/status-counts", response_model=dict[str, int])
async def admin_status_counts(
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await get_status_counts(db, current_user)


@router.get("/stats/revenue", response_model=RevenueSummary)
async def admin_revenue_summary(
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await get_revenue_summary(db, current_user)
