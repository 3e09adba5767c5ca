"""Admin vouch moderation routes."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, status
from libs.auth.dependencies import get_optional_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.store_service.schemas import (
    ManualVouchCreate,
    VouchResponse,
    VouchStatusUpdate,
)
from services.store_service.services import vouches
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["admin-store"])


@router.get("/vouches", response_model=list[VouchResponse])
async def admin_list_vouches(
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await vouches.list_all_vouches(db, current_user)


@router.post(
    "/vouches", response_model=VouchResponse, status_code=status.HTTP_201_CREATED
)
async def admin_add_vouch(
    payload: ManualVouchCreate,
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await vouches.add_manual_vouch(db, current_user, **payload.model_dump())


@router.patch("/vouches/{vouch_id}/status", response_model=VouchResponse)
async def admin_update_vouch_status(
    vouch_id: uuid.UUID,
    payload: VouchStatusUpdate,
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await vouches.update_vouch_status(
        db, current_user, vouch_id, payload.status
    )


@router.delete("/vouches/{vouch_id}", status_code=status.HTTP_204_NO_CONTENT)
async def admin_delete_vouch(
    vouch_id: uuid.UUID,
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_db),
):
    await vouches.delete_vouch(db, current_user, vouch_id)
