"""Public vouch routes: approved reviews, eligibility check and submission."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from libs.db.session import get_async_db
from services.store_service.schemas import (
    EligibilityResponse,
    PublicVouchResponse,
    VouchSubmission,
    VouchSubmitResponse,
)
from services.store_service.services.vouches import (
    can_submit_vouch,
    list_approved_vouches,
    submit_customer_vouch,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["store"])


@router.get("/vouches", response_model=list[PublicVouchResponse])
async def list_public_vouches(
    limit: Optional[int] = Query(None, ge=1, le=200),
    db: AsyncSession = Depends(get_async_db),
):
    return await list_approved_vouches(db, limit=limit)


@router.get("/vouches/eligibility", response_model=EligibilityResponse)
async def check_vouch_eligibility(
    order_number: str = Query(..., min_length=1),
    email: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_async_db),
):
    eligibility = await can_submit_vouch(db, order_number, email)
    return EligibilityResponse(
        can_submit=eligibility.can_submit, reason=eligibility.reason
    )


@router.post(
    "/vouches",
    response_model=VouchSubmitResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_vouch(
    payload: VouchSubmission,
    db: AsyncSession = Depends(get_async_db),
):
    """Submit a verified-purchase review; it stays pending until moderated."""
    vouch = await submit_customer_vouch(db, **payload.model_dump())
    return VouchSubmitResponse(id=vouch.id)
