"""Customer order routes: order history and public order tracking."""

from fastapi import APIRouter, Depends, HTTPException, Query
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.datetime_utils import ensure_utc
from libs.common.errors import NotFound
from libs.db.session import get_async_db
from services.store_service.schemas import (
    CustomerOrderResponse,
    OrderTrackingResponse,
)
from services.store_service.services.lifecycle import (
    label_for_status,
    progress_for_status,
)
from services.store_service.services.order_store import (
    ORDER_NOT_FOUND,
    find_order_by_order_id,
    list_orders_by_email,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["store"])


@router.get("/orders/my", response_model=list[CustomerOrderResponse])
async def list_my_orders(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Orders placed with the signed-in customer's e-mail, newest first."""
    if not current_user.email:
        raise HTTPException(status_code=400, detail="Account has no email address")
    return await list_orders_by_email(db, current_user.email)


@router.get("/orders/track", response_model=OrderTrackingResponse)
async def track_order(
    order_id: str = Query(..., min_length=1),
    email: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_async_db),
):
    """Read-only progress view; needs the order id and the buyer's e-mail."""
    order = await find_order_by_order_id(db, order_id.strip())
    # Same answer for unknown ids and wrong e-mails
    if order is None or order.buyer_email.lower() != email.strip().lower():
        raise NotFound(ORDER_NOT_FOUND)

    return OrderTrackingResponse(
        order_id=order.order_id,
        product=order.product,
        status=order.status,
        status_label=label_for_status(order.status),
        progress=progress_for_status(order.status),
        is_express=order.is_express,
        queue_position=order.queue_position,
        estimated_delivery_time=ensure_utc(order.estimated_delivery_time),
        delivered_at=ensure_utc(order.delivered_at),
    )
