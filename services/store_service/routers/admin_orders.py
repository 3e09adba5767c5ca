"""Admin order routes: listing, search, the fulfilment queue and the lifecycle."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from libs.auth.dependencies import get_optional_user
from libs.auth.models import AuthUser
from libs.common.emails.dispatcher import (
    NotificationDispatcher,
    get_notification_dispatcher,
)
from libs.db.session import get_async_db
from services.store_service.models import DeliveryType, OrderStatus
from services.store_service.schemas import (
    ActionResponse,
    DeliveryRequest,
    DeliveryTypeUpdate,
    ExpressUpdate,
    LifecycleResponse,
    NotesUpdate,
    NotificationResult,
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdate,
    QueuePositionUpdate,
    ResendActionRequest,
)
from services.store_service.services import lifecycle
from services.store_service.services.identity import require_admin
from services.store_service.services.order_store import (
    get_order_by_order_id,
    list_active_orders,
    list_orders,
    list_recent_orders,
    search_orders,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["admin-store"])


def _lifecycle_response(result: lifecycle.LifecycleResult) -> LifecycleResponse:
    notification = None
    if result.notification is not None:
        notification = NotificationResult(
            success=result.notification.success, error=result.notification.error
        )
    return LifecycleResponse(
        order=OrderResponse.model_validate(result.order), notification=notification
    )


# ============================================================================
# LISTING
# ============================================================================


@router.get("/orders", response_model=OrderListResponse)
async def admin_list_orders(
    status: Optional[OrderStatus] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_db),
):
    await require_admin(db, current_user)
    orders, total = await list_orders(db, status=status, page=page, page_size=page_size)
    return OrderListResponse(
        orders=[OrderResponse.model_validate(o) for o in orders],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/orders/search", response_model=list[OrderResponse])
async def admin_search_orders(
    q: str = Query(..., min_length=1),
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Search by buyer e-mail (terms containing @) or by order id."""
    await require_admin(db, current_user)
    return await search_orders(db, q)


@router.get("/orders/recent", response_model=list[OrderResponse])
async def admin_recent_orders(
    limit: int = Query(5, ge=1, le=50),
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_db),
):
    await require_admin(db, current_user)
    return await list_recent_orders(db, limit=limit)


@router.get("/orders/active", response_model=list[OrderResponse])
async def admin_active_orders(
    delivery_type: Optional[DeliveryType] = None,
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_db),
):
    """The fulfilment queue: queued and in-progress orders by queue position."""
    await require_admin(db, current_user)
    return await list_active_orders(db, delivery_type=delivery_type)


@router.get("/orders/{order_id}", response_model=OrderResponse)
async def admin_get_order(
    order_id: str,
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_db),
):
    await require_admin(db, current_user)
    return await get_order_by_order_id(db, order_id)


# ============================================================================
# LIFECYCLE
# ============================================================================


@router.post("/orders/{order_id}/deliver", response_model=LifecycleResponse)
async def admin_deliver_order(
    order_id: str,
    payload: DeliveryRequest,
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_db),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    """Record the delivery value and e-mail it to the buyer.

    The order stays delivered even when the e-mail fails; check
    ``notification.success``.
    """
    result = await lifecycle.record_delivery(
        db, current_user, order_id, payload.delivery_value, dispatcher
    )
    return _lifecycle_response(result)


@router.patch("/orders/{order_id}/status", response_model=LifecycleResponse)
async def admin_change_order_status(
    order_id: str,
    payload: OrderStatusUpdate,
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_db),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    result = await lifecycle.change_status(
        db,
        current_user,
        order_id,
        payload.status,
        dispatcher,
        admin_notes=payload.admin_notes,
        delivery_value=payload.delivery_value,
        message=payload.message,
    )
    return _lifecycle_response(result)


@router.post("/orders/{order_id}/resend", response_model=LifecycleResponse)
async def admin_resend_order_email(
    order_id: str,
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_db),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    result = await lifecycle.resend_notification(db, current_user, order_id, dispatcher)
    return _lifecycle_response(result)


@router.patch("/orders/{order_id}/express", response_model=OrderResponse)
async def admin_set_express(
    order_id: str,
    payload: ExpressUpdate,
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await lifecycle.set_express(db, current_user, order_id, payload.is_express)


@router.patch("/orders/{order_id}/notes", response_model=OrderResponse)
async def admin_update_notes(
    order_id: str,
    payload: NotesUpdate,
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await lifecycle.add_admin_notes(
        db, current_user, order_id, payload.admin_notes
    )


# ============================================================================
# QUEUE MANAGEMENT
# ============================================================================


@router.patch("/orders/{order_id}/queue-position", response_model=OrderResponse)
async def admin_update_queue_position(
    order_id: str,
    payload: QueuePositionUpdate,
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await lifecycle.update_queue_position(
        db, current_user, order_id, payload.queue_position
    )


@router.patch("/orders/{order_id}/delivery-type", response_model=OrderResponse)
async def admin_change_delivery_type(
    order_id: str,
    payload: DeliveryTypeUpdate,
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Express orders jump to the front of the queue; Standard orders go last."""
    return await lifecycle.change_delivery_type(
        db, current_user, order_id, payload.delivery_type
    )


# ============================================================================
# CALLABLE ACTIONS
# ============================================================================


@router.post("/actions/resend-order-email", response_model=ActionResponse)
async def resend_order_email_action(
    payload: ResendActionRequest,
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_db),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    """Resend a delivery e-mail by order id; answers ``{success, message}``."""
    result = await lifecycle.resend_notification(
        db, current_user, payload.order_id, dispatcher
    )
    if result.notification.success:
        return ActionResponse(success=True, message="Order email resent successfully")
    return ActionResponse(
        success=False,
        message=f"Failed to resend order email: {result.notification.error}",
    )
