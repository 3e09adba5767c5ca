"""
Order Lifecycle Manager.

Every operation follows the same ordering:
1. check the admin gate and resolve the order,
2. durably write the state change,
3. attempt the notification (best-effort, never raises),
4. append the attempt to the order's e-mail log.

A failed e-mail never rolls back or fails the state change; the outcome is
returned alongside the order instead.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from libs.auth.models import AuthUser
from libs.common.datetime_utils import utc_now
from libs.common.emails.dispatcher import DispatchResult, NotificationDispatcher
from libs.common.errors import FailedPrecondition, InvalidArgument
from libs.common.logging import get_logger
from services.communications_service.templates.delivery import (
    EmailTemplate,
    build_delivery_email,
)
from services.communications_service.templates.order_status import (
    build_status_update_email,
    has_status_template,
)
from services.store_service.models import (
    ACTIVE_QUEUE_STATUSES,
    DeliveryType,
    EmailType,
    Order,
    OrderStatus,
)
from services.store_service.services.identity import require_admin
from services.store_service.services.order_store import (
    append_email_log,
    get_order_by_order_id,
    next_queue_position,
    open_queue_position,
    release_queue_position,
    update_order_fields,
)
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

EXPRESS_ETA = timedelta(minutes=15)
STANDARD_ETA = timedelta(hours=24)

ALREADY_DELIVERED = "Order has already been delivered. Use resend to send the e-mail again."
DELIVERY_VALUE_REQUIRED = "Delivery value is required."
NOTHING_TO_RESEND = "Order has no delivery value to resend."
NOT_IN_QUEUE = "Only queued or in-progress orders have a queue position."
QUEUE_POSITION_INVALID = "Queue position must be 1 or greater."

# Display-only; not part of the transition rules
STATUS_PROGRESS = {
    OrderStatus.QUEUED: 33,
    OrderStatus.IN_PROGRESS: 66,
    OrderStatus.DELIVERED: 100,
    OrderStatus.DELAYED: 50,
    OrderStatus.CANCELLED: 100,
}

STATUS_LABELS = {
    OrderStatus.PENDING: "Pending",
    OrderStatus.PAYMENT_VERIFICATION: "Payment Verification",
    OrderStatus.QUEUED: "In Queue",
    OrderStatus.IN_PROGRESS: "In Progress",
    OrderStatus.DELIVERED: "Delivered",
    OrderStatus.DELAYED: "Delayed",
    OrderStatus.CANCELLED: "Cancelled",
}


@dataclass
class LifecycleResult:
    """The order after the operation plus the notification outcome, if any."""

    order: Order
    notification: Optional[DispatchResult] = None


def progress_for_status(status) -> int:
    """Progress percentage shown to customers; unknown statuses show 0."""
    try:
        return STATUS_PROGRESS.get(OrderStatus(status), 0)
    except ValueError:
        return 0


def label_for_status(status) -> str:
    try:
        return STATUS_LABELS[OrderStatus(status)]
    except (ValueError, KeyError):
        return str(status)


def render_delivery_email(order: Order, delivery_value: str) -> EmailTemplate:
    return build_delivery_email(
        order_number=order.order_id,
        product_name=order.product,
        delivery_value=delivery_value,
        platform_hint=order.platform,
        delivery_type_hint=(
            order.delivery_method.value if order.delivery_method else None
        ),
        is_express=order.is_express,
    )


async def _notify(
    db: AsyncSession,
    order: Order,
    template: EmailTemplate,
    email_type: EmailType,
    dispatcher: NotificationDispatcher,
) -> DispatchResult:
    result = await dispatcher.send(
        to_address=order.buyer_email,
        subject=template.subject,
        html_body=template.html,
        text_body=template.text,
    )
    if result.success:
        logger.info(
            f"Sent {email_type.value} email for order {order.order_id} via {result.provider}"
        )
    else:
        logger.error(
            f"Failed to send {email_type.value} email for order {order.order_id}: "
            f"{result.error}"
        )
    await append_email_log(db, order, email_type, result)
    return result


# ============================================================================
# DELIVERY
# ============================================================================


def was_delivered(order: Order) -> bool:
    """True once an order has been delivered, even if its status moved on."""
    return order.delivered_at is not None or order.status == OrderStatus.DELIVERED


async def _deliver(
    db: AsyncSession,
    order: Order,
    delivery_value: str,
    dispatcher: NotificationDispatcher,
    admin_notes: Optional[str] = None,
) -> LifecycleResult:
    now = utc_now()
    previous_status = order.status
    values = {
        "delivery_value": delivery_value,
        "status": OrderStatus.DELIVERED,
        "delivered_at": now,
        "queue_position": None,
        "updated_at": now,
    }
    if admin_notes is not None:
        values["admin_notes"] = admin_notes

    # Conditional write: an order is delivered at most once, by one caller
    result = await db.execute(
        update(Order)
        .where(
            Order.id == order.id,
            Order.delivered_at.is_(None),
            Order.status != OrderStatus.DELIVERED,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise FailedPrecondition(ALREADY_DELIVERED)

    if previous_status in ACTIVE_QUEUE_STATUSES:
        await release_queue_position(db, order)
    await db.commit()
    await db.refresh(order)
    logger.info(f"Order {order.order_id} marked delivered (was {previous_status.value})")

    notification = await _notify(
        db,
        order,
        render_delivery_email(order, delivery_value),
        EmailType.DELIVERY,
        dispatcher,
    )
    return LifecycleResult(order=order, notification=notification)


async def record_delivery(
    db: AsyncSession,
    identity: Optional[AuthUser],
    order_id: str,
    delivery_value: str,
    dispatcher: NotificationDispatcher,
) -> LifecycleResult:
    """Store the delivery value, mark the order delivered and e-mail the buyer."""
    await require_admin(db, identity)
    if not delivery_value or not delivery_value.strip():
        raise InvalidArgument(DELIVERY_VALUE_REQUIRED)
    order = await get_order_by_order_id(db, order_id)
    return await _deliver(db, order, delivery_value.strip(), dispatcher)


# ============================================================================
# STATUS CHANGES
# ============================================================================


async def change_status(
    db: AsyncSession,
    identity: Optional[AuthUser],
    order_id: str,
    new_status: OrderStatus,
    dispatcher: NotificationDispatcher,
    admin_notes: Optional[str] = None,
    delivery_value: Optional[str] = None,
    message: Optional[str] = None,
) -> LifecycleResult:
    """Move an order to ``new_status`` and run that status's side effects.

    Moving to delivered goes through the delivery flow and needs a delivery
    value, either passed here or already stored on the order. An order that
    was delivered before only gets its status back: the stored value and
    ``delivered_at`` are kept and no second delivery e-mail is sent. A status
    e-mail is sent only when the status actually changes.
    """
    await require_admin(db, identity)
    order = await get_order_by_order_id(db, order_id)
    previous_status = order.status
    new_value = (delivery_value or "").strip()

    if new_status == OrderStatus.DELIVERED:
        if was_delivered(order):
            if new_value:
                raise FailedPrecondition(ALREADY_DELIVERED)
        else:
            value = new_value or order.delivery_value
            if not value:
                raise InvalidArgument(DELIVERY_VALUE_REQUIRED)
            return await _deliver(
                db, order, value, dispatcher, admin_notes=admin_notes
            )

    fields = {"status": new_status}
    if admin_notes is not None:
        fields["admin_notes"] = admin_notes

    if (
        previous_status == OrderStatus.QUEUED
        and new_status == OrderStatus.IN_PROGRESS
    ):
        eta = EXPRESS_ETA if order.is_express else STANDARD_ETA
        fields["estimated_delivery_time"] = utc_now() + eta

    if previous_status in ACTIVE_QUEUE_STATUSES and new_status in (
        OrderStatus.CANCELLED,
        OrderStatus.DELIVERED,
    ):
        await release_queue_position(db, order)
        fields["queue_position"] = None

    await update_order_fields(db, order, **fields)
    logger.info(
        f"Order {order.order_id} status {previous_status.value} -> {new_status.value}"
    )

    notification = None
    if previous_status != new_status and has_status_template(new_status.value):
        template = build_status_update_email(
            order_number=order.order_id,
            product_name=order.product,
            status=new_status.value,
            message=message,
        )
        notification = await _notify(
            db, order, template, EmailType(new_status.value), dispatcher
        )
    return LifecycleResult(order=order, notification=notification)


async def resend_notification(
    db: AsyncSession,
    identity: Optional[AuthUser],
    order_id: str,
    dispatcher: NotificationDispatcher,
) -> LifecycleResult:
    """Re-send the delivery e-mail. Only the e-mail log changes."""
    await require_admin(db, identity)
    order = await get_order_by_order_id(db, order_id)
    if not order.delivery_value:
        raise FailedPrecondition(NOTHING_TO_RESEND)

    notification = await _notify(
        db,
        order,
        render_delivery_email(order, order.delivery_value),
        EmailType.RESEND,
        dispatcher,
    )
    return LifecycleResult(order=order, notification=notification)


# ============================================================================
# SINGLE-FIELD ADMIN EDITS
# ============================================================================


async def set_express(
    db: AsyncSession, identity: Optional[AuthUser], order_id: str, is_express: bool
) -> Order:
    """Toggle the express flag only; queue placement is left alone."""
    await require_admin(db, identity)
    order = await get_order_by_order_id(db, order_id)
    await update_order_fields(db, order, is_express=is_express)
    logger.info(f"Order {order.order_id} express={is_express}")
    return order


async def add_admin_notes(
    db: AsyncSession, identity: Optional[AuthUser], order_id: str, notes: str
) -> Order:
    await require_admin(db, identity)
    order = await get_order_by_order_id(db, order_id)
    return await update_order_fields(db, order, admin_notes=notes)


# ============================================================================
# QUEUE MANAGEMENT
# ============================================================================


async def update_queue_position(
    db: AsyncSession, identity: Optional[AuthUser], order_id: str, new_position: int
) -> Order:
    """Move an active order to ``new_position``, shifting the orders in between.

    Positions past the end of the queue are clamped to the last place.
    """
    await require_admin(db, identity)
    if new_position < 1:
        raise InvalidArgument(QUEUE_POSITION_INVALID)
    order = await get_order_by_order_id(db, order_id)
    if order.status not in ACTIVE_QUEUE_STATUSES:
        raise FailedPrecondition(NOT_IN_QUEUE)

    old_position = order.queue_position
    if old_position == new_position:
        return order

    await release_queue_position(db, order)
    position = min(new_position, await next_queue_position(db, exclude=order))
    await open_queue_position(db, order, position)
    await update_order_fields(db, order, queue_position=position)
    logger.info(f"Order {order.order_id} queue position {old_position} -> {position}")
    return order


async def change_delivery_type(
    db: AsyncSession,
    identity: Optional[AuthUser],
    order_id: str,
    delivery_type: DeliveryType,
) -> Order:
    """Switch an order between Standard and Express delivery.

    An active Express order jumps to the front of the queue and a Standard
    one goes to the back; both get a fresh estimated delivery time. Orders
    outside the queue only change type.
    """
    await require_admin(db, identity)
    order = await get_order_by_order_id(db, order_id)
    if order.delivery_type == delivery_type:
        return order

    fields = {"delivery_type": delivery_type}
    if order.status in ACTIVE_QUEUE_STATUSES:
        await release_queue_position(db, order)
        if delivery_type == DeliveryType.EXPRESS:
            position = 1
            await open_queue_position(db, order, position)
            eta = EXPRESS_ETA
        else:
            position = await next_queue_position(db, exclude=order)
            eta = STANDARD_ETA
        fields["queue_position"] = position
        fields["estimated_delivery_time"] = utc_now() + eta

    await update_order_fields(db, order, **fields)
    logger.info(
        f"Order {order.order_id} delivery type -> {delivery_type.value} "
        f"(queue position {order.queue_position})"
    )
    return order
