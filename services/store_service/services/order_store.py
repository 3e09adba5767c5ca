"""Order Store Accessor: lookups and field updates for orders.

Every write goes through ``update_order_fields`` or ``append_email_log`` so
``updated_at`` is always bumped in the same commit as the change.
"""

import uuid
from typing import Any, Optional

from libs.common.datetime_utils import utc_now
from libs.common.emails.dispatcher import DispatchResult
from libs.common.errors import NotFound
from libs.common.logging import get_logger
from services.store_service.models import (
    ACTIVE_QUEUE_STATUSES,
    DeliveryType,
    EmailType,
    Order,
    OrderStatus,
)
from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

ORDER_NOT_FOUND = "Order not found"


# ============================================================================
# LOOKUPS
# ============================================================================


async def get_order(db: AsyncSession, order_pk: uuid.UUID) -> Order:
    order = await db.get(Order, order_pk)
    if order is None:
        raise NotFound(ORDER_NOT_FOUND)
    return order


async def find_order_by_order_id(db: AsyncSession, order_id: str) -> Optional[Order]:
    """Resolve a human-facing order id to its row.

    The human id is not the primary key. Several matches is a data-integrity
    fault: it is logged and the oldest match wins.
    """
    result = await db.execute(
        select(Order)
        .where(Order.order_id == order_id)
        .order_by(Order.created_at.asc(), Order.id.asc())
    )
    matches = result.scalars().all()
    if not matches:
        return None
    if len(matches) > 1:
        logger.warning(
            f"Order id {order_id} matches {len(matches)} orders; using {matches[0].id}"
        )
    return matches[0]


async def get_order_by_order_id(db: AsyncSession, order_id: str) -> Order:
    order = await find_order_by_order_id(db, order_id)
    if order is None:
        raise NotFound(ORDER_NOT_FOUND)
    return order


async def list_orders_by_email(db: AsyncSession, email: str) -> list[Order]:
    """Orders owned by a buyer e-mail (case-insensitive), newest first."""
    result = await db.execute(
        select(Order)
        .where(func.lower(Order.buyer_email) == email.strip().lower())
        .order_by(Order.created_at.desc())
    )
    return list(result.scalars().all())


async def list_orders_by_status(db: AsyncSession, status: OrderStatus) -> list[Order]:
    result = await db.execute(
        select(Order).where(Order.status == status).order_by(Order.created_at.desc())
    )
    return list(result.scalars().all())


async def list_orders(
    db: AsyncSession,
    status: Optional[OrderStatus] = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[Order], int]:
    """Admin listing, newest first. Returns (orders, total)."""
    query = select(Order)
    count_query = select(func.count(Order.id))
    if status is not None:
        query = query.where(Order.status == status)
        count_query = count_query.where(Order.status == status)

    total = (await db.execute(count_query)).scalar_one()
    result = await db.execute(
        query.order_by(Order.created_at.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return list(result.scalars().all()), total


async def search_orders(db: AsyncSession, term: str) -> list[Order]:
    """Search by buyer e-mail when the term looks like one, else by order id."""
    term = term.strip()
    if not term:
        return []
    if "@" in term:
        return await list_orders_by_email(db, term)
    result = await db.execute(
        select(Order)
        .where(or_(Order.order_id == term, Order.order_id == term.upper()))
        .order_by(Order.created_at.desc())
    )
    return list(result.scalars().all())


async def list_recent_orders(db: AsyncSession, limit: int = 5) -> list[Order]:
    result = await db.execute(
        select(Order).order_by(Order.created_at.desc()).limit(limit)
    )
    return list(result.scalars().all())


async def list_active_orders(
    db: AsyncSession, delivery_type: Optional[DeliveryType] = None
) -> list[Order]:
    """Queued and in-progress orders in queue order; unplaced orders last."""
    query = select(Order).where(Order.status.in_(ACTIVE_QUEUE_STATUSES))
    if delivery_type is not None:
        query = query.where(Order.delivery_type == delivery_type)
    result = await db.execute(
        query.order_by(
            Order.queue_position.is_(None),
            Order.queue_position.asc(),
            Order.created_at.asc(),
        )
    )
    return list(result.scalars().all())


async def next_queue_position(
    db: AsyncSession, exclude: Optional[Order] = None
) -> int:
    """The position after the last active order."""
    query = select(func.max(Order.queue_position)).where(
        Order.status.in_(ACTIVE_QUEUE_STATUSES)
    )
    if exclude is not None:
        query = query.where(Order.id != exclude.id)
    highest = (await db.execute(query)).scalar_one_or_none()
    return (highest or 0) + 1


async def count_orders_by_status(db: AsyncSession, status: OrderStatus) -> int:
    result = await db.execute(
        select(func.count(Order.id)).where(Order.status == status)
    )
    return result.scalar_one()


# ============================================================================
# WRITES
# ============================================================================


async def update_order_fields(db: AsyncSession, order: Order, **fields: Any) -> Order:
    """Apply a partial update and bump ``updated_at`` in the same commit."""
    for name, value in fields.items():
        setattr(order, name, value)
    order.updated_at = utc_now()
    await db.commit()
    await db.refresh(order)
    return order


async def append_email_log(
    db: AsyncSession,
    order: Order,
    email_type: EmailType,
    result: DispatchResult,
) -> dict:
    """Append one notification attempt to the order's e-mail log."""
    entry = {
        "sentAt": utc_now().isoformat(),
        "emailType": email_type.value,
        "success": result.success,
    }
    if result.error:
        entry["error"] = result.error
    # Reassign so the JSON column is flagged dirty; earlier entries are copied as-is
    await update_order_fields(db, order, email_log=[*(order.email_log or []), entry])
    return entry


async def release_queue_position(db: AsyncSession, order: Order) -> None:
    """Move every active order queued behind ``order`` up one place.

    Does not commit; the caller clears ``order.queue_position`` in the same
    transaction.
    """
    position = order.queue_position
    if position is None:
        return
    await db.execute(
        update(Order)
        .where(
            Order.id != order.id,
            Order.status.in_(ACTIVE_QUEUE_STATUSES),
            Order.queue_position > position,
        )
        .values(queue_position=Order.queue_position - 1)
        .execution_options(synchronize_session=False)
    )
    logger.info(f"Released queue position {position} held by order {order.order_id}")


async def open_queue_position(db: AsyncSession, order: Order, position: int) -> None:
    """Push every other active order at or behind ``position`` back one place.

    Does not commit; the caller puts ``order`` into the freed position in the
    same transaction. Call ``release_queue_position`` first when the order
    already holds a place.
    """
    await db.execute(
        update(Order)
        .where(
            Order.id != order.id,
            Order.status.in_(ACTIVE_QUEUE_STATUSES),
            Order.queue_position >= position,
        )
        .values(queue_position=Order.queue_position + 1)
        .execution_options(synchronize_session=False)
    )
