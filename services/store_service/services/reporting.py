"""Admin Aggregation Reporters: order counts and revenue totals."""

import math
from datetime import datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.common.datetime_utils import ensure_utc, utc_now
from libs.common.logging import get_logger
from services.store_service.models import Order, OrderStatus
from services.store_service.services.identity import require_admin
from services.store_service.services.order_store import count_orders_by_status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


def parse_price(value) -> float:
    """Parse a stored price string; anything non-numeric counts as 0."""
    if value is None:
        return 0.0
    try:
        amount = float(str(value).strip().replace(",", ""))
    except ValueError:
        return 0.0
    if math.isnan(amount) or math.isinf(amount):
        return 0.0
    return amount


async def get_status_counts(
    db: AsyncSession, identity: Optional[AuthUser]
) -> dict[str, int]:
    """Count orders per status; every known status is present, zero-filled."""
    await require_admin(db, identity)
    counts = {}
    for status in OrderStatus:
        counts[status.value] = await count_orders_by_status(db, status)
    return counts


async def get_revenue_summary(
    db: AsyncSession,
    identity: Optional[AuthUser],
    now: Optional[datetime] = None,
) -> dict:
    """
    Sum non-cancelled order prices into today / this week / this month / total.

    Day and month boundaries are calendar boundaries in the shop's timezone;
    the week is a rolling seven days. Prices are summed as raw numbers with
    no currency conversion; the label is the oldest order's currency.
    """
    await require_admin(db, identity)
    settings = get_settings()
    tz = ZoneInfo(settings.TIMEZONE)

    local_now = ensure_utc(now or utc_now()).astimezone(tz)
    start_of_day = local_now.replace(hour=0, minute=0, second=0, microsecond=0)
    start_of_week = local_now - timedelta(days=7)
    start_of_month = start_of_day.replace(day=1)

    result = await db.execute(select(Order).order_by(Order.created_at.asc()))
    orders = result.scalars().all()

    currency = settings.DEFAULT_CURRENCY_LABEL
    if orders and orders[0].currency:
        currency = orders[0].currency

    summary = {
        "today": 0.0,
        "this_week": 0.0,
        "this_month": 0.0,
        "total": 0.0,
        "currency": currency,
    }
    for order in orders:
        if order.status == OrderStatus.CANCELLED:
            continue
        amount = parse_price(order.price)
        summary["total"] += amount

        created_at = ensure_utc(order.created_at)
        if created_at is None:
            continue
        if created_at >= start_of_day:
            summary["today"] += amount
        if created_at >= start_of_week:
            summary["this_week"] += amount
        if created_at >= start_of_month:
            summary["this_month"] += amount

    for key in ("today", "this_week", "this_month", "total"):
        summary[key] = round(summary[key], 2)
    logger.info(f"Revenue summary computed over {len(orders)} orders")
    return summary
