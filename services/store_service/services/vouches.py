"""
Review Eligibility Guard and vouch moderation.

A customer may review an order once, only after it has been delivered, and
only with the e-mail the order was placed with. ``submit_customer_vouch``
re-runs every check itself; a prior ``can_submit_vouch`` answer is never
trusted. The unique constraint on ``vouches.order_number`` backs up the
duplicate check for submissions that race each other.
"""

import uuid
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from libs.auth.models import AuthUser
from libs.common.datetime_utils import utc_now
from libs.common.errors import FailedPrecondition, InvalidArgument, NotFound
from libs.common.logging import get_logger
from services.store_service.models import (
    Order,
    OrderStatus,
    VerificationMethod,
    Vouch,
    VouchStatus,
)
from services.store_service.services.identity import require_admin
from services.store_service.services.order_store import find_order_by_order_id
from services.store_service.services.vouch_webhook import send_vouch_to_discord
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

# canSubmit reasons
ORDER_NOT_FOUND = "Order not found"
EMAIL_MISMATCH = "Email does not match order"
NOT_DELIVERED = "Order not yet delivered"
ALREADY_REVIEWED = "Review already submitted."

# submit errors
FIELDS_REQUIRED = "Order number, email, name, and message are required"
RATING_OUT_OF_RANGE = "Rating must be between 1 and 5"
INVALID_ORDER_NUMBER = "Invalid order number. Please enter a valid order ID."
SUBMIT_EMAIL_MISMATCH = (
    "The email address does not match the order. "
    "Please use the email associated with your order."
)
SUBMIT_NOT_DELIVERED = "You can only submit a review for delivered orders."

VOUCH_NOT_FOUND = "Vouch not found"


@dataclass(frozen=True)
class Eligibility:
    can_submit: bool
    reason: Optional[str] = None


async def _has_vouch_for_order(db: AsyncSession, order_number: str) -> bool:
    result = await db.execute(
        select(Vouch.id).where(Vouch.order_number == order_number).limit(1)
    )
    return result.first() is not None


async def _evaluate(
    db: AsyncSession, order_number: str, email: str
) -> tuple[Optional[Order], Optional[str]]:
    """Run the checks in order; the first failure wins."""
    order = await find_order_by_order_id(db, order_number)
    if order is None:
        return None, ORDER_NOT_FOUND
    if (order.buyer_email or "").strip().lower() != email.strip().lower():
        return order, EMAIL_MISMATCH
    if order.status != OrderStatus.DELIVERED:
        return order, NOT_DELIVERED
    if await _has_vouch_for_order(db, order_number):
        return order, ALREADY_REVIEWED
    return order, None


async def can_submit_vouch(db: AsyncSession, order_number: str, email: str) -> Eligibility:
    _, reason = await _evaluate(db, order_number.strip(), email)
    if reason:
        return Eligibility(can_submit=False, reason=reason)
    return Eligibility(can_submit=True)


def _purchase_amount(order: Order) -> Optional[Decimal]:
    raw = order.price
    if not raw and order.items:
        raw = order.items[0].get("price")
    try:
        return Decimal(str(raw)) if raw else None
    except InvalidOperation:
        return None


def _product_name(order: Order) -> str:
    if order.product:
        return order.product
    if order.items and order.items[0].get("product"):
        return order.items[0]["product"]
    return "Product"


async def submit_customer_vouch(
    db: AsyncSession,
    *,
    order_number: str,
    email: str,
    name: str,
    message: str,
    rating: Any,
    profile_picture: Optional[str] = None,
    country: Optional[str] = None,
    city: Optional[str] = None,
    country_code: Optional[str] = None,
    discord_username: Optional[str] = None,
    instagram_handle: Optional[str] = None,
    twitter_handle: Optional[str] = None,
) -> Vouch:
    """Validate and store a verified-purchase review pending moderation.

    Purchase details are copied from the order now; later order edits do
    not change them.
    """
    order_number = (order_number or "").strip()
    email = (email or "").strip()
    name = (name or "").strip()
    message = (message or "").strip()
    if not (order_number and email and name and message):
        raise InvalidArgument(FIELDS_REQUIRED)
    if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
        raise InvalidArgument(RATING_OUT_OF_RANGE)

    order, reason = await _evaluate(db, order_number, email)
    if reason == ORDER_NOT_FOUND:
        raise NotFound(INVALID_ORDER_NUMBER)
    if reason == EMAIL_MISMATCH:
        raise FailedPrecondition(SUBMIT_EMAIL_MISMATCH)
    if reason == NOT_DELIVERED:
        raise FailedPrecondition(SUBMIT_NOT_DELIVERED)
    if reason == ALREADY_REVIEWED:
        raise FailedPrecondition(ALREADY_REVIEWED)

    now = utc_now()
    vouch = Vouch(
        name=name,
        email=email,
        profile_picture=profile_picture,
        country=country,
        city=city,
        country_code=country_code,
        product_purchased=_product_name(order),
        order_number=order_number,
        purchase_date=order.created_at,
        purchase_amount=_purchase_amount(order),
        currency=order.currency,
        platform="Website",
        rating=rating,
        message=message,
        discord_username=discord_username,
        instagram_handle=instagram_handle,
        twitter_handle=twitter_handle,
        verification_method=VerificationMethod.PURCHASE,
        is_verified_purchase=True,
        verification_date=now,
        status=VouchStatus.PENDING,
        is_manual=False,
        created_at=now,
        updated_at=now,
    )
    db.add(vouch)
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race with a concurrent submission for the same order
        await db.rollback()
        logger.warning(f"Duplicate review rejected for order {order_number}")
        raise FailedPrecondition(ALREADY_REVIEWED)
    await db.refresh(vouch)
    logger.info(f"Vouch {vouch.id} submitted for order {order_number}")
    return vouch


# ============================================================================
# PUBLIC LISTING
# ============================================================================


async def list_approved_vouches(
    db: AsyncSession, limit: Optional[int] = None
) -> list[Vouch]:
    query = (
        select(Vouch)
        .where(Vouch.status == VouchStatus.APPROVED)
        .order_by(Vouch.created_at.desc())
    )
    if limit:
        query = query.limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


# ============================================================================
# ADMIN MODERATION
# ============================================================================


async def list_all_vouches(
    db: AsyncSession, identity: Optional[AuthUser]
) -> list[Vouch]:
    await require_admin(db, identity)
    result = await db.execute(select(Vouch).order_by(Vouch.created_at.desc()))
    return list(result.scalars().all())


async def _get_vouch(db: AsyncSession, vouch_id: uuid.UUID) -> Vouch:
    vouch = await db.get(Vouch, vouch_id)
    if vouch is None:
        raise NotFound(VOUCH_NOT_FOUND)
    return vouch


async def update_vouch_status(
    db: AsyncSession,
    identity: Optional[AuthUser],
    vouch_id: uuid.UUID,
    status: str,
) -> Vouch:
    """Moderate a vouch. Moving to approved posts it to Discord."""
    await require_admin(db, identity)
    try:
        new_status = VouchStatus(status)
    except ValueError:
        raise InvalidArgument(f"Invalid vouch status: {status}")

    vouch = await _get_vouch(db, vouch_id)
    previous_status = vouch.status
    vouch.status = new_status
    vouch.updated_at = utc_now()
    await db.commit()
    await db.refresh(vouch)
    logger.info(f"Vouch {vouch.id} status {previous_status.value} -> {new_status.value}")

    if new_status == VouchStatus.APPROVED and previous_status != VouchStatus.APPROVED:
        await send_vouch_to_discord(vouch)
    return vouch


async def delete_vouch(
    db: AsyncSession, identity: Optional[AuthUser], vouch_id: uuid.UUID
) -> None:
    await require_admin(db, identity)
    vouch = await _get_vouch(db, vouch_id)
    await db.delete(vouch)
    await db.commit()
    logger.info(f"Vouch {vouch_id} deleted")


async def add_manual_vouch(
    db: AsyncSession,
    identity: Optional[AuthUser],
    *,
    name: str,
    message: str,
    rating: int,
    status: VouchStatus = VouchStatus.APPROVED,
    platform: Optional[str] = None,
    **fields: Any,
) -> Vouch:
    """Create a vouch on a customer's behalf (e.g. copied from Discord)."""
    await require_admin(db, identity)
    name = (name or "").strip()
    message = (message or "").strip()
    if not name or not message:
        raise InvalidArgument("Name and message are required")
    if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
        raise InvalidArgument(RATING_OUT_OF_RANGE)

    now = utc_now()
    vouch = Vouch(
        name=name,
        message=message,
        rating=rating,
        status=status,
        platform=platform or "Website",
        is_manual=True,
        created_at=now,
        updated_at=now,
        **fields,
    )
    db.add(vouch)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise FailedPrecondition(ALREADY_REVIEWED)
    await db.refresh(vouch)
    logger.info(f"Manual vouch {vouch.id} added by {identity.user_id}")

    if vouch.status == VouchStatus.APPROVED:
        await send_vouch_to_discord(vouch)
    return vouch
