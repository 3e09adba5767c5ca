"""Unit tests for the Review Eligibility Guard and vouch moderation."""

import uuid
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from libs.common.errors import (
    FailedPrecondition,
    InvalidArgument,
    NotFound,
    Unauthorized,
)
from services.store_service.models import (
    OrderStatus,
    VerificationMethod,
    VouchStatus,
)
from services.store_service.services.lifecycle import record_delivery
from services.store_service.services.vouches import (
    ALREADY_REVIEWED,
    add_manual_vouch,
    can_submit_vouch,
    delete_vouch,
    list_all_vouches,
    list_approved_vouches,
    submit_customer_vouch,
    update_vouch_status,
)
from tests.factories import OrderFactory, VouchFactory

WEBHOOK = "services.store_service.services.vouches.send_vouch_to_discord"


async def _delivered_order(db, **overrides):
    defaults = {
        "order_id": "TS-1001",
        "buyer_email": "a@b.com",
        "status": OrderStatus.DELIVERED,
        "delivery_value": "ABCD-1234",
    }
    defaults.update(overrides)
    order = OrderFactory.create(**defaults)
    db.add(order)
    await db.commit()
    return order


def _submission(**overrides):
    data = {
        "order_number": "TS-1001",
        "email": "a@b.com",
        "name": "Alice",
        "message": "Instant delivery!",
        "rating": 5,
    }
    data.update(overrides)
    return data


# ---------------------------------------------------------------------------
# can_submit_vouch
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_unknown_order_cannot_be_reviewed(db_session):
    result = await can_submit_vouch(db_session, "TS-MISSING", "a@b.com")

    assert result.can_submit is False
    assert result.reason == "Order not found"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_email_must_match_ignoring_case(db_session):
    await _delivered_order(db_session)

    mismatch = await can_submit_vouch(db_session, "TS-1001", "other@b.com")
    different_case = await can_submit_vouch(db_session, "TS-1001", "A@B.COM")

    assert mismatch.can_submit is False
    assert mismatch.reason == "Email does not match order"
    assert different_case.can_submit is True


@pytest.mark.asyncio
@pytest.mark.unit
@pytest.mark.parametrize(
    "status",
    [OrderStatus.PENDING, OrderStatus.QUEUED, OrderStatus.CANCELLED, OrderStatus.DELAYED],
)
async def test_undelivered_orders_cannot_be_reviewed(db_session, status):
    await _delivered_order(db_session, status=status)

    result = await can_submit_vouch(db_session, "TS-1001", "a@b.com")

    assert result.can_submit is False
    assert result.reason == "Order not yet delivered"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_checks_run_in_order(db_session):
    # Wrong e-mail is reported before the undelivered status
    await _delivered_order(db_session, status=OrderStatus.QUEUED)

    result = await can_submit_vouch(db_session, "TS-1001", "someone@else.com")

    assert result.reason == "Email does not match order"


# ---------------------------------------------------------------------------
# submit_customer_vouch
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_submit_snapshots_purchase_and_blocks_second_review(db_session):
    order = await _delivered_order(db_session, product="Steam Key", price="19.99")

    vouch = await submit_customer_vouch(db_session, **_submission())

    assert vouch.status == VouchStatus.PENDING
    assert vouch.verification_method == VerificationMethod.PURCHASE
    assert vouch.is_verified_purchase is True
    assert vouch.verification_date is not None
    assert vouch.product_purchased == "Steam Key"
    assert vouch.purchase_amount == Decimal("19.99")
    assert vouch.order_number == "TS-1001"

    again = await can_submit_vouch(db_session, "TS-1001", "a@b.com")
    assert again.can_submit is False
    assert again.reason == ALREADY_REVIEWED

    with pytest.raises(FailedPrecondition) as exc_info:
        await submit_customer_vouch(db_session, **_submission())
    assert exc_info.value.message == "Review already submitted."

    # Later order edits do not change the stored snapshot
    order.product = "Renamed Product"
    await db_session.commit()
    await db_session.refresh(vouch)
    assert vouch.product_purchased == "Steam Key"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_submit_repeats_every_check(db_session):
    await _delivered_order(db_session, status=OrderStatus.IN_PROGRESS)

    with pytest.raises(NotFound) as not_found:
        await submit_customer_vouch(db_session, **_submission(order_number="TS-X"))
    with pytest.raises(FailedPrecondition) as wrong_email:
        await submit_customer_vouch(db_session, **_submission(email="z@z.com"))
    with pytest.raises(FailedPrecondition) as undelivered:
        await submit_customer_vouch(db_session, **_submission())

    assert not_found.value.message.startswith("Invalid order number.")
    assert "does not match" in wrong_email.value.message
    assert "delivered orders" in undelivered.value.message


@pytest.mark.asyncio
@pytest.mark.unit
@pytest.mark.parametrize("rating", [0, 6, -1])
async def test_submit_rejects_out_of_range_rating(db_session, rating):
    await _delivered_order(db_session)

    with pytest.raises(InvalidArgument):
        await submit_customer_vouch(db_session, **_submission(rating=rating))


@pytest.mark.asyncio
@pytest.mark.unit
@pytest.mark.parametrize("field", ["name", "message", "email", "order_number"])
async def test_submit_requires_text_fields(db_session, field):
    await _delivered_order(db_session)

    with pytest.raises(InvalidArgument):
        await submit_customer_vouch(db_session, **_submission(**{field: "  "}))


@pytest.mark.asyncio
@pytest.mark.unit
async def test_end_to_end_delivery_then_review(db_session, admin_identity, dispatcher):
    order = OrderFactory.create(
        order_id="TS-1001",
        buyer_email="a@b.com",
        status=OrderStatus.QUEUED,
        product="Steam Key",
    )
    db_session.add(order)
    await db_session.commit()

    await record_delivery(
        db_session, admin_identity, "TS-1001", "ABCD-1234-EFGH", dispatcher
    )
    assert order.status == OrderStatus.DELIVERED
    assert order.email_log[0]["emailType"] == "delivery"

    first = await can_submit_vouch(db_session, "TS-1001", "a@b.com")
    assert first.can_submit is True

    await submit_customer_vouch(db_session, **_submission())
    second = await can_submit_vouch(db_session, "TS-1001", "a@b.com")
    assert second.can_submit is False
    assert second.reason == "Review already submitted."


# ---------------------------------------------------------------------------
# Moderation
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_approving_posts_to_discord_once(db_session, admin_identity):
    vouch = VouchFactory.create(status=VouchStatus.PENDING)
    db_session.add(vouch)
    await db_session.commit()

    with patch(WEBHOOK, new_callable=AsyncMock) as webhook:
        await update_vouch_status(db_session, admin_identity, vouch.id, "approved")
        await update_vouch_status(db_session, admin_identity, vouch.id, "approved")

    assert vouch.status == VouchStatus.APPROVED
    webhook.assert_awaited_once()


@pytest.mark.asyncio
@pytest.mark.unit
async def test_rejecting_does_not_post_to_discord(db_session, admin_identity):
    vouch = VouchFactory.create()
    db_session.add(vouch)
    await db_session.commit()

    with patch(WEBHOOK, new_callable=AsyncMock) as webhook:
        await update_vouch_status(db_session, admin_identity, vouch.id, "rejected")

    assert vouch.status == VouchStatus.REJECTED
    webhook.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.unit
async def test_invalid_status_and_unknown_vouch(db_session, admin_identity):
    vouch = VouchFactory.create()
    db_session.add(vouch)
    await db_session.commit()

    with pytest.raises(InvalidArgument):
        await update_vouch_status(db_session, admin_identity, vouch.id, "featured")
    with pytest.raises(NotFound):
        await update_vouch_status(
            db_session, admin_identity, uuid.uuid4(), "approved"
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_moderation_requires_admin(db_session, customer_identity):
    vouch = VouchFactory.create()
    db_session.add(vouch)
    await db_session.commit()

    with pytest.raises(Unauthorized):
        await update_vouch_status(db_session, customer_identity, vouch.id, "approved")
    with pytest.raises(Unauthorized):
        await list_all_vouches(db_session, None)
    with pytest.raises(Unauthorized):
        await delete_vouch(db_session, customer_identity, vouch.id)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_manual_vouch_defaults_to_approved(db_session, admin_identity):
    with patch(WEBHOOK, new_callable=AsyncMock) as webhook:
        vouch = await add_manual_vouch(
            db_session,
            admin_identity,
            name="Bob",
            message="Copied from Discord",
            rating=4,
        )

    assert vouch.status == VouchStatus.APPROVED
    assert vouch.is_manual is True
    assert vouch.platform == "Website"
    webhook.assert_awaited_once()

    approved = await list_approved_vouches(db_session)
    assert [v.id for v in approved] == [vouch.id]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_manual_vouch_validation(db_session, admin_identity):
    with pytest.raises(InvalidArgument):
        await add_manual_vouch(
            db_session, admin_identity, name="", message="x", rating=5
        )
    with pytest.raises(InvalidArgument):
        await add_manual_vouch(
            db_session, admin_identity, name="Bob", message="x", rating=9
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_delete_vouch(db_session, admin_identity):
    vouch = VouchFactory.create(status=VouchStatus.APPROVED)
    db_session.add(vouch)
    await db_session.commit()

    await delete_vouch(db_session, admin_identity, vouch.id)

    assert await list_all_vouches(db_session, admin_identity) == []
