"""Unit tests for the Order Lifecycle Manager.

Tests call the lifecycle functions directly with the db_session fixture and
a dispatcher whose providers answer through httpx.MockTransport.
"""

from datetime import timedelta

import pytest
from libs.auth.models import AuthUser
from libs.common.datetime_utils import ensure_utc, utc_now
from libs.common.emails.dispatcher import EmailConfig, NotificationDispatcher
from libs.common.errors import (
    FailedPrecondition,
    InvalidArgument,
    NotFound,
    Unauthorized,
)
from services.store_service.models import DeliveryMethod, DeliveryType, OrderStatus
from services.store_service.services.lifecycle import (
    ALREADY_DELIVERED,
    add_admin_notes,
    change_delivery_type,
    change_status,
    label_for_status,
    progress_for_status,
    record_delivery,
    resend_notification,
    set_express,
    update_queue_position,
)
from tests.factories import OrderFactory

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _add(db, **overrides):
    order = OrderFactory.create(**overrides)
    db.add(order)
    await db.commit()
    return order


# ---------------------------------------------------------------------------
# record_delivery
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_record_delivery_marks_order_delivered_and_logs_email(
    db_session, admin_identity, dispatcher, outbox
):
    order = await _add(
        db_session, order_id="TS-1001", buyer_email="a@b.com", product="Steam Key"
    )

    result = await record_delivery(
        db_session, admin_identity, "TS-1001", "ABCD-1234-EFGH", dispatcher
    )

    assert result.notification.success is True
    assert order.status == OrderStatus.DELIVERED
    assert order.delivery_value == "ABCD-1234-EFGH"
    assert order.delivered_at is not None
    assert len(order.email_log) == 1
    entry = order.email_log[0]
    assert entry["emailType"] == "delivery"
    assert entry["success"] is True
    assert "error" not in entry

    sent = outbox.payloads[0]
    assert sent["personalizations"][0]["to"][0]["email"] == "a@b.com"
    assert sent["subject"] == "Your Order is Ready: Steam Key #TS-1001"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_record_delivery_survives_email_failure(
    db_session, admin_identity, failing_dispatcher
):
    order = await _add(db_session, order_id="TS-2001")

    result = await record_delivery(
        db_session, admin_identity, "TS-2001", "CODE-1", failing_dispatcher
    )

    assert result.notification.success is False
    assert order.status == OrderStatus.DELIVERED
    assert order.delivery_value == "CODE-1"
    assert order.delivered_at is not None
    assert order.email_log[0]["success"] is False
    assert order.email_log[0]["error"]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_record_delivery_without_provider_still_delivers(
    db_session, admin_identity
):
    order = await _add(db_session, order_id="TS-2002")

    result = await record_delivery(
        db_session,
        admin_identity,
        "TS-2002",
        "CODE-2",
        NotificationDispatcher(EmailConfig()),
    )

    assert result.notification.success is False
    assert order.status == OrderStatus.DELIVERED
    assert "No email service configured" in order.email_log[0]["error"]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_record_delivery_requires_value(db_session, admin_identity, dispatcher):
    await _add(db_session, order_id="TS-3001")

    with pytest.raises(InvalidArgument):
        await record_delivery(db_session, admin_identity, "TS-3001", "  ", dispatcher)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_record_delivery_unknown_order(db_session, admin_identity, dispatcher):
    with pytest.raises(NotFound):
        await record_delivery(db_session, admin_identity, "TS-NOPE", "X", dispatcher)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_record_delivery_requires_admin(
    db_session, customer_identity, dispatcher, outbox
):
    order = await _add(db_session, order_id="TS-3002")

    with pytest.raises(Unauthorized) as exc_info:
        await record_delivery(db_session, customer_identity, "TS-3002", "X", dispatcher)
    with pytest.raises(Unauthorized):
        await record_delivery(db_session, None, "TS-3002", "X", dispatcher)

    assert exc_info.value.message == "Unauthorized: Admin access required"
    assert order.status == OrderStatus.QUEUED
    assert outbox.requests == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_unknown_user_is_not_admin(db_session, dispatcher):
    await _add(db_session, order_id="TS-3003")
    stranger = AuthUser(user_id="not-in-users-table", email="x@y.com")

    with pytest.raises(Unauthorized):
        await record_delivery(db_session, stranger, "TS-3003", "X", dispatcher)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_second_delivery_is_rejected(db_session, admin_identity, dispatcher):
    order = await _add(db_session, order_id="TS-4001")
    await record_delivery(db_session, admin_identity, "TS-4001", "FIRST", dispatcher)
    delivered_at = order.delivered_at

    with pytest.raises(FailedPrecondition):
        await record_delivery(
            db_session, admin_identity, "TS-4001", "SECOND", dispatcher
        )

    await db_session.refresh(order)
    assert order.delivery_value == "FIRST"
    assert order.delivered_at == delivered_at
    assert len(order.email_log) == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_redelivery_after_leaving_delivered_is_rejected(
    db_session, admin_identity, dispatcher
):
    order = await _add(db_session, order_id="TS-4002")
    await record_delivery(db_session, admin_identity, "TS-4002", "FIRST", dispatcher)
    delivered_at = order.delivered_at
    await change_status(
        db_session, admin_identity, "TS-4002", OrderStatus.DELAYED, dispatcher
    )

    with pytest.raises(FailedPrecondition) as exc_info:
        await record_delivery(
            db_session, admin_identity, "TS-4002", "SECOND", dispatcher
        )

    await db_session.refresh(order)
    assert exc_info.value.message == ALREADY_DELIVERED
    assert order.status == OrderStatus.DELAYED
    assert order.delivery_value == "FIRST"
    assert order.delivered_at == delivered_at
    assert [e["emailType"] for e in order.email_log] == ["delivery", "delayed"]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_duplicate_order_ids_use_oldest_match(
    db_session, admin_identity, dispatcher
):
    older = await _add(
        db_session, order_id="TS-DUP", created_at=utc_now() - timedelta(days=2)
    )
    newer = await _add(db_session, order_id="TS-DUP")

    await record_delivery(db_session, admin_identity, "TS-DUP", "CODE", dispatcher)

    await db_session.refresh(newer)
    assert older.status == OrderStatus.DELIVERED
    assert newer.status == OrderStatus.QUEUED


# ---------------------------------------------------------------------------
# resend_notification
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_resend_only_appends_to_email_log(
    db_session, admin_identity, dispatcher, failing_dispatcher
):
    order = await _add(db_session, order_id="TS-5001")
    await record_delivery(db_session, admin_identity, "TS-5001", "KEY-1", dispatcher)
    snapshot = (order.delivery_value, order.delivered_at, order.status)

    await resend_notification(db_session, admin_identity, "TS-5001", failing_dispatcher)
    await resend_notification(db_session, admin_identity, "TS-5001", dispatcher)

    assert (order.delivery_value, order.delivered_at, order.status) == snapshot
    assert [e["emailType"] for e in order.email_log] == [
        "delivery",
        "resend",
        "resend",
    ]
    assert [e["success"] for e in order.email_log] == [True, False, True]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_resend_without_delivery_value(db_session, admin_identity, dispatcher):
    await _add(db_session, order_id="TS-5002")

    with pytest.raises(FailedPrecondition):
        await resend_notification(db_session, admin_identity, "TS-5002", dispatcher)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_resend_uses_account_template_for_spotify_accounts(
    db_session, admin_identity, dispatcher, outbox
):
    await _add(
        db_session,
        order_id="TS-5003",
        product="Spotify Premium",
        delivery_method=DeliveryMethod.ACCOUNT,
        delivery_value="alice:p@ss:w0rd",
        status=OrderStatus.DELIVERED,
    )

    await resend_notification(db_session, admin_identity, "TS-5003", dispatcher)

    text = outbox.payloads[0]["content"][0]["value"]
    assert "Username: alice" in text
    assert "Password: p@ss:w0rd" in text


# ---------------------------------------------------------------------------
# change_status
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_change_status_persists_notes_and_sends_status_email(
    db_session, admin_identity, dispatcher, outbox
):
    order = await _add(db_session, order_id="TS-6001", status=OrderStatus.QUEUED)

    result = await change_status(
        db_session,
        admin_identity,
        "TS-6001",
        OrderStatus.DELAYED,
        dispatcher,
        admin_notes="Waiting on supplier",
    )

    assert result.notification.success is True
    assert order.status == OrderStatus.DELAYED
    assert order.admin_notes == "Waiting on supplier"
    assert order.email_log[0]["emailType"] == "delayed"
    assert outbox.payloads[0]["subject"] == "Order #TS-6001 Delayed"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_unchanged_status_sends_nothing(
    db_session, admin_identity, dispatcher, outbox
):
    order = await _add(db_session, order_id="TS-6002", status=OrderStatus.DELAYED)

    result = await change_status(
        db_session, admin_identity, "TS-6002", OrderStatus.DELAYED, dispatcher
    )

    assert result.notification is None
    assert order.email_log == []
    assert outbox.requests == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_queued_to_in_progress_sets_eta(db_session, admin_identity, dispatcher):
    express = await _add(db_session, order_id="TS-6003", is_express=True)
    standard = await _add(db_session, order_id="TS-6004")
    before = utc_now()

    await change_status(
        db_session, admin_identity, "TS-6003", OrderStatus.IN_PROGRESS, dispatcher
    )
    await change_status(
        db_session, admin_identity, "TS-6004", OrderStatus.IN_PROGRESS, dispatcher
    )

    express_eta = ensure_utc(express.estimated_delivery_time) - before
    standard_eta = ensure_utc(standard.estimated_delivery_time) - before
    assert timedelta(minutes=14) < express_eta <= timedelta(minutes=16)
    assert timedelta(hours=23) < standard_eta <= timedelta(hours=25)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_change_to_delivered_uses_delivery_flow(
    db_session, admin_identity, dispatcher
):
    order = await _add(db_session, order_id="TS-6005")

    result = await change_status(
        db_session,
        admin_identity,
        "TS-6005",
        OrderStatus.DELIVERED,
        dispatcher,
        delivery_value="GIFT-LINK",
    )

    assert result.notification.success is True
    assert order.delivery_value == "GIFT-LINK"
    assert order.delivered_at is not None
    assert order.email_log[0]["emailType"] == "delivery"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_change_to_delivered_needs_a_value(
    db_session, admin_identity, dispatcher
):
    order = await _add(db_session, order_id="TS-6006")

    with pytest.raises(InvalidArgument):
        await change_status(
            db_session, admin_identity, "TS-6006", OrderStatus.DELIVERED, dispatcher
        )
    assert order.status == OrderStatus.QUEUED


@pytest.mark.asyncio
@pytest.mark.unit
async def test_returning_to_delivered_restores_status_only(
    db_session, admin_identity, dispatcher, outbox
):
    order = await _add(db_session, order_id="TS-6007")
    await record_delivery(db_session, admin_identity, "TS-6007", "FIRST", dispatcher)
    delivered_at = order.delivered_at
    await change_status(
        db_session, admin_identity, "TS-6007", OrderStatus.DELAYED, dispatcher
    )

    result = await change_status(
        db_session, admin_identity, "TS-6007", OrderStatus.DELIVERED, dispatcher
    )

    assert result.notification is None
    assert order.status == OrderStatus.DELIVERED
    assert order.delivery_value == "FIRST"
    assert order.delivered_at == delivered_at
    assert [e["emailType"] for e in order.email_log] == ["delivery", "delayed"]
    assert len(outbox.requests) == 2


@pytest.mark.asyncio
@pytest.mark.unit
async def test_returning_to_delivered_with_new_value_is_rejected(
    db_session, admin_identity, dispatcher
):
    order = await _add(db_session, order_id="TS-6008")
    await record_delivery(db_session, admin_identity, "TS-6008", "FIRST", dispatcher)
    delivered_at = order.delivered_at
    await change_status(
        db_session, admin_identity, "TS-6008", OrderStatus.DELAYED, dispatcher
    )

    with pytest.raises(FailedPrecondition):
        await change_status(
            db_session,
            admin_identity,
            "TS-6008",
            OrderStatus.DELIVERED,
            dispatcher,
            delivery_value="SECOND",
        )

    await db_session.refresh(order)
    assert order.status == OrderStatus.DELAYED
    assert order.delivery_value == "FIRST"
    assert order.delivered_at == delivered_at
    assert [e["emailType"] for e in order.email_log] == ["delivery", "delayed"]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_delivered_order_rejects_new_delivery_value(
    db_session, admin_identity, dispatcher
):
    order = await _add(db_session, order_id="TS-6009")
    await record_delivery(db_session, admin_identity, "TS-6009", "FIRST", dispatcher)

    with pytest.raises(FailedPrecondition) as exc_info:
        await change_status(
            db_session,
            admin_identity,
            "TS-6009",
            OrderStatus.DELIVERED,
            dispatcher,
            delivery_value="SECOND",
        )

    assert exc_info.value.message == ALREADY_DELIVERED
    assert order.delivery_value == "FIRST"
    assert len(order.email_log) == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_leaving_queue_moves_later_orders_up(
    db_session, admin_identity, dispatcher
):
    first = await _add(db_session, order_id="TS-7001", queue_position=1)
    second = await _add(db_session, order_id="TS-7002", queue_position=2)
    third = await _add(
        db_session,
        order_id="TS-7003",
        queue_position=3,
        status=OrderStatus.IN_PROGRESS,
    )

    await change_status(
        db_session, admin_identity, "TS-7001", OrderStatus.CANCELLED, dispatcher
    )
    await db_session.refresh(second)
    await db_session.refresh(third)

    assert first.queue_position is None
    assert (second.queue_position, third.queue_position) == (1, 2)

    await record_delivery(db_session, admin_identity, "TS-7002", "CODE", dispatcher)
    await db_session.refresh(third)

    assert second.queue_position is None
    assert third.queue_position == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_change_status_requires_admin(db_session, customer_identity, dispatcher):
    await _add(db_session, order_id="TS-7004")

    with pytest.raises(Unauthorized):
        await change_status(
            db_session, customer_identity, "TS-7004", OrderStatus.CANCELLED, dispatcher
        )


# ---------------------------------------------------------------------------
# Queue management
# ---------------------------------------------------------------------------


async def _queue(db, count, **overrides):
    return [
        await _add(db, order_id=f"TS-Q{n}", queue_position=n, **overrides)
        for n in range(1, count + 1)
    ]


async def _positions(db, orders):
    for order in orders:
        await db.refresh(order)
    return [order.queue_position for order in orders]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_moving_an_order_back_shifts_the_orders_between(
    db_session, admin_identity
):
    orders = await _queue(db_session, 5)

    await update_queue_position(db_session, admin_identity, "TS-Q2", 4)

    assert await _positions(db_session, orders) == [1, 4, 2, 3, 5]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_moving_an_order_forward_shifts_the_orders_between(
    db_session, admin_identity
):
    orders = await _queue(db_session, 5)

    await update_queue_position(db_session, admin_identity, "TS-Q4", 2)

    assert await _positions(db_session, orders) == [1, 3, 4, 2, 5]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_queue_position_past_the_end_is_clamped(db_session, admin_identity):
    orders = await _queue(db_session, 3)

    await update_queue_position(db_session, admin_identity, "TS-Q1", 10)

    assert await _positions(db_session, orders) == [3, 1, 2]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_queue_position_needs_an_active_order(db_session, admin_identity):
    await _add(db_session, order_id="TS-Q9", status=OrderStatus.DELIVERED)

    with pytest.raises(FailedPrecondition):
        await update_queue_position(db_session, admin_identity, "TS-Q9", 1)
    with pytest.raises(InvalidArgument):
        await update_queue_position(db_session, admin_identity, "TS-Q9", 0)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_express_jumps_to_front_and_standard_goes_last(
    db_session, admin_identity
):
    orders = await _queue(db_session, 4)
    before = utc_now()

    express = await change_delivery_type(
        db_session, admin_identity, "TS-Q3", DeliveryType.EXPRESS
    )

    assert express.delivery_type == DeliveryType.EXPRESS
    assert await _positions(db_session, orders) == [2, 3, 1, 4]
    eta = ensure_utc(express.estimated_delivery_time) - before
    assert timedelta(minutes=14) < eta <= timedelta(minutes=16)

    await change_delivery_type(
        db_session, admin_identity, "TS-Q3", DeliveryType.STANDARD
    )

    assert await _positions(db_session, orders) == [1, 2, 4, 3]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_delivery_type_outside_queue_only_changes_type(
    db_session, admin_identity
):
    order = await _add(
        db_session, order_id="TS-Q8", status=OrderStatus.DELIVERED, delivery_value="K"
    )

    await change_delivery_type(
        db_session, admin_identity, "TS-Q8", DeliveryType.EXPRESS
    )

    assert order.delivery_type == DeliveryType.EXPRESS
    assert order.queue_position is None
    assert order.estimated_delivery_time is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_queue_operations_require_admin(db_session, customer_identity):
    await _queue(db_session, 2)

    with pytest.raises(Unauthorized):
        await update_queue_position(db_session, customer_identity, "TS-Q1", 2)
    with pytest.raises(Unauthorized):
        await change_delivery_type(
            db_session, customer_identity, "TS-Q1", DeliveryType.EXPRESS
        )


# ---------------------------------------------------------------------------
# Single-field edits and display mapping
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_set_express_and_notes_bump_updated_at(db_session, admin_identity):
    order = await _add(
        db_session, order_id="TS-8001", updated_at=utc_now() - timedelta(days=1)
    )
    stale = ensure_utc(order.updated_at)

    await set_express(db_session, admin_identity, "TS-8001", True)
    assert order.is_express is True
    assert ensure_utc(order.updated_at) > stale

    await add_admin_notes(db_session, admin_identity, "TS-8001", "VIP buyer")
    assert order.admin_notes == "VIP buyer"


@pytest.mark.unit
def test_progress_mapping():
    assert progress_for_status(OrderStatus.QUEUED) == 33
    assert progress_for_status("in_progress") == 66
    assert progress_for_status(OrderStatus.DELAYED) == 50
    assert progress_for_status(OrderStatus.DELIVERED) == 100
    assert progress_for_status(OrderStatus.CANCELLED) == 100
    assert progress_for_status(OrderStatus.PENDING) == 0
    assert progress_for_status("something-else") == 0


@pytest.mark.unit
def test_status_labels():
    assert label_for_status(OrderStatus.IN_PROGRESS) == "In Progress"
    assert label_for_status("Payment Verification") == "Payment Verification"
    assert label_for_status("mystery") == "mystery"
