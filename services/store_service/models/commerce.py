"""Store commerce models: orders."""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.store_service.models.enums import (
    DeliveryMethod,
    DeliveryType,
    OrderStatus,
    enum_values,
)
from sqlalchemy import JSON, Boolean, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import Index, Integer, String, Text, Uuid, false
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Order(Base):
    """One purchase of a digital product, tracked through to delivery."""

    __tablename__ = "store_orders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # Human-facing id; looked up by equality, not the primary key
    order_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    # Commerce
    product: Mapped[str] = mapped_column(String(255), nullable=False)
    tier: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    price: Mapped[str] = mapped_column(String(32), nullable=False)  # decimal string
    currency: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    items: Mapped[Optional[list]] = mapped_column(
        JSONType, nullable=True
    )  # [{"product": str, "amount": str, "price": str, "quantity": int}]
    platform: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    payment_method: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    delivery_type: Mapped[DeliveryType] = mapped_column(
        SAEnum(
            DeliveryType,
            values_callable=enum_values,
            name="store_delivery_type_enum",
        ),
        default=DeliveryType.STANDARD,
        server_default="Standard",
    )
    delivery_method: Mapped[Optional[DeliveryMethod]] = mapped_column(
        SAEnum(
            DeliveryMethod,
            values_callable=enum_values,
            name="store_delivery_method_enum",
        ),
        nullable=True,
    )

    # Customer (guest checkout: the e-mail is the ownership key)
    buyer_email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    game_username: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    country: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Lifecycle
    status: Mapped[OrderStatus] = mapped_column(
        SAEnum(
            OrderStatus,
            values_callable=enum_values,
            name="store_order_status_enum",
        ),
        default=OrderStatus.PENDING,
        server_default="pending",
    )
    is_express: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false()
    )
    queue_position: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    estimated_delivery_time: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Fulfilment (set together, once, on delivery)
    delivery_value: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    delivered_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Audit
    admin_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    email_log: Mapped[list] = mapped_column(
        JSONType, default=list, nullable=False
    )  # append-only [{"sentAt", "emailType", "success", "error"?}]
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    __table_args__ = (
        Index("ix_store_orders_buyer_email_created_at", "buyer_email", "created_at"),
        Index("ix_store_orders_status_queue_position", "status", "queue_position"),
    )

    def __repr__(self):
        return f"<Order {self.order_id} status={self.status}>"
