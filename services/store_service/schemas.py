"""Pydantic schemas for store service."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import ensure_utc
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from services.store_service.models import (
    DeliveryMethod,
    DeliveryType,
    OrderStatus,
    VerificationMethod,
    VouchStatus,
)

# ============================================================================
# ORDER SCHEMAS
# ============================================================================


class EmailLogEntry(BaseModel):
    """One notification attempt recorded on an order."""

    model_config = ConfigDict(populate_by_name=True)

    sent_at: datetime = Field(..., alias="sentAt")
    email_type: str = Field(..., alias="emailType")
    success: bool
    error: Optional[str] = None

    @field_validator("sent_at")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class OrderItem(BaseModel):
    product: str
    amount: Optional[str] = None
    price: Optional[str] = None
    quantity: int = 1


class OrderResponse(BaseModel):
    """Order as read back from the store.

    Timestamps are normalised to UTC and malformed e-mail log entries are
    rejected here rather than leaking loose shapes to callers.
    """

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_id: str
    product: str
    tier: Optional[str] = None
    price: str
    currency: Optional[str] = None
    items: Optional[list[OrderItem]] = None
    platform: Optional[str] = None
    payment_method: Optional[str] = None
    delivery_type: DeliveryType
    delivery_method: Optional[DeliveryMethod] = None
    buyer_email: str
    game_username: Optional[str] = None
    country: Optional[str] = None
    notes: Optional[str] = None
    status: OrderStatus
    is_express: bool = False
    queue_position: Optional[int] = None
    estimated_delivery_time: Optional[datetime] = None
    delivery_value: Optional[str] = None
    delivered_at: Optional[datetime] = None
    admin_notes: Optional[str] = None
    email_log: list[EmailLogEntry] = []
    created_at: datetime
    updated_at: datetime

    @field_validator(
        "estimated_delivery_time",
        "delivered_at",
        "created_at",
        "updated_at",
    )
    @classmethod
    def _utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    @field_validator("email_log", mode="before")
    @classmethod
    def _default_log(cls, v):
        return v or []


class CustomerOrderResponse(BaseModel):
    """Customer-facing view of an order; hides admin-only fields."""

    model_config = ConfigDict(from_attributes=True)

    order_id: str
    product: str
    tier: Optional[str] = None
    price: str
    currency: Optional[str] = None
    platform: Optional[str] = None
    delivery_type: DeliveryType
    status: OrderStatus
    is_express: bool = False
    queue_position: Optional[int] = None
    estimated_delivery_time: Optional[datetime] = None
    delivery_value: Optional[str] = None
    delivered_at: Optional[datetime] = None
    created_at: datetime

    @field_validator(
        "estimated_delivery_time", "delivered_at", "created_at"
    )
    @classmethod
    def _utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)


class OrderListResponse(BaseModel):
    orders: list[OrderResponse]
    total: int
    page: int
    page_size: int


class OrderTrackingResponse(BaseModel):
    """Read-only progress view for the public tracking page."""

    order_id: str
    product: str
    status: OrderStatus
    status_label: str
    progress: int
    is_express: bool = False
    queue_position: Optional[int] = None
    estimated_delivery_time: Optional[datetime] = None
    delivered_at: Optional[datetime] = None


# ============================================================================
# ORDER LIFECYCLE REQUESTS
# ============================================================================


class DeliveryRequest(BaseModel):
    delivery_value: str = Field(..., min_length=1)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    admin_notes: Optional[str] = None
    delivery_value: Optional[str] = None
    message: Optional[str] = Field(
        None, description="Shown to the customer in the status e-mail"
    )


class ExpressUpdate(BaseModel):
    is_express: bool


class DeliveryTypeUpdate(BaseModel):
    delivery_type: DeliveryType


class QueuePositionUpdate(BaseModel):
    queue_position: int = Field(..., ge=1)


class NotesUpdate(BaseModel):
    admin_notes: str


class NotificationResult(BaseModel):
    """Outcome of the notification attached to a lifecycle operation."""

    success: bool
    error: Optional[str] = None


class LifecycleResponse(BaseModel):
    order: OrderResponse
    notification: Optional[NotificationResult] = None


class ResendActionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    order_id: str = Field(..., alias="orderId", min_length=1)


class ActionResponse(BaseModel):
    success: bool
    message: str


# ============================================================================
# REPORTING SCHEMAS
# ============================================================================


class RevenueSummary(BaseModel):
    today: float = 0.0
    this_week: float = 0.0
    this_month: float = 0.0
    total: float = 0.0
    currency: str


# ============================================================================
# VOUCH SCHEMAS
# ============================================================================


class EligibilityResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    can_submit: bool = Field(..., serialization_alias="canSubmit")
    reason: Optional[str] = None


class VouchSubmission(BaseModel):
    """Customer review for a delivered order.

    Rating and required text are checked by the eligibility guard so the
    caller gets the same reason strings whichever way the request arrives.
    """

    order_number: str
    email: str
    name: str = ""
    message: str = ""
    rating: int = 0
    profile_picture: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    country_code: Optional[str] = None
    discord_username: Optional[str] = None
    instagram_handle: Optional[str] = None
    twitter_handle: Optional[str] = None


class VouchSubmitResponse(BaseModel):
    id: uuid.UUID


class ManualVouchCreate(BaseModel):
    name: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    rating: int = Field(..., ge=1, le=5)
    email: Optional[EmailStr] = None
    profile_picture: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    country_code: Optional[str] = None
    product_purchased: Optional[str] = None
    order_number: Optional[str] = None
    purchase_date: Optional[datetime] = None
    purchase_amount: Optional[Decimal] = None
    currency: Optional[str] = None
    platform: str = "Website"
    purchase_screenshot: Optional[str] = None
    discord_username: Optional[str] = None
    verification_method: Optional[VerificationMethod] = None
    is_verified_purchase: bool = False
    status: VouchStatus = VouchStatus.APPROVED


class VouchStatusUpdate(BaseModel):
    # Plain string so unknown values reach the guard and get a reason string
    status: str


class VouchResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    email: Optional[str] = None
    profile_picture: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    country_code: Optional[str] = None
    product_purchased: Optional[str] = None
    order_number: Optional[str] = None
    purchase_date: Optional[datetime] = None
    purchase_amount: Optional[Decimal] = None
    currency: Optional[str] = None
    platform: str
    rating: int
    message: str
    purchase_screenshot: Optional[str] = None
    discord_username: Optional[str] = None
    verification_method: Optional[VerificationMethod] = None
    is_verified_purchase: bool
    verification_date: Optional[datetime] = None
    status: VouchStatus
    is_manual: bool
    created_at: datetime
    updated_at: datetime

    @field_validator(
        "purchase_date", "verification_date", "created_at", "updated_at"
    )
    @classmethod
    def _utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)


class PublicVouchResponse(BaseModel):
    """Approved vouch as shown on the public page (no contact e-mail)."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    profile_picture: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    country_code: Optional[str] = None
    product_purchased: Optional[str] = None
    purchase_date: Optional[datetime] = None
    platform: str
    rating: int
    message: str
    is_verified_purchase: bool
    created_at: datetime

    @field_validator("purchase_date", "created_at")
    @classmethod
    def _utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)
