"""Customer reviews ("vouches")."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.store_service.models.commerce import JSONType
from services.store_service.models.enums import (
    VerificationMethod,
    VouchStatus,
    enum_values,
)
from sqlalchemy import Boolean, CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import Integer, Numeric, String, Text, UniqueConstraint, Uuid, false
from sqlalchemy.orm import Mapped, mapped_column


class Vouch(Base):
    """A review, optionally tied to a verified purchase."""

    __tablename__ = "vouches"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # Reviewer
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    profile_picture: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    country: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    country_code: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)

    # Purchase snapshot, copied from the order at submission time
    product_purchased: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True
    )
    order_number: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    purchase_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    purchase_amount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2), nullable=True
    )
    currency: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)

    # Review
    platform: Mapped[str] = mapped_column(
        String(64), default="Website", server_default="Website"
    )
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    purchase_screenshot: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    additional_images: Mapped[Optional[list]] = mapped_column(JSONType, nullable=True)
    discord_username: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    instagram_handle: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    twitter_handle: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # Verification
    verification_method: Mapped[Optional[VerificationMethod]] = mapped_column(
        SAEnum(
            VerificationMethod,
            values_callable=enum_values,
            name="vouch_verification_method_enum",
        ),
        nullable=True,
    )
    is_verified_purchase: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false()
    )
    verification_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Moderation
    status: Mapped[VouchStatus] = mapped_column(
        SAEnum(VouchStatus, values_callable=enum_values, name="vouch_status_enum"),
        default=VouchStatus.PENDING,
        server_default="pending",
    )
    is_manual: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false()
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        # One review per order; NULL order numbers (manual vouches) are exempt
        UniqueConstraint("order_number", name="unique_vouch_order_number"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="vouch_rating_range"),
    )

    def __repr__(self):
        return f"<Vouch {self.id} status={self.status}>"
