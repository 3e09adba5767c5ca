"""Store Service models package."""

from services.store_service.models.accounts import User
from services.store_service.models.commerce import Order
from services.store_service.models.enums import (
    ACTIVE_QUEUE_STATUSES,
    DeliveryMethod,
    DeliveryType,
    EmailType,
    OrderStatus,
    UserRole,
    VerificationMethod,
    VouchStatus,
)
from services.store_service.models.reviews import Vouch

__all__ = [
    "ACTIVE_QUEUE_STATUSES",
    "DeliveryMethod",
    "DeliveryType",
    "EmailType",
    "Order",
    "OrderStatus",
    "User",
    "UserRole",
    "VerificationMethod",
    "Vouch",
    "VouchStatus",
]
