"""Enum definitions for store service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    PAYMENT_VERIFICATION = "Payment Verification"
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    DELIVERED = "delivered"
    DELAYED = "delayed"
    CANCELLED = "cancelled"


# Orders holding a place in the fulfilment queue
ACTIVE_QUEUE_STATUSES = (OrderStatus.QUEUED, OrderStatus.IN_PROGRESS)


class DeliveryType(str, enum.Enum):
    STANDARD = "Standard"
    EXPRESS = "Express"


class DeliveryMethod(str, enum.Enum):
    ACCOUNT = "account"
    CODE = "code"
    DIRECT = "direct"
    GIFTCARD = "giftcard"
    GIFT_LINK = "gift_link"


class EmailType(str, enum.Enum):
    DELIVERY = "delivery"
    RESEND = "resend"
    IN_PROGRESS = "in_progress"
    DELAYED = "delayed"
    CANCELLED = "cancelled"


class UserRole(str, enum.Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"


class VouchStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class VerificationMethod(str, enum.Enum):
    EMAIL = "email"
    PURCHASE = "purchase"
    SOCIAL = "social"
    PHONE = "phone"
    NONE = "none"
