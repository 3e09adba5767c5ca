"""
Order status-update e-mail templates (in progress, delayed, cancelled).

Delivered orders use the delivery templates instead; they carry the code.
"""

from html import escape
from typing import Optional

from services.communications_service.templates.base import (
    SHOP_NAME,
    SHOP_TAGLINE,
    content_panel,
    wrap_html,
)
from services.communications_service.templates.delivery import EmailTemplate

STATUS_COPY = {
    "in_progress": (
        "In Progress",
        "#3b82f6",
        "Good news! We've started working on your order and it will be "
        "delivered soon.",
    ),
    "delayed": (
        "Delayed",
        "#f59e0b",
        "Your order is taking a little longer than usual. We're on it and will "
        "deliver it as soon as possible.",
    ),
    "cancelled": (
        "Cancelled",
        "#ef4444",
        "Your order has been cancelled. If you believe this is a mistake, "
        "please contact our support team.",
    ),
}


def has_status_template(status: str) -> bool:
    return status in STATUS_COPY


def build_status_update_email(
    order_number: str,
    product_name: str,
    status: str,
    message: Optional[str] = None,
) -> EmailTemplate:
    """Render a status-update e-mail.

    Args:
        order_number: Human-facing order id.
        product_name: Product as shown on the order.
        status: One of the keys of STATUS_COPY.
        message: Optional admin note shown under the default copy
            (cancellation reason, delay explanation).
    """
    label, color, default_copy = STATUS_COPY[status]
    subject = f"Order #{order_number} {label}"

    note_html = (
        f'<p style="border-left: 4px solid {color}; padding-left: 10px;">'
        f"{escape(message)}</p>"
        if message
        else ""
    )
    badge = (
        f'<span style="display: inline-block; background-color: {color}; color: white; '
        f'padding: 4px 10px; border-radius: 20px; font-size: 14px;">{label}</span>'
    )
    html = wrap_html(
        title="Order Status Update",
        subtitle=f"<p>Order #: {escape(order_number)}</p>"
        f"<p>Product: {escape(product_name)}</p>",
        body_html=content_panel(
            f"Order #{order_number}",
            f"<p><strong>Status:</strong> {badge}</p><p>{default_copy}</p>{note_html}",
            accent=color,
        ),
    )

    text_lines = [
        subject,
        "",
        f"Product: {product_name}",
        f"Status: {label}",
        "",
        default_copy,
    ]
    if message:
        text_lines.extend(["", message])
    text_lines.extend(["", f"{SHOP_NAME} - {SHOP_TAGLINE}"])
    return EmailTemplate(subject=subject, html=html, text="\n".join(text_lines))
