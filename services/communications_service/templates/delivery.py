"""
Order delivery e-mail templates.

`build_delivery_email()` is a pure function of the order's product name,
platform hint and delivery-method hint. Platform detection is a
case-insensitive substring match against BOTH the explicit platform field
and the product name; either one matching is enough, so admins do not have
to keep the two fields consistent.
"""

import enum
from dataclasses import dataclass
from html import escape
from typing import Optional

from services.communications_service.templates.base import (
    ACCENT_DISCORD,
    ACCENT_PLAYSTATION,
    ACCENT_SPOTIFY,
    ACCENT_STEAM,
    SHOP_NAME,
    SHOP_TAGLINE,
    code_box,
    content_panel,
    detail_box,
    steps_list,
    steps_text,
    wrap_html,
)

FALLBACK_USERNAME = "provided username"
FALLBACK_PASSWORD = "provided password"


@dataclass(frozen=True)
class EmailTemplate:
    subject: str
    html: str
    text: str


class DeliveryPlatform(str, enum.Enum):
    PLAYSTATION = "playstation"
    STEAM = "steam"
    DISCORD_NITRO = "discord"
    SPOTIFY = "spotify"
    ROBLOX = "roblox"
    BRAWL_STARS = "brawl"
    GENERIC = "generic"


# Checked in order; the first keyword found in either field wins.
_PLATFORM_PRECEDENCE = (
    DeliveryPlatform.PLAYSTATION,
    DeliveryPlatform.STEAM,
    DeliveryPlatform.DISCORD_NITRO,
    DeliveryPlatform.SPOTIFY,
    DeliveryPlatform.ROBLOX,
    DeliveryPlatform.BRAWL_STARS,
)


def detect_platform(
    product_name: Optional[str], platform_hint: Optional[str] = None
) -> DeliveryPlatform:
    """Pick the delivery template family for a product."""
    fields = [value.lower() for value in (platform_hint, product_name) if value]
    for platform in _PLATFORM_PRECEDENCE:
        if any(platform.value in field for field in fields):
            return platform
    return DeliveryPlatform.GENERIC


def split_account_credentials(delivery_value: str) -> tuple[str, str]:
    """Split ``username:password`` on the first colon only.

    Passwords may contain colons. An empty side falls back to placeholder text.
    """
    username, _, password = delivery_value.partition(":")
    return username or FALLBACK_USERNAME, password or FALLBACK_PASSWORD


def _playstation(value: str) -> tuple[str, str]:
    steps = [
        "Go to <strong>Settings</strong> → <strong>Users and Accounts</strong> → "
        "<strong>Account</strong> → <strong>Redeem Code</strong>",
        "Enter the 12-digit PlayStation Network code shown above",
        "Confirm to redeem to your account",
    ]
    text_steps = [
        "Go to Settings → Users and Accounts → Account → Redeem Code",
        "Enter the 12-digit PlayStation Network code",
        "Confirm to redeem to your account",
    ]
    html = content_panel(
        "Your PlayStation Code",
        code_box(value, bg_color="#ebf8ff")
        + steps_list("How to Redeem Your PSN Code:", steps),
        accent=ACCENT_PLAYSTATION,
    )
    text = f"Your PlayStation Code: {value}\n\n" + steps_text(
        "How to Redeem Your PSN Code", text_steps
    )
    return html, text


def _steam(value: str) -> tuple[str, str]:
    steps = [
        "Open Steam and log in to your account",
        "Click on <strong>Games</strong> in the top menu",
        "Select <strong>Activate a Product on Steam</strong>",
        "Enter your key when prompted",
        "Follow the instructions to download and install your game",
    ]
    text_steps = [
        "Open Steam and log in to your account",
        "Click on Games in the top menu",
        "Select Activate a Product on Steam",
        "Enter your key when prompted",
        "Follow the instructions to download and install your game",
    ]
    html = content_panel(
        "Your Steam Key",
        code_box(value, bg_color="#ebf8ff")
        + steps_list("How to Redeem Your Steam Key:", steps),
        accent=ACCENT_STEAM,
    )
    text = f"Your Steam Key: {value}\n\n" + steps_text(
        "How to Redeem Your Steam Key", text_steps
    )
    return html, text


def _discord_nitro(value: str) -> tuple[str, str]:
    steps = [
        "Open Discord on your device",
        "Click on <strong>User Settings</strong> (gear icon)",
        "Select <strong>Gift Inventory</strong>",
        "Click <strong>Redeem Code</strong>",
        "Enter the code shown above",
    ]
    text_steps = [
        "Open Discord on your device",
        "Click on User Settings (gear icon)",
        "Select Gift Inventory",
        "Click Redeem Code",
        "Enter the code shown above",
    ]
    html = content_panel(
        "Your Discord Nitro Code",
        code_box(value, bg_color="#F6F6FE")
        + steps_list("How to Redeem Your Discord Nitro:", steps),
        accent=ACCENT_DISCORD,
    )
    text = f"Your Discord Nitro Code: {value}\n\n" + steps_text(
        "How to Redeem Your Discord Nitro", text_steps
    )
    return html, text


def _spotify_account(value: str) -> tuple[str, str]:
    username, password = split_account_credentials(value)
    steps = [
        '<a href="https://spotify.com/login" style="color: #1DB954;">Go to spotify.com/login</a>',
        "Enter the username and password provided above",
        "We strongly recommend changing the password after first login",
    ]
    text_steps = [
        "Go to spotify.com/login",
        "Enter the username and password provided above",
        "We strongly recommend changing the password after first login",
    ]
    html = content_panel(
        "Your Spotify Premium Account",
        detail_box({"Username": username, "Password": password})
        + steps_list("How to Access Your Spotify Premium Account:", steps),
        accent=ACCENT_SPOTIFY,
    )
    text = (
        "Your Spotify Premium Account:\n"
        f"Username: {username}\n"
        f"Password: {password}\n\n"
        + steps_text("How to Access Your Spotify Premium Account", text_steps)
    )
    return html, text


def _spotify_code(value: str) -> tuple[str, str]:
    steps = [
        '<a href="https://spotify.com/redeem" style="color: #1DB954;">Go to spotify.com/redeem</a>',
        "Sign in to your Spotify account",
        "Enter the redemption code shown above",
        "Enjoy your Premium membership!",
    ]
    text_steps = [
        "Go to spotify.com/redeem",
        "Sign in to your Spotify account",
        "Enter the redemption code shown above",
        "Enjoy your Premium membership!",
    ]
    html = content_panel(
        "Your Spotify Premium Code",
        code_box(value, bg_color="#f0fff4")
        + steps_list("How to Redeem Your Spotify Premium Code:", steps),
        accent=ACCENT_SPOTIFY,
    )
    text = f"Your Spotify Premium Code: {value}\n\n" + steps_text(
        "How to Redeem Your Spotify Premium Code", text_steps
    )
    return html, text


def _top_up(value: str, game: str, currency: str) -> tuple[str, str]:
    steps = [
        f"Launch {game} on your device",
        "Log in to your account",
        f"Check your {currency} balance - it should be updated",
        "If the balance hasn't updated within 24 hours, please contact our support",
    ]
    confirmation = (
        '<div style="background-color: #faf5ff; padding: 15px; border-radius: 5px; margin: 15px 0;">'
        "<p>Your top-up has been successfully processed!</p>"
        f"<p>Confirmation ID: <strong>{escape(value)}</strong></p>"
        f"<p>The {currency} have been added to your account.</p></div>"
    )
    html = content_panel(
        f"Your {game} Top-Up Confirmation",
        confirmation + steps_list("Next Steps:", steps),
    )
    text = (
        f"Your {game} Top-Up Confirmation\n"
        f"Confirmation ID: {value}\n"
        f"The {currency} have been added to your account.\n\n"
        + steps_text("Next Steps", steps)
    )
    return html, text


def _generic(value: str, product_name: str) -> tuple[str, str]:
    info = (
        '<h3 style="margin-top: 25px;">Product Information:</h3>'
        f"<p>We've delivered your order for {escape(product_name)}. "
        "Use the code/information above to access your purchase.</p>"
        "<p>If you need further assistance, please contact our support team "
        "with your order number.</p>"
    )
    html = content_panel("Your Order Details", code_box(value) + info)
    text = (
        f"Your Order Details for {product_name}:\n{value}\n\n"
        "If you need further assistance, please contact our support team "
        "with your order number."
    )
    return html, text


def build_delivery_email(
    order_number: str,
    product_name: str,
    delivery_value: str,
    platform_hint: Optional[str] = None,
    delivery_type_hint: Optional[str] = None,
    is_express: bool = False,
) -> EmailTemplate:
    """Render the delivery e-mail for an order.

    Args:
        order_number: Human-facing order id.
        product_name: Product as shown on the order.
        delivery_value: The code, key or credentials being delivered.
        platform_hint: The order's explicit platform field, if any.
        delivery_type_hint: The order's delivery method ("account", "code", ...).
            Only Spotify distinguishes account credentials from codes.
        is_express: Adds the EXPRESS DELIVERY badge.
    """
    platform = detect_platform(product_name, platform_hint)

    if platform is DeliveryPlatform.PLAYSTATION:
        content_html, content_text = _playstation(delivery_value)
    elif platform is DeliveryPlatform.STEAM:
        content_html, content_text = _steam(delivery_value)
    elif platform is DeliveryPlatform.DISCORD_NITRO:
        content_html, content_text = _discord_nitro(delivery_value)
    elif platform is DeliveryPlatform.SPOTIFY:
        if (delivery_type_hint or "").lower() == "account":
            content_html, content_text = _spotify_account(delivery_value)
        else:
            content_html, content_text = _spotify_code(delivery_value)
    elif platform is DeliveryPlatform.ROBLOX:
        content_html, content_text = _top_up(delivery_value, "Roblox", "Robux")
    elif platform is DeliveryPlatform.BRAWL_STARS:
        content_html, content_text = _top_up(delivery_value, "Brawl Stars", "Gems")
    else:
        content_html, content_text = _generic(delivery_value, product_name)

    subject = f"Your Order is Ready: {product_name} #{order_number}"
    subtitle = (
        f"<p>Order #: {escape(order_number)}</p>"
        f"<p>Product: {escape(product_name)}</p>"
    )
    html = wrap_html(
        title="Your Order is Ready!",
        body_html=content_html,
        subtitle=subtitle,
        badge="EXPRESS DELIVERY" if is_express else "",
    )
    text = f"{subject}\n\n{content_text}\n\n{SHOP_NAME} - {SHOP_TAGLINE}"
    return EmailTemplate(subject=subject, html=html, text=text)
