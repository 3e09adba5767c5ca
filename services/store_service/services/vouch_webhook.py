"""Post newly approved vouches to a Discord channel webhook."""

from typing import Optional

import httpx
from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.communications_service.templates.base import SHOP_NAME
from services.store_service.models import Vouch

logger = get_logger(__name__)

EMBED_COLOR = 0x00FF00
FIELD_VALUE_LIMIT = 1024


def _truncate(value: str, limit: int = FIELD_VALUE_LIMIT) -> str:
    if len(value) <= limit:
        return value
    return value[: limit - 3] + "..."


def build_vouch_embed(vouch: Vouch) -> dict:
    """Discord embed for a vouch."""
    fields = [
        {"name": "Customer", "value": vouch.name, "inline": True},
        {"name": "Rating", "value": "⭐" * vouch.rating, "inline": True},
        {
            "name": "Product",
            "value": vouch.product_purchased or "General",
            "inline": True,
        },
        {"name": "Review", "value": _truncate(vouch.message), "inline": False},
    ]
    location = ", ".join(part for part in (vouch.city, vouch.country) if part)
    if location:
        fields.append({"name": "Location", "value": location, "inline": True})
    if vouch.is_verified_purchase:
        fields.append(
            {"name": "Status", "value": "✅ Verified Purchase", "inline": True}
        )

    return {
        "title": "⭐ New Customer Review",
        "color": EMBED_COLOR,
        "fields": fields,
        "footer": {"text": SHOP_NAME},
        "timestamp": utc_now().isoformat(),
    }


async def send_vouch_to_discord(
    vouch: Vouch,
    webhook_url: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> bool:
    """Best-effort post; returns whether Discord accepted it. Never raises."""
    url = webhook_url or get_settings().DISCORD_VOUCH_WEBHOOK_URL
    if not url:
        logger.info("Discord webhook URL not configured for vouches")
        return False

    try:
        async with httpx.AsyncClient(timeout=10.0, transport=transport) as client:
            response = await client.post(
                url, json={"embeds": [build_vouch_embed(vouch)]}
            )
    except httpx.HTTPError as e:
        logger.error(f"Error sending vouch {vouch.id} to Discord: {e}")
        return False

    if not response.is_success:
        logger.error(
            f"Failed to send vouch {vouch.id} to Discord: {response.status_code}"
        )
        return False
    return True
