"""
Shared branded e-mail layout for The Turkish Shop.

Every customer e-mail goes through `wrap_html()` so the header, footer and
typography stay consistent. Styles are inlined because most webmail clients
strip <style> blocks from transactional mail.

Accent colours by platform:
- PlayStation:   #3182ce
- Steam:         #2b6cb0
- Discord Nitro: #5865F2
- Spotify:       #1DB954
- Top-ups / generic: #4c51bf

Usage:
    from services.communications_service.templates.base import wrap_html, code_box, steps_list

    html = wrap_html(
        title="Your Order is Ready!",
        body_html=code_box("ABCD-1234") + steps_list("How to redeem", [...]),
        subtitle="Order #TS-1001",
    )
"""

from html import escape

SHOP_NAME = "The Turkish Shop"
SHOP_TAGLINE = "Premium Digital Products"

ACCENT_PLAYSTATION = "#3182ce"
ACCENT_STEAM = "#2b6cb0"
ACCENT_DISCORD = "#5865F2"
ACCENT_SPOTIFY = "#1DB954"
ACCENT_DEFAULT = "#4c51bf"
ACCENT_ALERT = "#e53e3e"


def wrap_html(
    title: str,
    body_html: str,
    subtitle: str = "",
    badge: str = "",
) -> str:
    """Wrap inner content in the branded layout.

    Args:
        title: Heading shown in the header panel.
        body_html: Already-formatted inner HTML.
        subtitle: Extra header lines (order number, product), may contain HTML.
        badge: Optional emphasised line under the subtitle (e.g. EXPRESS DELIVERY).
    """
    badge_html = (
        f'<p style="color: {ACCENT_ALERT}; font-weight: bold; margin: 8px 0 0;">{badge}</p>'
        if badge
        else ""
    )
    return f"""\
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1.0" />
    <title>{escape(title)}</title>
</head>
<body style="margin: 0; padding: 0; background-color: #ffffff;">
    <div style="font-family: 'Helvetica Neue', Helvetica, Arial, sans-serif; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
        <div style="background-color: #f7f7f7; padding: 20px; border-radius: 10px; margin-bottom: 20px;">
            <h1 style="color: #2d3748; margin: 0 0 10px 0;">{escape(title)}</h1>
            {subtitle}
            {badge_html}
        </div>
        {body_html}
        <div style="margin-top: 30px; padding-top: 20px; border-top: 1px solid #eaeaea; font-size: 12px; color: #666;">
            <p>If you have any questions, please contact our support team.</p>
            <p>{SHOP_NAME} - {SHOP_TAGLINE}</p>
        </div>
    </div>
</body>
</html>"""


def content_panel(heading: str, inner_html: str, accent: str = ACCENT_DEFAULT) -> str:
    """White bordered panel with a coloured heading."""
    return (
        '<div style="background-color: #ffffff; padding: 20px; border-radius: 10px; '
        'border: 1px solid #e2e8f0;">'
        f'<h2 style="color: {accent};">{escape(heading)}</h2>'
        f"{inner_html}</div>"
    )


def code_box(value: str, bg_color: str = "#f7fafc") -> str:
    """Large monospace box for a code, key or confirmation id."""
    return (
        f'<div style="background-color: {bg_color}; padding: 15px; border-radius: 5px; '
        "font-family: monospace; font-size: 18px; letter-spacing: 1px; margin: 15px 0; "
        f'text-align: center;"><strong>{escape(value)}</strong></div>'
    )


def detail_box(items: dict[str, str], bg_color: str = "#f0fff4") -> str:
    """Label/value lines (e.g. account credentials). Empty values are skipped."""
    rows = "".join(
        f"<p><strong>{escape(label)}:</strong> {escape(value)}</p>"
        for label, value in items.items()
        if value
    )
    return (
        f'<div style="background-color: {bg_color}; padding: 15px; border-radius: 5px; '
        f'margin: 15px 0;">{rows}</div>'
    )


def steps_list(title: str, steps: list[str]) -> str:
    """Numbered instructions. Steps may contain inline HTML (bold, links)."""
    items = "".join(f"<li>{step}</li>" for step in steps)
    return (
        f'<h3 style="margin-top: 25px;">{escape(title)}</h3>'
        f'<ol style="line-height: 1.6;">{items}</ol>'
    )


def steps_text(title: str, steps: list[str]) -> str:
    """Plain-text counterpart of `steps_list`."""
    lines = [f"{title}:"]
    lines.extend(f"{index}. {step}" for index, step in enumerate(steps, start=1))
    return "\n".join(lines)
