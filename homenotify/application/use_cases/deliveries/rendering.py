"""HTML rendering for immediate and digest notification emails."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from html import escape

from homenotify.config import get_settings
from homenotify.domain.entities import Notification, Recipient
from homenotify.utils import to_app_timezone


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    html: str


def absolute_action_url(action_url: str | None) -> str | None:
    """Prefix relative links with ``APP_BASE_URL`` when one is configured."""

    if not action_url:
        return None
    if action_url.startswith(("http://", "https://")):
        return action_url
    base_url = get_settings().app_base_url.rstrip("/")
    if not base_url:
        return action_url
    return f"{base_url}/{action_url.lstrip('/')}"


def render_notification_card(notification: Notification) -> str:
    parts = [
        '<div style="border:1px solid #e5e7eb;border-radius:8px;padding:12px 16px;margin:0 0 12px;">',
        f'<p style="margin:0 0 4px;font-weight:600;">{escape(notification.title)}</p>',
        f'<p style="margin:0;">{escape(notification.message)}</p>',
    ]
    link = absolute_action_url(notification.action_url)
    if link:
        parts.append(
            f'<p style="margin:8px 0 0;"><a href="{escape(link, quote=True)}">View details</a></p>'
        )
    parts.append("</div>")
    return "".join(parts)


def _render_body(recipient: Recipient, intro: str, notifications: Sequence[Notification]) -> str:
    cards = "".join(render_notification_card(notification) for notification in notifications)
    return (
        f"<p>Hi {escape(recipient.display_name)},</p>"
        f"<p>{escape(intro)}</p>"
        f"{cards}"
        "<p>You can manage your notification preferences from your account settings.</p>"
    )


def render_immediate_email(
    recipient: Recipient, notifications: Sequence[Notification]
) -> RenderedEmail:
    """Render one message for a batch of urgent notifications."""

    if len(notifications) == 1:
        subject = notifications[0].title
        intro = "There is an update on your account."
    else:
        subject = f"You have {len(notifications)} new updates"
        intro = f"There are {len(notifications)} updates on your account."
    return RenderedEmail(subject=subject, html=_render_body(recipient, intro, notifications))


def render_digest_email(
    recipient: Recipient,
    notifications: Sequence[Notification],
    *,
    generated_at: datetime,
) -> RenderedEmail:
    """Render the daily digest listing several pending notifications."""

    local = to_app_timezone(generated_at)
    day = f"{local:%B} {local.day}, {local.year}"
    count = len(notifications)
    noun = "update" if count == 1 else "updates"
    subject = f"Your daily summary for {day}"
    intro = f"Here {'is' if count == 1 else 'are'} {count} {noun} since your last summary."
    return RenderedEmail(subject=subject, html=_render_body(recipient, intro, notifications))


__all__ = [
    "RenderedEmail",
    "absolute_action_url",
    "render_digest_email",
    "render_immediate_email",
    "render_notification_card",
]
