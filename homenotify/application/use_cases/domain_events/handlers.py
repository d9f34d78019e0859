"""Translate domain events into notification drafts.

Each handler is a pure function of the event: it validates the fields it
needs and describes the notification to create, without touching the
database. Dispatch goes through :data:`HANDLERS`, keyed by
:class:`DomainEventType`; the mapping is checked at import time so every
member of the enum has exactly one handler.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any

from homenotify.domain.entities import (
    ENTITY_TYPE_CLAIM,
    DeliveryChannel,
    DomainEvent,
    DomainEventType,
    NotificationPriority,
)
from homenotify.domain.errors import MissingEventFieldError, UnknownDomainEventTypeError
from homenotify.utils import to_app_timezone

CLAIM_CHANNELS: tuple[DeliveryChannel, ...] = (DeliveryChannel.IN_APP, DeliveryChannel.EMAIL)


@dataclass(frozen=True)
class NotificationDraft:
    """Everything needed to materialize a notification for one event."""

    user_id: str
    notification_type: str
    title: str
    message: str
    entity_type: str
    entity_id: str
    channels: tuple[DeliveryChannel, ...]
    priority: NotificationPriority
    action_url: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


Handler = Callable[[DomainEvent], NotificationDraft]


def _safe_string(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _require_user_id(event: DomainEvent) -> str:
    user_id = event.user_id or event.payload.get("userId")
    if not user_id:
        raise MissingEventFieldError("userId", where="event")
    return str(user_id)


def _require_payload_value(event: DomainEvent, key: str) -> str:
    value = event.payload.get(key)
    if value is None or value == "":
        raise MissingEventFieldError(key)
    return str(value)


def _property_id(event: DomainEvent) -> str | None:
    value = event.property_id or event.payload.get("propertyId")
    return str(value) if value else None


def build_claim_action_url(property_id: str | None, claim_id: str | None) -> str | None:
    """Return the dashboard link for a claim, or ``None`` when either id is unknown."""

    if not property_id or not claim_id:
        return None
    return f"/dashboard/properties/{property_id}/claims/{claim_id}"


def _compact(values: Mapping[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in values.items() if value not in (None, "")}


def _format_due_date(value: Any) -> str:
    text = _safe_string(value)
    if not text:
        return ""
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return text
    localized = to_app_timezone(parsed)
    return f"{localized:%B} {localized.day}, {localized.year}"


def handle_claim_submitted(event: DomainEvent) -> NotificationDraft:
    user_id = _require_user_id(event)
    claim_id = _require_payload_value(event, "claimId")
    property_id = _property_id(event)

    provider_name = _safe_string(event.payload.get("providerName"))
    claim_number = _safe_string(event.payload.get("claimNumber"))
    if provider_name or claim_number:
        message = "Your claim was submitted"
        if provider_name:
            message += f" to {provider_name}"
        if claim_number:
            message += f" (Claim #{claim_number})"
        message += "."
    else:
        message = "Your claim was submitted."

    return NotificationDraft(
        user_id=user_id,
        notification_type=DomainEventType.CLAIM_SUBMITTED.value,
        title="Claim submitted",
        message=message,
        entity_type=ENTITY_TYPE_CLAIM,
        entity_id=claim_id,
        channels=CLAIM_CHANNELS,
        priority=NotificationPriority.HIGH,
        action_url=build_claim_action_url(property_id, claim_id),
        metadata=_compact(
            {
                "propertyId": property_id,
                "claimId": claim_id,
                "submittedAt": event.payload.get("submittedAt"),
                "providerName": provider_name,
                "claimNumber": claim_number,
            }
        ),
    )


def handle_claim_closed(event: DomainEvent) -> NotificationDraft:
    user_id = _require_user_id(event)
    claim_id = _require_payload_value(event, "claimId")
    property_id = _property_id(event)

    return NotificationDraft(
        user_id=user_id,
        notification_type=DomainEventType.CLAIM_CLOSED.value,
        title="Claim closed",
        message="Your claim was closed.",
        entity_type=ENTITY_TYPE_CLAIM,
        entity_id=claim_id,
        channels=CLAIM_CHANNELS,
        priority=NotificationPriority.HIGH,
        action_url=build_claim_action_url(property_id, claim_id),
        metadata=_compact(
            {
                "propertyId": property_id,
                "claimId": claim_id,
                "closedAt": event.payload.get("closedAt"),
                "settlementAmount": event.payload.get("settlementAmount"),
                "finalStatus": event.payload.get("status"),
            }
        ),
    )


def handle_follow_up_due(event: DomainEvent) -> NotificationDraft:
    user_id = _require_user_id(event)
    claim_id = _require_payload_value(event, "claimId")
    property_id = _property_id(event)

    follow_up_at = event.payload.get("followUpAt") or event.payload.get("nextFollowUpAt")
    claim_number = _safe_string(event.payload.get("claimNumber"))
    subject = f"Claim #{claim_number}" if claim_number else "your claim"
    due = _format_due_date(follow_up_at)
    message = f"A follow-up on {subject} is due"
    message += f" on {due}." if due else "."

    return NotificationDraft(
        user_id=user_id,
        notification_type=DomainEventType.FOLLOW_UP_DUE.value,
        title="Claim follow-up due",
        message=message,
        entity_type=ENTITY_TYPE_CLAIM,
        entity_id=claim_id,
        channels=CLAIM_CHANNELS,
        priority=NotificationPriority.NORMAL,
        action_url=build_claim_action_url(property_id, claim_id),
        metadata=_compact(
            {
                "propertyId": property_id,
                "claimId": claim_id,
                "followUpAt": follow_up_at,
                "claimNumber": claim_number,
            }
        ),
    )


HANDLERS: Mapping[DomainEventType, Handler] = MappingProxyType(
    {
        DomainEventType.CLAIM_SUBMITTED: handle_claim_submitted,
        DomainEventType.CLAIM_CLOSED: handle_claim_closed,
        DomainEventType.FOLLOW_UP_DUE: handle_follow_up_due,
    }
)


def _verify_registry(handlers: Mapping[DomainEventType, Handler]) -> None:
    missing = [member.value for member in DomainEventType if member not in handlers]
    if missing:
        raise RuntimeError(f"No notification handler registered for: {', '.join(missing)}")


_verify_registry(HANDLERS)


def build_notification_draft(event: DomainEvent) -> NotificationDraft:
    """Run the handler registered for ``event.type``."""

    try:
        event_type = DomainEventType(event.type)
    except ValueError as exc:
        raise UnknownDomainEventTypeError(event.type) from exc
    return HANDLERS[event_type](event)


__all__ = [
    "CLAIM_CHANNELS",
    "HANDLERS",
    "Handler",
    "NotificationDraft",
    "build_claim_action_url",
    "build_notification_draft",
    "handle_claim_closed",
    "handle_claim_submitted",
    "handle_follow_up_due",
]
