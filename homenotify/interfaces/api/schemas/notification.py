"""Pydantic models describing notification payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from homenotify.domain.entities import DeliveryChannel, DeliveryStatus


class NotificationMarkReadRequest(BaseModel):
    """Payload used to mark a batch of notifications as read."""

    ids: list[str] = Field(..., min_length=1, description="Notification identifiers")

    def unique_ids(self) -> list[str]:
        """Return the list of identifiers without duplicates preserving order."""

        return list(dict.fromkeys(self.ids))


class DeliveryRead(BaseModel):
    """Status of one channel delivery."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    channel: DeliveryChannel
    status: DeliveryStatus
    enqueued_at: datetime | None = None
    sent_at: datetime | None = None
    failure_reason: str | None = None


class NotificationRead(BaseModel):
    """Representation of a notification delivered to the client."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    type: str
    title: str
    message: str
    action_url: str | None = None
    entity_type: str
    entity_id: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    read_at: datetime | None = None
    deliveries: list[DeliveryRead] = Field(default_factory=list)


class UnreadCountRead(BaseModel):
    count: int


class MarkReadResponse(BaseModel):
    updated: int


__all__ = [
    "DeliveryRead",
    "MarkReadResponse",
    "NotificationMarkReadRequest",
    "NotificationRead",
    "UnreadCountRead",
]
