"""Exceptions raised while turning domain events into notifications."""

from __future__ import annotations


class DomainEventError(Exception):
    """Base class for failures attributable to a single domain event."""


class MissingEventFieldError(DomainEventError):
    """A handler precondition failed because a required field is absent."""

    def __init__(self, field_name: str, *, where: str = "payload") -> None:
        self.field_name = field_name
        if where == "event":
            message = f"DomainEvent missing {field_name}"
        else:
            message = f"DomainEvent {where} missing {field_name}"
        super().__init__(message)


class UnknownDomainEventTypeError(DomainEventError, LookupError):
    """No handler is registered for the stored event type."""

    def __init__(self, event_type: str) -> None:
        self.event_type = event_type
        super().__init__(f"Unhandled DomainEvent type: {event_type}")


__all__ = [
    "DomainEventError",
    "MissingEventFieldError",
    "UnknownDomainEventTypeError",
]
