"""Domain entity describing the person a notification is addressed to."""

from dataclasses import dataclass


@dataclass
class Recipient:
    """Platform user as seen by the notification pipeline."""

    id: str
    email: str | None
    first_name: str | None = None
    email_notifications_enabled: bool = True

    @property
    def display_name(self) -> str:
        return (self.first_name or "").strip() or "Homeowner"


__all__ = ["Recipient"]
