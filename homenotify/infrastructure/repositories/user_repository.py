"""Read access to platform users addressed by notifications."""

from __future__ import annotations

from sqlalchemy.orm import Session

from homenotify.domain.entities import Recipient
from homenotify.infrastructure.models import UserModel


class UserRepository:
    """Resolve notification recipients."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, user_id: str) -> Recipient | None:
        model = self.session.get(UserModel, user_id)
        return self._to_entity(model) if model else None

    def create(self, recipient: Recipient) -> Recipient:
        model = UserModel(
            id=recipient.id,
            email=recipient.email,
            first_name=recipient.first_name,
            email_notifications_enabled=recipient.email_notifications_enabled,
        )
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    @staticmethod
    def _to_entity(model: UserModel) -> Recipient:
        return Recipient(
            id=model.id,
            email=model.email,
            first_name=model.first_name,
            email_notifications_enabled=bool(model.email_notifications_enabled),
        )


__all__ = ["UserRepository"]
