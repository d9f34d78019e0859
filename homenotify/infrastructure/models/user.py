"""SQLAlchemy model for the platform user table."""

from sqlalchemy import Boolean, Column, String
from sqlalchemy.sql import expression

from homenotify.infrastructure.database import Base


class UserModel(Base):
    """Subset of the platform user columns read by the notification pipeline."""

    __tablename__ = "user"

    id = Column(String(36), primary_key=True)
    email = Column(String(254), nullable=True, index=True)
    first_name = Column(String(80), nullable=True)
    email_notifications_enabled = Column(
        Boolean,
        nullable=False,
        default=True,
        server_default=expression.true(),
    )


__all__ = ["UserModel"]
