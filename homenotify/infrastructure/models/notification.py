"""SQLAlchemy models for persisted notifications and their deliveries."""

from uuid import uuid4

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from homenotify.infrastructure.database import Base
from homenotify.utils import utcnow


class NotificationModel(Base):
    """Database representation for user notifications."""

    __tablename__ = "notification"
    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "type",
            "entity_type",
            "entity_id",
            "domain_event_id",
            name="uq_notification_domain_event",
        ),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String(36), nullable=False, index=True)
    type = Column(String(64), nullable=False)
    title = Column(String(160), nullable=False)
    message = Column(Text, nullable=False)
    action_url = Column(String(512), nullable=True)
    entity_type = Column(String(40), nullable=False)
    entity_id = Column(String(36), nullable=False)
    # ``metadata`` is reserved on declarative classes.
    metadata_ = Column("metadata", JSON, nullable=False, default=dict)
    domain_event_id = Column(String(36), nullable=True, index=True)
    priority = Column(String(16), nullable=False, default="NORMAL")
    created_at = Column(DateTime, nullable=False, default=utcnow)
    read_at = Column(DateTime, nullable=True)

    deliveries = relationship(
        "NotificationDeliveryModel",
        back_populates="notification",
        cascade="all, delete-orphan",
        order_by="NotificationDeliveryModel.created_at",
    )


class NotificationDeliveryModel(Base):
    """Database representation of one channel delivery of a notification."""

    __tablename__ = "notification_delivery"
    __table_args__ = (
        Index("ix_notification_delivery_channel_status", "channel", "status"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    notification_id = Column(
        String(36),
        ForeignKey("notification.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    channel = Column(String(16), nullable=False)
    status = Column(String(16), nullable=False, default="PENDING")
    enqueued_at = Column(DateTime, nullable=True)
    sent_at = Column(DateTime, nullable=True)
    failure_reason = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    notification = relationship("NotificationModel", back_populates="deliveries")


__all__ = ["NotificationModel", "NotificationDeliveryModel"]
