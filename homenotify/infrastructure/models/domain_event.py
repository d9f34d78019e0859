"""SQLAlchemy model for the domain event outbox."""

from uuid import uuid4

from sqlalchemy import JSON, Column, DateTime, Index, Integer, String, Text

from homenotify.infrastructure.database import Base
from homenotify.utils import utcnow


class DomainEventModel(Base):
    """Database representation of an outbox row awaiting notification processing."""

    __tablename__ = "domain_event"
    __table_args__ = (Index("ix_domain_event_status_created", "status", "created_at"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    type = Column(String(64), nullable=False)
    idempotency_key = Column(String(191), nullable=True, unique=True)
    payload = Column(JSON, nullable=False, default=dict)
    user_id = Column(String(36), nullable=True, index=True)
    property_id = Column(String(36), nullable=True)
    status = Column(String(16), nullable=False, default="PENDING")
    attempts = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)
    processed_at = Column(DateTime, nullable=True)


__all__ = ["DomainEventModel"]
