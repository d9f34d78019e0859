"""SQLAlchemy model for scheduled job leases."""

from sqlalchemy import Column, DateTime, String

from homenotify.infrastructure.database import Base


class JobLeaseModel(Base):
    """One row per scheduled job; whoever holds an unexpired row may run it."""

    __tablename__ = "job_lease"

    name = Column(String(64), primary_key=True)
    holder = Column(String(128), nullable=False)
    acquired_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=False)


__all__ = ["JobLeaseModel"]
