"""Single-row leases that keep scheduled jobs from overlapping."""

from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from homenotify.domain.entities import JobLease
from homenotify.infrastructure.models import JobLeaseModel


class JobLeaseRepository:
    """Acquire and release :class:`JobLease` rows with conditional updates."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, name: str) -> JobLease | None:
        model = self.session.get(JobLeaseModel, name)
        return self._to_entity(model) if model else None

    def acquire(self, name: str, *, holder: str, now: datetime, ttl: timedelta) -> bool:
        """Take the lease for ``name`` unless another holder has an unexpired one."""

        expires_at = now + ttl
        affected = (
            self.session.query(JobLeaseModel)
            .filter(
                JobLeaseModel.name == name,
                or_(JobLeaseModel.expires_at <= now, JobLeaseModel.holder == holder),
            )
            .update(
                {
                    JobLeaseModel.holder: holder,
                    JobLeaseModel.acquired_at: now,
                    JobLeaseModel.expires_at: expires_at,
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        if affected == 1:
            return True

        if self.session.get(JobLeaseModel, name) is not None:
            return False

        self.session.add(
            JobLeaseModel(name=name, holder=holder, acquired_at=now, expires_at=expires_at)
        )
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            return False
        return True

    def release(self, name: str, *, holder: str, now: datetime) -> bool:
        affected = (
            self.session.query(JobLeaseModel)
            .filter(JobLeaseModel.name == name, JobLeaseModel.holder == holder)
            .update({JobLeaseModel.expires_at: now}, synchronize_session=False)
        )
        self.session.commit()
        return affected == 1

    @staticmethod
    def _to_entity(model: JobLeaseModel) -> JobLease:
        return JobLease(
            name=model.name,
            holder=model.holder,
            acquired_at=model.acquired_at,
            expires_at=model.expires_at,
        )


__all__ = ["JobLeaseRepository"]
