"""Persistence helpers for the domain event outbox."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from homenotify.domain.entities import DomainEvent, DomainEventStatus
from homenotify.domain.retry_policy import backoff_steps, retry_cutoff
from homenotify.infrastructure.models import DomainEventModel
from homenotify.utils import utcnow


class DomainEventRepository:
    """Read, claim and resolve :class:`DomainEvent` rows.

    Ownership of a row is transferred exclusively through conditional
    updates: a claim only succeeds when the row still has the status (and,
    for stale claims, the attempt count) the caller observed, and resolution
    only succeeds while the caller's claim is still in place.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def create(self, event: DomainEvent) -> DomainEvent:
        model = DomainEventModel()
        now = event.created_at or utcnow()
        if event.id is not None:
            model.id = event.id
        model.type = event.type
        model.payload = dict(event.payload or {})
        model.user_id = event.user_id
        model.property_id = event.property_id
        model.idempotency_key = event.idempotency_key
        model.status = DomainEventStatus.PENDING.value
        model.attempts = 0
        model.created_at = now
        model.updated_at = event.updated_at or now
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def get(self, event_id: str) -> DomainEvent | None:
        model = self.session.get(DomainEventModel, event_id)
        return self._to_entity(model) if model else None

    def get_by_idempotency_key(self, idempotency_key: str) -> DomainEvent | None:
        model = (
            self.session.query(DomainEventModel)
            .filter(DomainEventModel.idempotency_key == idempotency_key)
            .first()
        )
        return self._to_entity(model) if model else None

    def list_due(
        self,
        *,
        now: datetime,
        limit: int,
        claim_timeout_minutes: int | None = None,
    ) -> Sequence[DomainEvent]:
        """Return claimable events, oldest first.

        ``PENDING`` rows are always due. ``FAILED`` rows are due once their
        backoff window has elapsed. ``PROCESSING`` rows are only due when a
        claim timeout is configured and the claim is older than it.
        """

        conditions = [
            DomainEventModel.status == DomainEventStatus.PENDING.value,
            and_(
                DomainEventModel.status == DomainEventStatus.FAILED.value,
                self._retry_due_clause(now),
            ),
        ]
        if claim_timeout_minutes is not None:
            conditions.append(
                and_(
                    DomainEventModel.status == DomainEventStatus.PROCESSING.value,
                    DomainEventModel.updated_at
                    <= now - timedelta(minutes=claim_timeout_minutes),
                )
            )

        query = (
            self.session.query(DomainEventModel)
            .filter(or_(*conditions))
            .order_by(DomainEventModel.created_at.asc(), DomainEventModel.id.asc())
            .limit(limit)
        )
        return [self._to_entity(model) for model in query.all()]

    def claim(self, event: DomainEvent, *, now: datetime) -> bool:
        """Atomically move ``event`` to ``PROCESSING``.

        Returns ``False`` when another consumer changed the row first.
        """

        query = self.session.query(DomainEventModel).filter(
            DomainEventModel.id == event.id,
            DomainEventModel.status == event.status.value,
        )
        if event.status is DomainEventStatus.PROCESSING:
            query = query.filter(DomainEventModel.attempts == event.attempts)
        affected = query.update(
            {
                DomainEventModel.status: DomainEventStatus.PROCESSING.value,
                DomainEventModel.attempts: DomainEventModel.attempts + 1,
                DomainEventModel.last_error: None,
                DomainEventModel.updated_at: now,
            },
            synchronize_session=False,
        )
        self.session.commit()
        return affected == 1

    def mark_processed(self, event_id: str, *, attempts: int, now: datetime) -> bool:
        return self._resolve(
            event_id,
            attempts=attempts,
            values={
                DomainEventModel.status: DomainEventStatus.PROCESSED.value,
                DomainEventModel.processed_at: now,
                DomainEventModel.last_error: None,
                DomainEventModel.updated_at: now,
            },
        )

    def mark_failed(
        self,
        event_id: str,
        *,
        attempts: int,
        error: str,
        now: datetime,
        dead: bool = False,
    ) -> bool:
        status = DomainEventStatus.DEAD if dead else DomainEventStatus.FAILED
        return self._resolve(
            event_id,
            attempts=attempts,
            values={
                DomainEventModel.status: status.value,
                DomainEventModel.last_error: error,
                DomainEventModel.updated_at: now,
            },
        )

    def _resolve(self, event_id: str, *, attempts: int, values: dict) -> bool:
        affected = (
            self.session.query(DomainEventModel)
            .filter(
                DomainEventModel.id == event_id,
                DomainEventModel.status == DomainEventStatus.PROCESSING.value,
                DomainEventModel.attempts == attempts,
            )
            .update(values, synchronize_session=False)
        )
        self.session.commit()
        return affected == 1

    @staticmethod
    def _retry_due_clause(now: datetime):
        steps = backoff_steps()
        clauses = [DomainEventModel.attempts <= 0]
        for attempts in steps[:-1]:
            clauses.append(
                and_(
                    DomainEventModel.attempts == attempts,
                    DomainEventModel.updated_at <= retry_cutoff(attempts, now),
                )
            )
        clauses.append(
            and_(
                DomainEventModel.attempts >= steps[-1],
                DomainEventModel.updated_at <= retry_cutoff(steps[-1], now),
            )
        )
        return or_(*clauses)

    @staticmethod
    def _to_entity(model: DomainEventModel) -> DomainEvent:
        return DomainEvent(
            id=model.id,
            type=model.type,
            user_id=model.user_id,
            payload=dict(model.payload or {}),
            property_id=model.property_id,
            status=DomainEventStatus(model.status),
            attempts=model.attempts or 0,
            last_error=model.last_error,
            created_at=model.created_at,
            updated_at=model.updated_at,
            processed_at=model.processed_at,
            idempotency_key=model.idempotency_key,
        )


__all__ = ["DomainEventRepository"]
