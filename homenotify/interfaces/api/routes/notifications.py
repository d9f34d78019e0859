"""Endpoints for reading notifications and retrying failed deliveries."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from homenotify.application.use_cases.deliveries import (
    DeliveryNotFoundError,
    DeliveryNotRetryableError,
    retry_failed_delivery,
)
from homenotify.domain.entities import Notification
from homenotify.infrastructure.database import get_db
from homenotify.infrastructure.repositories import NotificationRepository
from homenotify.interfaces.api.dependencies import get_current_user_id
from homenotify.interfaces.api.schemas import (
    DeliveryRead,
    MarkReadResponse,
    NotificationMarkReadRequest,
    NotificationRead,
    UnreadCountRead,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])


def _notification_to_schema(notification: Notification) -> NotificationRead:
    return NotificationRead.model_validate(notification)


@router.get("/", response_model=list[NotificationRead])
def list_notifications(
    limit: int = Query(30, ge=1, le=100),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> list[NotificationRead]:
    """Return the most recent notifications for the authenticated user."""

    notifications = NotificationRepository(db).list_for_user(user_id, limit=limit)
    return [_notification_to_schema(notification) for notification in notifications]


@router.get("/unread-count", response_model=UnreadCountRead)
def unread_count(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> UnreadCountRead:
    return UnreadCountRead(count=NotificationRepository(db).count_unread(user_id))


@router.post("/read", response_model=MarkReadResponse)
def mark_notifications_read(
    payload: NotificationMarkReadRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> MarkReadResponse:
    updated = NotificationRepository(db).mark_as_read(payload.unique_ids(), user_id=user_id)
    return MarkReadResponse(updated=updated)


@router.post("/read-all", response_model=MarkReadResponse)
def mark_all_notifications_read(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> MarkReadResponse:
    updated = NotificationRepository(db).mark_all_as_read(user_id=user_id)
    return MarkReadResponse(updated=updated)


@router.post("/deliveries/{delivery_id}/retry", response_model=DeliveryRead)
def retry_delivery(
    delivery_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> DeliveryRead:
    """Return a ``FAILED`` delivery to the pending pool."""

    try:
        delivery = retry_failed_delivery(db, delivery_id=delivery_id, user_id=user_id)
    except DeliveryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except DeliveryNotRetryableError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return DeliveryRead.model_validate(delivery)


__all__ = ["router"]
