"""Shared fixtures: a throwaway SQLite database and in-memory test doubles."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest

TEST_DB_PATH = Path(__file__).parent / "test.db"
os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DB_PATH}"
os.environ["SECRET_KEY"] = "test-secret-key"
for _name in (
    "SENDGRID_API_KEY",
    "SENDGRID_SENDER",
    "APP_BASE_URL",
    "APP_TIMEZONE",
    "DOMAIN_EVENT_MAX_ATTEMPTS",
    "DOMAIN_EVENT_CLAIM_TIMEOUT_MINUTES",
):
    os.environ.pop(_name, None)

from homenotify.config import reset_settings_cache  # noqa: E402
from homenotify.domain.entities import (  # noqa: E402
    DeliveryChannel,
    Notification,
    NotificationPriority,
    Recipient,
)
from homenotify.infrastructure import database as db  # noqa: E402
from homenotify.infrastructure.email import EmailDeliveryError  # noqa: E402
from homenotify.infrastructure.queue import WorkQueueError  # noqa: E402
from homenotify.infrastructure.repositories import (  # noqa: E402
    NotificationRepository,
    UserRepository,
)


@dataclass
class SentEmail:
    subject: str
    html: str
    recipient: str


class RecordingTransport:
    """Email transport double that records sends or fails on demand."""

    def __init__(self) -> None:
        self.sent: list[SentEmail] = []
        self.fail_all = False
        self.fail_for: set[str] = set()

    def __call__(self, subject: str, html: str, recipient: str) -> None:
        if self.fail_all or recipient in self.fail_for:
            raise EmailDeliveryError(f"SendGrid API responded with status 400: bad address {recipient}")
        self.sent.append(SentEmail(subject, html, recipient))


class FakeWorkQueue:
    """Work queue double keyed by idempotency key, like the RQ job id."""

    def __init__(self) -> None:
        self.jobs: dict[str, tuple[str, dict[str, Any]]] = {}
        self.unavailable = False

    def enqueue(self, job_name: str, payload: Mapping[str, Any], *, idempotency_key: str) -> bool:
        if self.unavailable:
            raise WorkQueueError("queue unavailable")
        if idempotency_key in self.jobs:
            return False
        self.jobs[idempotency_key] = (job_name, dict(payload))
        return True

    def drain(self) -> list[str]:
        delivery_ids = [payload["delivery_id"] for _, payload in self.jobs.values()]
        self.jobs.clear()
        return delivery_ids


@pytest.fixture(autouse=True)
def database():
    """Recreate every table for each test."""

    reset_settings_cache()
    db.initialize_database()
    db.Base.metadata.drop_all(bind=db.engine)
    db.Base.metadata.create_all(bind=db.engine)
    yield db
    db.engine.dispose()
    reset_settings_cache()


@pytest.fixture()
def session(database):
    session = database.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def settings_env(monkeypatch):
    """Override settings through environment variables for one test."""

    def apply(**values: Any) -> None:
        for key, value in values.items():
            monkeypatch.setenv(key.upper(), str(value))
        reset_settings_cache()

    yield apply
    reset_settings_cache()


@pytest.fixture()
def make_user(session):
    def factory(
        user_id: str = "user-1",
        *,
        email: str | None = "owner@example.com",
        first_name: str | None = "Dana",
        email_notifications_enabled: bool = True,
    ) -> Recipient:
        return UserRepository(session).create(
            Recipient(
                id=user_id,
                email=email,
                first_name=first_name,
                email_notifications_enabled=email_notifications_enabled,
            )
        )

    return factory


@pytest.fixture()
def make_notification(session):
    """Create a claim notification with IN_APP and EMAIL deliveries."""

    counter = {"value": 0}

    def factory(
        user_id: str = "user-1",
        *,
        priority: NotificationPriority = NotificationPriority.HIGH,
        title: str | None = None,
        action_url: str | None = None,
    ) -> Notification:
        counter["value"] += 1
        number = counter["value"]
        return NotificationRepository(session).create_with_deliveries(
            Notification(
                id=None,
                user_id=user_id,
                type="CLAIM_SUBMITTED",
                title=title or f"Claim update {number}",
                message=f"Message {number}",
                entity_type="CLAIM",
                entity_id=f"claim-{number}",
                action_url=action_url,
                metadata={"domainEventId": f"evt-{number}", "priority": priority.value},
            ),
            [DeliveryChannel.IN_APP, DeliveryChannel.EMAIL],
        )

    return factory


@pytest.fixture()
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture()
def work_queue() -> FakeWorkQueue:
    return FakeWorkQueue()
