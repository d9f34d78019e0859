"""Integration tests for the notification API endpoints."""

from __future__ import annotations

import pytest

pytest.importorskip("fastapi")
from fastapi.testclient import TestClient

from homenotify.domain.entities import DeliveryChannel, DeliveryStatus
from homenotify.infrastructure.repositories import NotificationDeliveryRepository
from homenotify.infrastructure.security import create_access_token


@pytest.fixture()
def client():
    from main import create_app

    with TestClient(create_app()) as test_client:
        yield test_client


def _auth(user_id: str = "user-1") -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token({'sub': user_id})}"}


def _email_id(notification) -> str:
    return next(d.id for d in notification.deliveries if d.channel is DeliveryChannel.EMAIL)


def test_requires_a_valid_token(client: TestClient) -> None:
    assert client.get("/notifications/").status_code == 401
    response = client.get("/notifications/", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


def test_list_and_read_flow(client: TestClient, make_notification) -> None:
    first = make_notification()
    make_notification()
    make_notification("user-2")

    response = client.get("/notifications/", headers=_auth())
    assert response.status_code == 200
    body = response.json()
    assert len(body) == 2
    assert {item["user_id"] for item in body} == {"user-1"}
    assert {d["channel"] for d in body[0]["deliveries"]} == {"IN_APP", "EMAIL"}
    assert body[0]["metadata"]["priority"] == "HIGH"

    assert client.get("/notifications/unread-count", headers=_auth()).json() == {"count": 2}

    response = client.post("/notifications/read", json={"ids": [first.id, first.id]}, headers=_auth())
    assert response.json() == {"updated": 1}
    assert client.get("/notifications/unread-count", headers=_auth()).json() == {"count": 1}

    response = client.post("/notifications/read-all", headers=_auth())
    assert response.json() == {"updated": 1}
    assert client.get("/notifications/unread-count", headers=_auth()).json() == {"count": 0}


def test_list_respects_limit(client: TestClient, make_notification) -> None:
    for _ in range(3):
        make_notification()

    response = client.get("/notifications/?limit=2", headers=_auth())

    assert len(response.json()) == 2


def test_retry_delivery_endpoint(client: TestClient, session, make_notification) -> None:
    notification = make_notification()
    delivery_id = _email_id(notification)
    repository = NotificationDeliveryRepository(session)

    response = client.post(f"/notifications/deliveries/{delivery_id}/retry", headers=_auth())
    assert response.status_code == 409

    repository.mark_failed([delivery_id], reason="bounced", now=notification.created_at)

    response = client.post(f"/notifications/deliveries/{delivery_id}/retry", headers=_auth("user-2"))
    assert response.status_code == 404

    response = client.post(f"/notifications/deliveries/{delivery_id}/retry", headers=_auth())
    assert response.status_code == 200
    assert response.json()["status"] == DeliveryStatus.PENDING.value
    assert response.json()["failure_reason"] is None

    response = client.post("/notifications/deliveries/unknown/retry", headers=_auth())
    assert response.status_code == 404
