from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import pytest
from fastapi.testclient import TestClient

from dolks_api.main import app
from dolks_api.services.repository import RepositoryUnavailableError, get_repository
from dolks_api.services.supabase import SupabaseAuthError, get_supabase_client

USER_ID = "d0000000-0000-0000-0000-000000000001"
EVENT_ID = "e0000000-0000-0000-0000-000000000001"
USER_HEADERS = {"Authorization": "Bearer user-token"}


class FakeSupabaseClient:
    async def fetch_user(self, token: str) -> dict[str, Any]:
        if token != "user-token":
            raise SupabaseAuthError("invalid token")
        return {"id": USER_ID, "email": "user@example.com"}


class FakeEventRepository:
    def __init__(self) -> None:
        self.events = {EVENT_ID}
        self.interests: dict[tuple[str, str], dict[str, Any]] = {}
        self.unavailable = False

    async def event_exists(self, *, event_id: str) -> bool:
        if self.unavailable:
            raise RepositoryUnavailableError("database unavailable")
        return event_id in self.events

    async def upsert_event_interest(self, *, event_id: str, user_id: str, interest_type: str) -> dict[str, Any]:
        key = (event_id, user_id)
        row = self.interests.get(key)
        if row is None:
            row = {
                "id": f"interest-{len(self.interests) + 1}",
                "event_id": event_id,
                "user_id": user_id,
                "created_at": datetime.now(timezone.utc),
            }
            self.interests[key] = row
        row["interest_type"] = interest_type
        return row


@pytest.fixture
def fake_repo() -> FakeEventRepository:
    return FakeEventRepository()


@pytest.fixture
def events_client(fake_repo: FakeEventRepository) -> TestClient:
    app.dependency_overrides[get_repository] = lambda: fake_repo
    app.dependency_overrides[get_supabase_client] = lambda: FakeSupabaseClient()

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


def test_mark_interest_creates_record(events_client: TestClient) -> None:
    response = events_client.post(
        "/events/interest", headers=USER_HEADERS, json={"event_id": EVENT_ID, "interest_type": "yes"}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Interest marked successfully"
    assert body["data"]["event_id"] == EVENT_ID
    assert body["data"]["user_id"] == USER_ID
    assert body["data"]["interest_type"] == "yes"


def test_mark_interest_updates_existing_record(events_client: TestClient, fake_repo: FakeEventRepository) -> None:
    events_client.post("/events/interest", headers=USER_HEADERS, json={"event_id": EVENT_ID, "interest_type": "yes"})
    response = events_client.post(
        "/events/interest", headers=USER_HEADERS, json={"event_id": EVENT_ID, "interest_type": "maybe"}
    )

    assert response.status_code == 200
    assert response.json()["data"]["id"] == "interest-1"
    assert response.json()["data"]["interest_type"] == "maybe"
    assert len(fake_repo.interests) == 1


@pytest.mark.parametrize(
    ("payload", "message"),
    [
        ({"interest_type": "yes"}, "event_id and interest_type are required"),
        ({"event_id": EVENT_ID}, "event_id and interest_type are required"),
        ({"event_id": EVENT_ID, "interest_type": "definitely"}, 'interest_type must be "yes", "no", or "maybe"'),
    ],
)
def test_mark_interest_validation(events_client: TestClient, payload: dict[str, Any], message: str) -> None:
    response = events_client.post("/events/interest", headers=USER_HEADERS, json=payload)

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": message}


def test_mark_interest_unknown_event_returns_404(events_client: TestClient) -> None:
    response = events_client.post(
        "/events/interest",
        headers=USER_HEADERS,
        json={"event_id": "e0000000-0000-0000-0000-00000000ffff", "interest_type": "no"},
    )

    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Event not found"}


def test_mark_interest_reports_unavailable_database(events_client: TestClient, fake_repo: FakeEventRepository) -> None:
    fake_repo.unavailable = True

    response = events_client.post(
        "/events/interest", headers=USER_HEADERS, json={"event_id": EVENT_ID, "interest_type": "no"}
    )

    assert response.status_code == 503


def test_mark_interest_requires_authentication(events_client: TestClient) -> None:
    response = events_client.post("/events/interest", json={"event_id": EVENT_ID, "interest_type": "yes"})

    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Unauthorized"}
