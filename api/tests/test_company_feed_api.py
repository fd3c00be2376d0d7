from __future__ import annotations

from typing import Any

import pytest
from fastapi.testclient import TestClient

from dolks_api.main import app
from dolks_api.services.feed import NO_TAGS_MESSAGE
from dolks_api.services.repository import RepositoryUnavailableError, get_repository

COMPANY_ID = "c0000000-0000-0000-0000-000000000001"
POSTER_ID = "a0000000-0000-0000-0000-000000000001"
REQUESTER_ID = "a0000000-0000-0000-0000-000000000002"


def _post(post_id: str, *, tag_ids: list[str] | None, created_at: str) -> dict[str, Any]:
    return {
        "id": post_id,
        "user_id": POSTER_ID,
        "description": f"post {post_id}",
        "image_url": [],
        "location": None,
        "latitude": None,
        "longitude": None,
        "mentions": [],
        "tag_ids": tag_ids,
        "tags_name": [],
        "tag_people_ids": [],
        "created_at": created_at,
        "updated_at": None,
    }


def _job_request(job_id: str, *, tag_ids: list[str] | None, created_at: str, status: str = "Approved") -> dict[str, Any]:
    return {
        "id": job_id,
        "user_id": REQUESTER_ID,
        "job_title": f"job {job_id}",
        "job_short_description": "short",
        "job_full_description": "full",
        "job_category_names": ["Plumbing"],
        "job_category_type_ids": ["cat-1"],
        "job_urgency": "high",
        "job_budget": "500",
        "job_start_date": "2024-02-01",
        "job_complete_date": "2024-02-10",
        "job_location": "Austin",
        "job_latitude": None,
        "job_longitude": None,
        "job_special_requirements": None,
        "job_tags_ids": tag_ids,
        "job_tags_names": [],
        "job_documents_images": [],
        "job_consent": True,
        "status": status,
        "rejection_reason": None,
        "created_at": created_at,
        "updated_at": None,
    }


class FakeFeedRepository:
    def __init__(self) -> None:
        self.companies: dict[str, dict[str, Any]] = {
            COMPANY_ID: {"user_id": COMPANY_ID, "company_name": "Acme", "tags_ids": '["tag-a", "tag-b"]', "tags": None}
        }
        self.posts = [
            _post("post-1", tag_ids=["tag-a"], created_at="2024-01-03T00:00:00+00:00"),
            _post("post-2", tag_ids=["tag-c"], created_at="2024-01-04T00:00:00+00:00"),
            _post("post-3", tag_ids=["tag-b", "tag-z"], created_at="2024-01-01T00:00:00+00:00"),
            _post("post-4", tag_ids=None, created_at="2024-01-05T00:00:00+00:00"),
        ]
        self.job_requests = [
            _job_request("job-1", tag_ids=["tag-b"], created_at="2024-01-02T00:00:00+00:00"),
            _job_request("job-2", tag_ids=["tag-a"], created_at="2024-01-06T00:00:00+00:00", status="Rejected"),
            _job_request("job-3", tag_ids=["tag-a"], created_at="2024-01-07T00:00:00+00:00", status="Pending"),
        ]
        self.profiles = {
            POSTER_ID: {
                "user_id": POSTER_ID,
                "full_name": "Pat Poster",
                "username": "pat",
                "profile_picture_url": None,
                "email": "pat@example.com",
            },
            REQUESTER_ID: {
                "user_id": REQUESTER_ID,
                "full_name": "Riley Requester",
                "username": "riley",
                "profile_picture_url": "https://example.com/riley.jpg",
                "email": "riley@example.com",
            },
        }
        self.engagements: dict[str, dict[str, int]] = {
            "like": {"post-1": 3},
            "comment": {"post-1": 2, "post-3": 1},
            "share": {},
        }
        self.failing: set[str] = set()

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.failing:
            raise RepositoryUnavailableError(f"{operation} failed")

    async def get_company_profile(self, *, user_id: str) -> dict[str, Any] | None:
        self._maybe_fail("get_company_profile")
        return self.companies.get(user_id)

    async def list_posts(self, *, limit: int | None = None, offset: int = 0, user_id: str | None = None) -> list[dict[str, Any]]:
        self._maybe_fail("list_posts")
        return list(self.posts)

    async def list_approved_job_requests(self) -> list[dict[str, Any]]:
        self._maybe_fail("list_approved_job_requests")
        return [row for row in self.job_requests if row["status"] == "Approved"]

    async def get_profiles(self, *, user_ids: list[str]) -> list[dict[str, Any]]:
        self._maybe_fail("get_profiles")
        return [self.profiles[user_id] for user_id in user_ids if user_id in self.profiles]

    async def count_post_engagements(self, *, kind: str, post_ids: list[str]) -> dict[str, int]:
        self._maybe_fail(f"count_{kind}")
        counts = self.engagements[kind]
        return {post_id: counts[post_id] for post_id in post_ids if post_id in counts}


@pytest.fixture
def fake_repo() -> FakeFeedRepository:
    return FakeFeedRepository()


@pytest.fixture
def feed_client(fake_repo: FakeFeedRepository) -> TestClient:
    app.dependency_overrides[get_repository] = lambda: fake_repo

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


def _ids(response_json: dict[str, Any]) -> list[str]:
    return [item["id"] for item in response_json["data"]]


def test_company_feed_merges_matching_items_newest_first(feed_client: TestClient) -> None:
    response = feed_client.post("/feed/company", json={"user_id": COMPANY_ID})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert _ids(body) == ["post-1", "job-1", "post-3"]
    assert [item["type"] for item in body["data"]] == ["post", "job_request", "post"]
    assert body["pagination"] == {"page": 1, "limit": 20, "total": 3, "total_pages": 1}


def test_company_feed_enriches_posts_and_job_requests(feed_client: TestClient) -> None:
    response = feed_client.post("/feed/company", json={"user_id": COMPANY_ID})

    items = {item["id"]: item for item in response.json()["data"]}
    assert items["post-1"]["total_likes"] == 3
    assert items["post-1"]["total_comments"] == 2
    assert items["post-1"]["total_shares"] == 0
    assert items["post-3"]["total_likes"] == 0
    assert items["post-3"]["total_comments"] == 1
    assert items["post-1"]["user"]["full_name"] == "Pat Poster"
    assert items["job-1"]["user"]["username"] == "riley"
    assert "total_likes" not in items["job-1"]


def test_company_feed_excludes_unapproved_job_requests(feed_client: TestClient) -> None:
    response = feed_client.post("/feed/company", json={"user_id": COMPANY_ID})

    ids = _ids(response.json())
    assert "job-2" not in ids
    assert "job-3" not in ids


def test_company_feed_paginates_after_merge(feed_client: TestClient) -> None:
    response = feed_client.post("/feed/company", json={"user_id": COMPANY_ID, "page": 2, "limit": 1})

    assert response.status_code == 200
    body = response.json()
    assert _ids(body) == ["job-1"]
    assert body["pagination"] == {"page": 2, "limit": 1, "total": 3, "total_pages": 3}


def test_company_feed_page_past_end_is_empty(feed_client: TestClient) -> None:
    response = feed_client.post("/feed/company", json={"user_id": COMPANY_ID, "page": 5, "limit": 2})

    assert response.status_code == 200
    body = response.json()
    assert body["data"] == []
    assert body["pagination"]["total"] == 3
    assert body["pagination"]["total_pages"] == 2


def test_company_feed_accepts_csv_tags(feed_client: TestClient, fake_repo: FakeFeedRepository) -> None:
    fake_repo.companies[COMPANY_ID]["tags_ids"] = "tag-b, tag-x"

    response = feed_client.post("/feed/company", json={"user_id": COMPANY_ID})

    assert _ids(response.json()) == ["job-1", "post-3"]


def test_company_feed_without_tags_returns_empty_page(feed_client: TestClient, fake_repo: FakeFeedRepository) -> None:
    fake_repo.companies[COMPANY_ID]["tags_ids"] = None

    response = feed_client.post("/feed/company", json={"user_id": COMPANY_ID, "page": 2, "limit": 5})

    assert response.status_code == 200
    body = response.json()
    assert body["data"] == []
    assert body["message"] == NO_TAGS_MESSAGE
    assert body["pagination"] == {"page": 2, "limit": 5, "total": 0, "total_pages": 0}


def test_company_feed_unknown_company_returns_404(feed_client: TestClient) -> None:
    response = feed_client.post("/feed/company", json={"user_id": "c0000000-0000-0000-0000-00000000ffff"})

    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Company profile not found"}


def test_company_feed_requires_user_id(feed_client: TestClient) -> None:
    response = feed_client.post("/feed/company", json={"page": 1})

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "user_id is required"}


def test_company_feed_rejects_non_positive_paging(feed_client: TestClient) -> None:
    response = feed_client.post("/feed/company", json={"user_id": COMPANY_ID, "page": 0})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"].startswith("page:")

    response = feed_client.post("/feed/company", json={"user_id": COMPANY_ID, "limit": -1})
    assert response.status_code == 400
    assert response.json()["message"].startswith("limit:")


def test_company_feed_profile_lookup_failure_returns_500(
    feed_client: TestClient, fake_repo: FakeFeedRepository
) -> None:
    fake_repo.failing.add("get_company_profile")

    response = feed_client.post("/feed/company", json={"user_id": COMPANY_ID})

    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Failed to fetch company profile"}


def test_company_feed_degrades_when_posts_are_unavailable(
    feed_client: TestClient, fake_repo: FakeFeedRepository
) -> None:
    fake_repo.failing.add("list_posts")

    response = feed_client.post("/feed/company", json={"user_id": COMPANY_ID})

    assert response.status_code == 200
    assert _ids(response.json()) == ["job-1"]


def test_company_feed_degrades_when_job_requests_are_unavailable(
    feed_client: TestClient, fake_repo: FakeFeedRepository
) -> None:
    fake_repo.failing.add("list_approved_job_requests")

    response = feed_client.post("/feed/company", json={"user_id": COMPANY_ID})

    assert response.status_code == 200
    assert _ids(response.json()) == ["post-1", "post-3"]


def test_company_feed_keeps_items_when_profiles_fail(feed_client: TestClient, fake_repo: FakeFeedRepository) -> None:
    fake_repo.failing.add("get_profiles")

    response = feed_client.post("/feed/company", json={"user_id": COMPANY_ID})

    assert response.status_code == 200
    body = response.json()
    assert _ids(body) == ["post-1", "job-1", "post-3"]
    assert all(item["user"] is None for item in body["data"])


def test_company_feed_zeroes_counts_when_a_count_fails(
    feed_client: TestClient, fake_repo: FakeFeedRepository
) -> None:
    fake_repo.failing.add("count_like")

    response = feed_client.post("/feed/company", json={"user_id": COMPANY_ID})

    items = {item["id"]: item for item in response.json()["data"]}
    assert items["post-1"]["total_likes"] == 0
    assert items["post-1"]["total_comments"] == 2


def test_company_feed_places_posts_before_job_requests_on_equal_timestamps(
    feed_client: TestClient, fake_repo: FakeFeedRepository
) -> None:
    fake_repo.posts = [_post("post-tie", tag_ids=["tag-a"], created_at="2024-03-01T12:00:00+00:00")]
    fake_repo.job_requests = [_job_request("job-tie", tag_ids=["tag-a"], created_at="2024-03-01T12:00:00+00:00")]

    response = feed_client.post("/feed/company", json={"user_id": COMPANY_ID})

    assert _ids(response.json()) == ["post-tie", "job-tie"]


def test_company_feed_sends_cors_headers(feed_client: TestClient) -> None:
    response = feed_client.post(
        "/feed/company",
        json={"user_id": COMPANY_ID},
        headers={"Origin": "https://app.dolks.example"},
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"


def test_company_feed_answers_cors_preflight(feed_client: TestClient) -> None:
    response = feed_client.options(
        "/feed/company",
        headers={
            "Origin": "https://app.dolks.example",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "authorization, content-type",
        },
    )

    assert response.status_code == 200
    assert "POST" in response.headers["access-control-allow-methods"]


def test_company_feed_omits_message_on_regular_pages(feed_client: TestClient) -> None:
    response = feed_client.post("/feed/company", json={"user_id": COMPANY_ID})

    assert response.status_code == 200
    assert set(response.json()) == {"success", "data", "pagination"}


def test_company_feed_lists_item_matching_several_tags_once(
    feed_client: TestClient, fake_repo: FakeFeedRepository
) -> None:
    fake_repo.posts[0]["tag_ids"] = ["tag-a", "tag-b"]

    response = feed_client.post("/feed/company", json={"user_id": COMPANY_ID})

    body = response.json()
    assert _ids(body).count("post-1") == 1
    assert body["pagination"]["total"] == 3


def test_company_feed_tolerates_null_array_elements(feed_client: TestClient, fake_repo: FakeFeedRepository) -> None:
    fake_repo.posts[0]["mentions"] = [None]
    fake_repo.posts[0]["tag_ids"] = [None, "tag-a"]
    fake_repo.job_requests[0]["job_documents_images"] = [None]

    response = feed_client.post("/feed/company", json={"user_id": COMPANY_ID})

    assert response.status_code == 200
    items = {item["id"]: item for item in response.json()["data"]}
    assert items["post-1"]["mentions"] == []
    assert items["post-1"]["tag_ids"] == ["tag-a"]
    assert items["job-1"]["job_documents_images"] == []
