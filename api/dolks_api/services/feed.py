"""Company feed: posts and approved job requests that share a tag with the company.

The pipeline is resolve tags -> fetch candidates -> filter by tag overlap -> enrich with
authors and engagement counts -> merge, sort newest first, paginate.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
import json
import logging
import math
from typing import Any

from dolks_api.services.enrichment import count_engagements, load_author_map
from dolks_api.services.repository import RepositoryNotFoundError

logger = logging.getLogger(__name__)

NO_TAGS_MESSAGE = "No tags configured for company profile"
_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(slots=True)
class FeedPage:
    items: list[dict[str, Any]]
    page: int
    limit: int
    total: int
    message: str | None = None

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit > 0 else 0


def parse_company_tag_ids(raw: str | None) -> set[str]:
    """Parse the company ``tags_ids`` column, stored either as a JSON array or as CSV."""
    if raw is None:
        return set()

    try:
        decoded = json.loads(raw)
    except (TypeError, ValueError):
        decoded = None

    if isinstance(decoded, list):
        pieces = [str(item) for item in decoded if item is not None]
    elif isinstance(decoded, str):
        pieces = decoded.split(",")
    else:
        pieces = str(raw).split(",")
    return {piece.strip() for piece in pieces if piece.strip()}


def has_matching_tag(tag_ids: Any, company_tag_ids: set[str]) -> bool:
    if not isinstance(tag_ids, list) or not tag_ids:
        return False
    return any(isinstance(tag_id, str) and tag_id in company_tag_ids for tag_id in tag_ids)


def filter_by_tags(rows: list[dict[str, Any]], *, tag_field: str, company_tag_ids: set[str]) -> list[dict[str, Any]]:
    return [row for row in rows if has_matching_tag(row.get(tag_field), company_tag_ids)]


def merge_feed_items(posts: list[dict[str, Any]], job_requests: list[dict[str, Any]]) -> list[dict[str, Any]]:
    # sorted() is stable, so equal timestamps keep posts ahead of job requests.
    combined = [{**post, "type": "post"} for post in posts]
    combined.extend({**job, "type": "job_request"} for job in job_requests)
    return sorted(combined, key=_created_at_key, reverse=True)


def paginate(items: list[dict[str, Any]], *, page: int, limit: int) -> list[dict[str, Any]]:
    offset = (page - 1) * limit
    return items[offset : offset + limit]


async def build_company_feed(repository: Any, *, user_id: str, page: int, limit: int) -> FeedPage:
    company = await repository.get_company_profile(user_id=user_id)
    if company is None:
        raise RepositoryNotFoundError("Company profile not found")

    company_tag_ids = parse_company_tag_ids(company.get("tags_ids"))
    logger.info("company feed user_id=%s tag_count=%s page=%s limit=%s", user_id, len(company_tag_ids), page, limit)
    if not company_tag_ids:
        return FeedPage(items=[], page=page, limit=limit, total=0, message=NO_TAGS_MESSAGE)

    posts, job_requests = await _fetch_candidates(repository)
    matching_posts = filter_by_tags(posts, tag_field="tag_ids", company_tag_ids=company_tag_ids)
    matching_jobs = filter_by_tags(job_requests, tag_field="job_tags_ids", company_tag_ids=company_tag_ids)
    logger.info("company feed matched posts=%s job_requests=%s", len(matching_posts), len(matching_jobs))

    authors, counts = await asyncio.gather(
        load_author_map(
            repository,
            [post["user_id"] for post in matching_posts] + [job["user_id"] for job in matching_jobs],
        ),
        count_engagements(repository, [post["id"] for post in matching_posts]),
    )

    enriched_posts = [
        {**post, **counts.for_post(post["id"]), "user": authors.get(post["user_id"])} for post in matching_posts
    ]
    enriched_jobs = [{**job, "user": authors.get(job["user_id"])} for job in matching_jobs]

    combined = merge_feed_items(enriched_posts, enriched_jobs)
    return FeedPage(
        items=paginate(combined, page=page, limit=limit),
        page=page,
        limit=limit,
        total=len(combined),
    )


async def _fetch_candidates(repository: Any) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    posts_result, jobs_result = await asyncio.gather(
        repository.list_posts(),
        repository.list_approved_job_requests(),
        return_exceptions=True,
    )
    if isinstance(posts_result, BaseException):
        logger.error("post candidates unavailable: %s", posts_result)
        posts_result = []
    if isinstance(jobs_result, BaseException):
        logger.error("job request candidates unavailable: %s", jobs_result)
        jobs_result = []
    return posts_result, jobs_result


def _created_at_key(item: dict[str, Any]) -> datetime:
    value = item.get("created_at")
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return _OLDEST
        return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=timezone.utc)
    return _OLDEST
