from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging
from typing import Any

logger = logging.getLogger(__name__)

COUNTED_ENGAGEMENTS = ("like", "comment", "share")


@dataclass(slots=True)
class EngagementCounts:
    likes: dict[str, int] = field(default_factory=dict)
    comments: dict[str, int] = field(default_factory=dict)
    shares: dict[str, int] = field(default_factory=dict)

    def for_post(self, post_id: str) -> dict[str, int]:
        return {
            "total_likes": self.likes.get(post_id, 0),
            "total_comments": self.comments.get(post_id, 0),
            "total_shares": self.shares.get(post_id, 0),
        }


def distinct(values: list[Any]) -> list[Any]:
    """Order-preserving de-duplication that drops empty values."""
    seen: set[Any] = set()
    result: list[Any] = []
    for value in values:
        if value is None or value in seen:
            continue
        seen.add(value)
        result.append(value)
    return result


async def load_author_map(repository: Any, user_ids: list[str]) -> dict[str, dict[str, Any]]:
    unique_ids = distinct(user_ids)
    if not unique_ids:
        return {}
    try:
        profiles = await repository.get_profiles(user_ids=unique_ids)
    except Exception:
        logger.exception("author profile fetch failed; continuing without profiles")
        return {}
    return {profile["user_id"]: profile for profile in profiles}


async def count_engagements(repository: Any, post_ids: list[str]) -> EngagementCounts:
    unique_ids = distinct(post_ids)
    if not unique_ids:
        return EngagementCounts()

    results = await asyncio.gather(
        *(repository.count_post_engagements(kind=kind, post_ids=unique_ids) for kind in COUNTED_ENGAGEMENTS),
        return_exceptions=True,
    )
    maps: list[dict[str, int]] = []
    for kind, result in zip(COUNTED_ENGAGEMENTS, results):
        if isinstance(result, BaseException):
            logger.error("engagement count failed kind=%s: %s", kind, result)
            maps.append({})
            continue
        maps.append(result)
    likes, comments, shares = maps
    return EngagementCounts(likes=likes, comments=comments, shares=shares)


async def load_favorite_post_ids(repository: Any, *, user_id: str | None, post_ids: list[str]) -> set[str]:
    if not user_id or not post_ids:
        return set()
    try:
        return await repository.list_favorite_post_ids(user_id=user_id, post_ids=distinct(post_ids))
    except Exception:
        logger.exception("favorite lookup failed user_id=%s", user_id)
        return set()
