from __future__ import annotations

from datetime import date
from functools import lru_cache
from typing import Any

import asyncpg  # type: ignore[import-untyped]
from asyncpg import exceptions as pg_exc

from dolks_api.core.config import get_settings


class RepositoryError(Exception):
    """Base repository error."""


class RepositoryUnavailableError(RepositoryError):
    """Raised when the database is unavailable or not configured."""


class RepositoryNotFoundError(RepositoryError):
    """Raised when the requested entity does not exist."""


class RepositoryValidationError(RepositoryError):
    """Raised when payload validation fails before persistence."""


ENGAGEMENT_TABLES = {
    "like": "post_likes",
    "comment": "post_comments",
    "share": "post_shares",
    "favorite": "post_favorites",
}
JOB_REQUEST_STATUSES = {"Pending", "Approved", "Rejected"}
EVENT_INTEREST_TYPES = {"yes", "no", "maybe"}

_INVALID_IDENTIFIER_ERRORS = (pg_exc.InvalidTextRepresentationError, asyncpg.DataError)


def _text_list(values: Any) -> list[str]:
    # Postgres arrays may carry NULL elements.
    return [value for value in values or [] if value is not None]


_POST_COLUMNS_SQL = """
  p.id::text as id,
  p.user_id::text as user_id,
  p.description,
  p.image_url,
  p.location,
  p.latitude,
  p.longitude,
  p.mentions,
  p.tag_ids::text[] as tag_ids,
  p.tags_name,
  p.tag_people_ids::text[] as tag_people_ids,
  p.created_at,
  p.updated_at
"""

_JOB_REQUEST_COLUMNS_SQL = """
  j.id::text as id,
  j.user_id::text as user_id,
  j.job_title,
  j.job_short_description,
  j.job_full_description,
  j.job_category_names,
  j.job_category_type_ids::text[] as job_category_type_ids,
  j.job_urgency,
  j.job_budget,
  j.job_start_date::text as job_start_date,
  j.job_complete_date::text as job_complete_date,
  j.job_location,
  j.job_latitude,
  j.job_longitude,
  j.job_special_requirements,
  j.job_tags_ids::text[] as job_tags_ids,
  j.job_tags_names,
  j.job_documents_images,
  j.job_consent,
  j.status,
  j.rejection_reason,
  j.created_at,
  j.updated_at
"""


class PostgresRepository:
    def __init__(self, database_url: str | None, min_pool_size: int, max_pool_size: int) -> None:
        self.database_url = database_url
        self.min_pool_size = min_pool_size
        self.max_pool_size = max_pool_size
        self._pool: asyncpg.Pool | None = None

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    async def get_company_profile(self, *, user_id: str) -> dict[str, Any] | None:
        pool = await self._get_pool()
        try:
            row = await pool.fetchrow(
                """
                select
                  user_id::text as user_id,
                  company_name,
                  tags_ids,
                  tags
                from company_profiles
                where user_id = $1
                limit 1
                """,
                user_id,
            )
        except _INVALID_IDENTIFIER_ERRORS:
            return None
        except (asyncpg.PostgresError, OSError) as exc:
            raise RepositoryUnavailableError("failed to fetch company profile") from exc
        if row is None:
            return None
        return {
            "user_id": row["user_id"],
            "company_name": row["company_name"],
            "tags_ids": row["tags_ids"],
            "tags": row["tags"],
        }

    async def list_posts(
        self,
        *,
        limit: int | None = None,
        offset: int = 0,
        user_id: str | None = None,
    ) -> list[dict[str, Any]]:
        pool = await self._get_pool()
        try:
            rows = await pool.fetch(
                f"""
                select {_POST_COLUMNS_SQL}
                from posts p
                where ($1::text is null or p.user_id::text = $1)
                order by p.created_at desc, p.id asc
                limit $2
                offset $3
                """,
                user_id,
                limit,
                offset,
            )
        except (asyncpg.PostgresError, OSError) as exc:
            raise RepositoryUnavailableError("failed to fetch posts") from exc
        return [self._post_row_to_dict(row) for row in rows]

    async def list_job_requests(
        self,
        *,
        status: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        pool = await self._get_pool()
        try:
            rows = await pool.fetch(
                f"""
                select {_JOB_REQUEST_COLUMNS_SQL}
                from job_requests j
                where ($1::text is null or j.status = $1)
                order by j.created_at desc, j.id asc
                limit $2
                offset $3
                """,
                status,
                limit,
                offset,
            )
        except (asyncpg.PostgresError, OSError) as exc:
            raise RepositoryUnavailableError("failed to fetch job requests") from exc
        return [self._job_request_row_to_dict(row) for row in rows]

    async def list_approved_job_requests(self) -> list[dict[str, Any]]:
        return await self.list_job_requests(status="Approved")

    async def get_profiles(self, *, user_ids: list[str]) -> list[dict[str, Any]]:
        if not user_ids:
            return []
        pool = await self._get_pool()
        try:
            rows = await pool.fetch(
                """
                select
                  user_id::text as user_id,
                  full_name,
                  username,
                  profile_picture_url,
                  email
                from profiles
                where user_id::text = any($1::text[])
                """,
                user_ids,
            )
        except (asyncpg.PostgresError, OSError) as exc:
            raise RepositoryUnavailableError("failed to fetch profiles") from exc
        return [dict(row) for row in rows]

    async def get_login_profile(self, *, user_id: str) -> dict[str, Any] | None:
        pool = await self._get_pool()
        try:
            row = await pool.fetchrow(
                """
                select
                  id::text as id,
                  user_id::text as user_id,
                  email,
                  username,
                  full_name,
                  user_type::text as user_type,
                  is_approved,
                  profile_picture_url
                from profiles
                where user_id = $1
                limit 1
                """,
                user_id,
            )
        except _INVALID_IDENTIFIER_ERRORS:
            return None
        except (asyncpg.PostgresError, OSError) as exc:
            raise RepositoryUnavailableError("failed to fetch profile") from exc
        return dict(row) if row is not None else None

    async def list_user_roles(self, *, user_id: str) -> list[str]:
        pool = await self._get_pool()
        try:
            rows = await pool.fetch(
                "select role::text as role from user_roles where user_id::text = $1",
                user_id,
            )
        except (asyncpg.PostgresError, OSError) as exc:
            raise RepositoryUnavailableError("failed to fetch user roles") from exc
        return [row["role"] for row in rows]

    async def count_post_engagements(self, *, kind: str, post_ids: list[str]) -> dict[str, int]:
        table = self._engagement_table(kind)
        if not post_ids:
            return {}
        pool = await self._get_pool()
        try:
            rows = await pool.fetch(
                f"""
                select post_id::text as post_id, count(*)::int as total
                from {table}
                where post_id::text = any($1::text[])
                group by post_id
                """,
                post_ids,
            )
        except (asyncpg.PostgresError, OSError) as exc:
            raise RepositoryUnavailableError(f"failed to count {table}") from exc
        return {row["post_id"]: int(row["total"]) for row in rows}

    async def list_favorite_post_ids(self, *, user_id: str, post_ids: list[str]) -> set[str]:
        if not post_ids:
            return set()
        pool = await self._get_pool()
        try:
            rows = await pool.fetch(
                """
                select distinct post_id::text as post_id
                from post_favorites
                where user_id::text = $1
                  and post_id::text = any($2::text[])
                """,
                user_id,
                post_ids,
            )
        except (asyncpg.PostgresError, OSError) as exc:
            raise RepositoryUnavailableError("failed to fetch favorites") from exc
        return {row["post_id"] for row in rows}

    async def toggle_post_engagement(self, *, kind: str, post_id: str, user_id: str) -> bool:
        """Insert the engagement row when absent, delete it when present.

        Returns the state after the toggle (True means the row now exists).
        """
        table = self._engagement_table(kind)
        if kind == "comment":
            raise RepositoryValidationError("comments are not toggled")

        pool = await self._get_pool()
        try:
            async with pool.acquire() as conn:
                async with conn.transaction():
                    await self._ensure_post_exists(conn=conn, post_id=post_id)
                    existing = await conn.fetchrow(
                        f"""
                        select id
                        from {table}
                        where post_id = $1 and user_id = $2
                        limit 1
                        for update
                        """,
                        post_id,
                        user_id,
                    )
                    if existing is not None:
                        await conn.execute(f"delete from {table} where id = $1", existing["id"])
                        return False

                    await conn.execute(
                        f"insert into {table} (post_id, user_id) values ($1, $2)",
                        post_id,
                        user_id,
                    )
                    return True
        except (asyncpg.PostgresError, OSError) as exc:
            raise RepositoryUnavailableError("failed to toggle post engagement") from exc

    async def add_post_comment(self, *, post_id: str, user_id: str, comment_text: str) -> dict[str, Any]:
        if not comment_text.strip():
            raise RepositoryValidationError("comment_text must be a non-empty string")

        pool = await self._get_pool()
        try:
            async with pool.acquire() as conn:
                async with conn.transaction():
                    await self._ensure_post_exists(conn=conn, post_id=post_id)
                    row = await conn.fetchrow(
                        """
                        insert into post_comments (post_id, user_id, comment_text)
                        values ($1, $2, $3)
                        returning
                          id::text as id,
                          post_id::text as post_id,
                          user_id::text as user_id,
                          comment_text,
                          created_at
                        """,
                        post_id,
                        user_id,
                        comment_text,
                    )
        except (asyncpg.PostgresError, OSError) as exc:
            raise RepositoryUnavailableError("failed to add comment") from exc
        return dict(row)

    async def create_post(
        self,
        *,
        user_id: str,
        description: str | None,
        image_urls: list[str],
        location: str | None,
        tagged_user_ids: list[str],
        mentions: list[str],
        tag_ids: list[str],
        tag_names: list[str],
    ) -> dict[str, Any]:
        pool = await self._get_pool()
        try:
            row = await pool.fetchrow(
                f"""
                with inserted as (
                  insert into posts (
                    user_id, description, image_url, location,
                    tag_people_ids, mentions, tag_ids, tags_name
                  )
                  values ($1, $2, $3, $4, $5, $6, $7, $8)
                  returning *
                )
                select {_POST_COLUMNS_SQL}
                from inserted p
                """,
                user_id,
                description,
                image_urls or None,
                location,
                tagged_user_ids,
                mentions,
                tag_ids or None,
                tag_names or None,
            )
        except _INVALID_IDENTIFIER_ERRORS as exc:
            raise RepositoryValidationError("invalid identifier in post payload") from exc
        except (asyncpg.PostgresError, OSError) as exc:
            raise RepositoryUnavailableError("failed to create post") from exc
        return self._post_row_to_dict(row)

    async def get_tag_names(self, *, tag_ids: list[str]) -> dict[str, str]:
        return await self._get_names(table="tags", ids=tag_ids)

    async def get_category_names(self, *, category_ids: list[str]) -> dict[str, str]:
        return await self._get_names(table="categories", ids=category_ids)

    async def create_job_request(
        self,
        *,
        user_id: str,
        payload: dict[str, Any],
        category_names: list[str],
        tag_names: list[str],
        document_urls: list[str],
        status: str = "Approved",
    ) -> dict[str, Any]:
        if status not in JOB_REQUEST_STATUSES:
            raise RepositoryValidationError("status must be one of: Pending, Approved, Rejected")

        pool = await self._get_pool()
        try:
            row = await pool.fetchrow(
                f"""
                with inserted as (
                  insert into job_requests (
                    user_id, job_title, job_short_description, job_full_description,
                    job_category_type_ids, job_category_names, job_urgency, job_budget,
                    job_start_date, job_complete_date, job_location, job_latitude, job_longitude,
                    job_special_requirements, job_documents_images, job_tags_ids, job_tags_names,
                    job_consent, status
                  )
                  values (
                    $1, $2, $3, $4, $5, $6, $7, $8,
                    $9::date, $10::date, $11, $12::double precision, $13::double precision,
                    $14, $15, $16, $17, $18, $19
                  )
                  returning *
                )
                select {_JOB_REQUEST_COLUMNS_SQL}
                from inserted j
                """,
                user_id,
                payload["job_title"],
                payload["job_short_description"],
                payload["job_full_description"],
                payload["job_category_type_ids"],
                category_names,
                payload["job_urgency"],
                payload.get("job_budget") or None,
                self._coerce_date(payload.get("job_start_date")),
                self._coerce_date(payload.get("job_complete_date")),
                payload["job_location"],
                payload.get("job_latitude"),
                payload.get("job_longitude"),
                payload.get("job_special_requirements") or "",
                document_urls or None,
                payload.get("job_tags_ids") or None,
                tag_names or None,
                bool(payload.get("job_consent")),
                status,
            )
        except _INVALID_IDENTIFIER_ERRORS as exc:
            raise RepositoryValidationError("invalid value in job request payload") from exc
        except (asyncpg.PostgresError, OSError) as exc:
            raise RepositoryUnavailableError("failed to create job request") from exc
        return self._job_request_row_to_dict(row)

    async def update_job_request_status(
        self,
        *,
        job_request_id: str,
        status: str,
        rejection_reason: str | None,
    ) -> dict[str, Any]:
        if status not in JOB_REQUEST_STATUSES:
            raise RepositoryValidationError("status must be one of: Pending, Approved, Rejected")

        pool = await self._get_pool()
        try:
            row = await pool.fetchrow(
                f"""
                with updated as (
                  update job_requests
                  set status = $2, rejection_reason = $3, updated_at = now()
                  where id = $1
                  returning *
                )
                select {_JOB_REQUEST_COLUMNS_SQL}
                from updated j
                """,
                job_request_id,
                status,
                rejection_reason,
            )
        except _INVALID_IDENTIFIER_ERRORS as exc:
            raise RepositoryNotFoundError("job request not found") from exc
        except (asyncpg.PostgresError, OSError) as exc:
            raise RepositoryUnavailableError("failed to update job request") from exc
        if row is None:
            raise RepositoryNotFoundError("job request not found")
        return self._job_request_row_to_dict(row)

    async def event_exists(self, *, event_id: str) -> bool:
        pool = await self._get_pool()
        try:
            row = await pool.fetchrow("select 1 from events where id = $1", event_id)
        except _INVALID_IDENTIFIER_ERRORS:
            return False
        except (asyncpg.PostgresError, OSError) as exc:
            raise RepositoryUnavailableError("failed to fetch event") from exc
        return row is not None

    async def upsert_event_interest(self, *, event_id: str, user_id: str, interest_type: str) -> dict[str, Any]:
        if interest_type not in EVENT_INTEREST_TYPES:
            raise RepositoryValidationError('interest_type must be "yes", "no", or "maybe"')

        pool = await self._get_pool()
        try:
            row = await pool.fetchrow(
                """
                insert into event_interests (event_id, user_id, interest_type)
                values ($1, $2, $3)
                on conflict (event_id, user_id)
                do update set interest_type = excluded.interest_type
                returning
                  id::text as id,
                  event_id::text as event_id,
                  user_id::text as user_id,
                  interest_type,
                  created_at
                """,
                event_id,
                user_id,
                interest_type,
            )
        except pg_exc.ForeignKeyViolationError as exc:
            raise RepositoryNotFoundError("Event not found") from exc
        except (asyncpg.PostgresError, OSError) as exc:
            raise RepositoryUnavailableError("failed to mark event interest") from exc
        return dict(row)

    async def _get_names(self, *, table: str, ids: list[str]) -> dict[str, str]:
        if not ids:
            return {}
        pool = await self._get_pool()
        try:
            rows = await pool.fetch(
                f"select id::text as id, name from {table} where id::text = any($1::text[])",
                ids,
            )
        except (asyncpg.PostgresError, OSError) as exc:
            raise RepositoryUnavailableError(f"failed to fetch {table}") from exc
        return {row["id"]: row["name"] for row in rows}

    async def _ensure_post_exists(self, *, conn: asyncpg.Connection, post_id: str) -> None:
        try:
            row = await conn.fetchrow("select 1 from posts where id = $1", post_id)
        except _INVALID_IDENTIFIER_ERRORS as exc:
            raise RepositoryNotFoundError("post not found") from exc
        if row is None:
            raise RepositoryNotFoundError("post not found")

    async def _get_pool(self) -> asyncpg.Pool:
        if not self.database_url:
            raise RepositoryUnavailableError("DOLKS_DATABASE_URL is required")

        if self._pool is not None:
            return self._pool

        try:
            self._pool = await asyncpg.create_pool(
                dsn=self.database_url,
                min_size=self.min_pool_size,
                max_size=self.max_pool_size,
                command_timeout=15,
                # Supabase pooler (PgBouncer transaction mode) rejects prepared statements.
                statement_cache_size=0,
            )
            return self._pool
        except Exception as exc:  # pragma: no cover - depends on environment
            raise RepositoryUnavailableError("database unavailable") from exc

    @staticmethod
    def _engagement_table(kind: str) -> str:
        table = ENGAGEMENT_TABLES.get(kind)
        if table is None:
            raise RepositoryValidationError(f"unknown engagement kind: {kind}")
        return table

    @staticmethod
    def _post_row_to_dict(row: asyncpg.Record) -> dict[str, Any]:
        return {
            "id": row["id"],
            "user_id": row["user_id"],
            "description": row["description"],
            "image_url": _text_list(row["image_url"]),
            "location": row["location"],
            "latitude": row["latitude"],
            "longitude": row["longitude"],
            "mentions": _text_list(row["mentions"]),
            "tag_ids": _text_list(row["tag_ids"]) if row["tag_ids"] is not None else None,
            "tags_name": _text_list(row["tags_name"]),
            "tag_people_ids": _text_list(row["tag_people_ids"]),
            "created_at": row["created_at"],
            "updated_at": row["updated_at"],
        }

    @staticmethod
    def _job_request_row_to_dict(row: asyncpg.Record) -> dict[str, Any]:
        return {
            "id": row["id"],
            "user_id": row["user_id"],
            "job_title": row["job_title"],
            "job_short_description": row["job_short_description"],
            "job_full_description": row["job_full_description"],
            "job_category_names": _text_list(row["job_category_names"]),
            "job_category_type_ids": _text_list(row["job_category_type_ids"]),
            "job_urgency": row["job_urgency"],
            "job_budget": row["job_budget"],
            "job_start_date": row["job_start_date"],
            "job_complete_date": row["job_complete_date"],
            "job_location": row["job_location"],
            "job_latitude": row["job_latitude"],
            "job_longitude": row["job_longitude"],
            "job_special_requirements": row["job_special_requirements"],
            "job_tags_ids": _text_list(row["job_tags_ids"]) if row["job_tags_ids"] is not None else None,
            "job_tags_names": _text_list(row["job_tags_names"]),
            "job_documents_images": _text_list(row["job_documents_images"]),
            "job_consent": bool(row["job_consent"]),
            "status": row["status"],
            "rejection_reason": row["rejection_reason"],
            "created_at": row["created_at"],
            "updated_at": row["updated_at"],
        }

    @staticmethod
    def _coerce_date(value: Any) -> date | None:
        if value is None or isinstance(value, date):
            return value
        if isinstance(value, str):
            candidate = value.strip()
            if not candidate:
                return None
            try:
                return date.fromisoformat(candidate[:10])
            except ValueError as exc:
                raise RepositoryValidationError(f"invalid date: {value}") from exc
        raise RepositoryValidationError(f"invalid date: {value}")


@lru_cache
def get_repository() -> PostgresRepository:
    settings = get_settings()
    return PostgresRepository(
        database_url=settings.database_url,
        min_pool_size=settings.database_pool_min_size,
        max_pool_size=settings.database_pool_max_size,
    )
