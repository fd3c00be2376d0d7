from __future__ import annotations

from functools import lru_cache
from typing import Any
from urllib.parse import quote

import httpx

from dolks_api.core.config import get_settings


class SupabaseError(Exception):
    """Base Supabase API error."""


class SupabaseAuthError(SupabaseError):
    """Raised when Supabase rejects the supplied credentials or token."""


class SupabaseUnavailableError(SupabaseError):
    """Raised when Supabase is not configured, unreachable or returns an unexpected status."""


class SupabaseClient:
    """Thin async wrapper over the Supabase Auth and Storage REST endpoints."""

    def __init__(
        self,
        supabase_url: str | None,
        anon_key: str | None,
        service_role_key: str | None,
        auth_timeout_seconds: float,
        storage_timeout_seconds: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.supabase_url = supabase_url.rstrip("/") if supabase_url else None
        self.anon_key = anon_key
        self.service_role_key = service_role_key
        self.auth_timeout_seconds = auth_timeout_seconds
        self.storage_timeout_seconds = storage_timeout_seconds
        self._transport = transport

    async def fetch_user(self, token: str) -> dict[str, Any]:
        base_url, anon_key = self._require_anon()
        headers = {
            "Authorization": f"Bearer {token}",
            "apikey": anon_key,
        }
        response = await self._request(
            "GET",
            f"{base_url}/auth/v1/user",
            headers=headers,
            timeout=self.auth_timeout_seconds,
        )
        if response.status_code in {401, 403}:
            raise SupabaseAuthError("invalid bearer token")
        if response.status_code != 200:
            raise SupabaseUnavailableError("Supabase auth verification failed")
        return response.json()

    async def sign_in_with_password(self, *, email: str, password: str) -> dict[str, Any]:
        base_url, anon_key = self._require_anon()
        response = await self._request(
            "POST",
            f"{base_url}/auth/v1/token",
            params={"grant_type": "password"},
            headers={"apikey": anon_key},
            json={"email": email, "password": password},
            timeout=self.auth_timeout_seconds,
        )
        if response.status_code in {400, 401, 403, 422}:
            raise SupabaseAuthError(self._error_message(response, default="Invalid login credentials"))
        if response.status_code != 200:
            raise SupabaseUnavailableError("Supabase sign-in failed")
        return response.json()

    async def delete_auth_user(self, user_id: str) -> None:
        base_url, service_key = self._require_service_role()
        response = await self._request(
            "DELETE",
            f"{base_url}/auth/v1/admin/users/{quote(user_id, safe='')}",
            headers={"Authorization": f"Bearer {service_key}", "apikey": service_key},
            timeout=self.auth_timeout_seconds,
        )
        if response.status_code == 404:
            raise SupabaseError("User not found")
        if response.status_code not in {200, 204}:
            raise SupabaseError(self._error_message(response, default="Supabase admin request failed"))

    async def upload_object(
        self,
        *,
        bucket: str,
        path: str,
        content: bytes,
        content_type: str,
        token: str | None = None,
        upsert: bool = False,
    ) -> str:
        base_url, anon_key = self._require_anon()
        bearer = token or self.service_role_key or anon_key
        response = await self._request(
            "POST",
            f"{base_url}/storage/v1/object/{bucket}/{path}",
            headers={
                "Authorization": f"Bearer {bearer}",
                "apikey": anon_key,
                "Content-Type": content_type,
                "x-upsert": "true" if upsert else "false",
            },
            content=content,
            timeout=self.storage_timeout_seconds,
        )
        if response.status_code not in {200, 201}:
            raise SupabaseUnavailableError(self._error_message(response, default="storage upload failed"))
        return self.public_url(bucket=bucket, path=path)

    def public_url(self, *, bucket: str, path: str) -> str:
        base_url, _ = self._require_anon()
        return f"{base_url}/storage/v1/object/public/{bucket}/{path}"

    async def _request(self, method: str, url: str, *, timeout: float, **kwargs: Any) -> httpx.Response:
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                return await client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:  # pragma: no cover - network dependent
            raise SupabaseUnavailableError("Supabase unavailable") from exc

    def _require_anon(self) -> tuple[str, str]:
        if not self.supabase_url or not self.anon_key:
            raise SupabaseUnavailableError("Supabase is not configured")
        return self.supabase_url, self.anon_key

    def _require_service_role(self) -> tuple[str, str]:
        if not self.supabase_url or not self.service_role_key:
            raise SupabaseUnavailableError("Supabase service role is not configured")
        return self.supabase_url, self.service_role_key

    @staticmethod
    def _error_message(response: httpx.Response, *, default: str) -> str:
        try:
            payload = response.json()
        except ValueError:
            return default
        if isinstance(payload, dict):
            for key in ("error_description", "msg", "message", "error"):
                value = payload.get(key)
                if isinstance(value, str) and value:
                    return value
        return default


@lru_cache
def get_supabase_client() -> SupabaseClient:
    settings = get_settings()
    return SupabaseClient(
        supabase_url=settings.supabase_url,
        anon_key=settings.supabase_anon_key,
        service_role_key=settings.supabase_service_role_key,
        auth_timeout_seconds=settings.auth_timeout_seconds,
        storage_timeout_seconds=settings.storage_timeout_seconds,
    )
