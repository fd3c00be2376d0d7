import logging
from typing import Any

from fastapi import Depends, Header, HTTPException, status

from dolks_api.core.auth import Principal
from dolks_api.services.repository import RepositoryUnavailableError, get_repository
from dolks_api.services.supabase import (
    SupabaseAuthError,
    SupabaseClient,
    SupabaseUnavailableError,
    get_supabase_client,
)

logger = logging.getLogger(__name__)


async def get_human_principal(
    supabase: SupabaseClient = Depends(get_supabase_client),
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> Principal:
    token = _extract_bearer_token(authorization)
    if token is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    try:
        user = await supabase.fetch_user(token)
    except SupabaseAuthError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized") from exc
    except SupabaseUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    principal = _principal_from_user(user, token=token)
    if principal is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return principal


async def get_optional_human_principal(
    supabase: SupabaseClient = Depends(get_supabase_client),
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> Principal | None:
    token = _extract_bearer_token(authorization)
    if token is None:
        return None

    try:
        user = await supabase.fetch_user(token)
    except SupabaseAuthError:
        return None
    except SupabaseUnavailableError as exc:
        logger.warning("optional auth skipped: %s", exc)
        return None
    return _principal_from_user(user, token=token)


async def get_admin_principal(
    principal: Principal = Depends(get_human_principal),
    repository=Depends(get_repository),
) -> Principal:
    try:
        roles = await repository.list_user_roles(user_id=principal.subject)
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    principal.roles = set(roles)
    try:
        principal.require_role("admin")
    except PermissionError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden: Admin access required") from exc
    return principal


def _extract_bearer_token(authorization: str | None) -> str | None:
    if not authorization or not authorization.lower().startswith("bearer "):
        return None
    token = authorization.split(" ", maxsplit=1)[1].strip()
    return token or None


def _principal_from_user(user: dict[str, Any], *, token: str | None = None) -> Principal | None:
    user_id = user.get("id")
    if not isinstance(user_id, str) or not user_id:
        return None
    email = user.get("email")
    return Principal(subject=user_id, email=email if isinstance(email, str) else None, access_token=token)
