import logging

from fastapi import APIRouter, Depends, HTTPException, status

from dolks_api.schemas.login import LoginRequest, LoginResponse, LoginSessionOut, LoginUserOut
from dolks_api.services.repository import RepositoryUnavailableError, get_repository
from dolks_api.services.supabase import (
    SupabaseAuthError,
    SupabaseClient,
    SupabaseUnavailableError,
    get_supabase_client,
)

router = APIRouter()
logger = logging.getLogger(__name__)

PENDING_APPROVAL_MESSAGE = "Your account is pending approval. Please contact an administrator."


@router.post("/validate-login", response_model=LoginResponse)
async def validate_login(
    payload: LoginRequest,
    supabase: SupabaseClient = Depends(get_supabase_client),
    repository=Depends(get_repository),
) -> LoginResponse:
    if not payload.email or not payload.password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email and password are required")

    logger.info("login attempt email=%s", payload.email)
    try:
        auth = await supabase.sign_in_with_password(email=payload.email, password=payload.password)
    except SupabaseAuthError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
    except SupabaseUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    auth_user = auth.get("user") or {}
    user_id = auth_user.get("id")
    if not isinstance(user_id, str) or not auth.get("access_token"):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid login credentials")

    try:
        profile = await repository.get_login_profile(user_id=user_id)
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")

    if profile.get("user_type") == "crew" and not profile.get("is_approved"):
        logger.info("login blocked pending approval email=%s", payload.email)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"message": PENDING_APPROVAL_MESSAGE, "pending_approval": True},
        )

    logger.info("login successful email=%s", payload.email)
    return LoginResponse(
        user=LoginUserOut(**profile),
        session=LoginSessionOut(access_token=auth["access_token"], refresh_token=auth.get("refresh_token")),
    )
