import logging

from fastapi import APIRouter, Depends, HTTPException, status

from dolks_api.core.auth import Principal
from dolks_api.core.security import get_admin_principal
from dolks_api.schemas.login import MessageResponse
from dolks_api.services.supabase import SupabaseClient, SupabaseError, get_supabase_client

router = APIRouter()
logger = logging.getLogger(__name__)


@router.delete("/users/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: str,
    principal: Principal = Depends(get_admin_principal),
    supabase: SupabaseClient = Depends(get_supabase_client),
) -> MessageResponse:
    try:
        await supabase.delete_auth_user(user_id)
    except SupabaseError as exc:
        logger.error("auth user deletion failed user_id=%s: %s", user_id, exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to delete user: {exc}",
        ) from exc

    logger.info("auth user deleted user_id=%s by=%s", user_id, principal.actor_id)
    return MessageResponse(message="User deleted successfully")
