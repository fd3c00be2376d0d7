import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from dolks_api.core.auth import Principal
from dolks_api.core.config import Settings, get_settings
from dolks_api.core.security import get_human_principal, get_optional_human_principal
from dolks_api.schemas.posts import (
    CommentOut,
    PostCreateOut,
    PostCreateRequest,
    PostInteractionOut,
    PostInteractionRequest,
    PostListOut,
    PostWithEngagementOut,
)
from dolks_api.services.enrichment import count_engagements, load_favorite_post_ids
from dolks_api.services.repository import (
    ENGAGEMENT_TABLES,
    RepositoryNotFoundError,
    RepositoryUnavailableError,
    RepositoryValidationError,
    get_repository,
)
from dolks_api.services.supabase import SupabaseClient, SupabaseError, get_supabase_client
from dolks_api.services.uploads import InvalidImageError, upload_post_image

router = APIRouter()
logger = logging.getLogger(__name__)

# action -> (label when the row now exists, label when removed, response flag)
_TOGGLE_LABELS = {
    "like": ("liked", "unliked", "liked"),
    "share": ("shared", "unshared", "shared"),
    "favorite": ("favorited", "unfavorited", "favorited"),
}


@router.get("", response_model=PostListOut)
async def list_posts(
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    user_id: str | None = Query(default=None, min_length=1),
    principal: Principal | None = Depends(get_optional_human_principal),
    repository=Depends(get_repository),
) -> PostListOut:
    try:
        rows = await repository.list_posts(limit=limit, offset=offset, user_id=user_id)
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    post_ids = [row["id"] for row in rows]
    counts, favorites = await asyncio.gather(
        count_engagements(repository, post_ids),
        load_favorite_post_ids(
            repository,
            user_id=principal.actor_id if principal else None,
            post_ids=post_ids,
        ),
    )
    return PostListOut(
        posts=[
            PostWithEngagementOut(**row, **counts.for_post(row["id"]), is_added_favorite=row["id"] in favorites)
            for row in rows
        ]
    )


@router.post("", response_model=PostCreateOut)
async def create_post(
    payload: PostCreateRequest,
    principal: Principal = Depends(get_human_principal),
    repository=Depends(get_repository),
    supabase: SupabaseClient = Depends(get_supabase_client),
    settings: Settings = Depends(get_settings),
) -> PostCreateOut:
    image_urls: list[str] = []
    if payload.image_base64:
        try:
            image_urls.append(
                await upload_post_image(
                    supabase,
                    bucket=settings.post_images_bucket,
                    user_id=principal.actor_id,
                    image_base64=payload.image_base64,
                    token=principal.access_token,
                )
            )
        except InvalidImageError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        except SupabaseError as exc:
            logger.error("post image upload failed user_id=%s: %s", principal.actor_id, exc)
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to upload image") from exc

    try:
        tag_names = await repository.get_tag_names(tag_ids=payload.tag_ids)
        row = await repository.create_post(
            user_id=principal.actor_id,
            description=payload.description or None,
            image_urls=image_urls,
            location=payload.location or None,
            tagged_user_ids=payload.tagged_user_ids,
            mentions=payload.mentions,
            tag_ids=payload.tag_ids,
            tag_names=[tag_names.get(tag_id, "") for tag_id in payload.tag_ids],
        )
    except RepositoryValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    logger.info("post created id=%s user_id=%s", row["id"], principal.actor_id)
    return PostCreateOut(post=row)


@router.post("/interactions", response_model=PostInteractionOut, response_model_exclude_none=True)
async def post_interaction(
    payload: PostInteractionRequest,
    principal: Principal = Depends(get_human_principal),
    repository=Depends(get_repository),
) -> PostInteractionOut:
    if not payload.post_id or not payload.action:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required fields: post_id and action",
        )
    if payload.action not in ENGAGEMENT_TABLES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid action. Valid actions: like, comment, share, favorite",
        )
    if payload.action == "comment" and not (payload.comment_text or "").strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="comment_text is required for comment action",
        )

    logger.info("post interaction action=%s post_id=%s user_id=%s", payload.action, payload.post_id, principal.actor_id)
    try:
        if payload.action == "comment":
            comment = await repository.add_post_comment(
                post_id=payload.post_id,
                user_id=principal.actor_id,
                comment_text=payload.comment_text,
            )
            return PostInteractionOut(action="commented", comment=CommentOut(**comment))

        active = await repository.toggle_post_engagement(
            kind=payload.action,
            post_id=payload.post_id,
            user_id=principal.actor_id,
        )
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RepositoryValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    on_label, off_label, flag = _TOGGLE_LABELS[payload.action]
    return PostInteractionOut(action=on_label if active else off_label, **{flag: active})
