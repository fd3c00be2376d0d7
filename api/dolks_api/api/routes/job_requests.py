import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from dolks_api.core.auth import Principal
from dolks_api.core.config import Settings, get_settings
from dolks_api.core.security import get_admin_principal, get_human_principal
from dolks_api.schemas.job_requests import (
    JobRequestAdminOut,
    JobRequestCreateOut,
    JobRequestCreateRequest,
    JobRequestDetailOut,
    JobRequestModerationRequest,
    JobRequestStatus,
)
from dolks_api.services.enrichment import load_author_map
from dolks_api.services.repository import (
    RepositoryNotFoundError,
    RepositoryUnavailableError,
    RepositoryValidationError,
    get_repository,
)
from dolks_api.services.supabase import SupabaseClient, get_supabase_client
from dolks_api.services.uploads import upload_job_documents

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("", response_model=JobRequestCreateOut)
async def create_job_request(
    payload: JobRequestCreateRequest,
    principal: Principal = Depends(get_human_principal),
    repository=Depends(get_repository),
    supabase: SupabaseClient = Depends(get_supabase_client),
    settings: Settings = Depends(get_settings),
) -> JobRequestCreateOut:
    logger.info("creating job request user_id=%s title=%s", principal.actor_id, payload.job_title)
    try:
        categories = await repository.get_category_names(category_ids=payload.job_category_type_ids)
        tags = await repository.get_tag_names(tag_ids=payload.job_tags_ids)
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    document_urls = await upload_job_documents(
        supabase,
        bucket=settings.job_documents_bucket,
        user_id=principal.actor_id,
        images_base64=payload.job_documents_images_base64,
        token=principal.access_token,
    )

    try:
        row = await repository.create_job_request(
            user_id=principal.actor_id,
            payload=payload.model_dump(exclude={"job_documents_images_base64"}),
            category_names=[categories.get(category_id, "") for category_id in payload.job_category_type_ids],
            tag_names=[tags.get(tag_id, "") for tag_id in payload.job_tags_ids],
            document_urls=document_urls,
        )
    except RepositoryValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    logger.info("job request created id=%s documents=%s", row["id"], len(document_urls))
    return JobRequestCreateOut(job_request=JobRequestDetailOut(**row))


@router.get("", response_model=list[JobRequestAdminOut])
async def list_job_requests(
    job_status: JobRequestStatus | None = Query(default=None, alias="status"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    principal: Principal = Depends(get_admin_principal),
    repository=Depends(get_repository),
) -> list[JobRequestAdminOut]:
    try:
        rows = await repository.list_job_requests(status=job_status, limit=limit, offset=offset)
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    authors = await load_author_map(repository, [row["user_id"] for row in rows])
    return [JobRequestAdminOut(**row, user=authors.get(row["user_id"])) for row in rows]


@router.patch("/{job_request_id}", response_model=JobRequestDetailOut)
async def moderate_job_request(
    job_request_id: str,
    payload: JobRequestModerationRequest,
    principal: Principal = Depends(get_admin_principal),
    repository=Depends(get_repository),
) -> JobRequestDetailOut:
    reason = (payload.rejection_reason or "").strip() or None
    if payload.status == "Rejected" and reason is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="rejection_reason is required when rejecting a job request",
        )

    try:
        row = await repository.update_job_request_status(
            job_request_id=job_request_id,
            status=payload.status,
            rejection_reason=reason if payload.status == "Rejected" else None,
        )
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    logger.info("job request moderated id=%s status=%s by=%s", job_request_id, payload.status, principal.actor_id)
    return JobRequestDetailOut(**row)
