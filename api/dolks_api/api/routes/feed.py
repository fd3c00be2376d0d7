import logging

from fastapi import APIRouter, Depends, HTTPException, status

from dolks_api.schemas.feed import CompanyFeedRequest, CompanyFeedResponse, Pagination
from dolks_api.services.feed import build_company_feed
from dolks_api.services.repository import RepositoryNotFoundError, RepositoryUnavailableError, get_repository

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/company", response_model=CompanyFeedResponse)
async def company_feed(payload: CompanyFeedRequest, repository=Depends(get_repository)) -> CompanyFeedResponse:
    if not payload.user_id:
        logger.info("company feed rejected: missing user_id")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="user_id is required")

    try:
        feed = await build_company_feed(repository, user_id=payload.user_id, page=payload.page, limit=payload.limit)
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company profile not found") from exc
    except RepositoryUnavailableError as exc:
        logger.error("company profile fetch failed user_id=%s: %s", payload.user_id, exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch company profile",
        ) from exc
    except Exception as exc:
        logger.exception("company feed failed user_id=%s", payload.user_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred",
        ) from exc

    logger.info("company feed returning items=%s total=%s", len(feed.items), feed.total)
    return CompanyFeedResponse(
        data=feed.items,
        message=feed.message,
        pagination=Pagination(page=feed.page, limit=feed.limit, total=feed.total, total_pages=feed.total_pages),
    )
