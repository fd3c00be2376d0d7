import logging

from fastapi import APIRouter, Depends, HTTPException, status

from dolks_api.core.auth import Principal
from dolks_api.core.security import get_human_principal
from dolks_api.schemas.events import EventInterestOut, EventInterestRequest, EventInterestResponse
from dolks_api.services.repository import (
    EVENT_INTEREST_TYPES,
    RepositoryNotFoundError,
    RepositoryUnavailableError,
    get_repository,
)

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/interest", response_model=EventInterestResponse)
async def mark_event_interest(
    payload: EventInterestRequest,
    principal: Principal = Depends(get_human_principal),
    repository=Depends(get_repository),
) -> EventInterestResponse:
    if not payload.event_id or not payload.interest_type:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="event_id and interest_type are required")
    if payload.interest_type not in EVENT_INTEREST_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='interest_type must be "yes", "no", or "maybe"',
        )

    try:
        event_exists = await repository.event_exists(event_id=payload.event_id)
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    if not event_exists:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")

    try:
        row = await repository.upsert_event_interest(
            event_id=payload.event_id,
            user_id=principal.actor_id,
            interest_type=payload.interest_type,
        )
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    logger.info("event interest marked event_id=%s user_id=%s type=%s", payload.event_id, principal.actor_id, payload.interest_type)
    return EventInterestResponse(data=EventInterestOut(**row))
