"""
TripShare Backend — Engagement (Like) Route Handlers
======================================================

What:  POST toggles the caller's like on a post; GET reads it back.
Why:   The only HTTP entry points to the ToggleCoordinator.
How:   The identity gate resolves the user first (401 before any storage
       access), then the coordinator does the rest.

Paths:
    POST /api/items/{item_id}/engagement
    POST /api/community/{item_id}/like        (path used by the web client)
    GET  /api/items/{item_id}/engagement
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tripshare.database import get_session_factory
from tripshare.schemas.community import EngagementResponse, ErrorResponse
from tripshare.security import get_current_user_id
from tripshare.services.toggle_coordinator import ToggleCoordinator, ToggleResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Engagement"])

_ERRORS = {
    401: {"description": "No verified identity", "model": ErrorResponse},
    404: {"description": "Post not found", "model": ErrorResponse},
    500: {"description": "Internal or transient failure", "model": ErrorResponse},
}


def get_toggle_coordinator(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> ToggleCoordinator:
    return ToggleCoordinator(session_factory)


def _to_response(result: ToggleResult) -> EngagementResponse:
    return EngagementResponse(count=result.count, is_engaged=result.is_engaged)


@router.post(
    "/items/{item_id}/engagement",
    response_model=EngagementResponse,
    responses=_ERRORS,
    summary="Toggle the caller's like on a post",
)
@router.post(
    "/community/{item_id}/like",
    response_model=EngagementResponse,
    responses=_ERRORS,
    summary="Toggle the caller's like on a post",
)
async def toggle_engagement(
    item_id: str,
    user_id: str = Depends(get_current_user_id),
    coordinator: ToggleCoordinator = Depends(get_toggle_coordinator),
) -> EngagementResponse:
    """
    Like the post if the caller does not like it yet, otherwise unlike it.

    Duplicate concurrent requests are absorbed: the response always reflects
    the state the caller ended up in, never an error for losing a race.
    """
    result = await coordinator.toggle(item_id, user_id)
    return _to_response(result)


@router.get(
    "/items/{item_id}/engagement",
    response_model=EngagementResponse,
    responses=_ERRORS,
    summary="Read the caller's like state and the post's like count",
)
async def read_engagement(
    item_id: str,
    user_id: str = Depends(get_current_user_id),
    coordinator: ToggleCoordinator = Depends(get_toggle_coordinator),
) -> EngagementResponse:
    result = await coordinator.engagement(item_id, user_id)
    return _to_response(result)
