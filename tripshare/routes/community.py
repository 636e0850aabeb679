"""
TripShare Backend — Community Post Route Handlers
===================================================

What:  POST /api/community (create), GET /api/community (feed),
       GET /api/community/{post_id} (detail), POST /api/community/{post_id}
       (comment).
Why:   The community feed the like toggle operates on.
How:   Thin handlers: resolve the caller, validate query params, delegate to
       PostService, set headers.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from tripshare.config import settings
from tripshare.database import get_db_session
from tripshare.exceptions import ValidationError
from tripshare.schemas.community import (
    CommentCreate,
    CommentResponse,
    ErrorResponse,
    PostCreate,
    PostListResponse,
    PostResponse,
    PostType,
    SortField,
    SortOrder,
)
from tripshare.security import get_current_user_id
from tripshare.services.post_service import post_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Community"])


@router.post(
    "/community",
    response_model=PostResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        401: {"description": "No verified identity", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Create a community post",
)
async def create_post(
    body: PostCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> PostResponse:
    return await post_service.create_post(db=db, user_id=user_id, data=body)


@router.get(
    "/community",
    response_model=PostListResponse,
    responses={
        401: {"description": "No verified identity", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="List public community posts",
)
async def list_posts(
    response: Response,
    search: Optional[str] = Query(default=None, max_length=200),
    post_type: Optional[str] = Query(
        default=None,
        alias="type",
        description="Post type filter; ALL or omitted disables it",
    ),
    destination: Optional[str] = Query(default=None, max_length=255),
    sort_by: SortField = Query(default=SortField.CREATED_AT),
    sort_order: SortOrder = Query(default=SortOrder.DESC),
    page: int = Query(default=1, ge=1),
    limit: Optional[int] = Query(default=None, ge=1),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> PostListResponse:
    if post_type is not None and post_type != "ALL":
        try:
            post_type = PostType(post_type).value
        except ValueError:
            raise ValidationError(
                message=f"Unknown post type '{post_type}'",
                field="type",
                context={"allowed": ["ALL"] + [t.value for t in PostType]},
            )

    page_size = min(limit or settings.default_page_size, settings.max_page_size)
    result = await post_service.list_posts(
        db=db,
        user_id=user_id,
        page=page,
        limit=page_size,
        search=search,
        post_type=post_type,
        destination=destination,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    response.headers["X-Total-Count"] = str(result.total_count)
    return result


@router.get(
    "/community/{post_id}",
    response_model=PostResponse,
    responses={
        401: {"description": "No verified identity", "model": ErrorResponse},
        404: {"description": "Post not found", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Get a single community post",
)
async def get_post(
    post_id: str,
    response: Response,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> PostResponse:
    result = await post_service.get_post(db=db, post_id=post_id, user_id=user_id)
    # Like counts change often and is_liked is per user
    response.headers["Cache-Control"] = "private, no-cache"
    return result


@router.post(
    "/community/{post_id}",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Empty comment", "model": ErrorResponse},
        401: {"description": "No verified identity", "model": ErrorResponse},
        404: {"description": "Post not found", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Comment on a community post",
)
async def add_comment(
    post_id: str,
    body: CommentCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> CommentResponse:
    return await post_service.add_comment(db=db, post_id=post_id, user_id=user_id, data=body)
