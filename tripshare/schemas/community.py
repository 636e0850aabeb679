"""
TripShare Backend — Pydantic Request/Response Schemas
=======================================================

What:  Pydantic models defining the community API contract.
Why:   Strict input validation, automatic serialization, and OpenAPI docs.

Design Decision:
    Schemas are separate from SQLAlchemy models so that the API never
    exposes the raw counter column as writable. PostCreate has no `likes`
    field, so a client cannot seed or overwrite the counter.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class PostType(str, Enum):
    TRIP_REVIEW = "TRIP_REVIEW"
    ACTIVITY_REVIEW = "ACTIVITY_REVIEW"
    DESTINATION_GUIDE = "DESTINATION_GUIDE"
    TRAVEL_TIP = "TRAVEL_TIP"
    PHOTO_SHARE = "PHOTO_SHARE"
    QUESTION = "QUESTION"
    OTHER = "OTHER"


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class PostCreate(BaseModel):
    """
    What:  Body of POST /api/community.
    Why:   Validates required fields and list shapes before anything touches the DB.
    """
    title: str = Field(min_length=1, max_length=200)
    content: str = Field(min_length=1)
    type: PostType
    destination: Optional[str] = Field(default=None, max_length=255)
    trip_id: Optional[str] = Field(default=None, max_length=64)
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    tags: List[str] = Field(default_factory=list)
    images: List[str] = Field(default_factory=list)
    is_public: bool = True

    @field_validator("title", "content")
    @classmethod
    def strip_text(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("must not be blank")
        return stripped

    @field_validator("tags", "images")
    @classmethod
    def clean_list(cls, v: List[str]) -> List[str]:
        """Drops blanks; commas would corrupt the comma-joined storage format."""
        cleaned = [item.strip() for item in v if item and item.strip()]
        for item in cleaned:
            if "," in item:
                raise ValueError(f"'{item}' must not contain commas")
        return cleaned


class CommentCreate(BaseModel):
    """
    What:  Body of POST /api/community/{post_id}.

    Blank content is rejected by the service as a 400, not here, so the
    client gets the same error shape as every other business rule.
    """
    content: str = Field(default="", max_length=5000)


class SortField(str, Enum):
    CREATED_AT = "created_at"
    LIKES = "likes"
    VIEWS = "views"
    RATING = "rating"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class EngagementResponse(BaseModel):
    """
    What:  Result of a like toggle, and of the engagement read endpoint.
    Who:   Returned by POST /api/items/{item_id}/engagement.

    Serialized as {"count": int, "isEngaged": bool}.
    """
    count: int = Field(ge=0, description="Likes on the item after the operation")
    is_engaged: bool = Field(
        serialization_alias="isEngaged",
        description="Whether the caller likes the item after the operation",
    )

    model_config = {"populate_by_name": True}


class CommentResponse(BaseModel):
    id: str
    post_id: str
    user_id: str
    content: str
    created_at: datetime


class PostResponse(BaseModel):
    """Full representation of a community post for the calling user."""
    id: str
    user_id: str
    title: str
    content: str
    type: str
    destination: Optional[str] = None
    trip_id: Optional[str] = None
    rating: Optional[int] = None
    tags: List[str] = Field(default_factory=list)
    images: List[str] = Field(default_factory=list)
    is_public: bool
    likes: int
    views: int
    is_liked: bool = Field(description="Whether the calling user likes this post")
    comment_count: int = Field(default=0, ge=0)
    comments: Optional[List[CommentResponse]] = Field(
        default=None,
        description="Newest first; only present on the detail view",
    )
    created_at: datetime
    updated_at: datetime


class PostListResponse(BaseModel):
    """
    What:  Paginated response for GET /api/community.

    Pagination is page/limit based: the feed is sorted by several columns
    (likes, views, rating) so a created_at cursor does not apply.
    """
    posts: List[PostResponse]
    total_count: int
    current_page: int
    total_pages: int


class ErrorResponse(BaseModel):
    """Standardized error response format for all API errors."""
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Health check response showing service and dependency status."""
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
