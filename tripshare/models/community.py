"""
TripShare Backend — Community SQLAlchemy Models
=================================================

What:  ORM models for `community_posts`, `community_likes` and
       `community_comments`.
Why:   Maps posts and their likes to rows for the post service, the two
       stores behind the like toggle, and Alembic.

Table Design Rationale:
    - community_posts.likes is a denormalized counter. It must always equal
      the number of community_likes rows for the post. Only the
      ToggleCoordinator changes it, always in the same transaction as the
      matching like row. CHECK (likes >= 0) backs that up in the database.
    - community_likes has UNIQUE (post_id, user_id). The conditional insert
      relies on it: a racing duplicate insert resolves to "already exists"
      instead of a second row.
    - Ids are opaque strings: posts are addressed by the client and users come
      from the identity service, so neither is a database sequence.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from tripshare.database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CommunityPost(Base):
    """
    A post in the community feed (the engaged-with content item).

    Lifecycle:
        1. Created by POST /api/community with likes = 0
        2. likes changes only through the like toggle
        3. Never deleted by this service
    """

    __tablename__ = "community_posts"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)

    # Author, as resolved by the identity gate
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)

    # TRIP_REVIEW, ACTIVITY_REVIEW, DESTINATION_GUIDE, TRAVEL_TIP,
    # PHOTO_SHARE, QUESTION, OTHER
    type: Mapped[str] = mapped_column(String(32), nullable=False)

    destination: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Trip the post was shared from; trips live in another service
    trip_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Comma-joined lists
    tags: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    images: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    is_public: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )

    likes: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
        comment="Denormalized count of community_likes rows for this post",
    )
    views: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        CheckConstraint("likes >= 0", name="ck_community_posts_likes_non_negative"),
        CheckConstraint("rating IS NULL OR (rating >= 1 AND rating <= 5)", name="ck_community_posts_rating"),
        Index("idx_community_posts_created_at", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<CommunityPost(id={self.id}, likes={self.likes})>"


class CommunityLike(Base):
    """
    One user's active like on one post (a membership record).

    Existence of the row is the "liked" state. Rows are inserted by a
    toggle-on and deleted by a toggle-off; they are never updated.
    """

    __tablename__ = "community_likes"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    post_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("community_posts.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)

    # Informational only
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        UniqueConstraint("post_id", "user_id", name="uq_community_likes_post_user"),
    )

    def __repr__(self) -> str:
        return f"<CommunityLike(post_id={self.post_id}, user_id={self.user_id})>"


class CommunityComment(Base):
    """
    A comment on a post.

    Comments are append-only here: no edit or delete endpoint exists. The
    feed shows a per-post count computed from these rows, not a stored
    counter, so there is nothing to keep in sync.
    """

    __tablename__ = "community_comments"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    post_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("community_posts.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        # Detail view lists a post's comments newest first
        Index("idx_community_comments_post_created", "post_id", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<CommunityComment(id={self.id}, post_id={self.post_id})>"
