"""
TripShare Backend — Content Item Store (community posts)
==========================================================

What:  Lookups on `community_posts` and the relative adjustment of its
       denormalized `likes` counter.
Why:   Keeps the counter write in one place with one rule: the database
       applies `likes + delta` atomically and refuses to go below zero.

Counter update:
    UPDATE community_posts SET likes = likes + :delta
    WHERE id = :id AND likes + :delta >= 0
    RETURNING likes

    A relative update never loses a concurrent increment the way
    read-modify-write in Python would. If no row comes back the post is
    either missing (NotFoundError) or the counter would have gone negative.
    The second case means the counter and the like rows already disagree,
    so it fails loudly as InvariantViolationError rather than clamping.
"""

import logging
from typing import Tuple

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tripshare.exceptions import InvariantViolationError, NotFoundError
from tripshare.models.community import CommunityLike, CommunityPost

logger = logging.getLogger(__name__)


class ContentItemStore:
    """Owns the likes counter on community_posts. Never commits."""

    async def get(self, db: AsyncSession, item_id: str) -> CommunityPost:
        result = await db.execute(select(CommunityPost).where(CommunityPost.id == item_id))
        post = result.scalar_one_or_none()
        if post is None:
            raise NotFoundError(resource="post", resource_id=item_id)
        return post

    async def read_count(self, db: AsyncSession, item_id: str) -> int:
        result = await db.execute(
            select(CommunityPost.likes).where(CommunityPost.id == item_id)
        )
        likes = result.scalar_one_or_none()
        if likes is None:
            raise NotFoundError(resource="post", resource_id=item_id)
        return likes

    async def adjust_count(self, db: AsyncSession, item_id: str, delta: int) -> int:
        """
        Apply +1 or -1 to the counter and return the new value.

        Raises:
            ValueError: delta is not +1 or -1
            NotFoundError: the post does not exist
            InvariantViolationError: the counter would become negative
        """
        if delta not in (1, -1):
            raise ValueError(f"delta must be +1 or -1, got {delta}")

        stmt = (
            update(CommunityPost)
            .where(
                CommunityPost.id == item_id,
                CommunityPost.likes + delta >= 0,
            )
            .values(likes=CommunityPost.likes + delta)
            .returning(CommunityPost.likes)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        new_count = result.scalar_one_or_none()
        if new_count is not None:
            return new_count

        current = await self.read_count(db, item_id)
        raise InvariantViolationError(
            message="Like counter would become negative",
            context={"item_id": item_id, "current": current, "delta": delta},
        )

    async def count_with_cardinality(self, db: AsyncSession, item_id: str) -> Tuple[int, int]:
        """
        Stored counter and actual like-row count, read in one statement.

        One statement means one snapshot, so a toggle committing between two
        separate reads cannot produce a false mismatch.
        """
        cardinality = (
            select(func.count(CommunityLike.id))
            .where(CommunityLike.post_id == CommunityPost.id)
            .scalar_subquery()
        )
        result = await db.execute(
            select(CommunityPost.likes, cardinality).where(CommunityPost.id == item_id)
        )
        row = result.one_or_none()
        if row is None:
            raise NotFoundError(resource="post", resource_id=item_id)
        return row[0], row[1]


content_item_store = ContentItemStore()
