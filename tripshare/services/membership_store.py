"""
TripShare Backend — Membership Store (community likes)
========================================================

What:  Reads and conditional writes on `community_likes` rows.
Why:   The like toggle needs a create that is safe to race: exactly one
       concurrent caller may observe CREATED for a (post, user) pair.
How:   INSERT ... ON CONFLICT (post_id, user_id) DO NOTHING RETURNING id.
       The unique constraint decides the winner inside the database; losers
       get no row back and report ALREADY_EXISTS. Removal is a
       DELETE ... RETURNING id, so a second concurrent removal sees nothing
       and reports NOT_PRESENT.

The store never commits. Every method runs inside the caller's transaction
so the coordinator can group the like row and the counter change into one
atomic unit.
"""

import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, Set

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from tripshare.exceptions import DatabaseError
from tripshare.models.community import CommunityLike

logger = logging.getLogger(__name__)


class CreateOutcome(str, Enum):
    CREATED = "created"
    ALREADY_EXISTS = "already_exists"


class RemoveOutcome(str, Enum):
    REMOVED = "removed"
    NOT_PRESENT = "not_present"


_CONFLICT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class MembershipStore:
    """Owns community_likes rows. Stateless; takes the session per call."""

    async def exists(self, db: AsyncSession, item_id: str, user_id: str) -> bool:
        result = await db.execute(
            select(CommunityLike.id).where(
                CommunityLike.post_id == item_id,
                CommunityLike.user_id == user_id,
            )
        )
        return result.scalar_one_or_none() is not None

    async def create(self, db: AsyncSession, item_id: str, user_id: str) -> CreateOutcome:
        """
        Insert the like row unless one already exists for the pair.

        Safe under concurrency: on PostgreSQL a racing insert blocks on the
        unique index until the winner commits, then resolves to no row.
        """
        dialect = db.get_bind().dialect.name
        insert_for_dialect = _CONFLICT_INSERTS.get(dialect)
        if insert_for_dialect is None:
            raise DatabaseError(
                message="Unsupported database backend",
                context={"dialect": dialect},
            )

        stmt = (
            insert_for_dialect(CommunityLike)
            .values(
                id=str(uuid.uuid4()),
                post_id=item_id,
                user_id=user_id,
                created_at=datetime.now(timezone.utc),
            )
            .on_conflict_do_nothing(index_elements=["post_id", "user_id"])
            .returning(CommunityLike.id)
        )
        result = await db.execute(stmt)
        if result.scalar_one_or_none() is None:
            logger.debug("Like already present for post=%s user=%s", item_id, user_id)
            return CreateOutcome.ALREADY_EXISTS
        return CreateOutcome.CREATED

    async def remove(self, db: AsyncSession, item_id: str, user_id: str) -> RemoveOutcome:
        """Delete the like row; a missing row is reported, not raised."""
        stmt = (
            delete(CommunityLike)
            .where(
                CommunityLike.post_id == item_id,
                CommunityLike.user_id == user_id,
            )
            .returning(CommunityLike.id)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        if not result.scalars().all():
            logger.debug("No like to remove for post=%s user=%s", item_id, user_id)
            return RemoveOutcome.NOT_PRESENT
        return RemoveOutcome.REMOVED

    async def engaged_item_ids(
        self, db: AsyncSession, user_id: str, item_ids: Iterable[str]
    ) -> Set[str]:
        """
        Which of `item_ids` the user likes, in one query.

        Used by the feed so a page of posts costs one lookup instead of one
        per post.
        """
        ids = list(item_ids)
        if not ids:
            return set()
        result = await db.execute(
            select(CommunityLike.post_id).where(
                CommunityLike.user_id == user_id,
                CommunityLike.post_id.in_(ids),
            )
        )
        return set(result.scalars().all())


membership_store = MembershipStore()
