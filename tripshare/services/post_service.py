"""
TripShare Backend — Community Post Service
============================================

What:  Create, list, and fetch community posts for the calling user, and
       add comments to them.
Why:   Keeps feed queries and post creation out of the route handlers.
How:   Runs on the request-scoped session; every returned post carries
       `is_liked` for the caller.

The service never writes `likes`. New posts start at zero and the counter
moves only through the ToggleCoordinator.
"""

import logging
import math
from typing import Dict, Iterable, List, Optional

from sqlalchemy import asc, desc, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tripshare.exceptions import DatabaseError, NotFoundError, TripShareError, ValidationError
from tripshare.models.community import CommunityComment, CommunityPost
from tripshare.schemas.community import (
    CommentCreate,
    CommentResponse,
    PostCreate,
    PostListResponse,
    PostResponse,
    SortField,
    SortOrder,
)
from tripshare.services.membership_store import membership_store

logger = logging.getLogger(__name__)

_SORT_COLUMNS = {
    SortField.CREATED_AT: CommunityPost.created_at,
    SortField.LIKES: CommunityPost.likes,
    SortField.VIEWS: CommunityPost.views,
    SortField.RATING: CommunityPost.rating,
}


def _split(value: Optional[str]) -> List[str]:
    return [part for part in value.split(",") if part] if value else []


def _comment_response(comment: CommunityComment) -> CommentResponse:
    return CommentResponse(
        id=comment.id,
        post_id=comment.post_id,
        user_id=comment.user_id,
        content=comment.content,
        created_at=comment.created_at,
    )


def _to_response(
    post: CommunityPost,
    is_liked: bool,
    comment_count: int = 0,
    comments: Optional[List[CommunityComment]] = None,
    views: Optional[int] = None,
) -> PostResponse:
    return PostResponse(
        id=post.id,
        user_id=post.user_id,
        title=post.title,
        content=post.content,
        type=post.type,
        destination=post.destination,
        trip_id=post.trip_id,
        rating=post.rating,
        tags=_split(post.tags),
        images=_split(post.images),
        is_public=post.is_public,
        likes=post.likes,
        views=post.views if views is None else views,
        is_liked=is_liked,
        comment_count=comment_count,
        comments=[_comment_response(c) for c in comments] if comments is not None else None,
        created_at=post.created_at,
        updated_at=post.updated_at,
    )


class PostService:
    """
    Business logic for community posts.

    Error Handling Strategy:
        NotFoundError propagates as-is; unexpected database errors are
        wrapped in DatabaseError so driver details stay in the logs.
    """

    async def create_post(self, db: AsyncSession, user_id: str, data: PostCreate) -> PostResponse:
        try:
            post = CommunityPost(
                user_id=user_id,
                title=data.title,
                content=data.content,
                type=data.type.value,
                destination=data.destination,
                trip_id=data.trip_id,
                rating=data.rating,
                tags=",".join(data.tags) or None,
                images=",".join(data.images) or None,
                is_public=data.is_public,
                likes=0,
                views=0,
            )
            db.add(post)
            await db.flush()  # Assigns id and timestamps without committing
            logger.info("Community post %s created by %s", post.id, user_id)
            return _to_response(post, is_liked=False)
        except TripShareError:
            raise
        except Exception as e:
            logger.error("Database error creating post: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not create the post. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def get_post(self, db: AsyncSession, post_id: str, user_id: str) -> PostResponse:
        """
        Fetch one public post.

        Private posts are reported as not found rather than forbidden, so
        their existence is not revealed. Every successful fetch counts as
        one view; the comments come back newest first.
        """
        try:
            result = await db.execute(
                select(CommunityPost).where(
                    CommunityPost.id == post_id,
                    CommunityPost.is_public.is_(True),
                )
            )
            post = result.scalar_one_or_none()
            if post is None:
                raise NotFoundError(resource="post", resource_id=post_id)

            # Relative update: concurrent readers each add their view
            views_result = await db.execute(
                update(CommunityPost)
                .where(CommunityPost.id == post_id)
                .values(views=CommunityPost.views + 1)
                .returning(CommunityPost.views)
                .execution_options(synchronize_session=False)
            )
            views = views_result.scalar_one()

            comments_result = await db.execute(
                select(CommunityComment)
                .where(CommunityComment.post_id == post_id)
                .order_by(desc(CommunityComment.created_at), desc(CommunityComment.id))
            )
            comments = list(comments_result.scalars().all())

            is_liked = await membership_store.exists(db, post_id, user_id)
            return _to_response(
                post,
                is_liked=is_liked,
                comment_count=len(comments),
                comments=comments,
                views=views,
            )

        except NotFoundError:
            raise
        except Exception as e:
            logger.error("Database error fetching post %s: %s", post_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the post. Please try again.",
                context={"post_id": post_id},
            )

    async def list_posts(
        self,
        db: AsyncSession,
        user_id: str,
        page: int = 1,
        limit: int = 12,
        search: Optional[str] = None,
        post_type: Optional[str] = None,
        destination: Optional[str] = None,
        sort_by: SortField = SortField.CREATED_AT,
        sort_order: SortOrder = SortOrder.DESC,
    ) -> PostListResponse:
        """
        List public posts with filtering, sorting, and page-based pagination.

        Filters:
            search:      case-insensitive substring of title, content or destination
            post_type:   exact type; "ALL" or None disables the filter
            destination: case-insensitive substring of destination
        """
        try:
            conditions = [CommunityPost.is_public.is_(True)]
            if search:
                pattern = f"%{search.lower()}%"
                conditions.append(
                    or_(
                        func.lower(CommunityPost.title).like(pattern),
                        func.lower(CommunityPost.content).like(pattern),
                        func.lower(CommunityPost.destination).like(pattern),
                    )
                )
            if post_type and post_type != "ALL":
                conditions.append(CommunityPost.type == post_type)
            if destination:
                conditions.append(
                    func.lower(CommunityPost.destination).like(f"%{destination.lower()}%")
                )

            column = _SORT_COLUMNS[sort_by]
            direction = asc if sort_order == SortOrder.ASC else desc
            query = (
                select(CommunityPost)
                .where(*conditions)
                .order_by(direction(column), desc(CommunityPost.id))
                .offset((page - 1) * limit)
                .limit(limit)
            )
            result = await db.execute(query)
            posts = list(result.scalars().all())

            count_result = await db.execute(
                select(func.count(CommunityPost.id)).where(*conditions)
            )
            total_count = count_result.scalar() or 0

            post_ids = [p.id for p in posts]
            liked = await membership_store.engaged_item_ids(db, user_id, post_ids)
            comment_counts = await self._comment_counts(db, post_ids)

            return PostListResponse(
                posts=[
                    _to_response(
                        p,
                        is_liked=p.id in liked,
                        comment_count=comment_counts.get(p.id, 0),
                    )
                    for p in posts
                ],
                total_count=total_count,
                current_page=page,
                total_pages=math.ceil(total_count / limit) if total_count else 0,
            )

        except Exception as e:
            logger.error("Database error listing posts: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve posts. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def add_comment(
        self, db: AsyncSession, post_id: str, user_id: str, data: CommentCreate
    ) -> CommentResponse:
        """
        Add a comment to a public post.

        Raises:
            ValidationError: the content is empty or only whitespace
            NotFoundError: the post does not exist or is private
        """
        content = data.content.strip()
        if not content:
            raise ValidationError(message="Comment content is required", field="content")

        try:
            result = await db.execute(
                select(CommunityPost.id).where(
                    CommunityPost.id == post_id,
                    CommunityPost.is_public.is_(True),
                )
            )
            if result.scalar_one_or_none() is None:
                raise NotFoundError(resource="post", resource_id=post_id)

            comment = CommunityComment(post_id=post_id, user_id=user_id, content=content)
            db.add(comment)
            await db.flush()
            logger.info("Comment %s added to post %s by %s", comment.id, post_id, user_id)
            return _comment_response(comment)

        except TripShareError:
            raise
        except Exception as e:
            logger.error("Database error adding comment to %s: %s", post_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not add the comment. Please try again.",
                context={"post_id": post_id},
            )

    async def _comment_counts(self, db: AsyncSession, post_ids: Iterable[str]) -> Dict[str, int]:
        """Comments per post for one feed page, in one grouped query."""
        ids = list(post_ids)
        if not ids:
            return {}
        result = await db.execute(
            select(CommunityComment.post_id, func.count(CommunityComment.id))
            .where(CommunityComment.post_id.in_(ids))
            .group_by(CommunityComment.post_id)
        )
        return {post_id: count for post_id, count in result.all()}


post_service = PostService()
