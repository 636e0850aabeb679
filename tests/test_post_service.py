"""
TripShare Backend — PostService Unit Tests
============================================

What:  Tests for community post business logic with a mocked session.
Why:   Verify response shaping and error wrapping without a database.

What we test:
    ✅ create_post: zero likes, comma-joined storage, is_liked False
    ✅ get_post: found → response with is_liked, comments and the incremented views;
       missing → NotFoundError
    ✅ list_posts: pagination math, per-post is_liked and comment counts
    ✅ add_comment: blank → ValidationError, missing post → NotFoundError
    ✅ Database failures wrapped in DatabaseError
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from tripshare.exceptions import DatabaseError, NotFoundError, ValidationError
from tripshare.models.community import CommunityComment, CommunityPost
from tripshare.schemas.community import CommentCreate, PostCreate, PostType
from tripshare.services.post_service import PostService, _split


@pytest.fixture
def service():
    return PostService()


def _post(sample_post_data, **overrides) -> CommunityPost:
    return CommunityPost(**{**sample_post_data, **overrides})


def _comment(post_id: str, comment_id: str, content: str) -> CommunityComment:
    return CommunityComment(
        id=comment_id,
        post_id=post_id,
        user_id="user-b",
        content=content,
        created_at=datetime.now(timezone.utc),
    )


class TestSplit:

    def test_none_is_empty(self):
        assert _split(None) == []

    def test_drops_empty_segments(self):
        assert _split("food,,temples,") == ["food", "temples"]


class TestCreatePost:

    @pytest.mark.asyncio
    async def test_creates_with_zero_likes(self, service, mock_db_session):
        def assign_defaults():
            # What a real flush does for the Python-side column defaults
            added = mock_db_session.add.call_args[0][0]
            added.id = "post-1"
            added.created_at = added.updated_at = datetime.now(timezone.utc)

        mock_db_session.flush.side_effect = assign_defaults
        data = PostCreate(
            title="  Kyoto in autumn  ",
            content="Go early to Fushimi Inari.",
            type=PostType.TRAVEL_TIP,
            tags=["kyoto", " ", "temples"],
        )

        result = await service.create_post(mock_db_session, "author-1", data)

        mock_db_session.add.assert_called_once()
        mock_db_session.flush.assert_awaited_once()
        added = mock_db_session.add.call_args[0][0]
        assert added.likes == 0
        assert added.tags == "kyoto,temples"
        assert added.images is None
        assert result.title == "Kyoto in autumn"
        assert result.likes == 0
        assert result.is_liked is False
        assert result.tags == ["kyoto", "temples"]

    @pytest.mark.asyncio
    async def test_flush_failure_wrapped(self, service, mock_db_session):
        mock_db_session.flush.side_effect = Exception("connection reset")
        data = PostCreate(title="T", content="C", type=PostType.QUESTION)

        with pytest.raises(DatabaseError):
            await service.create_post(mock_db_session, "author-1", data)


class TestGetPost:

    @pytest.mark.asyncio
    async def test_found_post_includes_is_liked(self, service, mock_db_session, sample_post_data):
        post = _post(sample_post_data)
        post_result = MagicMock()
        post_result.scalar_one_or_none.return_value = post
        views_result = MagicMock()
        views_result.scalar_one.return_value = 11
        comments_result = MagicMock()
        comments_result.scalars.return_value.all.return_value = [
            _comment(post.id, "c-2", "Newer"),
            _comment(post.id, "c-1", "Older"),
        ]
        mock_db_session.execute.side_effect = [post_result, views_result, comments_result]

        with patch(
            "tripshare.services.post_service.membership_store.exists",
            new=AsyncMock(return_value=True),
        ):
            result = await service.get_post(mock_db_session, post.id, "user-a")

        assert result.id == post.id
        assert result.likes == 3
        assert result.is_liked is True
        assert result.tags == ["culture", "food", "temples"]
        assert result.images == []
        # The incremented value from the UPDATE, not the stale loaded one
        assert result.views == 11
        assert [c.content for c in result.comments] == ["Newer", "Older"]
        assert result.comment_count == 2

    @pytest.mark.asyncio
    async def test_views_increment_is_relative(self, service, mock_db_session, sample_post_data):
        post = _post(sample_post_data)
        post_result = MagicMock()
        post_result.scalar_one_or_none.return_value = post
        views_result = MagicMock()
        views_result.scalar_one.return_value = 11
        comments_result = MagicMock()
        comments_result.scalars.return_value.all.return_value = []
        mock_db_session.execute.side_effect = [post_result, views_result, comments_result]

        with patch(
            "tripshare.services.post_service.membership_store.exists",
            new=AsyncMock(return_value=False),
        ):
            await service.get_post(mock_db_session, post.id, "user-a")

        update_stmt = mock_db_session.execute.await_args_list[1].args[0]
        sql = str(update_stmt)
        # Adds to the stored value instead of writing back what was read
        assert sql.startswith("UPDATE community_posts")
        assert "community_posts.views + :views_1" in sql
        assert "RETURNING community_posts.views" in sql

    @pytest.mark.asyncio
    async def test_missing_post_raises_not_found(self, service, mock_db_session):
        mock_result = MagicMock()
        mock_result.scalar_one_or_none.return_value = None
        mock_db_session.execute.return_value = mock_result

        with pytest.raises(NotFoundError):
            await service.get_post(mock_db_session, "missing", "user-a")

    @pytest.mark.asyncio
    async def test_query_failure_wrapped(self, service, mock_db_session):
        mock_db_session.execute.side_effect = Exception("timeout")

        with pytest.raises(DatabaseError):
            await service.get_post(mock_db_session, "post-1", "user-a")


class TestListPosts:

    @pytest.mark.asyncio
    async def test_pagination_and_liked_flags(self, service, mock_db_session, sample_post_data):
        first = _post(sample_post_data, id="post-1")
        second = _post(sample_post_data, id="post-2", likes=0)

        page_result = MagicMock()
        page_result.scalars.return_value.all.return_value = [first, second]
        count_result = MagicMock()
        count_result.scalar.return_value = 25
        comment_count_result = MagicMock()
        comment_count_result.all.return_value = [("post-1", 4)]
        mock_db_session.execute.side_effect = [page_result, count_result, comment_count_result]

        with patch(
            "tripshare.services.post_service.membership_store.engaged_item_ids",
            new=AsyncMock(return_value={"post-2"}),
        ) as engaged:
            result = await service.list_posts(mock_db_session, "user-a", page=2, limit=12)

        engaged.assert_awaited_once_with(mock_db_session, "user-a", ["post-1", "post-2"])
        assert result.total_count == 25
        assert result.current_page == 2
        assert result.total_pages == 3
        assert [p.is_liked for p in result.posts] == [False, True]
        assert [p.comment_count for p in result.posts] == [4, 0]
        assert all(p.comments is None for p in result.posts)

    @pytest.mark.asyncio
    async def test_empty_feed(self, service, mock_db_session):
        page_result = MagicMock()
        page_result.scalars.return_value.all.return_value = []
        count_result = MagicMock()
        count_result.scalar.return_value = 0
        mock_db_session.execute.side_effect = [page_result, count_result]

        result = await service.list_posts(mock_db_session, "user-a")

        assert result.posts == []
        assert result.total_pages == 0

    @pytest.mark.asyncio
    async def test_query_failure_wrapped(self, service, mock_db_session):
        mock_db_session.execute.side_effect = Exception("db down")

        with pytest.raises(DatabaseError):
            await service.list_posts(mock_db_session, "user-a")


class TestAddComment:

    @pytest.mark.asyncio
    async def test_adds_trimmed_comment(self, service, mock_db_session):
        def assign_defaults():
            added = mock_db_session.add.call_args[0][0]
            added.id = "comment-1"
            added.created_at = datetime.now(timezone.utc)

        post_result = MagicMock()
        post_result.scalar_one_or_none.return_value = "post-1"
        mock_db_session.execute.return_value = post_result
        mock_db_session.flush.side_effect = assign_defaults

        result = await service.add_comment(
            mock_db_session, "post-1", "user-b", CommentCreate(content="  Lovely spot  ")
        )

        added = mock_db_session.add.call_args[0][0]
        assert isinstance(added, CommunityComment)
        assert added.content == "Lovely spot"
        assert result.id == "comment-1"
        assert result.post_id == "post-1"
        assert result.user_id == "user-b"

    @pytest.mark.asyncio
    async def test_blank_content_is_validation_error(self, service, mock_db_session):
        with pytest.raises(ValidationError) as exc_info:
            await service.add_comment(
                mock_db_session, "post-1", "user-b", CommentCreate(content=" \n ")
            )

        assert exc_info.value.field == "content"
        mock_db_session.execute.assert_not_awaited()
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_post_raises_not_found(self, service, mock_db_session):
        post_result = MagicMock()
        post_result.scalar_one_or_none.return_value = None
        mock_db_session.execute.return_value = post_result

        with pytest.raises(NotFoundError):
            await service.add_comment(
                mock_db_session, "missing", "user-b", CommentCreate(content="Hi")
            )

        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_flush_failure_wrapped(self, service, mock_db_session):
        post_result = MagicMock()
        post_result.scalar_one_or_none.return_value = "post-1"
        mock_db_session.execute.return_value = post_result
        mock_db_session.flush.side_effect = Exception("connection reset")

        with pytest.raises(DatabaseError):
            await service.add_comment(
                mock_db_session, "post-1", "user-b", CommentCreate(content="Hi")
            )
