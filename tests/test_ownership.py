import pytest
from sqlalchemy import select

from videotube.exceptions import ForbiddenError, NotFoundError, UnauthorizedError, ValidationError
from videotube.models import Comment, Tweet, Video
from videotube.services.comments import CommentService
from videotube.services.ownership import OwnershipGuard, assert_owner
from videotube.services.tweets import TweetService
from videotube.services.videos import VideoService

MISSING_ID = "0" * 32


class TestAssertOwner:
    """Not-found is decided before forbidden"""

    def test_missing_entity(self):
        with pytest.raises(NotFoundError) as exc:
            assert_owner(None, "someone", "video")
        assert exc.value.detail == "Video not found"

    def test_foreign_entity(self):
        video = Video(owner_id="a" * 32)
        with pytest.raises(ForbiddenError):
            assert_owner(video, "b" * 32, "video")

    def test_anonymous_viewer(self):
        with pytest.raises(UnauthorizedError):
            assert_owner(Video(owner_id="a" * 32), None, "video")

    def test_owner(self):
        video = Video(owner_id="a" * 32)
        assert assert_owner(video, "a" * 32, "video") is video


class TestOwnedWrites:
    """Owner-scoped updates and deletes"""

    async def test_owner_can_update_video(self, db, seed):
        owner = await seed.user()
        video = await seed.video(owner, title="before")

        updated = await VideoService(db).update_video(video.id, owner.id, "after", "new description")

        assert updated.title == "after"
        assert updated.description == "new description"

    async def test_stranger_cannot_update_video(self, db, seed):
        owner = await seed.user()
        stranger = await seed.user()
        video = await seed.video(owner, title="before")

        with pytest.raises(ForbiddenError):
            await VideoService(db).update_video(video.id, stranger.id, "hijacked", "nope")

        title = (await db.execute(select(Video.title).where(Video.id == video.id))).scalar()
        assert title == "before"

    async def test_missing_video_is_not_found_even_for_strangers(self, db, seed):
        stranger = await seed.user()

        with pytest.raises(NotFoundError):
            await VideoService(db).delete_video(MISSING_ID, stranger.id)

    async def test_malformed_id(self, db, seed):
        owner = await seed.user()

        with pytest.raises(ValidationError) as exc:
            await VideoService(db).delete_video("not-an-id", owner.id)
        assert exc.value.detail == "Video ID is invalid"

    async def test_toggle_publish_status(self, db, seed):
        owner = await seed.user()
        stranger = await seed.user()
        video = await seed.video(owner)
        service = VideoService(db)

        assert (await service.toggle_publish_status(video.id, owner.id)).is_published is False
        assert (await service.toggle_publish_status(video.id, owner.id)).is_published is True
        with pytest.raises(ForbiddenError):
            await service.toggle_publish_status(video.id, stranger.id)

    async def test_delete_video(self, db, seed):
        owner = await seed.user()
        stranger = await seed.user()
        video = await seed.video(owner)
        video_id = video.id
        service = VideoService(db)

        with pytest.raises(ForbiddenError):
            await service.delete_video(video_id, stranger.id)

        deleted = await service.delete_video(video_id, owner.id)
        assert deleted.id == video_id
        remaining = (await db.execute(select(Video.id).where(Video.id == video_id))).scalar()
        assert remaining is None

    async def test_comment_owner_guard(self, db, seed):
        owner = await seed.user()
        stranger = await seed.user()
        video = await seed.video(owner)
        comment = await seed.comment(video, owner, "original")
        service = CommentService(db)

        with pytest.raises(ForbiddenError):
            await service.update_comment(comment.id, stranger.id, "edited")
        with pytest.raises(ForbiddenError):
            await service.delete_comment(comment.id, stranger.id)

        edited = await service.update_comment(comment.id, owner.id, "  edited  ")
        assert edited.content == "edited"

        await service.delete_comment(comment.id, owner.id)
        assert (await db.execute(select(Comment.id))).scalar() is None

    async def test_tweet_owner_guard(self, db, seed):
        author = await seed.user()
        stranger = await seed.user()
        tweet = await seed.tweet(author, "hello")
        service = TweetService(db)

        with pytest.raises(ForbiddenError):
            await service.update_tweet(tweet.id, stranger.id, "hijacked")
        with pytest.raises(NotFoundError):
            await service.update_tweet(MISSING_ID, author.id, "ghost")

        updated = await service.update_tweet(tweet.id, author.id, "hello again")
        assert updated.content == "hello again"

        await service.delete_tweet(tweet.id, author.id)
        assert (await db.execute(select(Tweet.id))).scalar() is None

    async def test_guard_requires_a_viewer(self, db, seed):
        owner = await seed.user()
        video = await seed.video(owner)

        with pytest.raises(UnauthorizedError):
            await OwnershipGuard(db).owned_update("video", video.id, None, {"title": "x"})
