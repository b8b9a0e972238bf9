from typing import Any, Optional

import redis.asyncio as redis
from sqlalchemy.ext.asyncio import AsyncSession

from videotube.exceptions import NotFoundError, UnauthorizedError, ensure_id
from videotube.models import User
from videotube.services import aggregation
from videotube.services.pagination import paginate
from videotube.services.relations import RelationToggleEngine, ToggleResult
from videotube.services.store import EntityStore


class SubscriptionService:
    """Subscription graph: toggles and both directions of the channel lists."""

    def __init__(self, db: AsyncSession, redis_client: Optional[redis.Redis] = None):
        self.db = db
        self.store = EntityStore(db)
        self.relations = RelationToggleEngine(db, redis_client)

    async def toggle_subscription(self, viewer_id: Optional[str], channel_id: str) -> ToggleResult:
        channel_id = ensure_id(channel_id, "Channel ID")
        return await self.relations.toggle_subscription(viewer_id, channel_id)

    async def get_channel_subscribers(
        self, channel_id: str, viewer_id: Optional[str], page: Any = None, limit: Any = None
    ) -> dict:
        channel_id = ensure_id(channel_id, "Channel ID")
        if await self.store.find_by_id(User, channel_id) is None:
            raise NotFoundError("Channel not found")
        return await paginate(
            self.db, aggregation.channel_subscribers(channel_id, viewer_id), page, limit
        )

    async def get_subscribed_channels(
        self, user_id: str, viewer_id: Optional[str], page: Any = None, limit: Any = None
    ) -> dict:
        user_id = ensure_id(user_id, "User ID")
        if await self.store.find_by_id(User, user_id) is None:
            raise NotFoundError("User not found")
        return await paginate(
            self.db, aggregation.subscribed_channels(user_id, viewer_id), page, limit
        )


class LikeService:
    """Likes on videos, comments and tweets."""

    def __init__(self, db: AsyncSession, redis_client: Optional[redis.Redis] = None):
        self.db = db
        self.relations = RelationToggleEngine(db, redis_client)

    async def toggle_video_like(self, viewer_id: Optional[str], video_id: str) -> ToggleResult:
        video_id = ensure_id(video_id, "Video ID")
        return await self.relations.toggle_like(viewer_id, "video", video_id)

    async def toggle_comment_like(self, viewer_id: Optional[str], comment_id: str) -> ToggleResult:
        comment_id = ensure_id(comment_id, "Comment ID")
        return await self.relations.toggle_like(viewer_id, "comment", comment_id)

    async def toggle_tweet_like(self, viewer_id: Optional[str], tweet_id: str) -> ToggleResult:
        tweet_id = ensure_id(tweet_id, "Tweet ID")
        return await self.relations.toggle_like(viewer_id, "tweet", tweet_id)

    async def get_liked_videos(
        self, viewer_id: Optional[str], page: Any = None, limit: Any = None
    ) -> dict:
        """Liked videos of the viewer. An empty page is a normal result."""
        if viewer_id is None:
            raise UnauthorizedError("Unauthorized request")
        return await paginate(self.db, aggregation.liked_videos(viewer_id), page, limit)
