from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from videotube.exceptions import NotFoundError, UnauthorizedError, ensure_id, ensure_text
from videotube.models import Tweet, User
from videotube.services import aggregation
from videotube.services.ownership import OwnershipGuard
from videotube.services.pagination import paginate
from videotube.services.store import EntityStore


class TweetService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = EntityStore(db)
        self.guard = OwnershipGuard(db)

    async def create_tweet(self, viewer_id: Optional[str], content: str) -> Tweet:
        if viewer_id is None:
            raise UnauthorizedError("Unauthorized request")
        content = ensure_text(content, "Tweet content")
        return await self.store.create(Tweet(content=content, owner_id=viewer_id))

    async def get_user_tweets(
        self, user_id: str, viewer_id: Optional[str], page: Any = None, limit: Any = None
    ) -> dict:
        user_id = ensure_id(user_id, "User ID")
        if await self.store.find_by_id(User, user_id) is None:
            raise NotFoundError("User not found")
        return await paginate(self.db, aggregation.user_tweets(user_id, viewer_id), page, limit)

    async def update_tweet(self, tweet_id: str, viewer_id: Optional[str], content: str) -> Tweet:
        tweet_id = ensure_id(tweet_id, "Tweet ID")
        content = ensure_text(content, "Content")
        return await self.guard.owned_update("tweet", tweet_id, viewer_id, {"content": content})

    async def delete_tweet(self, tweet_id: str, viewer_id: Optional[str]) -> Tweet:
        tweet_id = ensure_id(tweet_id, "Tweet ID")
        return await self.guard.owned_delete("tweet", tweet_id, viewer_id)
