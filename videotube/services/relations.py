import logging
from dataclasses import dataclass
from typing import Callable, Literal, Optional, Union

import redis.asyncio as redis
from sqlalchemy import Select, delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from videotube.config import get_settings
from videotube.exceptions import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from videotube.models import Comment, Like, Subscription, Tweet, User, Video
from videotube.services.lease import ToggleLease
from videotube.services.store import EntityStore

settings = get_settings()
logger = logging.getLogger(__name__)

LikeTargetKind = Literal["video", "comment", "tweet"]

LIKE_TARGETS = {
    "video": (Video, Like.video_id),
    "comment": (Comment, Like.comment_id),
    "tweet": (Tweet, Like.tweet_id),
}

Edge = Union[Like, Subscription]


@dataclass
class ToggleResult:
    status: Literal["added", "removed"]
    edge: Optional[Edge] = None

    @property
    def added(self) -> bool:
        return self.status == "added"


class RelationToggleEngine:
    """
    Flips a single Like or Subscription edge.

    Each toggle is insert-if-absent / compare-and-delete against rows guarded
    by a unique constraint. Losing a race shows up as an IntegrityError on
    insert or a zero-row delete, and the toggle re-reads and tries again, so
    concurrent toggles on one key always line up into a linear history.
    """

    def __init__(self, db: AsyncSession, redis_client: Optional[redis.Redis] = None):
        self.db = db
        self.store = EntityStore(db)
        self.lease = ToggleLease(redis_client if settings.toggle_lease_enabled else None)
        self.max_retries = settings.toggle_max_retries

    async def toggle_like(
        self, actor_id: Optional[str], target_kind: LikeTargetKind, target_id: str
    ) -> ToggleResult:
        """Like the target if the actor has not, otherwise remove the like."""
        if actor_id is None:
            raise UnauthorizedError("Unauthorized request")
        if target_kind not in LIKE_TARGETS:
            raise ValidationError(f"Cannot like a {target_kind}")

        model, column = LIKE_TARGETS[target_kind]
        target = await self.store.find_by_id(model, target_id)
        if target is None or not await self._visible_to(target, actor_id):
            raise NotFoundError(f"{target_kind.capitalize()} not found")

        return await self._toggle(
            lease_key=(actor_id, f"like:{target_kind}", target_id),
            model=Like,
            find=select(Like).where(Like.liked_by == actor_id, column == target_id),
            build=lambda: Like(liked_by=actor_id, **{column.key: target_id}),
        )

    async def toggle_subscription(self, actor_id: Optional[str], channel_id: str) -> ToggleResult:
        """Subscribe the actor to the channel, or unsubscribe if already subscribed."""
        if actor_id is None:
            raise UnauthorizedError("Unauthorized request")
        if actor_id == channel_id:
            raise ValidationError("You cannot subscribe to your own channel")

        channel = await self.store.find_by_id(User, channel_id)
        if channel is None:
            raise NotFoundError("Channel not found")

        return await self._toggle(
            lease_key=(actor_id, "subscription", channel_id),
            model=Subscription,
            find=select(Subscription).where(
                Subscription.subscriber_id == actor_id,
                Subscription.channel_id == channel_id,
            ),
            build=lambda: Subscription(subscriber_id=actor_id, channel_id=channel_id),
        )

    async def _visible_to(self, target, actor_id: str) -> bool:
        """Drafts, and comments under them, exist only for the video's owner."""
        if isinstance(target, Comment):
            target = await self.store.find_by_id(Video, target.video_id)
            if target is None:
                return False
        if isinstance(target, Video):
            return target.is_published or target.owner_id == actor_id
        return True

    async def _toggle(
        self,
        lease_key: tuple[str, str, str],
        model: type,
        find: Select,
        build: Callable[[], Edge],
    ) -> ToggleResult:
        async with self.lease.hold(*lease_key):
            for attempt in range(1, self.max_retries + 1):
                existing = (await self.db.execute(find)).scalar_one_or_none()

                if existing is None:
                    edge = build()
                    self.db.add(edge)
                    try:
                        await self.db.commit()
                    except IntegrityError:
                        # A concurrent toggle inserted the same edge first.
                        await self.db.rollback()
                        logger.info(f"Toggle insert conflict on {lease_key}, attempt {attempt}")
                        continue
                    logger.info(f"Edge added {model.__name__} {lease_key}")
                    return ToggleResult(status="added", edge=edge)

                edge_id = existing.id
                result = await self.db.execute(
                    delete(model)
                    .where(model.id == edge_id)
                    .execution_options(synchronize_session=False)
                )
                await self.db.commit()
                self.db.expunge(existing)

                if result.rowcount == 1:
                    logger.info(f"Edge removed {model.__name__} {lease_key}")
                    return ToggleResult(status="removed")

                # A concurrent toggle deleted it first.
                logger.info(f"Toggle delete lost race on {lease_key}, attempt {attempt}")

        logger.error(f"Toggle on {lease_key} did not settle after {self.max_retries} attempts")
        raise ConflictError("Could not apply the toggle, please retry")
