import logging
from typing import Any, Optional

from sqlalchemy import delete, func, insert, not_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from videotube.exceptions import (
    ConflictError,
    InternalError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
    ensure_id,
    ensure_text,
)
from videotube.models import Video, WatchHistoryEntry
from videotube.services import aggregation
from videotube.services.media import MediaStorage
from videotube.services.ownership import OwnershipGuard
from videotube.services.pagination import paginate
from videotube.services.store import EntityStore

logger = logging.getLogger(__name__)


class VideoService:
    """Video publishing, owner-guarded edits and viewer-relative reads."""

    def __init__(self, db: AsyncSession, media: Optional[MediaStorage] = None):
        self.db = db
        self.store = EntityStore(db)
        self.guard = OwnershipGuard(db)
        self.media = media

    async def publish(
        self,
        owner_id: Optional[str],
        title: str,
        description: str,
        video_path: Optional[str],
        thumbnail_path: Optional[str],
    ) -> Video:
        if owner_id is None:
            raise UnauthorizedError("Unauthorized request")
        title = ensure_text(title, "Video title")
        description = ensure_text(description, "Video description")
        if not video_path:
            raise ValidationError("Video file is required")
        if not thumbnail_path:
            raise ValidationError("Thumbnail file is required")

        video_file = await self._upload(video_path)
        if video_file is None:
            raise InternalError("Error uploading video file")
        thumbnail = await self._upload(thumbnail_path)
        if thumbnail is None:
            raise InternalError("Error uploading thumbnail file")

        video = Video(
            owner_id=owner_id,
            title=title,
            description=description,
            video_file=video_file.url,
            thumbnail=thumbnail.url,
            duration=video_file.duration,
        )
        video = await self.store.create(video)
        logger.info(f"Video {video.id} published by {owner_id}")
        return video

    async def get_video(self, video_id: str, viewer_id: Optional[str]) -> dict:
        """Video detail for the viewer. A signed-in viewer's read counts as a watch."""
        video_id = ensure_id(video_id, "Video ID")
        if viewer_id is not None:
            await self.record_watch(viewer_id, video_id)

        detail = await self.store.run_one(aggregation.video_detail(video_id, viewer_id))
        if detail is None:
            raise NotFoundError("Video not found")
        return detail

    async def list_videos(
        self,
        viewer_id: Optional[str],
        page: Any = None,
        limit: Any = None,
        query: Optional[str] = None,
        sort_by: Optional[str] = None,
        sort_type: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> dict:
        if user_id:
            ensure_id(user_id, "User ID")
        pipeline = aggregation.list_videos(
            viewer_id, query=query, sort_by=sort_by, sort_type=sort_type, user_id=user_id
        )
        return await paginate(self.db, pipeline, page, limit)

    async def update_video(
        self,
        video_id: str,
        viewer_id: Optional[str],
        title: str,
        description: str,
        thumbnail_path: Optional[str] = None,
    ) -> Video:
        video_id = ensure_id(video_id, "Video ID")
        title = ensure_text(title, "Title")
        description = ensure_text(description, "Description")

        # ownership first, before any upload
        await self.guard.load_owned("video", video_id, viewer_id)

        values = {"title": title, "description": description}
        if thumbnail_path:
            thumbnail = await self._upload(thumbnail_path)
            if thumbnail is None:
                raise InternalError("Error while uploading thumbnail file")
            values["thumbnail"] = thumbnail.url

        return await self.guard.owned_update("video", video_id, viewer_id, values)

    async def delete_video(self, video_id: str, viewer_id: Optional[str]) -> Video:
        video_id = ensure_id(video_id, "Video ID")
        video = await self.guard.owned_delete("video", video_id, viewer_id)
        logger.info(f"Video {video_id} deleted by {viewer_id}")
        return video

    async def toggle_publish_status(self, video_id: str, viewer_id: Optional[str]) -> Video:
        """Flip is_published in a single owner-scoped UPDATE."""
        video_id = ensure_id(video_id, "Video ID")
        return await self.guard.owned_update(
            "video", video_id, viewer_id, {"is_published": not_(Video.is_published)}
        )

    async def record_watch(self, user_id: str, video_id: str, max_attempts: int = 3) -> None:
        """
        Count a view and move the video to the front of the user's watch
        history. Re-watching never duplicates a history entry.
        """
        video = await self.store.find_by_id(Video, video_id)
        if video is None or (not video.is_published and video.owner_id != user_id):
            raise NotFoundError("Video not found")

        for attempt in range(1, max_attempts + 1):
            next_position = (
                await self.store.scalar(
                    select(func.coalesce(func.max(WatchHistoryEntry.position), 0)).where(
                        WatchHistoryEntry.user_id == user_id
                    )
                )
            ) + 1
            try:
                await self.db.execute(
                    delete(WatchHistoryEntry).where(
                        WatchHistoryEntry.user_id == user_id,
                        WatchHistoryEntry.video_id == video_id,
                    )
                )
                await self.db.execute(
                    insert(WatchHistoryEntry).values(
                        user_id=user_id, video_id=video_id, position=next_position
                    )
                )
                await self.db.execute(
                    update(Video)
                    .where(Video.id == video_id)
                    .values(views=Video.views + 1, updated_at=Video.updated_at)
                    .execution_options(synchronize_session=False)
                )
                await self.db.commit()
                return
            except IntegrityError:
                # Concurrent watch of the same video by the same user.
                await self.db.rollback()
                logger.info(f"Watch history conflict for {user_id}/{video_id}, attempt {attempt}")

        raise ConflictError("Could not record the watch, please retry")

    async def _upload(self, local_path: str):
        if self.media is None:
            raise InternalError("Media storage is not configured")
        return await self.media.upload(local_path)
