import logging
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from videotube.exceptions import NotFoundError, UnauthorizedError, ensure_id, ensure_text
from videotube.models import Comment, Video
from videotube.services import aggregation
from videotube.services.ownership import OwnershipGuard
from videotube.services.pagination import paginate
from videotube.services.store import EntityStore

logger = logging.getLogger(__name__)


class CommentService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = EntityStore(db)
        self.guard = OwnershipGuard(db)

    async def get_video_comments(
        self, video_id: str, viewer_id: Optional[str], page: Any = None, limit: Any = None
    ) -> dict:
        """Comments of a visible video, newest first, with like counts and the viewer's flag."""
        video = await self._visible_video(video_id, viewer_id)
        return await paginate(
            self.db, aggregation.comments_for_video(video.id, viewer_id), page, limit
        )

    async def add_comment(self, video_id: str, viewer_id: Optional[str], content: str) -> Comment:
        if viewer_id is None:
            raise UnauthorizedError("Unauthorized request")
        content = ensure_text(content, "Content")
        video = await self._visible_video(video_id, viewer_id)

        comment = await self.store.create(
            Comment(content=content, video_id=video.id, owner_id=viewer_id)
        )
        logger.info(f"Comment {comment.id} added to video {video.id}")
        return comment

    async def update_comment(self, comment_id: str, viewer_id: Optional[str], content: str) -> Comment:
        comment_id = ensure_id(comment_id, "Comment ID")
        content = ensure_text(content, "Content")
        return await self.guard.owned_update("comment", comment_id, viewer_id, {"content": content})

    async def delete_comment(self, comment_id: str, viewer_id: Optional[str]) -> Comment:
        comment_id = ensure_id(comment_id, "Comment ID")
        return await self.guard.owned_delete("comment", comment_id, viewer_id)

    async def _visible_video(self, video_id: str, viewer_id: Optional[str]) -> Video:
        video = await self.store.find_by_id(Video, ensure_id(video_id, "Video ID"))
        if video is None or (not video.is_published and video.owner_id != viewer_id):
            raise NotFoundError("Video not found")
        return video
