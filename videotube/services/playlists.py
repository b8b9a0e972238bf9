import logging
from typing import Any, Optional

from sqlalchemy import delete, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from videotube.exceptions import (
    NotFoundError,
    UnauthorizedError,
    ValidationError,
    ensure_id,
)
from videotube.models import Playlist, PlaylistVideo, User, Video, utcnow
from videotube.services import aggregation
from videotube.services.ownership import OwnershipGuard
from videotube.services.pagination import paginate
from videotube.services.store import EntityStore

logger = logging.getLogger(__name__)


def _require_name_and_description(name: Optional[str], description: Optional[str]) -> tuple[str, str]:
    if not (name and name.strip() and description and description.strip()):
        raise ValidationError("Name and description are required")
    return name.strip(), description.strip()


class PlaylistService:
    """
    Playlists and their video sets. Adding is a set union and removing a set
    difference; the membership table's composite key rules out duplicates.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = EntityStore(db)
        self.guard = OwnershipGuard(db)

    async def create_playlist(self, viewer_id: Optional[str], name: str, description: str) -> dict:
        if viewer_id is None:
            raise UnauthorizedError("Unauthorized request")
        name, description = _require_name_and_description(name, description)
        playlist = await self.store.create(
            Playlist(name=name, description=description, owner_id=viewer_id)
        )
        return self._as_dict(playlist, [])

    async def get_user_playlists(
        self, user_id: str, viewer_id: Optional[str], page: Any = None, limit: Any = None
    ) -> dict:
        user_id = ensure_id(user_id, "User ID")
        if await self.store.find_by_id(User, user_id) is None:
            raise NotFoundError("User not found")
        return await paginate(self.db, aggregation.user_playlists(user_id, viewer_id), page, limit)

    async def get_playlist(self, playlist_id: str, viewer_id: Optional[str]) -> dict:
        """Playlist header with totals plus the videos visible to the viewer."""
        playlist_id = ensure_id(playlist_id, "Playlist ID")
        header = await self.store.run_one(aggregation.playlist_header(playlist_id, viewer_id))
        if header is None:
            raise NotFoundError("Playlist not found")
        header["videos"] = await self.store.run(aggregation.playlist_videos(playlist_id, viewer_id))
        return header

    async def add_video(self, playlist_id: str, video_id: str, viewer_id: Optional[str]) -> dict:
        playlist_id = ensure_id(playlist_id, "Playlist ID")
        video_id = ensure_id(video_id, "Video ID")

        await self.guard.load_owned("playlist", playlist_id, viewer_id)
        video = await self.store.find_by_id(Video, video_id)
        if video is None or (not video.is_published and video.owner_id != viewer_id):
            raise NotFoundError("Video not found")

        # membership is written only after the owner-scoped touch succeeds
        playlist = await self.guard.owned_update(
            "playlist", playlist_id, viewer_id, {"updated_at": utcnow()}
        )
        if not await self._contains(playlist_id, video_id):
            try:
                await self.db.execute(
                    insert(PlaylistVideo).values(playlist_id=playlist_id, video_id=video_id)
                )
                await self.db.commit()
            except IntegrityError:
                # added concurrently
                await self.db.rollback()
                await self.db.refresh(playlist)

        logger.info(f"Video {video_id} in playlist {playlist_id}")
        return self._as_dict(playlist, await self._video_ids(playlist_id))

    async def remove_video(self, playlist_id: str, video_id: str, viewer_id: Optional[str]) -> dict:
        playlist_id = ensure_id(playlist_id, "Playlist ID")
        video_id = ensure_id(video_id, "Video ID")

        await self.guard.load_owned("playlist", playlist_id, viewer_id)
        if await self.store.find_by_id(Video, video_id) is None:
            raise NotFoundError("Video not found")

        playlist = await self.guard.owned_update(
            "playlist", playlist_id, viewer_id, {"updated_at": utcnow()}
        )
        await self.db.execute(
            delete(PlaylistVideo).where(
                PlaylistVideo.playlist_id == playlist_id,
                PlaylistVideo.video_id == video_id,
            )
        )
        await self.db.commit()

        logger.info(f"Video {video_id} removed from playlist {playlist_id}")
        return self._as_dict(playlist, await self._video_ids(playlist_id))

    async def update_playlist(
        self, playlist_id: str, viewer_id: Optional[str], name: str, description: str
    ) -> dict:
        name, description = _require_name_and_description(name, description)
        playlist_id = ensure_id(playlist_id, "Playlist ID")
        playlist = await self.guard.owned_update(
            "playlist", playlist_id, viewer_id, {"name": name, "description": description}
        )
        return self._as_dict(playlist, await self._video_ids(playlist_id))

    async def delete_playlist(self, playlist_id: str, viewer_id: Optional[str]) -> None:
        playlist_id = ensure_id(playlist_id, "Playlist ID")
        await self.guard.owned_delete("playlist", playlist_id, viewer_id)

    async def _contains(self, playlist_id: str, video_id: str) -> bool:
        found = await self.store.scalar(
            select(PlaylistVideo.video_id).where(
                PlaylistVideo.playlist_id == playlist_id,
                PlaylistVideo.video_id == video_id,
            )
        )
        return found is not None

    async def _video_ids(self, playlist_id: str) -> list[str]:
        result = await self.db.execute(
            select(PlaylistVideo.video_id)
            .where(PlaylistVideo.playlist_id == playlist_id)
            .order_by(PlaylistVideo.added_at.asc(), PlaylistVideo.video_id.asc())
        )
        return list(result.scalars().all())

    @staticmethod
    def _as_dict(playlist: Playlist, video_ids: list[str]) -> dict:
        return {
            "id": playlist.id,
            "name": playlist.name,
            "description": playlist.description,
            "owner_id": playlist.owner_id,
            "video_ids": video_ids,
            "created_at": playlist.created_at,
            "updated_at": playlist.updated_at,
        }
