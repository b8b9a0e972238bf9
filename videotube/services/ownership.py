"""Single ownership check shared by every owned entity kind."""

from typing import Optional, Type, Union

from sqlalchemy.ext.asyncio import AsyncSession

from videotube.exceptions import ForbiddenError, NotFoundError, UnauthorizedError
from videotube.models import Comment, Playlist, Tweet, Video
from videotube.services.store import EntityStore

OwnedEntity = Union[Video, Playlist, Comment, Tweet]

OWNED_KINDS: dict[str, Type[OwnedEntity]] = {
    "video": Video,
    "playlist": Playlist,
    "comment": Comment,
    "tweet": Tweet,
}


def assert_owner(entity: Optional[OwnedEntity], viewer_id: Optional[str], kind: str) -> OwnedEntity:
    """Fail with NotFoundError for a missing entity, ForbiddenError for a foreign one."""
    if entity is None:
        raise NotFoundError(f"{kind.capitalize()} not found")
    if viewer_id is None:
        raise UnauthorizedError("Unauthorized request")
    if entity.owner_id != viewer_id:
        raise ForbiddenError(f"Only the owner can modify this {kind}")
    return entity


class OwnershipGuard:
    """Owner-scoped writes: the owner predicate rides on the write itself."""

    def __init__(self, db: AsyncSession):
        self.store = EntityStore(db)

    async def load_owned(self, kind: str, entity_id: str, viewer_id: Optional[str]) -> OwnedEntity:
        model = OWNED_KINDS[kind]
        entity = await self.store.find_by_id(model, entity_id)
        return assert_owner(entity, viewer_id, kind)

    async def owned_update(
        self, kind: str, entity_id: str, viewer_id: Optional[str], values: dict
    ) -> OwnedEntity:
        model = OWNED_KINDS[kind]
        if viewer_id is None:
            raise UnauthorizedError("Unauthorized request")

        updated = await self.store.update_by_id(
            model, entity_id, values, where=(model.owner_id == viewer_id,)
        )
        if updated is None:
            await self._raise_for_miss(kind, entity_id, viewer_id)
        return updated

    async def owned_delete(self, kind: str, entity_id: str, viewer_id: Optional[str]) -> OwnedEntity:
        model = OWNED_KINDS[kind]
        if viewer_id is None:
            raise UnauthorizedError("Unauthorized request")

        deleted = await self.store.delete_by_id(
            model, entity_id, where=(model.owner_id == viewer_id,)
        )
        if deleted is None:
            await self._raise_for_miss(kind, entity_id, viewer_id)
        return deleted

    async def _raise_for_miss(self, kind: str, entity_id: str, viewer_id: str) -> None:
        """Explain a zero-row owner-scoped write: missing row first, then ownership."""
        entity = await self.store.find_by_id(OWNED_KINDS[kind], entity_id)
        assert_owner(entity, viewer_id, kind)
        # Row exists and is ours but vanished between statements; treat as gone.
        raise NotFoundError(f"{kind.capitalize()} not found")
