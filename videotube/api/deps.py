from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession
import redis.asyncio as redis

from videotube.auth.jwt import verify_token
from videotube.database import get_db, get_redis
from videotube.exceptions import UnauthorizedError
from videotube.models import User
from videotube.services.comments import CommentService
from videotube.services.media import CloudinaryStorage, MediaStorage
from videotube.services.playlists import PlaylistService
from videotube.services.social import LikeService, SubscriptionService
from videotube.services.tweets import TweetService
from videotube.services.users import UserService
from videotube.services.videos import VideoService

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/users/login", auto_error=False)


async def get_optional_viewer(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> Optional[str]:
    """Resolve the acting viewer's user id; None for anonymous requests."""
    if not token:
        return None

    payload = verify_token(token, token_type="access")
    if payload is None:
        raise UnauthorizedError("Invalid access token")

    user = await db.get(User, payload["sub"])
    if user is None:
        raise UnauthorizedError("Invalid access token")
    return user.id


async def get_current_viewer(
    viewer_id: Optional[str] = Depends(get_optional_viewer),
) -> str:
    """Require an authenticated viewer."""
    if viewer_id is None:
        raise UnauthorizedError("Unauthorized request")
    return viewer_id


def get_media_storage() -> MediaStorage:
    """Dependency for the media storage collaborator."""
    return CloudinaryStorage()


async def get_user_service(
    db: AsyncSession = Depends(get_db),
    media: MediaStorage = Depends(get_media_storage),
) -> UserService:
    """Dependency for UserService."""
    return UserService(db, media)


async def get_video_service(
    db: AsyncSession = Depends(get_db),
    media: MediaStorage = Depends(get_media_storage),
) -> VideoService:
    """Dependency for VideoService."""
    return VideoService(db, media)


async def get_comment_service(db: AsyncSession = Depends(get_db)) -> CommentService:
    """Dependency for CommentService."""
    return CommentService(db)


async def get_tweet_service(db: AsyncSession = Depends(get_db)) -> TweetService:
    """Dependency for TweetService."""
    return TweetService(db)


async def get_playlist_service(db: AsyncSession = Depends(get_db)) -> PlaylistService:
    """Dependency for PlaylistService."""
    return PlaylistService(db)


async def get_like_service(
    db: AsyncSession = Depends(get_db),
    redis_client: Optional[redis.Redis] = Depends(get_redis),
) -> LikeService:
    """Dependency for LikeService."""
    return LikeService(db, redis_client)


async def get_subscription_service(
    db: AsyncSession = Depends(get_db),
    redis_client: Optional[redis.Redis] = Depends(get_redis),
) -> SubscriptionService:
    """Dependency for SubscriptionService."""
    return SubscriptionService(db, redis_client)
