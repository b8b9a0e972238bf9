import itertools
import os
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from videotube import models  # noqa: F401
from videotube.api.deps import get_media_storage
from videotube.auth.jwt import create_access_token
from videotube.auth.password import hash_password
from videotube.database import Base, get_db
from videotube.main import app
from videotube.models import (
    Comment,
    Like,
    Playlist,
    PlaylistVideo,
    Subscription,
    Tweet,
    User,
    Video,
    WatchHistoryEntry,
)
from videotube.services import media as media_module
from videotube.services.media import MediaUpload

PASSWORD = "correct-horse-battery"
PASSWORD_HASH = hash_password(PASSWORD)

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def at(minutes: int) -> datetime:
    """A fixed timestamp offset from BASE_TIME, for deterministic ordering."""
    return BASE_TIME + timedelta(minutes=minutes)


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


class FakeMediaStorage:
    """Records uploads and hands back predictable URLs."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.uploaded: list[str] = []

    async def upload(self, local_path: Optional[str]) -> Optional[MediaUpload]:
        if not local_path:
            return None
        if self.fail:
            return None
        self.uploaded.append(local_path)
        name = os.path.basename(local_path)
        return MediaUpload(url=f"https://media.test/{name}", duration=42.5)


class Seeder:
    """Inserts rows directly, bypassing the services under test."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self._counter = itertools.count(1)

    async def _save(self, entity):
        self.db.add(entity)
        await self.db.commit()
        return entity

    async def user(self, username: Optional[str] = None, **overrides) -> User:
        n = next(self._counter)
        username = username or f"user{n}"
        values = dict(
            username=username,
            email=f"{username}@example.com",
            full_name=f"User {username}",
            avatar=f"https://media.test/{username}.png",
            hashed_password=PASSWORD_HASH,
        )
        values.update(overrides)
        return await self._save(User(**values))

    async def video(self, owner: User, title: Optional[str] = None, **overrides) -> Video:
        n = next(self._counter)
        values = dict(
            owner_id=owner.id,
            title=title or f"Video {n}",
            description=f"Description of video {n}",
            video_file=f"https://media.test/video{n}.mp4",
            thumbnail=f"https://media.test/thumb{n}.png",
            duration=60.0,
            views=0,
            is_published=True,
        )
        values.update(overrides)
        return await self._save(Video(**values))

    async def comment(self, video: Video, owner: User, content: str = "Nice video", **overrides) -> Comment:
        return await self._save(
            Comment(content=content, video_id=video.id, owner_id=owner.id, **overrides)
        )

    async def tweet(self, owner: User, content: str = "Hello", **overrides) -> Tweet:
        return await self._save(Tweet(content=content, owner_id=owner.id, **overrides))

    async def like(self, user: User, video=None, comment=None, tweet=None, **overrides) -> Like:
        return await self._save(
            Like(
                liked_by=user.id,
                video_id=video.id if video else None,
                comment_id=comment.id if comment else None,
                tweet_id=tweet.id if tweet else None,
                **overrides,
            )
        )

    async def subscription(self, subscriber: User, channel: User, **overrides) -> Subscription:
        return await self._save(
            Subscription(subscriber_id=subscriber.id, channel_id=channel.id, **overrides)
        )

    async def playlist(self, owner: User, name: str = "Favourites", **overrides) -> Playlist:
        return await self._save(
            Playlist(name=name, description=f"{name} playlist", owner_id=owner.id, **overrides)
        )

    async def playlist_video(self, playlist: Playlist, video: Video, **overrides) -> PlaylistVideo:
        return await self._save(
            PlaylistVideo(playlist_id=playlist.id, video_id=video.id, **overrides)
        )

    async def watch(self, user: User, video: Video, position: int) -> WatchHistoryEntry:
        return await self._save(
            WatchHistoryEntry(user_id=user.id, video_id=video.id, position=position)
        )


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'videotube.db'}",
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def seed(db):
    return Seeder(db)


@pytest.fixture
def media():
    return FakeMediaStorage()


@pytest_asyncio.fixture
async def client(session_factory, media, monkeypatch, tmp_path):
    """HTTP client bound to the app with the test database and fake media storage."""
    monkeypatch.setattr(media_module.settings, "temp_dir", str(tmp_path / "temp"))

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_media_storage] = lambda: media

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
