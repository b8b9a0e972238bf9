import logging
import re
from typing import Any, Optional

from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession

from videotube.auth.jwt import create_access_token, create_refresh_token, verify_token
from videotube.auth.password import hash_password, verify_password
from videotube.exceptions import (
    ConflictError,
    InternalError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
    ensure_id,
    ensure_text,
)
from videotube.models import User
from videotube.services import aggregation
from videotube.services.media import MediaStorage
from videotube.services.pagination import paginate
from videotube.services.store import EntityStore

logger = logging.getLogger(__name__)

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class UserService:
    """Accounts, credentials, profile media and channel read models."""

    def __init__(self, db: AsyncSession, media: Optional[MediaStorage] = None):
        self.db = db
        self.store = EntityStore(db)
        self.media = media

    async def register(
        self,
        username: str,
        email: str,
        full_name: str,
        password: str,
        avatar_path: Optional[str],
        cover_image_path: Optional[str] = None,
    ) -> User:
        """Create an account. Username and email are unique case-insensitively."""
        username = ensure_text(username, "Username").lower()
        email = ensure_text(email, "Email").lower()
        full_name = ensure_text(full_name, "Full name")
        password = ensure_text(password, "Password")

        if not EMAIL_REGEX.match(email):
            raise ValidationError("Invalid email format")

        existing = await self.store.find_one(
            User, or_(User.username == username, User.email == email)
        )
        if existing:
            raise ConflictError("User with email or username already exists")

        if not avatar_path:
            raise ValidationError("Avatar file is required")

        avatar = await self._upload(avatar_path)
        if avatar is None:
            raise ValidationError("Avatar file is required")
        cover_image = await self._upload(cover_image_path) if cover_image_path else None

        user = User(
            username=username,
            email=email,
            full_name=full_name,
            avatar=avatar,
            cover_image=cover_image or "",
            hashed_password=hash_password(password),
        )
        user = await self.store.create(user, conflict_message="User with email or username already exists")
        logger.info(f"Registered user {user.id} ({user.username})")
        return user

    async def login(
        self, password: str, username: Optional[str] = None, email: Optional[str] = None
    ) -> tuple[User, str, str]:
        """Verify credentials and issue an access/refresh token pair."""
        if not (username or email):
            raise ValidationError("Username or email is required")

        criteria = []
        if username:
            criteria.append(User.username == username.strip().lower())
        if email:
            criteria.append(User.email == email.strip().lower())

        user = await self.store.find_one(User, or_(*criteria))
        if user is None:
            raise NotFoundError("User does not exist")
        if not verify_password(password, user.hashed_password):
            raise UnauthorizedError("Invalid user credentials")

        access_token, refresh_token = await self._issue_tokens(user.id)
        return user, access_token, refresh_token

    async def logout(self, user_id: str) -> None:
        await self.store.update_by_id(User, user_id, {"refresh_token": None})

    async def refresh_access_token(self, refresh_token: Optional[str]) -> tuple[User, str, str]:
        """Rotate the token pair. The presented refresh token must be the stored one."""
        if not refresh_token:
            raise UnauthorizedError("Unauthorized request")

        payload = verify_token(refresh_token, token_type="refresh")
        if payload is None:
            raise UnauthorizedError("Invalid refresh token")

        user = await self.store.find_by_id(User, payload["sub"])
        if user is None:
            raise UnauthorizedError("Invalid refresh token")
        if user.refresh_token != refresh_token:
            raise UnauthorizedError("Refresh token is expired or used")

        access_token, new_refresh_token = await self._issue_tokens(user.id)
        return user, access_token, new_refresh_token

    async def get_user(self, user_id: str) -> User:
        user = await self.store.find_by_id(User, ensure_id(user_id, "User ID"))
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def change_password(self, user_id: str, old_password: str, new_password: str) -> None:
        user = await self.get_user(user_id)
        if not verify_password(old_password, user.hashed_password):
            raise ValidationError("Invalid old password")

        new_password = ensure_text(new_password, "New password")
        await self.store.update_by_id(User, user.id, {"hashed_password": hash_password(new_password)})
        logger.info(f"Password changed for user {user.id}")

    async def update_account(self, user_id: str, full_name: str, email: str) -> User:
        full_name = ensure_text(full_name, "Full name")
        email = ensure_text(email, "Email").lower()
        if not EMAIL_REGEX.match(email):
            raise ValidationError("Invalid email format")

        user = await self.store.update_by_id(
            User,
            user_id,
            {"full_name": full_name, "email": email},
            conflict_message="Email is already in use",
        )
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def update_avatar(self, user_id: str, avatar_path: Optional[str]) -> User:
        if not avatar_path:
            raise ValidationError("Avatar file is missing")
        url = await self._upload(avatar_path)
        if url is None:
            raise InternalError("Error while uploading avatar")
        return await self._set_field(user_id, "avatar", url)

    async def update_cover_image(self, user_id: str, cover_image_path: Optional[str]) -> User:
        if not cover_image_path:
            raise ValidationError("Cover image file is missing")
        url = await self._upload(cover_image_path)
        if url is None:
            raise InternalError("Error while uploading cover image")
        return await self._set_field(user_id, "cover_image", url)

    async def channel_profile(self, username: str, viewer_id: Optional[str]) -> dict:
        username = ensure_text(username, "Username")
        profile = await self.store.run_one(aggregation.channel_profile(username, viewer_id))
        if profile is None:
            raise NotFoundError("Channel does not exist")
        return profile

    async def watch_history(self, user_id: str, page: Any = None, limit: Any = None) -> dict:
        return await paginate(self.db, aggregation.watch_history(user_id), page, limit)

    async def _set_field(self, user_id: str, field: str, value: str) -> User:
        user = await self.store.update_by_id(User, user_id, {field: value})
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def _issue_tokens(self, user_id: str) -> tuple[str, str]:
        access_token = create_access_token(user_id)
        refresh_token = create_refresh_token(user_id)
        await self.store.update_by_id(User, user_id, {"refresh_token": refresh_token})
        return access_token, refresh_token

    async def _upload(self, local_path: Optional[str]) -> Optional[str]:
        if self.media is None:
            raise InternalError("Media storage is not configured")
        uploaded = await self.media.upload(local_path)
        return uploaded.url if uploaded else None
