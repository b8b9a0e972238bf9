"""SQLAlchemy models for users, content and relation edges."""

from datetime import datetime, timezone
from typing import Optional
import uuid

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from videotube.database import Base


def generate_id() -> str:
    """Generate an opaque entity id."""
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


class User(TimestampMixin, Base):
    """Registered user. Every user is also a channel."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=generate_id)
    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    full_name: Mapped[str] = mapped_column(String(100), nullable=False)
    avatar: Mapped[str] = mapped_column(String(500), nullable=False)
    cover_image: Mapped[str] = mapped_column(String(500), default="", nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    refresh_token: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username={self.username})>"


class Video(TimestampMixin, Base):
    __tablename__ = "videos"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=generate_id)
    owner_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    video_file: Mapped[str] = mapped_column(String(500), nullable=False)
    thumbnail: Mapped[str] = mapped_column(String(500), nullable=False)
    duration: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    views: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    is_published: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        Index("idx_videos_owner_created", "owner_id", "created_at"),
        CheckConstraint("views >= 0", name="ck_videos_views_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Video(id={self.id}, owner_id={self.owner_id}, title={self.title!r})>"


class Comment(TimestampMixin, Base):
    __tablename__ = "comments"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=generate_id)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    video_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("videos.id", ondelete="CASCADE"), nullable=False
    )
    owner_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    __table_args__ = (
        Index("idx_comments_video_created", "video_id", "created_at"),
    )


class Tweet(TimestampMixin, Base):
    __tablename__ = "tweets"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=generate_id)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    owner_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    __table_args__ = (
        Index("idx_tweets_owner_created", "owner_id", "created_at"),
    )


class Like(Base):
    """Directed edge "liked_by likes target". Exactly one target column is set."""

    __tablename__ = "likes"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=generate_id)
    video_id: Mapped[Optional[str]] = mapped_column(
        String(32), ForeignKey("videos.id", ondelete="CASCADE"), nullable=True
    )
    comment_id: Mapped[Optional[str]] = mapped_column(
        String(32), ForeignKey("comments.id", ondelete="CASCADE"), nullable=True
    )
    tweet_id: Mapped[Optional[str]] = mapped_column(
        String(32), ForeignKey("tweets.id", ondelete="CASCADE"), nullable=True
    )
    liked_by: Mapped[str] = mapped_column(
        String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (
        # NULL target columns never collide, so each constraint only binds its own kind
        UniqueConstraint("liked_by", "video_id", name="uq_like_user_video"),
        UniqueConstraint("liked_by", "comment_id", name="uq_like_user_comment"),
        UniqueConstraint("liked_by", "tweet_id", name="uq_like_user_tweet"),
        CheckConstraint(
            "(CASE WHEN video_id IS NULL THEN 0 ELSE 1 END"
            " + CASE WHEN comment_id IS NULL THEN 0 ELSE 1 END"
            " + CASE WHEN tweet_id IS NULL THEN 0 ELSE 1 END) = 1",
            name="ck_like_single_target",
        ),
        Index("idx_likes_video", "video_id"),
        Index("idx_likes_comment", "comment_id"),
        Index("idx_likes_tweet", "tweet_id"),
        Index("idx_likes_user_created", "liked_by", "created_at"),
    )


class Subscription(Base):
    """Directed edge "subscriber follows channel"."""

    __tablename__ = "subscriptions"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=generate_id)
    channel_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    subscriber_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("subscriber_id", "channel_id", name="uq_subscription_pair"),
        CheckConstraint("subscriber_id <> channel_id", name="ck_subscription_not_self"),
        Index("idx_subscriptions_channel", "channel_id", "created_at"),
    )


class Playlist(TimestampMixin, Base):
    __tablename__ = "playlists"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=generate_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    owner_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    __table_args__ = (
        Index("idx_playlists_owner", "owner_id"),
    )


class PlaylistVideo(Base):
    """Membership of a video in a playlist. The composite key makes the set duplicate-free."""

    __tablename__ = "playlist_videos"

    playlist_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("playlists.id", ondelete="CASCADE"), primary_key=True
    )
    video_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("videos.id", ondelete="CASCADE"), primary_key=True
    )
    added_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )


class WatchHistoryEntry(Base):
    """One slot in a user's ordered watch history."""

    __tablename__ = "watch_history"

    user_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    video_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("videos.id", ondelete="CASCADE"), primary_key=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    watched_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (
        Index("idx_watch_history_user_position", "user_id", "position"),
    )
