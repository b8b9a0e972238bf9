"""
Read pipelines for viewer-relative, joined and projected read models.

Every pipeline is one SELECT: joins pull in owner profile fragments, and
correlated subqueries compute counts and viewer flags per row, so a page of
results never costs more than one round trip (plus the page count).

List pipelines order by creation time descending with id ascending as the
tie-break unless the function says otherwise.
"""

from typing import Any, Optional

from sqlalchemy import ColumnElement, false, func, or_, select
from sqlalchemy.engine import RowMapping
from sqlalchemy.orm import aliased

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
from videotube.services.store import Pipeline

VIDEO_SORT_FIELDS = ("created_at", "views", "duration", "title")


# ----- Column helpers -----
def _owner_columns(owner, prefix: str = "owner") -> list:
    return [
        owner.id.label(f"{prefix}_id"),
        owner.username.label(f"{prefix}_username"),
        owner.full_name.label(f"{prefix}_full_name"),
        owner.avatar.label(f"{prefix}_avatar"),
    ]


def _video_columns(video) -> list:
    return [
        video.id.label("id"),
        video.title.label("title"),
        video.description.label("description"),
        video.video_file.label("video_file"),
        video.thumbnail.label("thumbnail"),
        video.duration.label("duration"),
        video.views.label("views"),
        video.created_at.label("created_at"),
    ]


def _visible_to(video, viewer_id: Optional[str]) -> ColumnElement:
    """Published videos, plus the viewer's own unpublished ones."""
    if viewer_id is None:
        return video.is_published.is_(True)
    return or_(video.is_published.is_(True), video.owner_id == viewer_id)


def _likes_count(target_column_name: str, target_id) -> Any:
    like = aliased(Like)
    return (
        select(func.count(like.id))
        .where(getattr(like, target_column_name) == target_id)
        .scalar_subquery()
    )


def _is_liked(target_column_name: str, target_id, viewer_id: Optional[str]) -> Any:
    if viewer_id is None:
        return false()
    like = aliased(Like)
    return (
        select(like.id)
        .where(getattr(like, target_column_name) == target_id, like.liked_by == viewer_id)
        .exists()
    )


def _subscribers_count(channel_id) -> Any:
    sub = aliased(Subscription)
    return select(func.count(sub.id)).where(sub.channel_id == channel_id).scalar_subquery()


def _is_subscribed(channel_id, viewer_id: Optional[str]) -> Any:
    if viewer_id is None:
        return false()
    sub = aliased(Subscription)
    return (
        select(sub.id)
        .where(sub.channel_id == channel_id, sub.subscriber_id == viewer_id)
        .exists()
    )


def _playlist_totals(playlist_id, viewer_id: Optional[str]) -> tuple[Any, Any]:
    """(total_videos, total_views) over the videos of a playlist visible to the viewer."""
    member = aliased(PlaylistVideo)
    video = aliased(Video)
    total_videos = (
        select(func.count(video.id))
        .select_from(member)
        .join(video, video.id == member.video_id)
        .where(member.playlist_id == playlist_id, _visible_to(video, viewer_id))
        .scalar_subquery()
    )
    total_views = (
        select(func.coalesce(func.sum(video.views), 0))
        .select_from(member)
        .join(video, video.id == member.video_id)
        .where(member.playlist_id == playlist_id, _visible_to(video, viewer_id))
        .scalar_subquery()
    )
    return total_videos, total_views


# ----- Row shapers -----
def shape_owner(row: RowMapping, prefix: str = "owner") -> dict:
    return {
        "id": row[f"{prefix}_id"],
        "username": row[f"{prefix}_username"],
        "full_name": row[f"{prefix}_full_name"],
        "avatar": row[f"{prefix}_avatar"],
    }


def shape_video_summary(row: RowMapping) -> dict:
    return {
        "id": row["id"],
        "title": row["title"],
        "description": row["description"],
        "video_file": row["video_file"],
        "thumbnail": row["thumbnail"],
        "duration": row["duration"],
        "views": row["views"],
        "created_at": row["created_at"],
        "owner": shape_owner(row),
    }


def _shape_engagement(row: RowMapping) -> dict:
    return {"likes_count": int(row["likes_count"] or 0), "is_liked": bool(row["is_liked"])}


def shape_comment(row: RowMapping) -> dict:
    return {
        "id": row["id"],
        "content": row["content"],
        "video_id": row["video_id"],
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
        "owner": shape_owner(row),
        **_shape_engagement(row),
    }


def shape_tweet(row: RowMapping) -> dict:
    return {
        "id": row["id"],
        "content": row["content"],
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
        "owner": shape_owner(row),
        **_shape_engagement(row),
    }


def shape_liked_video(row: RowMapping) -> dict:
    return {**shape_video_summary(row), "liked_at": row["liked_at"]}


def shape_watched_video(row: RowMapping) -> dict:
    return {**shape_video_summary(row), "watched_at": row["watched_at"]}


def shape_video_detail(row: RowMapping) -> dict:
    owner = shape_owner(row)
    owner["subscribers_count"] = int(row["owner_subscribers_count"] or 0)
    owner["is_subscribed"] = bool(row["owner_is_subscribed"])
    return {
        **{k: row[k] for k in ("id", "title", "description", "video_file", "thumbnail",
                               "duration", "views", "created_at")},
        "is_published": bool(row["is_published"]),
        "updated_at": row["updated_at"],
        "owner": owner,
        **_shape_engagement(row),
    }


def shape_channel_profile(row: RowMapping) -> dict:
    return {
        "id": row["id"],
        "username": row["username"],
        "full_name": row["full_name"],
        "email": row["email"],
        "avatar": row["avatar"],
        "cover_image": row["cover_image"],
        "created_at": row["created_at"],
        "subscribers_count": int(row["subscribers_count"] or 0),
        "channels_subscribed_to_count": int(row["channels_subscribed_to_count"] or 0),
        "is_subscribed": bool(row["is_subscribed"]),
    }


def shape_subscriber(row: RowMapping) -> dict:
    return {
        **shape_owner(row, prefix="user"),
        "subscribers_count": int(row["subscribers_count"] or 0),
        "subscribed_to_subscriber": bool(row["subscribed_to_subscriber"]),
        "is_subscribed": bool(row["is_subscribed"]),
        "subscribed_at": row["subscribed_at"],
    }


def shape_subscribed_channel(row: RowMapping) -> dict:
    latest_video = None
    if row["latest_video_id"] is not None:
        latest_video = {
            "id": row["latest_video_id"],
            "title": row["latest_video_title"],
            "thumbnail": row["latest_video_thumbnail"],
            "video_file": row["latest_video_video_file"],
            "duration": row["latest_video_duration"],
            "views": row["latest_video_views"],
            "created_at": row["latest_video_created_at"],
        }
    return {
        **shape_owner(row, prefix="user"),
        "subscribers_count": int(row["subscribers_count"] or 0),
        "is_subscribed": bool(row["is_subscribed"]),
        "latest_video": latest_video,
        "subscribed_at": row["subscribed_at"],
    }


def shape_playlist_summary(row: RowMapping) -> dict:
    return {
        "id": row["id"],
        "name": row["name"],
        "description": row["description"],
        "total_videos": int(row["total_videos"] or 0),
        "total_views": int(row["total_views"] or 0),
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }


def shape_playlist_header(row: RowMapping) -> dict:
    return {**shape_playlist_summary(row), "owner": shape_owner(row)}


# ----- Pipelines -----
def comments_for_video(video_id: str, viewer_id: Optional[str]) -> Pipeline:
    """Comments of a video with owner profile, like count and the viewer's like flag."""
    owner = aliased(User)
    stmt = (
        select(
            Comment.id.label("id"),
            Comment.content.label("content"),
            Comment.video_id.label("video_id"),
            Comment.created_at.label("created_at"),
            Comment.updated_at.label("updated_at"),
            *_owner_columns(owner),
            _likes_count("comment_id", Comment.id).label("likes_count"),
            _is_liked("comment_id", Comment.id, viewer_id).label("is_liked"),
        )
        .join(owner, owner.id == Comment.owner_id)
        .where(Comment.video_id == video_id)
        .order_by(Comment.created_at.desc(), Comment.id.asc())
    )
    return Pipeline(stmt=stmt, shape=shape_comment)


def liked_videos(viewer_id: str) -> Pipeline:
    """Videos the viewer liked, most recently liked first."""
    video = aliased(Video)
    owner = aliased(User)
    stmt = (
        select(
            *_video_columns(video),
            *_owner_columns(owner),
            Like.created_at.label("liked_at"),
        )
        .select_from(Like)
        .join(video, video.id == Like.video_id)
        .join(owner, owner.id == video.owner_id)
        .where(
            Like.liked_by == viewer_id,
            Like.video_id.is_not(None),
            _visible_to(video, viewer_id),
        )
        .order_by(Like.created_at.desc(), Like.id.asc())
    )
    return Pipeline(stmt=stmt, shape=shape_liked_video)


def channel_profile(username: str, viewer_id: Optional[str]) -> Pipeline:
    """Public channel fields with subscriber counts and the viewer's subscription flag."""
    subscribed_to = aliased(Subscription)
    stmt = select(
        User.id.label("id"),
        User.username.label("username"),
        User.full_name.label("full_name"),
        User.email.label("email"),
        User.avatar.label("avatar"),
        User.cover_image.label("cover_image"),
        User.created_at.label("created_at"),
        _subscribers_count(User.id).label("subscribers_count"),
        select(func.count(subscribed_to.id))
        .where(subscribed_to.subscriber_id == User.id)
        .scalar_subquery()
        .label("channels_subscribed_to_count"),
        _is_subscribed(User.id, viewer_id).label("is_subscribed"),
    ).where(User.username == username.strip().lower())
    return Pipeline(stmt=stmt, shape=shape_channel_profile)


def channel_subscribers(channel_id: str, viewer_id: Optional[str]) -> Pipeline:
    """
    Users subscribed to a channel, newest subscription first. Each entry
    carries its own subscriber count and whether the channel subscribes back.
    """
    subscriber = aliased(User)
    back = aliased(Subscription)
    stmt = (
        select(
            *_owner_columns(subscriber, prefix="user"),
            _subscribers_count(subscriber.id).label("subscribers_count"),
            select(back.id)
            .where(back.channel_id == subscriber.id, back.subscriber_id == channel_id)
            .exists()
            .label("subscribed_to_subscriber"),
            _is_subscribed(subscriber.id, viewer_id).label("is_subscribed"),
            Subscription.created_at.label("subscribed_at"),
        )
        .select_from(Subscription)
        .join(subscriber, subscriber.id == Subscription.subscriber_id)
        .where(Subscription.channel_id == channel_id)
        .order_by(Subscription.created_at.desc(), Subscription.id.asc())
    )
    return Pipeline(stmt=stmt, shape=shape_subscriber)


def subscribed_channels(subscriber_id: str, viewer_id: Optional[str]) -> Pipeline:
    """
    Channels a user subscribes to, newest subscription first, each with its
    subscriber count and latest published video.
    """
    channel = aliased(User)
    candidate = aliased(Video)
    latest = aliased(Video)
    latest_video_id = (
        select(candidate.id)
        .where(candidate.owner_id == channel.id, candidate.is_published.is_(True))
        .order_by(candidate.created_at.desc(), candidate.id.asc())
        .limit(1)
        .correlate(channel)
        .scalar_subquery()
    )
    stmt = (
        select(
            *_owner_columns(channel, prefix="user"),
            _subscribers_count(channel.id).label("subscribers_count"),
            _is_subscribed(channel.id, viewer_id).label("is_subscribed"),
            Subscription.created_at.label("subscribed_at"),
            latest.id.label("latest_video_id"),
            latest.title.label("latest_video_title"),
            latest.thumbnail.label("latest_video_thumbnail"),
            latest.video_file.label("latest_video_video_file"),
            latest.duration.label("latest_video_duration"),
            latest.views.label("latest_video_views"),
            latest.created_at.label("latest_video_created_at"),
        )
        .select_from(Subscription)
        .join(channel, channel.id == Subscription.channel_id)
        .outerjoin(latest, latest.id == latest_video_id)
        .where(Subscription.subscriber_id == subscriber_id)
        .order_by(Subscription.created_at.desc(), Subscription.id.asc())
    )
    return Pipeline(stmt=stmt, shape=shape_subscribed_channel)


def watch_history(user_id: str) -> Pipeline:
    """
    A user's watch history joined to full video and owner records.

    The stored sequence is most-recent-first (highest position first) and
    the pipeline keeps that order.
    """
    video = aliased(Video)
    owner = aliased(User)
    stmt = (
        select(
            *_video_columns(video),
            *_owner_columns(owner),
            WatchHistoryEntry.watched_at.label("watched_at"),
        )
        .select_from(WatchHistoryEntry)
        .join(video, video.id == WatchHistoryEntry.video_id)
        .join(owner, owner.id == video.owner_id)
        .where(WatchHistoryEntry.user_id == user_id, _visible_to(video, user_id))
        .order_by(WatchHistoryEntry.position.desc())
    )
    return Pipeline(stmt=stmt, shape=shape_watched_video)


def playlist_header(playlist_id: str, viewer_id: Optional[str]) -> Pipeline:
    owner = aliased(User)
    total_videos, total_views = _playlist_totals(Playlist.id, viewer_id)
    stmt = (
        select(
            Playlist.id.label("id"),
            Playlist.name.label("name"),
            Playlist.description.label("description"),
            Playlist.created_at.label("created_at"),
            Playlist.updated_at.label("updated_at"),
            *_owner_columns(owner),
            total_videos.label("total_videos"),
            total_views.label("total_views"),
        )
        .join(owner, owner.id == Playlist.owner_id)
        .where(Playlist.id == playlist_id)
    )
    return Pipeline(stmt=stmt, shape=shape_playlist_header)


def playlist_videos(playlist_id: str, viewer_id: Optional[str]) -> Pipeline:
    """Videos of a playlist visible to the viewer, most recently added first."""
    video = aliased(Video)
    owner = aliased(User)
    stmt = (
        select(*_video_columns(video), *_owner_columns(owner))
        .select_from(PlaylistVideo)
        .join(video, video.id == PlaylistVideo.video_id)
        .join(owner, owner.id == video.owner_id)
        .where(PlaylistVideo.playlist_id == playlist_id, _visible_to(video, viewer_id))
        .order_by(PlaylistVideo.added_at.desc(), video.id.asc())
    )
    return Pipeline(stmt=stmt, shape=shape_video_summary)


def user_playlists(user_id: str, viewer_id: Optional[str]) -> Pipeline:
    total_videos, total_views = _playlist_totals(Playlist.id, viewer_id)
    stmt = (
        select(
            Playlist.id.label("id"),
            Playlist.name.label("name"),
            Playlist.description.label("description"),
            Playlist.created_at.label("created_at"),
            Playlist.updated_at.label("updated_at"),
            total_videos.label("total_videos"),
            total_views.label("total_views"),
        )
        .where(Playlist.owner_id == user_id)
        .order_by(Playlist.created_at.desc(), Playlist.id.asc())
    )
    return Pipeline(stmt=stmt, shape=shape_playlist_summary)


def user_tweets(user_id: str, viewer_id: Optional[str]) -> Pipeline:
    owner = aliased(User)
    stmt = (
        select(
            Tweet.id.label("id"),
            Tweet.content.label("content"),
            Tweet.created_at.label("created_at"),
            Tweet.updated_at.label("updated_at"),
            *_owner_columns(owner),
            _likes_count("tweet_id", Tweet.id).label("likes_count"),
            _is_liked("tweet_id", Tweet.id, viewer_id).label("is_liked"),
        )
        .join(owner, owner.id == Tweet.owner_id)
        .where(Tweet.owner_id == user_id)
        .order_by(Tweet.created_at.desc(), Tweet.id.asc())
    )
    return Pipeline(stmt=stmt, shape=shape_tweet)


def video_detail(video_id: str, viewer_id: Optional[str]) -> Pipeline:
    """One video with its owner's channel fragment and engagement, if visible to the viewer."""
    owner = aliased(User)
    stmt = (
        select(
            *_video_columns(Video),
            Video.is_published.label("is_published"),
            Video.updated_at.label("updated_at"),
            *_owner_columns(owner),
            _subscribers_count(owner.id).label("owner_subscribers_count"),
            _is_subscribed(owner.id, viewer_id).label("owner_is_subscribed"),
            _likes_count("video_id", Video.id).label("likes_count"),
            _is_liked("video_id", Video.id, viewer_id).label("is_liked"),
        )
        .join(owner, owner.id == Video.owner_id)
        .where(Video.id == video_id, _visible_to(Video, viewer_id))
    )
    return Pipeline(stmt=stmt, shape=shape_video_detail)


def list_videos(
    viewer_id: Optional[str],
    query: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_type: Optional[str] = None,
    user_id: Optional[str] = None,
) -> Pipeline:
    """
    Video listing with an optional owner filter and a case-insensitive
    title/description match. Sorts by one of VIDEO_SORT_FIELDS; unknown
    fields fall back to created_at, unknown directions to descending.
    """
    video = aliased(Video)
    owner = aliased(User)
    stmt = (
        select(*_video_columns(video), *_owner_columns(owner))
        .join(owner, owner.id == video.owner_id)
        .where(_visible_to(video, viewer_id))
    )
    if user_id:
        stmt = stmt.where(video.owner_id == user_id)
    if query and query.strip():
        pattern = f"%{query.strip().lower()}%"
        stmt = stmt.where(
            or_(func.lower(video.title).like(pattern), func.lower(video.description).like(pattern))
        )

    sort_column = getattr(video, sort_by if sort_by in VIDEO_SORT_FIELDS else "created_at")
    ordering = sort_column.asc() if (sort_type or "").lower() == "asc" else sort_column.desc()
    stmt = stmt.order_by(ordering, video.id.asc())
    return Pipeline(stmt=stmt, shape=shape_video_summary)
