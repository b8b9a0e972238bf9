from pydantic import BaseModel, EmailStr, Field
from typing import Any, Generic, Optional, TypeVar
from datetime import datetime

T = TypeVar("T")


# ----- Envelopes -----
class ApiResponse(BaseModel):
    """Envelope carried by every response, success or failure."""

    status_code: int
    data: Any = Field(default_factory=dict)
    message: str = "Success"
    success: bool = True

    @classmethod
    def ok(cls, data: Any = None, message: str = "Success", status_code: int = 200) -> "ApiResponse":
        return cls(
            status_code=status_code,
            data={} if data is None else data,
            message=message,
            success=status_code < 400,
        )

    @classmethod
    def error(cls, status_code: int, message: str, data: Any = None) -> "ApiResponse":
        return cls(
            status_code=status_code,
            data={} if data is None else data,
            message=message,
            success=False,
        )


class Page(BaseModel, Generic[T]):
    items: list[T]
    total: int
    page: int
    limit: int
    total_pages: int
    has_next: bool
    has_previous: bool


# ----- User Schemas -----
class UserResponse(BaseModel):
    id: str
    username: str
    email: str
    full_name: str
    avatar: str
    cover_image: str = ""
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class LoginRequest(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: str


class TokenResponse(BaseModel):
    user: UserResponse
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RefreshRequest(BaseModel):
    refresh_token: str


class PasswordChange(BaseModel):
    old_password: str
    new_password: str = Field(..., min_length=8)


class AccountUpdate(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr


# ----- Read-model fragments -----
class OwnerSummary(BaseModel):
    id: str
    username: str
    full_name: str
    avatar: str


class ChannelFragment(OwnerSummary):
    subscribers_count: int = 0
    is_subscribed: bool = False


class VideoSummary(BaseModel):
    id: str
    title: str
    description: str
    video_file: str
    thumbnail: str
    duration: float
    views: int
    created_at: datetime
    owner: OwnerSummary


class LikedVideo(VideoSummary):
    liked_at: datetime


class WatchedVideo(VideoSummary):
    watched_at: datetime


class VideoDetail(BaseModel):
    id: str
    title: str
    description: str
    video_file: str
    thumbnail: str
    duration: float
    views: int
    is_published: bool
    created_at: datetime
    updated_at: datetime
    owner: ChannelFragment
    likes_count: int = 0
    is_liked: bool = False


class CommentItem(BaseModel):
    id: str
    content: str
    video_id: str
    created_at: datetime
    updated_at: datetime
    owner: OwnerSummary
    likes_count: int = 0
    is_liked: bool = False


class TweetItem(BaseModel):
    id: str
    content: str
    created_at: datetime
    updated_at: datetime
    owner: OwnerSummary
    likes_count: int = 0
    is_liked: bool = False


class ChannelProfile(BaseModel):
    id: str
    username: str
    full_name: str
    email: str
    avatar: str
    cover_image: str
    created_at: datetime
    subscribers_count: int = 0
    channels_subscribed_to_count: int = 0
    is_subscribed: bool = False


class SubscriberItem(OwnerSummary):
    subscribers_count: int = 0
    subscribed_to_subscriber: bool = False
    is_subscribed: bool = False
    subscribed_at: datetime


class LatestVideo(BaseModel):
    id: str
    title: str
    thumbnail: str
    video_file: str
    duration: float
    views: int
    created_at: datetime


class SubscribedChannel(OwnerSummary):
    subscribers_count: int = 0
    is_subscribed: bool = False
    latest_video: Optional[LatestVideo] = None
    subscribed_at: datetime


class PlaylistSummary(BaseModel):
    id: str
    name: str
    description: str
    total_videos: int = 0
    total_views: int = 0
    created_at: datetime
    updated_at: datetime


class PlaylistDetail(PlaylistSummary):
    owner: OwnerSummary
    videos: list[VideoSummary] = []


# ----- Entity Schemas -----
class VideoResponse(BaseModel):
    id: str
    owner_id: str
    title: str
    description: str
    video_file: str
    thumbnail: str
    duration: float
    views: int
    is_published: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ContentRequest(BaseModel):
    content: str = Field(..., max_length=5000)


class CommentResponse(BaseModel):
    id: str
    content: str
    video_id: str
    owner_id: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TweetResponse(BaseModel):
    id: str
    content: str
    owner_id: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PlaylistCreate(BaseModel):
    name: str = Field(..., max_length=200)
    description: str


class PlaylistResponse(BaseModel):
    id: str
    name: str
    description: str
    owner_id: str
    video_ids: list[str] = []
    created_at: datetime
    updated_at: datetime


class LikeResponse(BaseModel):
    id: str
    video_id: Optional[str] = None
    comment_id: Optional[str] = None
    tweet_id: Optional[str] = None
    liked_by: str
    created_at: datetime

    class Config:
        from_attributes = True


class SubscriptionResponse(BaseModel):
    id: str
    channel_id: str
    subscriber_id: str
    created_at: datetime

    class Config:
        from_attributes = True


# ----- Health Schemas -----
class HealthStatus(BaseModel):
    status: str
    database: str
    redis: str
