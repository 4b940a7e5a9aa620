"""Response schemas for channel and watch-history endpoints.

Account and session schemas live in `videotube.auth.schemas`.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class ChannelProfileResponse(BaseModel):
    id: str
    username: str
    full_name: str
    email: str
    avatar_url: str | None = None
    cover_image_url: str | None = None
    verified: bool = False
    created_at: datetime | None = None
    subscribers_count: int
    channels_subscribed_to_count: int
    is_subscribed: bool


class VideoOwner(BaseModel):
    id: str
    full_name: str
    username: str
    avatar_url: str | None = None
    verified: bool = False


class WatchedVideo(BaseModel):
    id: str
    title: str
    thumbnail_url: str
    duration: float
    views: int
    is_published: bool
    created_at: datetime
    owner: VideoOwner | None = None


class WatchHistoryPushResponse(BaseModel):
    id: str
    username: str
    watch_history: list[str]
