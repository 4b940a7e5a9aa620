"""Subscription endpoint schemas."""

from __future__ import annotations

from pydantic import BaseModel


class ToggleResponse(BaseModel):
    channel_id: str
    subscribed: bool


class IsSubscribedResponse(BaseModel):
    is_subscribed: bool


class SubscribedChannel(BaseModel):
    id: str
    username: str
    full_name: str
    avatar_url: str | None = None
    verified: bool = False
    subscribers_count: int


class ChannelSubscriber(SubscribedChannel):
    is_subscribed: bool
