"""Subscriptions router: /api/v1/subscriptions/* endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from videotube.auth.dependencies import get_current_user, get_optional_user
from videotube.database import get_session
from videotube.db.models import User
from videotube.pagination import DEFAULT_LIMIT, DEFAULT_PAGE
from videotube.subscriptions.schemas import (
    ChannelSubscriber,
    IsSubscribedResponse,
    SubscribedChannel,
    ToggleResponse,
)
from videotube.subscriptions.service import (
    get_channel_subscribers,
    get_subscribed_channels,
    is_subscribed,
    parse_user_id,
    toggle_subscription,
)

router = APIRouter(prefix="/api/v1/subscriptions", tags=["Subscriptions"])


@router.post("/c/{channel_id}", response_model=ToggleResponse)
async def toggle(
    channel_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ToggleResponse:
    """Subscribe to or unsubscribe from a channel."""
    subscribed = await toggle_subscription(db, user, channel_id)
    return ToggleResponse(channel_id=parse_user_id(channel_id), subscribed=subscribed)


@router.get("/c/{subscriber_id}", response_model=list[SubscribedChannel])
async def subscribed_channels(
    subscriber_id: str,
    page: int = Query(DEFAULT_PAGE),
    limit: int = Query(DEFAULT_LIMIT),
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> list[SubscribedChannel]:
    """Channels the given user subscribes to."""
    rows = await get_subscribed_channels(db, subscriber_id, page, limit)
    return [SubscribedChannel(**row) for row in rows]


@router.get("/u/{channel_id}", response_model=list[ChannelSubscriber])
async def channel_subscribers(
    channel_id: str,
    page: int = Query(DEFAULT_PAGE),
    limit: int = Query(DEFAULT_LIMIT),
    viewer: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_session),
) -> list[ChannelSubscriber]:
    """Subscribers of a channel, relative to the viewer."""
    rows = await get_channel_subscribers(db, channel_id, viewer.id if viewer else None, page, limit)
    return [ChannelSubscriber(**row) for row in rows]


@router.get("/i/{channel_id}", response_model=IsSubscribedResponse)
async def subscription_status(
    channel_id: str,
    viewer: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_session),
) -> IsSubscribedResponse:
    """Whether the viewer subscribes to the channel. False when anonymous."""
    target = parse_user_id(channel_id)
    return IsSubscribedResponse(
        is_subscribed=await is_subscribed(db, viewer.id if viewer else None, target),
    )
