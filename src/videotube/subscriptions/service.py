"""Subscriber -> channel edges: toggle, membership, and listings."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError

from videotube.channels.service import subscribers_count, viewer_subscribed
from videotube.db.models import Subscription, User
from videotube.errors import InvalidInputError, NotFoundError, ValidationError
from videotube.pagination import validate_page

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


def parse_user_id(raw: str, field: str = "channel id") -> str:
    """Canonical string form of a user id, or InvalidInputError."""
    try:
        return str(uuid.UUID(raw))
    except (ValueError, AttributeError, TypeError) as e:
        msg = f"{field} is not a valid id"
        raise InvalidInputError(msg) from e


async def is_subscribed(db: AsyncSession, subscriber_id: str | None, channel_id: str) -> bool:
    if subscriber_id is None:
        return False
    result = await db.execute(
        select(Subscription.subscriber_id).where(
            Subscription.subscriber_id == subscriber_id,
            Subscription.channel_id == channel_id,
        )
    )
    return result.first() is not None


async def toggle_subscription(db: AsyncSession, subscriber: User, raw_channel_id: str) -> bool:
    """
    Subscribe when not subscribed, unsubscribe otherwise.

    Returns the new state. Commits.

    Raises:
        InvalidInputError: malformed channel id.
        ValidationError: subscribing to yourself.
        NotFoundError: no such channel.
    """
    channel_id = parse_user_id(raw_channel_id)
    if channel_id == subscriber.id:
        msg = "You cannot subscribe to your own channel"
        raise ValidationError(msg)

    channel = await db.execute(select(User.id).where(User.id == channel_id))
    if channel.scalar_one_or_none() is None:
        msg = "channel does not exists"
        raise NotFoundError(msg)

    removed = await db.execute(
        delete(Subscription).where(
            Subscription.subscriber_id == subscriber.id,
            Subscription.channel_id == channel_id,
        )
    )
    if removed.rowcount:
        await db.commit()
        logger.info("subscription_toggled", subscriber_id=subscriber.id, channel_id=channel_id, subscribed=False)
        return False

    db.add(
        Subscription(
            subscriber_id=subscriber.id,
            channel_id=channel_id,
            created_at=datetime.now(timezone.utc),
        )
    )
    try:
        await db.commit()
    except IntegrityError:
        # A concurrent request inserted the same edge first.
        await db.rollback()
        logger.info("subscription_already_present", subscriber_id=subscriber.id, channel_id=channel_id)
        return True

    logger.info("subscription_toggled", subscriber_id=subscriber.id, channel_id=channel_id, subscribed=True)
    return True


async def get_subscribed_channels(
    db: AsyncSession,
    raw_subscriber_id: str,
    page: int | None = None,
    limit: int | None = None,
) -> list[dict[str, Any]]:
    """Channels `subscriber_id` follows, most recent subscription first."""
    subscriber_id = parse_user_id(raw_subscriber_id, field="subscriber id")
    params = validate_page(page, limit)

    stmt = (
        select(
            User.id,
            User.username,
            User.full_name,
            User.avatar_url,
            User.verified,
            subscribers_count(User.id).label("subscribers_count"),
        )
        .join(Subscription, Subscription.channel_id == User.id)
        .where(Subscription.subscriber_id == subscriber_id)
        .order_by(Subscription.created_at.desc(), User.username)
        .offset(params.skip)
        .limit(params.limit)
    )
    result = await db.execute(stmt)
    return [dict(row._mapping) for row in result]


async def get_channel_subscribers(
    db: AsyncSession,
    raw_channel_id: str,
    viewer_id: str | None,
    page: int | None = None,
    limit: int | None = None,
) -> list[dict[str, Any]]:
    """
    Subscribers of a channel, newest first.

    Each entry carries the subscriber's own subscriber count and whether the
    viewer is subscribed to that subscriber.
    """
    channel_id = parse_user_id(raw_channel_id)
    params = validate_page(page, limit)

    stmt = (
        select(
            User.id,
            User.username,
            User.full_name,
            User.avatar_url,
            User.verified,
            subscribers_count(User.id).label("subscribers_count"),
            viewer_subscribed(User.id, viewer_id).label("is_subscribed"),
        )
        .join(Subscription, Subscription.subscriber_id == User.id)
        .where(Subscription.channel_id == channel_id)
        .order_by(Subscription.created_at.desc(), User.username)
        .offset(params.skip)
        .limit(params.limit)
    )
    result = await db.execute(stmt)
    rows = []
    for row in result:
        entry = dict(row._mapping)
        entry["is_subscribed"] = bool(entry["is_subscribed"])
        rows.append(entry)
    return rows
