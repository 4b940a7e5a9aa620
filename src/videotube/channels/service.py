"""Channel profile: a user's public fields plus subscription counts.

Everything is read in a single SELECT. Counts and the viewer flag are
correlated scalar subqueries, so they share one snapshot with the user row.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import false, func, select

from videotube.db.models import Subscription, User
from videotube.errors import NotFoundError, ValidationError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


# Subqueries below always scan their own `subscriptions`, even when the
# enclosing query joins that table too.


def subscribers_count(channel_id: Any) -> Any:
    """Scalar subquery: edges pointing at `channel_id`."""
    return (
        select(func.count())
        .select_from(Subscription)
        .where(Subscription.channel_id == channel_id)
        .correlate_except(Subscription)
        .scalar_subquery()
    )


def subscribed_to_count(subscriber_id: Any) -> Any:
    """Scalar subquery: edges leaving `subscriber_id`."""
    return (
        select(func.count())
        .select_from(Subscription)
        .where(Subscription.subscriber_id == subscriber_id)
        .correlate_except(Subscription)
        .scalar_subquery()
    )


def viewer_subscribed(channel_id: Any, viewer_id: str | None) -> Any:
    """EXISTS flag for the viewer -> channel edge; constant false when anonymous."""
    if viewer_id is None:
        return false()
    return (
        select(Subscription.subscriber_id)
        .where(
            Subscription.channel_id == channel_id,
            Subscription.subscriber_id == viewer_id,
        )
        .correlate_except(Subscription)
        .exists()
    )


async def get_channel_profile(
    db: AsyncSession,
    username: str | None,
    viewer_id: str | None,
) -> dict[str, Any]:
    """
    Public channel view for `username`, relative to `viewer_id`.

    Raises:
        ValidationError: blank username.
        NotFoundError: no user with that username.
    """
    if username is None or not username.strip():
        msg = "username is missing"
        raise ValidationError(msg)

    stmt = select(
        User.id,
        User.username,
        User.full_name,
        User.email,
        User.avatar_url,
        User.cover_image_url,
        User.verified,
        User.created_at,
        subscribers_count(User.id).label("subscribers_count"),
        subscribed_to_count(User.id).label("channels_subscribed_to_count"),
        viewer_subscribed(User.id, viewer_id).label("is_subscribed"),
    ).where(func.lower(User.username) == username.strip().lower())

    row = (await db.execute(stmt)).first()
    if row is None:
        logger.debug("channel_not_found", username=username)
        msg = "channel does not exists"
        raise NotFoundError(msg)

    profile = dict(row._mapping)
    profile["is_subscribed"] = bool(profile["is_subscribed"])
    return profile
