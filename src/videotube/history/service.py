"""Watch history: append on watch, read back as a paginated feed.

The feed is built as one SELECT composed from stage functions, applied in
this order:

    unwind history -> join published videos -> project owner
    -> newest watch first (video creation time breaks ties) -> skip/limit

Operator order decides the tie-breaks, so stages are not reordered.
Repeated watches are kept: a video watched twice appears twice.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import Select, select
from sqlalchemy.orm import aliased

from videotube.db.models import User, Video, WatchHistoryEntry
from videotube.errors import InvalidInputError, NotFoundError
from videotube.pagination import PageParams, validate_page

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

Owner = aliased(User, name="owner")


# ---------------------------------------------------------------------------
# Pipeline stages
# ---------------------------------------------------------------------------


def unwind_history(viewer_id: str) -> Select[Any]:
    """One row per history entry of the viewer."""
    return select(WatchHistoryEntry.id.label("position")).where(WatchHistoryEntry.user_id == viewer_id)


def join_published_videos(stmt: Select[Any]) -> Select[Any]:
    """Attach each entry's video, dropping unpublished ones."""
    return (
        stmt.join(Video, Video.id == WatchHistoryEntry.video_id)
        .where(Video.is_published.is_(True))
        .add_columns(
            Video.id,
            Video.title,
            Video.thumbnail_url,
            Video.duration,
            Video.views,
            Video.is_published,
            Video.created_at,
        )
    )


def project_owner(stmt: Select[Any]) -> Select[Any]:
    """Minimal owner fields. Owner id is a primary key, so at most one match."""
    return stmt.outerjoin(Owner, Owner.id == Video.owner_id).add_columns(
        Owner.id.label("owner_id"),
        Owner.full_name.label("owner_full_name"),
        Owner.username.label("owner_username"),
        Owner.avatar_url.label("owner_avatar_url"),
        Owner.verified.label("owner_verified"),
    )


def newest_watch_first(stmt: Select[Any]) -> Select[Any]:
    return stmt.order_by(WatchHistoryEntry.id.desc(), Video.created_at.desc())


def paginate(stmt: Select[Any], page: PageParams) -> Select[Any]:
    return stmt.offset(page.skip).limit(page.limit)


def _summary(row: Any) -> dict[str, Any]:
    owner = None
    if row.owner_id is not None:
        owner = {
            "id": row.owner_id,
            "full_name": row.owner_full_name,
            "username": row.owner_username,
            "avatar_url": row.owner_avatar_url,
            "verified": row.owner_verified,
        }
    return {
        "id": row.id,
        "title": row.title,
        "thumbnail_url": row.thumbnail_url,
        "duration": row.duration,
        "views": row.views,
        "is_published": row.is_published,
        "created_at": row.created_at,
        "owner": owner,
    }


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


async def get_watch_history(
    db: AsyncSession,
    viewer_id: str,
    page: int,
    limit: int,
) -> list[dict[str, Any]]:
    """
    Viewer's watched, still-published videos, most recent watch first.

    Raises:
        ValidationError: page or limit below 1 (checked before any query).
    """
    params = validate_page(page, limit)

    stmt = paginate(
        newest_watch_first(project_owner(join_published_videos(unwind_history(viewer_id)))),
        params,
    )
    result = await db.execute(stmt)
    return [_summary(row) for row in result]


def parse_video_id(raw: str) -> str:
    """Canonical string form of a video id, or InvalidInputError."""
    try:
        return str(uuid.UUID(raw))
    except (ValueError, AttributeError, TypeError) as e:
        msg = "video id is not a valid id"
        raise InvalidInputError(msg) from e


async def get_history_ids(db: AsyncSession, user_id: str) -> list[str]:
    """Raw watch-history sequence, oldest first."""
    result = await db.execute(
        select(WatchHistoryEntry.video_id)
        .where(WatchHistoryEntry.user_id == user_id)
        .order_by(WatchHistoryEntry.id)
    )
    return list(result.scalars().all())


async def push_to_watch_history(
    db: AsyncSession,
    viewer: User,
    raw_video_id: str,
) -> dict[str, Any]:
    """
    Append a published video to the viewer's history. No dedup.

    Returns the viewer's id, username, and full history sequence.

    Raises:
        InvalidInputError: malformed video id.
        NotFoundError: video missing or unpublished.
    """
    video_id = parse_video_id(raw_video_id)

    result = await db.execute(
        select(Video.id).where(Video.id == video_id).where(Video.is_published.is_(True))
    )
    if result.scalar_one_or_none() is None:
        msg = "video not found"
        raise NotFoundError(msg)

    db.add(
        WatchHistoryEntry(
            user_id=viewer.id,
            video_id=video_id,
            watched_at=datetime.now(timezone.utc),
        )
    )
    await db.flush()
    logger.info("watch_history_pushed", user_id=viewer.id, video_id=video_id)

    return {
        "id": viewer.id,
        "username": viewer.username,
        "watch_history": await get_history_ids(db, viewer.id),
    }
