"""Account details and profile image updates."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Literal

import structlog
from sqlalchemy.exc import IntegrityError

from videotube.auth.service import get_user_by_email
from videotube.config import get_settings
from videotube.db.models import User
from videotube.errors import ConflictError, ServerError, ValidationError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from videotube.media.storage import MediaStorage

logger = structlog.get_logger()

ImageField = Literal["avatar_url", "cover_image_url"]


async def update_account_details(
    db: AsyncSession,
    user: User,
    full_name: str | None,
    email: str | None,
) -> User:
    """
    Update the display name and email.

    Raises:
        ValidationError: either field blank.
        ConflictError: email belongs to another user.
    """
    if not full_name or not full_name.strip() or not email or not email.strip():
        msg = "All fields are required"
        raise ValidationError(msg)

    email = email.lower().strip()
    if email != user.email.lower():
        holder = await get_user_by_email(db, email)
        if holder is not None and holder.id != user.id:
            msg = "Email already in use"
            raise ConflictError(msg)

    user.full_name = full_name.strip()
    user.email = email
    user.updated_at = datetime.now(timezone.utc)
    try:
        await db.flush()
    except IntegrityError as e:
        await db.rollback()
        msg = "Email already in use"
        raise ConflictError(msg) from e
    logger.info("account_updated", user_id=user.id)
    return user


async def replace_user_image(
    db: AsyncSession,
    user: User,
    field: ImageField,
    local_path: str | Path,
    storage: MediaStorage,
) -> str | None:
    """
    Upload a new avatar or cover image and point the user at it.

    Returns the previous URL, which the caller hands to `discard_replaced_image`
    once the new one is committed.

    Raises:
        ServerError: the upload failed (the user row is left unchanged).
    """
    uploaded = await storage.upload(local_path, get_settings().media_user_folder)
    old_url = getattr(user, field)

    setattr(user, field, uploaded["secure_url"])
    user.updated_at = datetime.now(timezone.utc)
    await db.flush()
    logger.info("user_image_replaced", user_id=user.id, field=field)
    return old_url


async def discard_replaced_image(storage: MediaStorage, user: User, field: ImageField, old_url: str | None) -> None:
    """Delete the superseded remote image. Failures are logged, not raised."""
    if not old_url:
        return
    try:
        await storage.delete(old_url)
    except ServerError:
        logger.warning("user_image_cleanup_failed", user_id=user.id, field=field, url=old_url)
