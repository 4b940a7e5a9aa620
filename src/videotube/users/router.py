"""User router: account, channel, and watch-history endpoints under /api/v1/users."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from videotube.auth.dependencies import get_current_user, get_optional_user
from videotube.auth.schemas import AvailabilityResponse, UpdateAccountRequest, UserResponse
from videotube.auth.service import is_email_available, is_username_available
from videotube.channels.service import get_channel_profile
from videotube.database import get_session
from videotube.db.models import User
from videotube.history.service import get_watch_history, push_to_watch_history
from videotube.media.storage import get_media_storage
from videotube.media.uploads import ensure_image, staged_upload
from videotube.pagination import DEFAULT_LIMIT, DEFAULT_PAGE
from videotube.users.schemas import ChannelProfileResponse, WatchedVideo, WatchHistoryPushResponse
from videotube.users.service import (
    ImageField,
    discard_replaced_image,
    replace_user_image,
    update_account_details,
)

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


# ---------------------------------------------------------------------------
# Account
# ---------------------------------------------------------------------------


@router.get("/current-user", response_model=UserResponse)
async def current_user(
    user: User = Depends(get_current_user),
) -> UserResponse:
    """Get own full profile."""
    return UserResponse.model_validate(user)


@router.patch("/update-account", response_model=UserResponse)
async def update_account(
    body: UpdateAccountRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    """Update full name and email."""
    user = await update_account_details(db, user, body.full_name, body.email)
    await db.commit()
    return UserResponse.model_validate(user)


async def _replace_image(
    db: AsyncSession,
    user: User,
    upload: UploadFile,
    field: ImageField,
    *,
    allow_gif: bool,
) -> UserResponse:
    ensure_image(upload, allow_gif=allow_gif)
    storage = get_media_storage()
    async with staged_upload(upload) as local_path:
        old_url = await replace_user_image(db, user, field, local_path, storage)
    await db.commit()
    await discard_replaced_image(storage, user, field, old_url)
    return UserResponse.model_validate(user)


@router.patch("/avatar", response_model=UserResponse)
async def update_avatar(
    avatar: UploadFile = File(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    """Replace the avatar image."""
    return await _replace_image(db, user, avatar, "avatar_url", allow_gif=True)


@router.patch("/cover-image", response_model=UserResponse)
async def update_cover_image(
    cover_image: UploadFile = File(..., alias="coverImage"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    """Replace the cover image. GIFs are not accepted."""
    return await _replace_image(db, user, cover_image, "cover_image_url", allow_gif=False)


# ---------------------------------------------------------------------------
# Channel
# ---------------------------------------------------------------------------


@router.get("/c/{username}", response_model=ChannelProfileResponse)
async def channel_profile(
    username: str,
    viewer: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_session),
) -> ChannelProfileResponse:
    """Public channel profile with subscription counts."""
    profile = await get_channel_profile(db, username, viewer.id if viewer else None)
    return ChannelProfileResponse(**profile)


# ---------------------------------------------------------------------------
# Watch history
# ---------------------------------------------------------------------------


@router.get("/history", response_model=list[WatchedVideo])
async def watch_history(
    page: int = Query(DEFAULT_PAGE),
    limit: int = Query(DEFAULT_LIMIT),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> list[WatchedVideo]:
    """Watched videos, most recent first."""
    rows = await get_watch_history(db, user.id, page, limit)
    return [WatchedVideo(**row) for row in rows]


@router.post("/history/{video_id}", response_model=WatchHistoryPushResponse)
async def add_to_watch_history(
    video_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> WatchHistoryPushResponse:
    """Record a watch of a published video."""
    result = await push_to_watch_history(db, user, video_id)
    await db.commit()
    return WatchHistoryPushResponse(**result)


# ---------------------------------------------------------------------------
# Availability
# ---------------------------------------------------------------------------


@router.get("/check-username/{username}", response_model=AvailabilityResponse)
async def check_username(
    username: str,
    db: AsyncSession = Depends(get_session),
) -> AvailabilityResponse:
    """Advisory: the username may be taken by the time you register."""
    available = await is_username_available(db, username)
    return AvailabilityResponse(
        value=username,
        available=available,
        message="Username is available" if available else "Username is already taken",
    )


@router.get("/check-email/{email}", response_model=AvailabilityResponse)
async def check_email(
    email: str,
    db: AsyncSession = Depends(get_session),
) -> AvailabilityResponse:
    """Advisory: the email may be taken by the time you register."""
    available = await is_email_available(db, email)
    return AvailabilityResponse(
        value=email,
        available=available,
        message="Email is available" if available else "Email is already registered",
    )
