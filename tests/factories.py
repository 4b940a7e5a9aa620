"""Test data builders and fakes shared across test modules."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any
from unittest.mock import AsyncMock, MagicMock

from sqlalchemy.ext.asyncio import AsyncSession

from videotube.auth.jwt import create_access_token
from videotube.auth.password import hash_password
from videotube.db.models import User, Video

DEFAULT_PASSWORD = "Str0ngPassword"


class FakeRedis:
    """Dict-backed stand-in for the handful of redis.asyncio calls the app makes."""

    def __init__(self) -> None:
        self.store: dict[str, Any] = {}
        self.ttls: dict[str, int] = {}
        self.get = AsyncMock(side_effect=self._get)
        self.set = AsyncMock(side_effect=self._set)
        self.incr = AsyncMock(side_effect=self._incr)
        self.expire = AsyncMock(side_effect=self._expire)
        self.delete = AsyncMock(side_effect=self._delete)
        self.ping = AsyncMock(return_value=True)

    async def _get(self, key: str) -> Any:
        return self.store.get(key)

    async def _set(self, key: str, value: Any, ex: int | None = None) -> bool:
        self.store[key] = value
        if ex is not None:
            self.ttls[key] = ex
        return True

    async def _incr(self, key: str) -> int:
        self.store[key] = int(self.store.get(key, 0)) + 1
        return self.store[key]

    async def _expire(self, key: str, seconds: int) -> bool:
        self.ttls[key] = seconds
        return key in self.store

    async def _delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            removed += self.store.pop(key, None) is not None
            self.ttls.pop(key, None)
        return removed


def sent_code(mock_email_service: MagicMock) -> str:
    """The code from the most recent otp_code email."""
    return mock_email_service.send_template.await_args.kwargs["context"]["code"]


async def make_user(
    db: AsyncSession,
    username: str,
    email: str | None = None,
    password: str = DEFAULT_PASSWORD,
    full_name: str | None = None,
    **fields: Any,
) -> User:
    now = datetime.now(timezone.utc)
    user = User(
        username=username.lower(),
        email=(email or f"{username.lower()}@example.com").lower(),
        full_name=full_name or username.title(),
        password_hash=hash_password(password),
        created_at=now,
        updated_at=now,
        **fields,
    )
    db.add(user)
    await db.commit()
    return user


_video_clock = datetime(2025, 1, 1, tzinfo=timezone.utc)


async def make_video(
    db: AsyncSession,
    owner: User,
    title: str,
    is_published: bool = True,
    created_at: datetime | None = None,
) -> Video:
    global _video_clock  # noqa: PLW0603
    _video_clock += timedelta(minutes=1)
    video = Video(
        id=str(uuid.uuid4()),
        owner_id=owner.id,
        title=title,
        video_url=f"https://cdn.example.com/{title}.mp4",
        thumbnail_url=f"https://cdn.example.com/{title}.png",
        duration=120.0,
        views=0,
        is_published=is_published,
        created_at=created_at or _video_clock,
    )
    db.add(video)
    await db.commit()
    return video


def auth_headers(user: User) -> dict[str, str]:
    """Bearer header for `user` without going through login."""
    return {"Authorization": f"Bearer {create_access_token(user.id, user.username, user.email)}"}
