"""Shared test fixtures."""

from __future__ import annotations

import os

# Settings are read at import time by videotube.main, so the environment
# has to be in place before any videotube import.
os.environ.setdefault("VT_ENVIRONMENT", "test")
os.environ.setdefault("VT_LOG_FORMAT", "console")
os.environ.setdefault("VT_JWT_ACCESS_TOKEN_SECRET", "test-access-secret-0123456789abcdef")
os.environ.setdefault("VT_JWT_REFRESH_TOKEN_SECRET", "test-refresh-secret-0123456789abcdef")

from collections.abc import AsyncGenerator
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from factories import FakeRedis
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from videotube.config import get_settings
from videotube.database import close_db, create_tables, get_session, init_db
from videotube.email.service import reset_email_service
from videotube.main import create_app
from videotube.media.storage import reset_media_storage
from videotube.redis_client import get_redis


@pytest.fixture(autouse=True)
def _isolated_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Per-test upload dir and fresh singletons."""
    monkeypatch.setenv("VT_UPLOAD_TMP_DIR", str(tmp_path / "uploads"))
    get_settings.cache_clear()
    reset_email_service()
    reset_media_storage()
    yield
    get_settings.cache_clear()
    reset_email_service()
    reset_media_storage()


@pytest.fixture
def upload_dir() -> Path:
    return Path(get_settings().upload_tmp_dir)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest_asyncio.fixture
async def database(tmp_path: Path) -> AsyncGenerator[None, None]:
    """Fresh SQLite file with all tables for each test."""
    await init_db(f"sqlite+aiosqlite:///{tmp_path / 'videotube.db'}")
    await create_tables()
    yield
    await close_db()


@pytest_asyncio.fixture
async def db_session(database: None) -> AsyncGenerator[AsyncSession, None]:
    """Direct session for service-level tests and assertions."""
    async for session in get_session():
        yield session
        break


@pytest_asyncio.fixture
async def client(database: None, fake_redis: FakeRedis) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app. The lifespan is not run; `database` sets up the DB."""
    app = create_app()
    app.dependency_overrides[get_redis] = lambda: fake_redis
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def mock_email_service(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    """Capture outgoing mail instead of sending it."""
    mock_service = MagicMock()
    mock_service.send_template = AsyncMock(return_value=True)
    mock_service.send_email = AsyncMock(return_value=True)

    monkeypatch.setattr("videotube.otp.router.get_email_service", lambda *a, **kw: mock_service)
    monkeypatch.setattr("videotube.auth.router.get_email_service", lambda *a, **kw: mock_service)
    return mock_service


@pytest.fixture
def mock_media_storage(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    """Media storage that hands out predictable URLs."""
    storage = MagicMock()
    uploads: list[str] = []

    async def _upload(local_path: Any, folder: str) -> dict[str, Any]:
        assert Path(local_path).exists()
        uploads.append(str(local_path))
        return {"secure_url": f"https://res.cloudinary.com/demo/image/upload/v1/{folder}/img{len(uploads)}.png"}

    storage.upload = AsyncMock(side_effect=_upload)
    storage.delete = AsyncMock(return_value=None)
    storage.uploaded_paths = uploads
    monkeypatch.setattr("videotube.users.router.get_media_storage", lambda: storage)
    return storage
