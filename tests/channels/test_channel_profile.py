"""Tests for the channel profile view."""

from datetime import datetime, timezone

import pytest
from factories import auth_headers, make_user
from httpx import AsyncClient

from videotube.channels.service import get_channel_profile
from videotube.db.models import Subscription
from videotube.errors import NotFoundError, ValidationError


async def _subscribe(db, subscriber, channel):
    db.add(Subscription(subscriber_id=subscriber.id, channel_id=channel.id, created_at=datetime.now(timezone.utc)))
    await db.commit()


class TestChannelProfileService:
    async def test_counts_and_flag(self, db_session):
        channel = await make_user(db_session, "chan")
        fan1 = await make_user(db_session, "fan1")
        fan2 = await make_user(db_session, "fan2")
        other = await make_user(db_session, "other")
        await _subscribe(db_session, fan1, channel)
        await _subscribe(db_session, fan2, channel)
        await _subscribe(db_session, channel, other)

        profile = await get_channel_profile(db_session, "chan", viewer_id=fan1.id)
        assert profile["id"] == channel.id
        assert profile["subscribers_count"] == 2
        assert profile["channels_subscribed_to_count"] == 1
        assert profile["is_subscribed"] is True

        profile = await get_channel_profile(db_session, "chan", viewer_id=other.id)
        assert profile["is_subscribed"] is False

    async def test_anonymous_viewer(self, db_session):
        await make_user(db_session, "chan")
        profile = await get_channel_profile(db_session, "chan", viewer_id=None)
        assert profile["is_subscribed"] is False
        assert profile["subscribers_count"] == 0
        assert profile["channels_subscribed_to_count"] == 0

    async def test_username_case_insensitive(self, db_session):
        await make_user(db_session, "chan")
        profile = await get_channel_profile(db_session, "  ChAn ", viewer_id=None)
        assert profile["username"] == "chan"

    async def test_public_fields_only(self, db_session):
        await make_user(db_session, "chan")
        profile = await get_channel_profile(db_session, "chan", viewer_id=None)
        assert set(profile) == {
            "id",
            "username",
            "full_name",
            "email",
            "avatar_url",
            "cover_image_url",
            "verified",
            "created_at",
            "subscribers_count",
            "channels_subscribed_to_count",
            "is_subscribed",
        }

    @pytest.mark.parametrize("username", ["", "   ", None])
    async def test_blank_username(self, db_session, username):
        with pytest.raises(ValidationError):
            await get_channel_profile(db_session, username, viewer_id=None)

    async def test_unknown_username(self, db_session):
        with pytest.raises(NotFoundError):
            await get_channel_profile(db_session, "nobody", viewer_id=None)


class TestChannelProfileEndpoint:
    async def test_anonymous(self, client: AsyncClient, db_session):
        await make_user(db_session, "chan")
        response = await client.get("/api/v1/users/c/chan")
        assert response.status_code == 200
        data = response.json()
        assert data["username"] == "chan"
        assert data["is_subscribed"] is False
        assert "password_hash" not in data
        assert "refresh_token_hash" not in data

    async def test_viewer_relative_flag(self, client: AsyncClient, db_session):
        channel = await make_user(db_session, "chan")
        fan = await make_user(db_session, "fan")
        await _subscribe(db_session, fan, channel)

        response = await client.get("/api/v1/users/c/chan", headers=auth_headers(fan))
        assert response.json()["is_subscribed"] is True
        assert response.json()["subscribers_count"] == 1

    async def test_invalid_token_treated_as_anonymous(self, client: AsyncClient, db_session):
        await make_user(db_session, "chan")
        response = await client.get("/api/v1/users/c/chan", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 200
        assert response.json()["is_subscribed"] is False

    async def test_unknown(self, client: AsyncClient):
        response = await client.get("/api/v1/users/c/nobody")
        assert response.status_code == 404
