"""Tests for the watch-history feed and push."""

import uuid
from unittest.mock import AsyncMock

import pytest
from factories import auth_headers, make_user, make_video
from httpx import AsyncClient

from videotube.errors import InvalidInputError, NotFoundError, ValidationError
from videotube.history.service import get_history_ids, get_watch_history, push_to_watch_history
from videotube.pagination import MAX_LIMIT


async def _watch(db, viewer, *videos):
    for video in videos:
        await push_to_watch_history(db, viewer, video.id)
    await db.commit()


class TestWatchHistoryFeed:
    async def test_most_recent_watch_first(self, db_session):
        owner = await make_user(db_session, "owner")
        viewer = await make_user(db_session, "viewer")
        a = await make_video(db_session, owner, "a")
        b = await make_video(db_session, owner, "b")
        c = await make_video(db_session, owner, "c")
        await _watch(db_session, viewer, a, b, c)

        feed = await get_watch_history(db_session, viewer.id, page=1, limit=10)
        assert [v["title"] for v in feed] == ["c", "b", "a"]

    async def test_unpublished_videos_hidden(self, db_session):
        owner = await make_user(db_session, "owner")
        viewer = await make_user(db_session, "viewer")
        a = await make_video(db_session, owner, "a")
        b = await make_video(db_session, owner, "b")
        await _watch(db_session, viewer, a, b)

        b.is_published = False
        await db_session.commit()

        feed = await get_watch_history(db_session, viewer.id, page=1, limit=10)
        assert [v["title"] for v in feed] == ["a"]

    async def test_repeat_watches_kept(self, db_session):
        owner = await make_user(db_session, "owner")
        viewer = await make_user(db_session, "viewer")
        a = await make_video(db_session, owner, "a")
        b = await make_video(db_session, owner, "b")
        await _watch(db_session, viewer, a, b, a)

        feed = await get_watch_history(db_session, viewer.id, page=1, limit=10)
        assert [v["title"] for v in feed] == ["a", "b", "a"]

    async def test_pagination(self, db_session):
        owner = await make_user(db_session, "owner")
        viewer = await make_user(db_session, "viewer")
        videos = [await make_video(db_session, owner, f"v{i}") for i in range(5)]
        await _watch(db_session, viewer, *videos)

        page1 = await get_watch_history(db_session, viewer.id, page=1, limit=2)
        page2 = await get_watch_history(db_session, viewer.id, page=2, limit=2)
        page3 = await get_watch_history(db_session, viewer.id, page=3, limit=2)
        page4 = await get_watch_history(db_session, viewer.id, page=4, limit=2)
        assert [v["title"] for v in page1] == ["v4", "v3"]
        assert [v["title"] for v in page2] == ["v2", "v1"]
        assert [v["title"] for v in page3] == ["v0"]
        assert page4 == []

    async def test_owner_projection(self, db_session):
        owner = await make_user(db_session, "owner", full_name="Owen Owner", avatar_url="https://img/o.png")
        viewer = await make_user(db_session, "viewer")
        a = await make_video(db_session, owner, "a")
        await _watch(db_session, viewer, a)

        [entry] = await get_watch_history(db_session, viewer.id, page=1, limit=10)
        assert entry["owner"] == {
            "id": owner.id,
            "full_name": "Owen Owner",
            "username": "owner",
            "avatar_url": "https://img/o.png",
            "verified": False,
        }
        assert set(entry) == {
            "id", "title", "thumbnail_url", "duration", "views", "is_published", "created_at", "owner",
        }

    async def test_empty_history(self, db_session):
        viewer = await make_user(db_session, "viewer")
        assert await get_watch_history(db_session, viewer.id, page=1, limit=10) == []

    async def test_other_viewers_not_mixed_in(self, db_session):
        owner = await make_user(db_session, "owner")
        viewer = await make_user(db_session, "viewer")
        other = await make_user(db_session, "other")
        a = await make_video(db_session, owner, "a")
        b = await make_video(db_session, owner, "b")
        await _watch(db_session, viewer, a)
        await _watch(db_session, other, b)

        feed = await get_watch_history(db_session, viewer.id, page=1, limit=10)
        assert [v["title"] for v in feed] == ["a"]

    @pytest.mark.parametrize(("page", "limit"), [(0, 10), (1, 0), (-1, 5), (1, -3)])
    async def test_non_positive_pagination_rejected_before_querying(self, page, limit):
        db = AsyncMock()
        with pytest.raises(ValidationError):
            await get_watch_history(db, str(uuid.uuid4()), page=page, limit=limit)
        db.execute.assert_not_awaited()

    async def test_oversized_limit_served_up_to_cap(self, db_session):
        owner = await make_user(db_session, "owner")
        viewer = await make_user(db_session, "viewer")
        a = await make_video(db_session, owner, "a")
        b = await make_video(db_session, owner, "b")
        await _watch(db_session, viewer, a, b)

        feed = await get_watch_history(db_session, viewer.id, page=1, limit=MAX_LIMIT + 1)
        assert [v["title"] for v in feed] == ["b", "a"]


class TestPushToHistory:
    async def test_push_appends(self, db_session):
        owner = await make_user(db_session, "owner")
        viewer = await make_user(db_session, "viewer")
        a = await make_video(db_session, owner, "a")
        b = await make_video(db_session, owner, "b")

        await push_to_watch_history(db_session, viewer, a.id)
        result = await push_to_watch_history(db_session, viewer, b.id)
        await db_session.commit()

        assert result == {"id": viewer.id, "username": "viewer", "watch_history": [a.id, b.id]}
        assert await get_history_ids(db_session, viewer.id) == [a.id, b.id]

    async def test_malformed_id(self, db_session):
        viewer = await make_user(db_session, "viewer")
        with pytest.raises(InvalidInputError):
            await push_to_watch_history(db_session, viewer, "not-a-uuid")

    async def test_unknown_video(self, db_session):
        viewer = await make_user(db_session, "viewer")
        with pytest.raises(NotFoundError):
            await push_to_watch_history(db_session, viewer, str(uuid.uuid4()))

    async def test_unpublished_video(self, db_session):
        owner = await make_user(db_session, "owner")
        viewer = await make_user(db_session, "viewer")
        hidden = await make_video(db_session, owner, "hidden", is_published=False)
        with pytest.raises(NotFoundError):
            await push_to_watch_history(db_session, viewer, hidden.id)


class TestHistoryEndpoints:
    async def test_push_then_read(self, client: AsyncClient, db_session):
        owner = await make_user(db_session, "owner")
        viewer = await make_user(db_session, "viewer")
        a = await make_video(db_session, owner, "a")
        b = await make_video(db_session, owner, "b")
        headers = auth_headers(viewer)

        for video in (a, b, a):
            response = await client.post(f"/api/v1/users/history/{video.id}", headers=headers)
            assert response.status_code == 200
        assert response.json()["watch_history"] == [a.id, b.id, a.id]

        response = await client.get("/api/v1/users/history", params={"page": 1, "limit": 2}, headers=headers)
        assert response.status_code == 200
        data = response.json()
        assert [v["title"] for v in data] == ["a", "b"]
        assert data[0]["owner"]["username"] == "owner"

    async def test_bad_page(self, client: AsyncClient, db_session):
        viewer = await make_user(db_session, "viewer")
        response = await client.get("/api/v1/users/history", params={"page": 0}, headers=auth_headers(viewer))
        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    async def test_malformed_video_id(self, client: AsyncClient, db_session):
        viewer = await make_user(db_session, "viewer")
        response = await client.post("/api/v1/users/history/xyz", headers=auth_headers(viewer))
        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_INPUT"

    async def test_requires_auth(self, client: AsyncClient):
        assert (await client.get("/api/v1/users/history")).status_code == 401
