"""Tests for POST /api/v1/otp/send."""

from factories import make_user
from httpx import AsyncClient
from sqlalchemy import select

from videotube.db.models import Otp


class TestSendOtp:
    async def test_register_code_sent(self, client: AsyncClient, mock_email_service, db_session):
        response = await client.post("/api/v1/otp/send", json={"email": "Hana@Example.com", "context": "register"})
        assert response.status_code == 200
        assert response.json() == {"status": "otp_sent", "expires_in": 600}

        kwargs = mock_email_service.send_template.await_args.kwargs
        assert kwargs["to"] == "hana@example.com"
        assert kwargs["template_name"] == "otp_code"
        assert kwargs["context"]["context"] == "register"

        records = (await db_session.execute(select(Otp))).scalars().all()
        assert [r.email for r in records] == ["hana@example.com"]

    async def test_register_for_existing_email_conflicts(self, client: AsyncClient, mock_email_service, db_session):
        await make_user(db_session, "hana", email="hana@example.com")
        response = await client.post("/api/v1/otp/send", json={"email": "hana@example.com", "context": "register"})
        assert response.status_code == 409
        mock_email_service.send_template.assert_not_awaited()

    async def test_cooldown(self, client: AsyncClient, mock_email_service):
        body = {"email": "hana@example.com", "context": "register"}
        assert (await client.post("/api/v1/otp/send", json=body)).status_code == 200
        response = await client.post("/api/v1/otp/send", json=body)
        assert response.status_code == 429
        assert mock_email_service.send_template.await_count == 1

    async def test_cooldown_expiry_set(self, client: AsyncClient, mock_email_service, fake_redis):
        await client.post("/api/v1/otp/send", json={"email": "hana@example.com", "context": "register"})
        cooldown_keys = [k for k in fake_redis.store if k.startswith("otp_cooldown:")]
        assert len(cooldown_keys) == 1
        assert fake_redis.ttls[cooldown_keys[0]] == 60

    async def test_reset_for_unknown_email_is_silent(self, client: AsyncClient, mock_email_service, db_session):
        response = await client.post("/api/v1/otp/send", json={"email": "ghost@example.com", "context": "reset-password"})
        assert response.status_code == 200
        mock_email_service.send_template.assert_not_awaited()
        assert (await db_session.execute(select(Otp))).scalars().all() == []

    async def test_delivery_failure_discards_code(self, client: AsyncClient, mock_email_service, db_session):
        mock_email_service.send_template.return_value = False
        response = await client.post("/api/v1/otp/send", json={"email": "hana@example.com", "context": "register"})
        assert response.status_code == 500
        assert response.json()["error"] == "SERVER_ERROR"
        assert (await db_session.execute(select(Otp))).scalars().all() == []

    async def test_delivery_failure_allows_immediate_retry(
        self, client: AsyncClient, mock_email_service, fake_redis
    ):
        body = {"email": "hana@example.com", "context": "register"}
        mock_email_service.send_template.return_value = False
        assert (await client.post("/api/v1/otp/send", json=body)).status_code == 500
        assert not any(k.startswith("otp_cooldown:") for k in fake_redis.store)

        mock_email_service.send_template.return_value = True
        response = await client.post("/api/v1/otp/send", json=body)
        assert response.status_code == 200
        assert mock_email_service.send_template.await_count == 2

    async def test_unknown_context_rejected(self, client: AsyncClient):
        response = await client.post("/api/v1/otp/send", json={"email": "hana@example.com", "context": "login"})
        assert response.status_code == 422
