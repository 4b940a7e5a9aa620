"""
Transactional email delivery.

`EmailService` renders a named template and hands an `OutgoingEmail` to a
delivery backend. Backends: SMTP (aiosmtplib) or the Resend HTTP API, picked
by `VT_EMAIL_PROVIDER`. Backends report failure by returning False; callers
decide whether a failed send is fatal.
"""

from __future__ import annotations

import hashlib
import ssl
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from email.message import EmailMessage
from typing import TYPE_CHECKING, Any

import aiosmtplib
import httpx
import structlog

from videotube.config import get_settings
from videotube.email.templates import otp_code, password_changed

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = structlog.get_logger()


@dataclass(frozen=True)
class OutgoingEmail:
    to: str
    subject: str
    html_body: str
    text_body: str


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------


def _render_otp_code(context: dict[str, Any]) -> tuple[str, str, str]:
    minutes = context.get("expires_minutes") or get_settings().otp_ttl_minutes
    return otp_code(context["code"], context.get("context", ""), minutes)


def _render_password_changed(context: dict[str, Any]) -> tuple[str, str, str]:
    return password_changed(context.get("full_name"))


_TEMPLATE_REGISTRY: dict[str, Callable[[dict[str, Any]], tuple[str, str, str]]] = {
    "otp_code": _render_otp_code,
    "password_changed": _render_password_changed,
}


# ---------------------------------------------------------------------------
# Delivery backends
# ---------------------------------------------------------------------------


class BaseEmailProvider(ABC):
    name: str = "base"

    def __init__(self, from_address: str, from_name: str) -> None:
        self.sender = f"{from_name} <{from_address}>"

    @abstractmethod
    async def deliver(self, message: OutgoingEmail) -> None:
        """Hand the message to the backend; raise on failure."""

    async def send(self, message: OutgoingEmail) -> bool:
        """Deliver `message`. Returns False instead of raising on backend errors."""
        try:
            await self.deliver(message)
        except (aiosmtplib.SMTPException, OSError, httpx.HTTPError):
            logger.exception("email_send_failed", to=message.to, provider=self.name)
            return False
        logger.info("email_sent", to=message.to, subject=message.subject, provider=self.name)
        return True


class SMTPProvider(BaseEmailProvider):
    name = "smtp"

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        from_address: str,
        from_name: str,
        use_tls: bool = True,
    ) -> None:
        super().__init__(from_address, from_name)
        self.host = host
        self.port = port
        self.credentials = {"username": username or None, "password": password or None}
        self.use_tls = use_tls

    def build_mime(self, message: OutgoingEmail) -> EmailMessage:
        mime = EmailMessage()
        mime["From"] = self.sender
        mime["To"] = message.to
        mime["Subject"] = message.subject
        mime.set_content(message.text_body)
        mime.add_alternative(message.html_body, subtype="html")
        return mime

    async def deliver(self, message: OutgoingEmail) -> None:
        await aiosmtplib.send(
            self.build_mime(message),
            hostname=self.host,
            port=self.port,
            start_tls=self.use_tls,
            tls_context=ssl.create_default_context() if self.use_tls else None,
            **self.credentials,
        )


class ResendProvider(BaseEmailProvider):
    name = "resend"

    API_URL = "https://api.resend.com/emails"

    def __init__(
        self,
        api_key: str,
        from_address: str,
        from_name: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(from_address, from_name)
        self.api_key = api_key
        self._transport = transport

    async def deliver(self, message: OutgoingEmail) -> None:
        payload = {
            "from": self.sender,
            "to": [message.to],
            "subject": message.subject,
            "html": message.html_body,
            "text": message.text_body,
        }
        async with httpx.AsyncClient(transport=self._transport, timeout=10.0) as client:
            response = await client.post(
                self.API_URL,
                headers={"Authorization": f"Bearer {self.api_key}"},
                json=payload,
            )
            response.raise_for_status()


def _create_provider() -> BaseEmailProvider:
    settings = get_settings()
    sender = {"from_address": settings.email_from_address, "from_name": settings.email_from_name}
    factories: dict[str, Callable[[], BaseEmailProvider]] = {
        "smtp": lambda: SMTPProvider(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
            **sender,
        ),
        "resend": lambda: ResendProvider(api_key=settings.resend_api_key, **sender),
    }

    name = settings.email_provider.lower()
    if name not in factories:
        msg = f"Unsupported email provider: {name}"
        raise ValueError(msg)
    return factories[name]()


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class EmailService:
    """Template rendering plus a per-recipient hourly cap (when Redis is given)."""

    RATE_LIMIT_WINDOW = 3600

    def __init__(
        self,
        provider: BaseEmailProvider | None = None,
        redis: Redis | None = None,
    ) -> None:
        self.provider = provider or _create_provider()
        self._redis = redis

    async def _within_hourly_cap(self, email: str) -> bool:
        if self._redis is None:
            return True
        key = f"email_rate:{hashlib.sha256(email.lower().encode()).hexdigest()}"
        count = await self._redis.incr(key)
        if count == 1:
            await self._redis.expire(key, self.RATE_LIMIT_WINDOW)
        return count <= get_settings().email_rate_limit_per_hour

    async def send_email(self, to: str, subject: str, html_body: str, text_body: str) -> bool:
        """Returns True if sent, False if capped or the backend failed."""
        if not await self._within_hourly_cap(to):
            logger.warning("email_rate_limited", to=to, subject=subject)
            return False
        return await self.provider.send(OutgoingEmail(to, subject, html_body, text_body))

    async def send_template(self, to: str, template_name: str, context: dict[str, Any]) -> bool:
        """
        Render `template_name` with `context` and send it.

        Raises:
            ValueError: unknown template name.
        """
        render = _TEMPLATE_REGISTRY.get(template_name)
        if render is None:
            msg = f"Unknown template: {template_name}"
            raise ValueError(msg)
        subject, html_body, text_body = render(context)
        return await self.send_email(to, subject, html_body, text_body)


_email_service: EmailService | None = None


def get_email_service(redis: Redis | None = None) -> EmailService:
    """Process-wide EmailService, created on first use."""
    global _email_service  # noqa: PLW0603
    if _email_service is None:
        _email_service = EmailService(redis=redis)
    return _email_service


def reset_email_service() -> None:
    global _email_service  # noqa: PLW0603
    _email_service = None
