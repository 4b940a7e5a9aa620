"""OTP router: /api/v1/otp/* endpoints."""

from __future__ import annotations

import hashlib

import structlog
from fastapi import APIRouter, Depends
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from videotube.auth.service import get_user_by_email
from videotube.config import get_settings
from videotube.database import get_session
from videotube.email.service import get_email_service
from videotube.errors import ConflictError, ServerError, TooManyRequestsError
from videotube.otp.schemas import SendOtpRequest, SendOtpResponse
from videotube.otp.service import OtpContext, create_otp
from videotube.redis_client import get_redis

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/otp", tags=["OTP"])


@router.post("/send", response_model=SendOtpResponse)
async def send_otp(
    body: SendOtpRequest,
    db: AsyncSession = Depends(get_session),
    redis: Redis = Depends(get_redis),  # type: ignore[assignment]
) -> SendOtpResponse:
    """Issue a code for the given flow and email it."""
    settings = get_settings()
    existing = await get_user_by_email(db, body.email)

    if body.context is OtpContext.REGISTER and existing is not None:
        msg = "User with this email already exists"
        raise ConflictError(msg)

    cooldown_key = f"otp_cooldown:{hashlib.sha256(body.email.encode()).hexdigest()}"
    if await redis.get(cooldown_key):
        msg = "Please wait before requesting another code"
        raise TooManyRequestsError(msg)
    await redis.set(cooldown_key, "1", ex=settings.otp_resend_cooldown_seconds)

    response = SendOtpResponse(status="otp_sent", expires_in=settings.otp_ttl_minutes * 60)

    # Unknown accounts get the same answer as known ones.
    if body.context is OtpContext.RESET_PASSWORD and existing is None:
        logger.info("otp_skipped_unknown_email", context=body.context.value)
        return response

    code = await create_otp(db, body.email, body.context)
    email_service = get_email_service(redis)
    sent = await email_service.send_template(
        to=body.email,
        template_name="otp_code",
        context={"code": code, "context": body.context.value},
    )
    if not sent:
        await db.rollback()
        await redis.delete(cooldown_key)
        msg = "Failed to send otp"
        raise ServerError(msg)

    await db.commit()
    logger.info("otp_sent", email=body.email, context=body.context.value)
    return response
