"""
One-time password issuance and the verification gate.

The gate runs inside the consuming flow's session: it deletes the record on
success but leaves the commit to the caller, so a failure later in the same
flow rolls the consumption back as well.
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import delete, select

from videotube.config import get_settings
from videotube.db.models import Otp
from videotube.errors import InvalidInputError, NotFoundError, ValidationError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


class OtpContext(str, Enum):
    """Flow a code was issued for."""

    REGISTER = "register"
    RESET_PASSWORD = "reset-password"


@dataclass(frozen=True)
class OtpVerification:
    """Proof that a code was checked and consumed for `email` in `context`."""

    email: str
    context: OtpContext


def _hash_code(code: str) -> str:
    return hashlib.sha256(code.encode()).hexdigest()


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def generate_code(length: int) -> str:
    """Random numeric code of `length` digits."""
    return "".join(secrets.choice("0123456789") for _ in range(length))


async def get_otp(db: AsyncSession, email: str) -> Otp | None:
    result = await db.execute(select(Otp).where(Otp.email == email.lower().strip()))
    return result.scalar_one_or_none()


async def create_otp(db: AsyncSession, email: str, context: OtpContext) -> str:
    """
    Create a pending code for `email`, replacing any earlier one.

    Returns the raw code to deliver. Only its hash is stored.
    """
    settings = get_settings()
    email = email.lower().strip()
    code = generate_code(settings.otp_length)
    now = datetime.now(timezone.utc)

    await db.execute(delete(Otp).where(Otp.email == email))
    db.add(
        Otp(
            email=email,
            code_hash=_hash_code(code),
            context=context.value,
            created_at=now,
            expires_at=now + timedelta(minutes=settings.otp_ttl_minutes),
        )
    )
    await db.flush()
    logger.info("otp_created", email=email, context=context.value)
    return code


async def verify_otp(
    db: AsyncSession,
    email: str | None,
    code: str | None,
    context: OtpContext,
) -> OtpVerification:
    """
    Check `code` for `email` against the pending record for `context`.

    Raises:
        ValidationError: email or code missing.
        NotFoundError: no pending record, or it has expired.
        InvalidInputError: record belongs to another context, or wrong code.
    """
    if not email or not email.strip() or not code or not code.strip():
        msg = "Email and otp are required"
        raise ValidationError(msg)

    record = await get_otp(db, email)
    if record is None:
        msg = "Otp not found"
        raise NotFoundError(msg)

    if _as_utc(record.expires_at) < datetime.now(timezone.utc):
        msg = "Otp is expired"
        raise NotFoundError(msg)

    if record.context != context.value:
        msg = "Invalid otp"
        raise InvalidInputError(msg)

    if not secrets.compare_digest(record.code_hash, _hash_code(code.strip())):
        msg = "Invalid otp"
        raise InvalidInputError(msg)

    await db.delete(record)
    await db.flush()
    logger.info("otp_verified", email=record.email, context=context.value)
    return OtpVerification(email=record.email, context=context)
