"""
Authentication business logic.

Handles registration, login with lockout, session token issuance and
rotation, and password changes.
"""

from __future__ import annotations

import hashlib
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import jwt
import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError

from videotube.auth.jwt import create_access_token, create_refresh_token, verify_token
from videotube.auth.password import (
    PasswordStrengthError,
    check_needs_rehash,
    hash_password,
    validate_password_strength,
    verify_password,
)
from videotube.config import get_settings
from videotube.db.models import User
from videotube.errors import (
    AuthError,
    ConflictError,
    NotFoundError,
    ServerError,
    TooManyRequestsError,
    ValidationError,
)
from videotube.otp.service import OtpContext, OtpVerification

if TYPE_CHECKING:
    from redis.asyncio import Redis
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


@dataclass(frozen=True)
class SessionTokens:
    access_token: str
    refresh_token: str


def _hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def _require(**fields: str | None) -> None:
    """Raise ValidationError if any named field is missing or blank."""
    if any(value is None or not value.strip() for value in fields.values()):
        msg = "All fields are required"
        raise ValidationError(msg)


# ---------------------------------------------------------------------------
# User queries
# ---------------------------------------------------------------------------


async def get_user_by_id(db: AsyncSession, user_id: str) -> User | None:
    """Fetch a user by ID."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Fetch a user by email (case-insensitive)."""
    result = await db.execute(select(User).where(func.lower(User.email) == email.lower().strip()))
    return result.scalar_one_or_none()


async def get_user_by_username(db: AsyncSession, username: str) -> User | None:
    """Fetch a user by username (stored lowercase)."""
    result = await db.execute(select(User).where(User.username == username.lower().strip()))
    return result.scalar_one_or_none()


async def find_user_by_username_or_email(
    db: AsyncSession,
    username: str | None,
    email: str | None,
) -> User | None:
    """First user matching either identifier."""
    clauses = []
    if username:
        clauses.append(User.username == username.lower().strip())
    if email:
        clauses.append(func.lower(User.email) == email.lower().strip())
    if not clauses:
        return None
    result = await db.execute(select(User).where(or_(*clauses)).limit(1))
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Availability probes
# ---------------------------------------------------------------------------


async def is_username_available(db: AsyncSession, username: str) -> bool:
    """True when no user holds `username`. Advisory: racy against registration."""
    return await get_user_by_username(db, username) is None


async def is_email_available(db: AsyncSession, email: str) -> bool:
    """True when no user holds `email`. Advisory: racy against registration."""
    return await get_user_by_email(db, email) is None


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


async def register_user(
    db: AsyncSession,
    verification: OtpVerification | None,
    full_name: str,
    email: str,
    username: str,
    password: str,
) -> User:
    """
    Create a user after a successful OTP check for the same email.

    Raises:
        ValidationError: blank field, weak password, or missing/mismatched verification.
        ConflictError: username or email already registered.
    """
    _require(full_name=full_name, email=email, username=username, password=password)

    email = email.lower().strip()
    if (
        verification is None
        or verification.context is not OtpContext.REGISTER
        or verification.email != email
    ):
        msg = "Invalid otp"
        raise ValidationError(msg)

    try:
        validate_password_strength(password)
    except PasswordStrengthError as e:
        raise ValidationError(str(e)) from e

    if await find_user_by_username_or_email(db, username, email) is not None:
        msg = "User with email or username already exists"
        raise ConflictError(msg)

    now = datetime.now(timezone.utc)
    user = User(
        full_name=full_name.strip(),
        email=email,
        username=username.lower().strip(),
        password_hash=hash_password(password),
        verified=False,
        created_at=now,
        updated_at=now,
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError as e:
        # Lost a race with a concurrent registration of the same username or email.
        await db.rollback()
        msg = "User with email or username already exists"
        raise ConflictError(msg) from e
    logger.info("user_registered", user_id=user.id, username=user.username)
    return user


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


async def authenticate_user(
    db: AsyncSession,
    redis: Redis,
    username: str | None,
    email: str | None,
    password: str,
) -> User:
    """
    Authenticate by username or email plus password.

    Raises:
        ValidationError: neither username nor email given.
        AuthError: unknown user or wrong password.
        TooManyRequestsError: account temporarily locked.
    """
    if not (username or email):
        msg = "username or email is required"
        raise ValidationError(msg)

    user = await find_user_by_username_or_email(db, username, email)
    if user is None:
        msg = "Invalid user credentials"
        raise AuthError(msg)

    if await check_account_lockout(redis, user.id):
        msg = "Account temporarily locked. Try again later."
        raise TooManyRequestsError(msg)

    if not verify_password(password, user.password_hash):
        await increment_failed_login(redis, user.id)
        msg = "Invalid user credentials"
        raise AuthError(msg)

    await clear_failed_login(redis, user.id)

    if check_needs_rehash(user.password_hash):
        user.password_hash = hash_password(password)
        await db.flush()
        logger.info("password_rehashed", user_id=user.id)

    return user


async def check_account_lockout(redis: Redis, user_id: str) -> bool:
    """Check if the account is locked due to too many failed login attempts."""
    settings = get_settings()
    count_str = await redis.get(f"login_attempts:{user_id}")
    if count_str is None:
        return False
    return int(count_str) >= settings.account_lockout_threshold


async def increment_failed_login(redis: Redis, user_id: str) -> int:
    """Increment failed login counter. Returns the new count."""
    settings = get_settings()
    key = f"login_attempts:{user_id}"
    count = await redis.incr(key)
    if count == 1:
        await redis.expire(key, settings.account_lockout_duration_minutes * 60)
    return int(count)


async def clear_failed_login(redis: Redis, user_id: str) -> None:
    """Clear the failed login counter after a successful login."""
    await redis.delete(f"login_attempts:{user_id}")


# ---------------------------------------------------------------------------
# Session tokens
# ---------------------------------------------------------------------------


async def issue_session(db: AsyncSession, user: User) -> SessionTokens:
    """
    Mint an access/refresh pair and make the refresh token the only valid one.

    Raises:
        ServerError: if token creation fails.
    """
    try:
        access_token = create_access_token(user.id, user.username, user.email)
        refresh_token = create_refresh_token(user.id, token_id=str(uuid.uuid4()))
    except Exception as e:
        logger.exception("token_issue_failed", user_id=user.id)
        msg = "Something went wrong while generating tokens"
        raise ServerError(msg) from e

    user.refresh_token_hash = _hash_token(refresh_token)
    await db.flush()
    return SessionTokens(access_token=access_token, refresh_token=refresh_token)


async def refresh_session(db: AsyncSession, raw_refresh_token: str | None) -> tuple[User, SessionTokens]:
    """
    Exchange the current refresh token for a new pair.

    A token that verifies but is not the stored current token has been
    rotated out or revoked and is rejected.

    Raises:
        AuthError: missing, invalid, expired, or reused token.
    """
    if not raw_refresh_token:
        msg = "Unauthorized request"
        raise AuthError(msg)

    try:
        payload = verify_token(raw_refresh_token, expected_type="refresh")
    except jwt.InvalidTokenError as e:
        msg = str(e) or "Invalid refresh token"
        raise AuthError(msg) from e

    user = await get_user_by_id(db, payload.get("sub", ""))
    if user is None:
        msg = "Invalid refresh token"
        raise AuthError(msg)

    if user.refresh_token_hash is None or not secrets.compare_digest(
        user.refresh_token_hash, _hash_token(raw_refresh_token)
    ):
        logger.warning("refresh_token_reuse", user_id=user.id)
        msg = "Refresh token is expired or used"
        raise AuthError(msg)

    tokens = await issue_session(db, user)
    return user, tokens


async def clear_session(db: AsyncSession, user: User) -> None:
    """Forget the stored refresh token so it can no longer be exchanged."""
    user.refresh_token_hash = None
    await db.flush()


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------


async def change_password(
    db: AsyncSession,
    user: User,
    old_password: str,
    new_password: str,
) -> User:
    """
    Replace the password after checking the old one.

    Raises:
        ValidationError: missing field, wrong old password, unchanged, or weak.
    """
    _require(old_password=old_password, new_password=new_password)

    if not verify_password(old_password, user.password_hash):
        msg = "Invalid old password"
        raise ValidationError(msg)
    if verify_password(new_password, user.password_hash):
        msg = "Old password and New password are same"
        raise ValidationError(msg)

    try:
        validate_password_strength(new_password)
    except PasswordStrengthError as e:
        raise ValidationError(str(e)) from e

    user.password_hash = hash_password(new_password)
    user.updated_at = datetime.now(timezone.utc)
    await db.flush()
    logger.info("password_changed", user_id=user.id)
    return user


async def reset_password(
    db: AsyncSession,
    verification: OtpVerification | None,
    new_password: str,
) -> User:
    """
    Set a new password for the verified email and end its session.

    Raises:
        ValidationError: missing/mismatched verification or weak password.
        NotFoundError: no user holds the verified email.
    """
    if verification is None or verification.context is not OtpContext.RESET_PASSWORD:
        msg = "Invalid otp"
        raise ValidationError(msg)

    try:
        validate_password_strength(new_password)
    except PasswordStrengthError as e:
        raise ValidationError(str(e)) from e

    user = await get_user_by_email(db, verification.email)
    if user is None:
        msg = "User does not exist"
        raise NotFoundError(msg)

    user.password_hash = hash_password(new_password)
    user.refresh_token_hash = None
    user.updated_at = datetime.now(timezone.utc)
    await db.flush()
    logger.info("password_reset", user_id=user.id)
    return user
