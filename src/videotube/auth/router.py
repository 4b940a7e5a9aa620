"""Session router: registration, login and token endpoints under /api/v1/users."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Request, Response, status
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from videotube.auth.cookies import REFRESH_COOKIE, clear_session_cookies, set_session_cookies
from videotube.auth.dependencies import get_current_user
from videotube.auth.schemas import (
    ChangePasswordRequest,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    ResetPasswordRequest,
    SessionResponse,
    StatusResponse,
    UserResponse,
)
from videotube.auth.service import (
    SessionTokens,
    authenticate_user,
    change_password,
    clear_session,
    issue_session,
    refresh_session,
    register_user,
    reset_password,
)
from videotube.database import get_session
from videotube.db.models import User
from videotube.email.service import get_email_service
from videotube.otp.service import OtpContext, verify_otp
from videotube.redis_client import get_redis

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/users", tags=["Authentication"])


def _session_response(response: Response, user: User, tokens: SessionTokens) -> SessionResponse:
    set_session_cookies(response, tokens)
    return SessionResponse(
        user=UserResponse.model_validate(user),
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
    )


# ---------------------------------------------------------------------------
# Registration / login
# ---------------------------------------------------------------------------


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    """Create an account. Requires the code sent for the `register` flow."""
    verification = await verify_otp(db, body.email, body.otp, OtpContext.REGISTER)
    user = await register_user(
        db,
        verification,
        full_name=body.full_name,
        email=body.email,
        username=body.username,
        password=body.password,
    )
    await db.commit()
    return UserResponse.model_validate(user)


@router.post("/login", response_model=SessionResponse)
async def login(
    body: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_session),
    redis: Redis = Depends(get_redis),  # type: ignore[assignment]
) -> SessionResponse:
    """Login with username or email + password."""
    user = await authenticate_user(db, redis, body.username, body.email, body.password)
    tokens = await issue_session(db, user)
    await db.commit()
    logger.info("user_logged_in", user_id=user.id)
    return _session_response(response, user, tokens)


@router.post("/logout", response_model=StatusResponse)
async def logout(
    response: Response,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> StatusResponse:
    """End the session: the stored refresh token is forgotten and cookies cleared."""
    await clear_session(db, user)
    await db.commit()
    clear_session_cookies(response)
    logger.info("user_logged_out", user_id=user.id)
    return StatusResponse(status="logged_out")


@router.post("/refresh-token", response_model=SessionResponse)
async def refresh_token(
    request: Request,
    response: Response,
    body: RefreshRequest | None = None,
    db: AsyncSession = Depends(get_session),
) -> SessionResponse:
    """Rotate both tokens. The refresh cookie takes precedence over the body."""
    raw = request.cookies.get(REFRESH_COOKIE) or (body.refresh_token if body else None)
    user, tokens = await refresh_session(db, raw)
    await db.commit()
    return _session_response(response, user, tokens)


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------


@router.post("/change-password", response_model=StatusResponse)
async def change_password_endpoint(
    body: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: Redis = Depends(get_redis),  # type: ignore[assignment]
) -> StatusResponse:
    """Change password after confirming the old one."""
    await change_password(db, user, body.old_password, body.new_password)
    await db.commit()

    sent = await get_email_service(redis).send_template(
        to=user.email,
        template_name="password_changed",
        context={"full_name": user.full_name},
    )
    if not sent:
        logger.warning("password_changed_email_failed", user_id=user.id)

    return StatusResponse(status="password_changed")


@router.post("/reset-password", response_model=StatusResponse)
async def reset_password_endpoint(
    body: ResetPasswordRequest,
    db: AsyncSession = Depends(get_session),
) -> StatusResponse:
    """Set a new password using the code sent for the `reset-password` flow."""
    verification = await verify_otp(db, body.email, body.otp, OtpContext.RESET_PASSWORD)
    await reset_password(db, verification, body.new_password)
    await db.commit()
    return StatusResponse(status="password_reset_complete")
