"""Session cookie helpers."""

from __future__ import annotations

from fastapi import Response

from videotube.auth.service import SessionTokens
from videotube.config import get_settings

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"

_DAY_SECONDS = 24 * 60 * 60


def set_session_cookies(response: Response, tokens: SessionTokens) -> None:
    """Attach both tokens as httpOnly cookies with their own lifetimes."""
    settings = get_settings()
    common = {
        "httponly": True,
        "secure": settings.is_production,
        "samesite": "strict",
    }
    response.set_cookie(
        ACCESS_COOKIE,
        tokens.access_token,
        max_age=settings.jwt_access_token_expire_days * _DAY_SECONDS,
        **common,
    )
    response.set_cookie(
        REFRESH_COOKIE,
        tokens.refresh_token,
        max_age=settings.jwt_refresh_token_expire_days * _DAY_SECONDS,
        **common,
    )


def clear_session_cookies(response: Response) -> None:
    settings = get_settings()
    for name in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.delete_cookie(name, httponly=True, secure=settings.is_production, samesite="strict")
