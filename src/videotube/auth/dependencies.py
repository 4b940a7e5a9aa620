"""FastAPI authentication dependencies."""

from __future__ import annotations

import jwt
from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from videotube.auth.cookies import ACCESS_COOKIE
from videotube.auth.jwt import verify_token
from videotube.auth.service import get_user_by_id
from videotube.database import get_session
from videotube.db.models import User
from videotube.errors import AuthError

_bearer = HTTPBearer(auto_error=False)


def _candidate_tokens(request: Request, credentials: HTTPAuthorizationCredentials | None) -> list[str]:
    """Access tokens to try, session cookie first, then the bearer header."""
    tokens = [request.cookies.get(ACCESS_COOKIE), credentials.credentials if credentials else None]
    return [token for token in tokens if token]


async def _resolve_user(db: AsyncSession, token: str) -> User:
    try:
        payload = verify_token(token, expected_type="access")
    except jwt.InvalidTokenError as e:
        raise AuthError(str(e) or "Invalid access token") from e

    user = await get_user_by_id(db, payload["sub"])
    if user is None:
        msg = "Invalid access token"
        raise AuthError(msg)
    return user


async def _resolve_first(db: AsyncSession, tokens: list[str]) -> User:
    """First token that resolves to a user; a stale cookie does not mask a valid header."""
    if not tokens:
        msg = "Unauthorized request"
        raise AuthError(msg)
    for token in tokens[:-1]:
        try:
            return await _resolve_user(db, token)
        except AuthError:
            continue
    return await _resolve_user(db, tokens[-1])


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> User:
    """
    Resolve the viewer from the access token.

    Raises AuthError (401) when no valid token is presented.
    """
    return await _resolve_first(db, _candidate_tokens(request, credentials))


async def get_optional_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> User | None:
    """Same as get_current_user, but anonymous or invalid sessions yield None."""
    try:
        return await _resolve_first(db, _candidate_tokens(request, credentials))
    except AuthError:
        return None
