"""
HS256 JWT session tokens.

Access and refresh tokens are signed with separate secrets so that a leaked
access secret cannot be used to mint refresh tokens. Refresh tokens carry a
`jti` so every issuance produces a distinct token string.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from videotube.config import get_settings


def _secret_for(token_type: str) -> str:
    settings = get_settings()
    if token_type == "refresh":
        return settings.jwt_refresh_token_secret
    return settings.jwt_access_token_secret


def _encode(user_id: str, token_type: str, lifetime_days: int, **claims: Any) -> str:  # noqa: ANN401
    settings = get_settings()
    issued = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        **claims,
        "sub": user_id,
        "iat": issued,
        "exp": issued + timedelta(days=lifetime_days),
        "iss": settings.jwt_issuer,
        "type": token_type,
    }
    return jwt.encode(payload, _secret_for(token_type), algorithm=settings.jwt_algorithm)


def create_access_token(user_id: str, username: str, email: str) -> str:
    """Short-lived token identifying the user; carries username and email claims."""
    lifetime = get_settings().jwt_access_token_expire_days
    return _encode(user_id, "access", lifetime, username=username, email=email)


def create_refresh_token(user_id: str, *, token_id: str) -> str:
    """Long-lived token whose only use is minting a new pair."""
    lifetime = get_settings().jwt_refresh_token_expire_days
    return _encode(user_id, "refresh", lifetime, jti=token_id)


def verify_token(token: str, expected_type: str = "access") -> dict[str, Any]:
    """
    Verify and decode a JWT token.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired, or wrong type.
    """
    settings = get_settings()
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            _secret_for(expected_type),
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None

    if payload.get("type") != expected_type:
        msg = f"Expected token type '{expected_type}', got '{payload.get('type')}'"
        raise jwt.InvalidTokenError(msg)

    return payload
