"""Request/response schemas for user, session, and channel endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator


# ---------------------------------------------------------------------------
# Registration / login
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Registration request. `otp` is the code emailed for the `register` flow."""

    full_name: str = Field(..., max_length=128)
    email: EmailStr
    username: str = Field(..., max_length=64, pattern=r"^[A-Za-z0-9_.-]*$")
    password: str = Field(..., max_length=128)
    otp: str = Field(..., max_length=16)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower().strip()


class LoginRequest(BaseModel):
    """Login with username or email + password."""

    username: str | None = None
    email: str | None = None
    password: str = Field(..., min_length=1, max_length=128)


class RefreshRequest(BaseModel):
    """Refresh token exchange. The cookie takes precedence when present."""

    refresh_token: str | None = None


class ChangePasswordRequest(BaseModel):
    old_password: str = Field(..., max_length=128)
    new_password: str = Field(..., max_length=128)


class ResetPasswordRequest(BaseModel):
    """Reset password with the code emailed for the `reset-password` flow."""

    email: EmailStr
    otp: str = Field(..., max_length=16)
    new_password: str = Field(..., max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower().strip()


class UpdateAccountRequest(BaseModel):
    full_name: str = Field(..., max_length=128)
    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower().strip()


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """The caller's own profile. Never includes credential material."""

    id: str
    username: str
    email: str
    full_name: str
    avatar_url: str | None = None
    cover_image_url: str | None = None
    verified: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class SessionResponse(BaseModel):
    """Login/refresh response. Tokens are also set as httpOnly cookies."""

    user: UserResponse
    access_token: str
    refresh_token: str


class AvailabilityResponse(BaseModel):
    value: str
    available: bool
    message: str


class StatusResponse(BaseModel):
    status: str
