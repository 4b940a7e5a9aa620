"""Request/response schemas for OTP endpoints."""

from __future__ import annotations

from pydantic import BaseModel, EmailStr, field_validator

from videotube.otp.service import OtpContext


class SendOtpRequest(BaseModel):
    """Request a code for `email` in a specific flow."""

    email: EmailStr
    context: OtpContext

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower().strip()


class SendOtpResponse(BaseModel):
    status: str
    expires_in: int
