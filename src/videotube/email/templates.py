"""
Email templates for VideoTube.

Inline CSS only, for email client compatibility. Each template function
returns (subject, html_body, text_body).
"""

from __future__ import annotations

from html import escape

BG_PAGE = "#0F0F0F"
BG_CARD = "#181818"
ACCENT = "#FF0033"
TEXT_PRIMARY = "#F1F1F1"
TEXT_SECONDARY = "#AAAAAA"
BORDER = "#303030"

_CONTEXT_LABELS = {
    "register": "finish creating your account",
    "reset-password": "reset your password",
}


def _base_layout(content: str, app_name: str = "VideoTube") -> str:
    """Wrap content in the base email layout."""
    return f"""\
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{app_name}</title>
</head>
<body style="margin: 0; padding: 0; background-color: {BG_PAGE}; font-family: Roboto, Arial, sans-serif;">
    <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="100%" style="background-color: {BG_PAGE};">
        <tr>
            <td align="center" style="padding: 40px 20px;">
                <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="560" style="max-width: 560px; width: 100%;">
                    <tr>
                        <td align="center" style="padding-bottom: 24px;">
                            <span style="font-size: 22px; font-weight: 700; color: {ACCENT};">&#9654;</span>
                            <span style="font-size: 22px; font-weight: 700; color: {TEXT_PRIMARY}; margin-left: 8px;">{app_name}</span>
                        </td>
                    </tr>
                    <tr>
                        <td style="background-color: {BG_CARD}; border: 1px solid {BORDER}; border-radius: 12px; padding: 32px;">
                            {content}
                        </td>
                    </tr>
                    <tr>
                        <td align="center" style="padding-top: 24px;">
                            <p style="color: {TEXT_SECONDARY}; font-size: 12px; line-height: 1.5; margin: 0;">
                                This email was sent by {app_name}.<br>
                                If you didn't expect this email, you can safely ignore it.
                            </p>
                        </td>
                    </tr>
                </table>
            </td>
        </tr>
    </table>
</body>
</html>"""


def otp_code(code: str, context: str, expires_minutes: int = 10) -> tuple[str, str, str]:
    """
    One-time verification code.

    Returns:
        (subject, html_body, text_body)
    """
    purpose = _CONTEXT_LABELS.get(context, "continue")
    subject = f"Your VideoTube verification code: {code}"
    content = f"""\
<h1 style="color: {TEXT_PRIMARY}; font-size: 22px; font-weight: 700; margin: 0 0 16px 0;">Your verification code</h1>
<p style="color: {TEXT_SECONDARY}; font-size: 16px; line-height: 1.6; margin: 0 0 24px 0;">
    Use this code to {purpose}.
</p>
<p style="color: {ACCENT}; font-size: 36px; font-weight: 700; letter-spacing: 8px; text-align: center; margin: 0 0 24px 0;">{escape(code)}</p>
<p style="color: {TEXT_SECONDARY}; font-size: 13px; line-height: 1.5; margin: 0;">
    The code expires in <strong style="color: {TEXT_PRIMARY};">{expires_minutes} minutes</strong> and can be used once.
</p>"""
    text_body = (
        f"Your VideoTube verification code is {code}\n\n"
        f"Use it to {purpose}. It expires in {expires_minutes} minutes and can be used once.\n\n"
        f"If you didn't request this code, please ignore this email.\n\n"
        f"-- VideoTube"
    )
    return subject, _base_layout(content), text_body


def password_changed(full_name: str | None) -> tuple[str, str, str]:
    """
    Password changed notification.

    Returns:
        (subject, html_body, text_body)
    """
    name = escape(full_name or "there")
    subject = "Your password has been changed"
    content = f"""\
<h1 style="color: {TEXT_PRIMARY}; font-size: 22px; font-weight: 700; margin: 0 0 16px 0;">Password changed</h1>
<p style="color: {TEXT_SECONDARY}; font-size: 16px; line-height: 1.6; margin: 0 0 8px 0;">Hi {name},</p>
<p style="color: {TEXT_SECONDARY}; font-size: 16px; line-height: 1.6; margin: 0;">
    Your VideoTube password was just changed. If this wasn't you, reset your password right away.
</p>"""
    text_body = (
        f"Hi {full_name or 'there'},\n\n"
        f"Your VideoTube password was just changed.\n\n"
        f"If this wasn't you, reset your password right away.\n\n"
        f"-- VideoTube"
    )
    return subject, _base_layout(content), text_body
