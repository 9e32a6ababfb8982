"""
Email templates for LitPad.

All templates use inline CSS for maximum email client compatibility.
Each template function returns (subject, html_body, text_body).
"""

from __future__ import annotations

from html import escape

# Color constants
BG_PAGE = "#F6F4EF"
BG_CARD = "#FFFFFF"
ACCENT = "#C2410C"
TEXT_PRIMARY = "#1C1917"
TEXT_SECONDARY = "#57534E"
BORDER = "#E7E5E4"

APP_NAME = "LitPad"


def _base_layout(content: str) -> str:
    """Wrap content in the base email layout."""
    return f"""\
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{APP_NAME}</title>
</head>
<body style="margin: 0; padding: 0; background-color: {BG_PAGE}; font-family: Georgia, 'Times New Roman', serif;">
    <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="100%" style="background-color: {BG_PAGE};">
        <tr>
            <td align="center" style="padding: 40px 20px;">
                <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="600" style="max-width: 600px; width: 100%;">
                    <tr>
                        <td align="center" style="padding-bottom: 24px;">
                            <span style="font-size: 26px; font-weight: 700; color: {ACCENT};">{APP_NAME}</span>
                        </td>
                    </tr>
                    <tr>
                        <td style="background-color: {BG_CARD}; border: 1px solid {BORDER}; border-radius: 10px; padding: 36px 32px;">
                            {content}
                        </td>
                    </tr>
                    <tr>
                        <td align="center" style="padding-top: 24px;">
                            <p style="color: {TEXT_SECONDARY}; font-size: 12px; line-height: 1.5; margin: 0;">
                                You are receiving this email because you have a {APP_NAME} account.
                            </p>
                        </td>
                    </tr>
                </table>
            </td>
        </tr>
    </table>
</body>
</html>"""


def _paragraph(text: str) -> str:
    return f'<p style="color: {TEXT_SECONDARY}; font-size: 16px; line-height: 1.6; margin: 0 0 16px 0;">{text}</p>'


def _heading(text: str) -> str:
    return f'<h1 style="color: {TEXT_PRIMARY}; font-size: 22px; margin: 0 0 16px 0;">{text}</h1>'


def _button(url: str, label: str) -> str:
    """Render a CTA button."""
    return f"""\
<table role="presentation" cellspacing="0" cellpadding="0" border="0" style="margin: 24px auto;">
    <tr>
        <td align="center" style="background-color: {ACCENT}; border-radius: 6px;">
            <a href="{escape(url, quote=True)}" target="_blank" style="display: inline-block; padding: 12px 28px; color: #FFFFFF; font-size: 16px; text-decoration: none;">
                {label}
            </a>
        </td>
    </tr>
</table>"""


def _code(otp: int | str) -> str:
    return (
        f'<p style="text-align: center; font-size: 30px; letter-spacing: 6px; '
        f'color: {TEXT_PRIMARY}; margin: 24px 0;"><strong>{escape(str(otp))}</strong></p>'
    )


def activate(name: str, otp: int | str | None, url: str | None) -> tuple[str, str, str]:
    """Account activation: the OTP, plus a link when one was given."""
    subject = "Activate your account"
    parts = [_heading("Verify your email"), _paragraph(f"Hi {escape(name)},")]
    text = [f"Hi {name},", ""]
    if otp is not None:
        parts += [_paragraph("Use this code to activate your account:"), _code(otp)]
        text += [f"Your activation code is {otp}.", ""]
    if url:
        parts.append(_button(url, "Activate account"))
        text += [f"Or activate from this link: {url}", ""]
    text.append(f"-- The {APP_NAME} Team")
    return subject, _base_layout("\n".join(parts)), "\n".join(text)


def welcome(name: str) -> tuple[str, str, str]:
    subject = "Account verified"
    body = (
        _heading(f"Welcome to {APP_NAME}!")
        + _paragraph(f"Hi {escape(name)},")
        + _paragraph("Your account is verified. Start reading, follow your favourite writers and send them gifts.")
    )
    text = f"Hi {name},\n\nYour account is verified. Welcome to {APP_NAME}!\n\n-- The {APP_NAME} Team"
    return subject, _base_layout(body), text


def reset(name: str, otp: int | str | None, url: str | None) -> tuple[str, str, str]:
    """Password reset by code or by link."""
    subject = "Reset your password"
    parts = [_heading("Reset your password"), _paragraph(f"Hi {escape(name)},")]
    text = [f"Hi {name},", ""]
    if otp is not None:
        parts += [_paragraph("Use this code to set a new password:"), _code(otp)]
        text += [f"Your password reset code is {otp}.", ""]
    if url:
        parts.append(_button(url, "Reset password"))
        text += [f"Reset your password here: {url}", ""]
    parts.append(_paragraph("If you didn't request this, you can safely ignore this email."))
    text += ["If you didn't request this, ignore this email.", "", f"-- The {APP_NAME} Team"]
    return subject, _base_layout("\n".join(parts)), "\n".join(text)


def reset_success(name: str) -> tuple[str, str, str]:
    subject = "Password reset successfully"
    body = _heading("Password updated") + _paragraph(
        f"Hi {escape(name)}, your password was reset successfully. "
        "If this wasn't you, contact support immediately."
    )
    text = f"Hi {name},\n\nYour password was reset successfully.\n\n-- The {APP_NAME} Team"
    return subject, _base_layout(body), text


def payment(name: str, outcome: str, description: str) -> tuple[str, str, str]:
    """Payment outcome: ``succeeded``, ``failed`` or ``canceled``."""
    subjects = {
        "succeeded": "Payment successful",
        "failed": "Payment failed",
        "canceled": "Payment canceled",
    }
    lines = {
        "succeeded": f"Your payment for {description} went through.",
        "failed": f"Your payment for {description} failed. No charge was made.",
        "canceled": f"Your payment for {description} was canceled.",
    }
    subject = subjects[outcome]
    body = _heading(subject) + _paragraph(f"Hi {escape(name)},") + _paragraph(escape(lines[outcome]))
    text = f"Hi {name},\n\n{lines[outcome]}\n\n-- The {APP_NAME} Team"
    return subject, _base_layout(body), text


def subscription_expiring(name: str, plan: str) -> tuple[str, str, str]:
    subject = "Subscription close to expiry"
    line = f"Your {plan} book subscription is about to expire."
    body = _heading(subject) + _paragraph(f"Hi {escape(name)},") + _paragraph(escape(line))
    text = f"Hi {name},\n\n{line}\n\n-- The {APP_NAME} Team"
    return subject, _base_layout(body), text


def subscription_expired(name: str, plan: str) -> tuple[str, str, str]:
    subject = "Subscription expired"
    line = f"Your {plan} book subscription has expired. Please renew your subscription"
    body = _heading(subject) + _paragraph(f"Hi {escape(name)},") + _paragraph(escape(line))
    text = f"Hi {name},\n\n{line}\n\n-- The {APP_NAME} Team"
    return subject, _base_layout(body), text
