"""
Email rendering and SMTP delivery.

``render_email`` maps an email kind to its template; ``EmailService`` hands
the rendered message to a provider. SMTP (via aiosmtplib) is the only
transport in production; tests swap in a mock provider.
"""

from __future__ import annotations

import ssl
from abc import ABC, abstractmethod
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import TYPE_CHECKING, Any

import aiosmtplib
import structlog

from litpad.config import get_settings
from litpad.email import templates

if TYPE_CHECKING:
    from litpad.db.models import User
    from litpad.email.tasks import EmailTaskPayload

logger = structlog.get_logger()


class EmailRenderError(ValueError):
    """The payload cannot be turned into an email (unknown kind, missing data)."""


def _link(path: str, token: str | None) -> str | None:
    if not token:
        return None
    settings = get_settings()
    return f"{settings.frontend_base_url.rstrip('/')}/{path.strip('/')}/{token}"


def _plan(extra: dict[str, Any]) -> str:
    plan = extra.get("subscriptionType")
    if not plan:
        msg = "subscriptionType is required for subscription reminders"
        raise EmailRenderError(msg)
    return str(plan)


def render_email(payload: EmailTaskPayload, user: User) -> tuple[str, str, str]:
    """
    Render (subject, html_body, text_body) for a queued email.

    Raises:
        EmailRenderError: On an unknown kind or missing template data.
    """
    settings = get_settings()
    name = user.full_name
    extra = payload.extra_data or {}
    kind = str(payload.email_type)

    if kind == "activate":
        url = payload.url or _link(settings.email_verification_path, payload.token)
        return templates.activate(name, user.otp, url)
    if kind == "reset":
        url = payload.url or _link(settings.password_reset_path, payload.token)
        return templates.reset(name, user.otp if not url else None, url)
    if kind == "reset-success":
        return templates.reset_success(name)
    if kind == "welcome":
        return templates.welcome(name)
    if kind in ("payment_succeeded", "payment_failed", "payment_canceled"):
        description = str(extra.get("description", "your order"))
        return templates.payment(name, kind.removeprefix("payment_"), description)
    if kind == "subscription_expiring":
        return templates.subscription_expiring(name, _plan(extra))
    if kind == "subscription_expired":
        return templates.subscription_expired(name, _plan(extra))

    msg = f"Unknown email kind: {kind}"
    raise EmailRenderError(msg)


class BaseEmailProvider(ABC):
    """Abstract base class for email delivery providers."""

    @abstractmethod
    async def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: str,
    ) -> bool:
        """Send an email. Returns True on success."""
        ...


class SMTPProvider(BaseEmailProvider):
    """Send emails via SMTP using aiosmtplib."""

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        from_address: str,
        from_name: str,
        use_tls: bool = True,
        timeout: float = 30.0,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_address = from_address
        self.from_name = from_name
        self.use_tls = use_tls
        self.timeout = timeout

    async def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: str,
    ) -> bool:
        msg = MIMEMultipart("alternative")
        msg["From"] = f"{self.from_name} <{self.from_address}>"
        msg["To"] = to_email
        msg["Subject"] = subject
        msg.attach(MIMEText(text_body, "plain", "utf-8"))
        msg.attach(MIMEText(html_body, "html", "utf-8"))

        try:
            tls_context = ssl.create_default_context() if self.use_tls else None
            await aiosmtplib.send(
                msg,
                hostname=self.host,
                port=self.port,
                username=self.username or None,
                password=self.password or None,
                start_tls=self.use_tls,
                tls_context=tls_context,
                timeout=self.timeout,
            )
        except (aiosmtplib.SMTPException, OSError, TimeoutError):
            logger.exception("email_send_failed", to=to_email, provider="smtp")
            return False
        logger.info("email_sent", to=to_email, subject=subject, provider="smtp")
        return True


def _create_provider() -> BaseEmailProvider:
    settings = get_settings()
    return SMTPProvider(
        host=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.smtp_username,
        password=settings.smtp_password,
        from_address=settings.email_from_address,
        from_name=settings.email_from_name,
        use_tls=settings.smtp_use_tls,
        timeout=settings.smtp_timeout_seconds,
    )


class EmailService:
    """Render-and-send front door used by the email task handler."""

    def __init__(self, provider: BaseEmailProvider | None = None) -> None:
        self.provider = provider or _create_provider()

    async def send_email(self, to: str, subject: str, html_body: str, text_body: str) -> bool:
        """Returns True if the provider accepted the message."""
        return await self.provider.send(to, subject, html_body, text_body)

    async def send_rendered(self, payload: EmailTaskPayload, user: User) -> bool:
        """Render ``payload`` for ``user`` and send it.

        Raises:
            EmailRenderError: If the payload cannot be rendered.
        """
        subject, html_body, text_body = render_email(payload, user)
        return await self.send_email(user.email, subject, html_body, text_body)


# Module-level singleton
_email_service: EmailService | None = None


def get_email_service() -> EmailService:
    """Get or create the email service singleton."""
    global _email_service  # noqa: PLW0603
    if _email_service is None:
        _email_service = EmailService()
    return _email_service


def reset_email_service() -> None:
    """Reset the email service singleton (for testing)."""
    global _email_service  # noqa: PLW0603
    _email_service = None
