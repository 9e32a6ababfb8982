"""Email template selection and rendering."""

import uuid

import pytest

from litpad.db.models import User
from litpad.email.service import EmailRenderError, render_email
from litpad.email.tasks import EmailKind, EmailTaskPayload


@pytest.fixture
def alice() -> User:
    return User(
        id=uuid.uuid4(),
        email="alice@example.com",
        username="alice",
        first_name="Alice",
        last_name="Reader",
        password="x",
        otp=123456,
    )


def _payload(kind: EmailKind, **kwargs) -> EmailTaskPayload:
    return EmailTaskPayload(user_id=uuid.uuid4(), email_type=kind, **kwargs)


class TestRender:
    def test_activate_has_code_and_link(self, alice: User) -> None:
        subject, html, text = render_email(_payload(EmailKind.ACTIVATE, token="123456"), alice)
        assert subject == "Activate your account"
        assert "123456" in html
        assert "https://litpad.com/verify-email/123456" in text
        assert "Hi Alice Reader," in text

    def test_reset_link_without_code(self, alice: User) -> None:
        token = "t" * 70
        subject, _html, text = render_email(_payload(EmailKind.RESET, token=token), alice)
        assert subject == "Reset your password"
        assert f"https://litpad.com/reset-password/{token}" in text
        assert "123456" not in text

    def test_reset_by_code(self, alice: User) -> None:
        _subject, _html, text = render_email(_payload(EmailKind.RESET), alice)
        assert "Your password reset code is 123456." in text

    @pytest.mark.parametrize(
        ("kind", "subject"),
        [
            (EmailKind.WELCOME, "Account verified"),
            (EmailKind.RESET_SUCCESS, "Password reset successfully"),
            (EmailKind.PAYMENT_SUCCEEDED, "Payment successful"),
            (EmailKind.PAYMENT_FAILED, "Payment failed"),
            (EmailKind.PAYMENT_CANCELED, "Payment canceled"),
        ],
    )
    def test_subjects(self, alice: User, kind: EmailKind, subject: str) -> None:
        assert render_email(_payload(kind), alice)[0] == subject

    def test_subscription_reminders(self, alice: User) -> None:
        extra = {"subscriptionType": "MONTHLY"}
        subject, _html, text = render_email(_payload(EmailKind.SUBSCRIPTION_EXPIRING, extra_data=extra), alice)
        assert subject == "Subscription close to expiry"
        assert "Your MONTHLY book subscription is about to expire." in text

        subject, _html, text = render_email(_payload(EmailKind.SUBSCRIPTION_EXPIRED, extra_data=extra), alice)
        assert subject == "Subscription expired"
        assert "has expired" in text

    def test_reminder_without_plan(self, alice: User) -> None:
        with pytest.raises(EmailRenderError):
            render_email(_payload(EmailKind.SUBSCRIPTION_EXPIRING), alice)

    def test_name_is_escaped_in_html(self, alice: User) -> None:
        alice.first_name = "<script>"
        _subject, html, _text = render_email(_payload(EmailKind.WELCOME), alice)
        assert "<script>" not in html
