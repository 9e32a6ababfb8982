"""
The ``send_email`` task: payload, producer helper and worker handler.

The payload is self-contained; a worker needs only a database handle to
load the addressed user and render the message.
"""

from __future__ import annotations

import uuid
from enum import StrEnum
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import BaseModel, ValidationError

from litpad.config import get_settings
from litpad.db.models import Task, User
from litpad.email.service import EmailRenderError, get_email_service
from litpad.tasks.queue import CRITICAL, PermanentTaskError, RetryableTaskError, enqueue

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from litpad.tasks.worker import TaskContext

logger = structlog.get_logger()

SEND_EMAIL = "send_email"


class EmailKind(StrEnum):
    ACTIVATE = "activate"
    WELCOME = "welcome"
    RESET = "reset"
    RESET_SUCCESS = "reset-success"
    PAYMENT_SUCCEEDED = "payment_succeeded"
    PAYMENT_FAILED = "payment_failed"
    PAYMENT_CANCELED = "payment_canceled"
    SUBSCRIPTION_EXPIRING = "subscription_expiring"
    SUBSCRIPTION_EXPIRED = "subscription_expired"


class EmailTaskPayload(BaseModel):
    """Wire format of a ``send_email`` task (JSON bytes)."""

    user_id: uuid.UUID
    email_type: EmailKind
    token: str | None = None
    url: str | None = None
    extra_data: dict[str, Any] | None = None


async def queue_email_task(
    db: AsyncSession,
    user_id: uuid.UUID,
    kind: EmailKind,
    *,
    token: str | None = None,
    url: str | None = None,
    extra_data: dict[str, Any] | None = None,
) -> Task:
    """Enqueue a ``send_email`` task on the critical queue."""
    payload = EmailTaskPayload(user_id=user_id, email_type=kind, token=token, url=url, extra_data=extra_data)
    return await enqueue(db, SEND_EMAIL, payload.model_dump_json().encode(), priority=CRITICAL)


async def queue_email_quietly(db: AsyncSession, user_id: uuid.UUID, kind: EmailKind, **kwargs: Any) -> bool:  # noqa: ANN401
    """Enqueue for a request path whose action must succeed without the email.

    Returns False (and logs) when the enqueue itself fails.
    """
    try:
        await queue_email_task(db, user_id, kind, **kwargs)
    except Exception:
        logger.exception("email_enqueue_failed", user_id=str(user_id), kind=str(kind))
        return False
    return True


async def send_email_task(ctx: TaskContext, payload: bytes) -> None:
    """Worker handler for ``send_email``.

    Raises:
        PermanentTaskError: Bad payload, unknown user, or an unrenderable email.
        RetryableTaskError: The SMTP provider rejected or dropped the message.
    """
    try:
        data = EmailTaskPayload.model_validate_json(payload)
    except ValidationError as e:
        msg = f"Malformed email payload: {e.error_count()} error(s)"
        raise PermanentTaskError(msg) from e

    if get_settings().is_testing:
        return

    async with ctx.session_factory() as db:
        user = await db.get(User, data.user_id)
    if user is None:
        msg = f"User {data.user_id} no longer exists"
        raise PermanentTaskError(msg)

    try:
        sent = await get_email_service().send_rendered(data, user)
    except EmailRenderError as e:
        raise PermanentTaskError(str(e)) from e
    if not sent:
        msg = f"SMTP delivery failed for {data.email_type} to user {data.user_id}"
        raise RetryableTaskError(msg)
    logger.info("email_task_sent", user_id=str(data.user_id), kind=str(data.email_type), attempt=ctx.attempt)
