"""Push a notification to its receiver through the notification hub.

Request handlers open a short-lived loopback connection to the hub,
authenticate with the socket secret, write one envelope and close. Delivery
is best-effort: the stored notification stays readable either way.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Literal

from websockets.asyncio.client import connect
from websockets.exceptions import WebSocketException

from litpad.config import get_settings
from litpad.social.schemas import NotificationResponse

if TYPE_CHECKING:
    from litpad.db.models import Notification

logger = logging.getLogger(__name__)

HUB_PATH = "/api/v1/ws/notifications/"


def build_envelope(notification: Notification, status: Literal["CREATED", "DELETED"]) -> dict[str, Any]:
    """Envelope for the hub. DELETED carries only the id and routing fields."""
    if status == "DELETED":
        return {
            "status": status,
            "id": str(notification.id),
            "receiver_id": str(notification.receiver_id),
        }
    envelope = NotificationResponse.model_validate(notification).model_dump(mode="json")
    envelope["status"] = status
    return envelope


async def send_notification_in_socket(
    notification: Notification,
    status: Literal["CREATED", "DELETED"] = "CREATED",
) -> bool:
    """Broadcast ``notification`` to its receiver. Returns False on failure.

    A no-op in TESTING mode.
    """
    settings = get_settings()
    if settings.is_testing:
        return True

    uri = settings.socket_base_url.rstrip("/") + HUB_PATH
    envelope = build_envelope(notification, status)
    try:
        async with connect(
            uri,
            additional_headers={"Authorization": settings.socket_secret},
            open_timeout=settings.socket_timeout_seconds,
            close_timeout=settings.socket_timeout_seconds,
        ) as ws:
            await ws.send(json.dumps(envelope))
    except (OSError, TimeoutError, WebSocketException):
        logger.warning("Failed to push notification %s via socket", notification.id, exc_info=True)
        return False
    return True
