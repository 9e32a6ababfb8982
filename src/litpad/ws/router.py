"""Notification WebSocket endpoint.

Protocol:
    Connect with ``Authorization: Bearer <access token>`` to receive the
    notifications addressed to you, or with the socket secret to join as a
    broadcaster.

    Broadcaster -> Server:
        {...notification fields, "status": "CREATED" | "DELETED", "receiver_id": "<uuid>"}

    Server -> User socket:
        the same envelope, only when receiver_id is that user

    Server -> Client on error:
        {"status": "failure", "code": 4001 | 4220, "type": "...", "message": "..."}
"""

import secrets
import uuid

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from litpad.auth.dependencies import resolve_access_token
from litpad.config import get_settings
from litpad.database import get_session_factory
from litpad.exceptions import LitPadError
from litpad.middleware.error_handler import validation_details
from litpad.social.notification_service import delete_notification
from litpad.social.schemas import SocketEnvelope
from litpad.ws.manager import INVALID_ENTRY, UNAUTHORIZED, hub, socket_error

logger = structlog.get_logger()

router = APIRouter()


def _is_socket_secret(header: str) -> bool:
    secret = get_settings().socket_secret
    token = header.removeprefix("Bearer ").strip()
    return bool(secret) and secrets.compare_digest(token.encode(), secret.encode())


async def _reject(websocket: WebSocket, message: str) -> None:
    await websocket.accept()
    await websocket.send_json(socket_error(UNAUTHORIZED, "unauthorized_user", message))
    await websocket.close(code=UNAUTHORIZED)


@router.websocket("/api/v1/ws/notifications/")
async def notifications_socket(websocket: WebSocket) -> None:
    """Single notification socket shared by users and internal broadcasters."""
    header = websocket.headers.get("authorization", "")
    user_id: uuid.UUID | None = None
    is_broadcaster = _is_socket_secret(header) if header else False

    if not is_broadcaster:
        if not header.startswith("Bearer "):
            await _reject(websocket, "Auth Bearer Not Provided")
            return
        try:
            async with get_session_factory()() as db:
                user = await resolve_access_token(db, header.removeprefix("Bearer ").strip())
        except LitPadError as e:
            await _reject(websocket, e.message)
            return
        user_id = user.id

    conn_id = str(uuid.uuid4())
    await hub.connect(websocket, conn_id, user_id=user_id, is_broadcaster=is_broadcaster)

    try:
        while True:
            raw = await websocket.receive_text()
            if not is_broadcaster:
                await websocket.send_json(
                    socket_error(UNAUTHORIZED, "unauthorized_user", "Not authorized to send messages")
                )
                await websocket.close(code=UNAUTHORIZED)
                break

            try:
                envelope = SocketEnvelope.model_validate_json(raw)
            except ValidationError as e:
                await websocket.send_json(
                    socket_error(INVALID_ENTRY, "invalid_entry", "Invalid entry", validation_details(e.errors()))
                )
                continue

            delivered = await hub.broadcast(envelope.receiver_id, envelope.model_dump(mode="json"))
            logger.debug("ws_broadcast", receiver_id=str(envelope.receiver_id), delivered=delivered)

            if envelope.status == "DELETED" and envelope.id is not None:
                async with get_session_factory()() as db:
                    await delete_notification(db, envelope.id)

    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("ws_error", conn_id=conn_id)
    finally:
        await hub.disconnect(conn_id)
