"""Notification hub: registry of live notification sockets.

Each connection is either a user socket (receives envelopes addressed to
its user) or a broadcaster (authenticated with the socket secret, allowed
to send). One asyncio lock guards the registry; it is never held across
socket I/O.
"""

import asyncio
import json
import time
import uuid
from dataclasses import dataclass, field
from typing import Any

import structlog
from fastapi import WebSocket

logger = structlog.get_logger()

# Close / error codes
UNAUTHORIZED = 4001
INVALID_ENTRY = 4220


@dataclass
class ClientConnection:
    """Represents a single WebSocket client."""

    websocket: WebSocket
    user_id: uuid.UUID | None
    is_broadcaster: bool = False
    connected_at: float = field(default_factory=time.time)
    messages_sent: int = 0


def socket_error(code: int, error_type: str, message: str, data: Any = None) -> dict[str, Any]:  # noqa: ANN401
    """Error frame written before a socket is closed."""
    payload: dict[str, Any] = {"status": "failure", "code": code, "type": error_type, "message": message}
    if data is not None:
        payload["data"] = data
    return payload


class NotificationHub:
    """Registry of live connections keyed by connection id."""

    def __init__(self) -> None:
        self._clients: dict[str, ClientConnection] = {}
        self._lock = asyncio.Lock()

    @property
    def connection_count(self) -> int:
        return len(self._clients)

    async def connect(
        self,
        websocket: WebSocket,
        conn_id: str,
        *,
        user_id: uuid.UUID | None = None,
        is_broadcaster: bool = False,
    ) -> None:
        """Accept the socket, then register it."""
        await websocket.accept()
        async with self._lock:
            self._clients[conn_id] = ClientConnection(
                websocket=websocket,
                user_id=user_id,
                is_broadcaster=is_broadcaster,
            )
        logger.info(
            "ws_connected",
            conn_id=conn_id,
            user_id=str(user_id) if user_id else None,
            broadcaster=is_broadcaster,
        )

    async def disconnect(self, conn_id: str) -> None:
        """Remove a connection. Unknown ids are a no-op."""
        async with self._lock:
            client = self._clients.pop(conn_id, None)
        if client is not None:
            logger.info("ws_disconnected", conn_id=conn_id)

    async def broadcast(self, receiver_id: uuid.UUID, envelope: dict[str, Any]) -> int:
        """Write ``envelope`` to every user socket of ``receiver_id``.

        Returns the number of sockets written. The registry lock is held only
        to snapshot receivers and to drop sockets whose write failed.
        """
        payload = json.dumps(envelope)
        async with self._lock:
            targets = [
                (conn_id, client)
                for conn_id, client in self._clients.items()
                if not client.is_broadcaster and client.user_id == receiver_id
            ]

        sent = 0
        failed: list[str] = []
        for conn_id, client in targets:
            try:
                await client.websocket.send_text(payload)
            except Exception:
                logger.warning("ws_send_failed", conn_id=conn_id, exc_info=True)
                failed.append(conn_id)
                continue
            client.messages_sent += 1
            sent += 1

        if failed:
            async with self._lock:
                for conn_id in failed:
                    self._clients.pop(conn_id, None)
        return sent

    async def close_all(self) -> None:
        """Server shutdown: close every socket and empty the registry."""
        async with self._lock:
            clients = list(self._clients.values())
            self._clients.clear()
        for client in clients:
            try:
                await client.websocket.close(code=1001)
            except RuntimeError:
                pass  # already closed

    def get_stats(self) -> dict[str, int]:
        """Get connection statistics."""
        users = {c.user_id for c in self._clients.values() if c.user_id is not None}
        return {
            "total_connections": len(self._clients),
            "unique_users": len(users),
            "broadcasters": sum(1 for c in self._clients.values() if c.is_broadcaster),
        }


# Global singleton
hub = NotificationHub()
