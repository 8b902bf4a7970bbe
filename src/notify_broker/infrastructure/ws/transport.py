"""Adapts a Starlette WebSocket to the broker's transport port."""
from __future__ import annotations

from typing import Any

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from notify_broker.application.exceptions import TransportFailure
from notify_broker.domain.entities.notification import NotificationMessage
from notify_broker.infrastructure.ws.protocol import control_frame, notification_frame


class WebSocketTransport:
    def __init__(self, ws: WebSocket) -> None:
        self._ws = ws

    async def accept(self) -> None:
        await self._ws.accept()

    async def send(self, message: NotificationMessage) -> None:
        await self._send_text(notification_frame(message))

    async def send_control(self, frame_type: str, data: dict[str, Any] | None = None) -> None:
        await self._send_text(control_frame(frame_type, data))

    async def close(self, code: int = 1000, reason: str = "") -> None:
        if self._ws.application_state == WebSocketState.DISCONNECTED:
            return
        await self._ws.close(code=code, reason=reason)

    async def _send_text(self, raw: str) -> None:
        try:
            await self._ws.send_text(raw)
        except Exception as exc:
            raise TransportFailure(str(exc) or type(exc).__name__) from exc
