from __future__ import annotations

from typing import Protocol

from notify_broker.domain.entities.notification import NotificationMessage


class Transport(Protocol):
    """Outbound side of one client connection."""

    async def accept(self) -> None: ...

    async def send(self, message: NotificationMessage) -> None: ...

    async def close(self, code: int = 1000, reason: str = "") -> None: ...
