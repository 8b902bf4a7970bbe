from __future__ import annotations

from typing import Protocol

from notify_broker.application.dto.ack import AckRecord


class AckRecorder(Protocol):
    async def record(self, ack: AckRecord) -> None: ...
