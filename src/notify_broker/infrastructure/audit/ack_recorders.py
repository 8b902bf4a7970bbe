"""Acknowledgment audit sinks. Audit only; acks never affect delivery."""
from __future__ import annotations

import logging

import redis.asyncio as aioredis

from notify_broker.application.dto.ack import AckRecord

logger = logging.getLogger(__name__)


class LoggingAckRecorder:
    async def record(self, ack: AckRecord) -> None:
        logger.info(
            "Notification %s acknowledged by %s (connection %s)",
            ack.message_id,
            ack.subject_id,
            ack.connection_id,
        )


class RedisStreamAckRecorder:
    """Appends each ack to a capped Redis stream for the audit pipeline."""

    def __init__(self, redis: aioredis.Redis, stream: str, *, maxlen: int = 100_000) -> None:
        self._redis = redis
        self._stream = stream
        self._maxlen = maxlen

    async def record(self, ack: AckRecord) -> None:
        await self._redis.xadd(
            self._stream,
            {
                "event_type": "notification.acknowledged",
                "message_id": ack.message_id,
                "subject_id": ack.subject_id,
                "connection_id": ack.connection_id,
                "acked_at": ack.acked_at.isoformat(),
            },
            maxlen=self._maxlen,
            approximate=True,
        )
