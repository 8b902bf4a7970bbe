"""Notification broker: connection lifecycle and fan-out."""
from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from notify_broker.application.dto.ack import AckRecord
from notify_broker.application.exceptions import InvalidOperation
from notify_broker.application.ports.audit import AckRecorder
from notify_broker.application.ports.transport import Transport
from notify_broker.domain.entities.notification import (
    NotificationMessage,
    new_notification_id,
)
from notify_broker.domain.entities.target import TargetDescriptor
from notify_broker.domain.value_objects.enums import NotificationKind, Priority
from notify_broker.domain.value_objects.group_key import (
    EntityGroup,
    GroupKey,
    parse_group_key,
)
from notify_broker.services.connection import Connection
from notify_broker.services.delivery import DeliveryChannel
from notify_broker.services.registry import ConnectionRegistry
from notify_broker.services.router import TopicRouter
from notify_broker.services.token_decoder import TokenDecoder

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_CAPACITY = 256
DEFAULT_FLUSH_TIMEOUT = 2.0

CLOSE_NORMAL = 1000
CLOSE_GOING_AWAY = 1001
CLOSE_INTERNAL_ERROR = 1011


@dataclass(frozen=True, slots=True)
class DeliveryReport:
    message_id: str
    attempted: int
    delivered: int
    dropped: int
    empty_groups: frozenset[GroupKey]


def welcome_message() -> NotificationMessage:
    return NotificationMessage.create(
        NotificationKind.SYSTEM_ALERT,
        "Connected",
        "Real-time notifications enabled",
        id=new_notification_id("welcome"),
        priority=Priority.LOW,
    )


async def _close_quietly(transport: Transport, code: int, reason: str) -> None:
    try:
        await transport.close(code, reason)
    except Exception:
        logger.debug("Transport close failed", exc_info=True)


class Broker:
    """Accepts connections, tracks their groups and fans notifications out.

    ``publish`` only enqueues; each connection's writer task does the actual
    socket writes, so a slow client never holds up the publisher or other
    recipients.
    """

    def __init__(
        self,
        decoder: TokenDecoder,
        registry: ConnectionRegistry | None = None,
        router: TopicRouter | None = None,
        ack_recorder: AckRecorder | None = None,
        *,
        queue_capacity: int = DEFAULT_QUEUE_CAPACITY,
        flush_timeout: float = DEFAULT_FLUSH_TIMEOUT,
    ) -> None:
        if queue_capacity < 1:
            raise ValueError("queue_capacity must be at least 1")
        self._decoder = decoder
        self._registry = registry or ConnectionRegistry()
        self._router = router or TopicRouter(self._registry)
        self._ack_recorder = ack_recorder
        self._queue_capacity = queue_capacity
        self._flush_timeout = flush_timeout
        self._running = False

    @property
    def decoder(self) -> TokenDecoder:
        return self._decoder

    @property
    def registry(self) -> ConnectionRegistry:
        return self._registry

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        self._running = True
        logger.info(
            "Broker started (queue_capacity=%d, flush_timeout=%.1fs)",
            self._queue_capacity,
            self._flush_timeout,
        )

    async def stop(self) -> None:
        self._running = False
        connections = self._registry.connections()
        await asyncio.gather(
            *(
                self.close(conn.id, code=CLOSE_GOING_AWAY, reason="server shutting down")
                for conn in connections
            ),
            return_exceptions=True,
        )
        logger.info("Broker stopped (closed %d connections)", len(connections))

    # -- connection lifecycle --------------------------------------------

    async def connect(self, transport: Transport, credential: str | None) -> Connection:
        """Run the handshake.

        Raises ``AuthenticationError`` before anything is allocated. A failure
        after ``accept`` closes the transport with 1011 and propagates.
        """
        identity = await self._decoder.decode(credential)
        await transport.accept()

        conn = Connection(
            id=uuid.uuid4().hex,
            identity=identity,
            transport=transport,
            outbound=DeliveryChannel(self._queue_capacity),
        )
        try:
            self._registry.register(conn)
        except Exception:
            logger.exception("Handshake failed after accept for %s", identity.subject_id)
            await _close_quietly(transport, CLOSE_INTERNAL_ERROR, "handshake failed")
            raise
        conn.writer = asyncio.create_task(self._write_loop(conn), name=f"ws-writer-{conn.id}")
        conn.outbound.enqueue(welcome_message())

        logger.info(
            "Connected %s as %s roles=%s (total=%d)",
            conn.id,
            identity.subject_id,
            sorted(identity.roles),
            len(self._registry),
        )
        return conn

    async def disconnect(self, connection_id: str) -> None:
        """Client went away: discard pending messages and deregister. Idempotent."""
        await self._shutdown(connection_id, flush=False, close_transport=False)

    async def close(
        self,
        connection_id: str,
        *,
        code: int = CLOSE_NORMAL,
        reason: str = "",
        flush: bool = True,
    ) -> None:
        """Server-initiated close: optionally drain the queue, then close the transport."""
        await self._shutdown(
            connection_id, flush=flush, close_transport=True, code=code, reason=reason,
        )

    async def _shutdown(
        self,
        connection_id: str,
        *,
        flush: bool,
        close_transport: bool,
        code: int = CLOSE_NORMAL,
        reason: str = "",
    ) -> None:
        conn = self._registry.mark_closing(connection_id)
        if conn is None:
            return

        conn.outbound.close()
        if flush and not await conn.outbound.flush(self._flush_timeout):
            logger.debug("Flush timed out for %s", conn.id)
        discarded = conn.outbound.discard()

        writer = conn.writer
        if writer is not None and writer is not asyncio.current_task():
            writer.cancel()
            try:
                await writer
            except asyncio.CancelledError:
                pass

        if close_transport:
            await _close_quietly(conn.transport, code, reason)

        self._registry.deregister(conn.id)
        logger.info(
            "Disconnected %s (%s), discarded=%d (total=%d)",
            conn.id,
            conn.identity.subject_id,
            discarded,
            len(self._registry),
        )

    async def _write_loop(self, conn: Connection) -> None:
        while True:
            message = await conn.outbound.get()
            failure: Exception | None = None
            try:
                await conn.transport.send(message)
            except Exception as exc:
                failure = exc
            finally:
                conn.outbound.task_done()

            if failure is not None:
                logger.warning("Transport failure on %s: %s", conn.id, failure)
                conn.outbound.close()
                conn.outbound.discard()
                await self._shutdown(
                    conn.id,
                    flush=False,
                    close_transport=True,
                    code=CLOSE_INTERNAL_ERROR,
                    reason="transport failure",
                )
                return

    # -- client requests --------------------------------------------------

    def handle_subscribe(self, connection_id: str, entity_type: str, entity_id: str) -> bool:
        key = self._entity_group(entity_type, entity_id)
        conn = self._registry.get(connection_id)
        if conn is None or not conn.is_open:
            return False
        self._registry.subscribe(connection_id, key)
        return True

    def handle_unsubscribe(self, connection_id: str, entity_type: str, entity_id: str) -> bool:
        key = self._entity_group(entity_type, entity_id)
        conn = self._registry.get(connection_id)
        if conn is None or not conn.is_open:
            return False
        self._registry.unsubscribe(connection_id, key)
        return True

    async def handle_ack(self, connection_id: str, message_id: str) -> None:
        conn = self._registry.get(connection_id)
        if conn is None:
            return
        logger.debug("Notification %s acknowledged by %s", message_id, conn.identity.subject_id)
        if self._ack_recorder is None:
            return
        ack = AckRecord(
            connection_id=conn.id,
            subject_id=conn.identity.subject_id,
            message_id=message_id,
            acked_at=datetime.now(timezone.utc),
        )
        try:
            await self._ack_recorder.record(ack)
        except Exception:
            logger.exception("Failed to record ack %s for %s", message_id, conn.id)

    @staticmethod
    def _entity_group(entity_type: str, entity_id: str) -> EntityGroup:
        try:
            return EntityGroup(entity_type, entity_id)
        except ValueError as exc:
            raise InvalidOperation(str(exc)) from exc

    # -- publishing -------------------------------------------------------

    def publish(self, target: TargetDescriptor, message: NotificationMessage) -> DeliveryReport:
        resolution = self._router.resolve(target)
        delivered = 0
        dropped = 0
        for cid in resolution.connection_ids:
            conn = self._registry.get(cid)
            if conn is not None and conn.outbound.enqueue(message):
                delivered += 1
            else:
                dropped += 1

        report = DeliveryReport(
            message_id=message.id,
            attempted=len(resolution.connection_ids),
            delivered=delivered,
            dropped=dropped,
            empty_groups=resolution.empty_groups,
        )
        logger.info(
            "Notification sent: %s - %s -> %s delivered=%d dropped=%d",
            message.kind,
            message.title,
            ",".join(str(g) for g in resolution.groups),
            delivered,
            dropped,
        )
        return report

    # -- diagnostics ------------------------------------------------------

    def connected_count(self) -> int:
        return len(self._registry)

    def members_of(self, key: GroupKey | str) -> list[str]:
        """User ids of the open connections in a group (one entry per connection)."""
        if isinstance(key, str):
            key = parse_group_key(key)
        user_ids: list[str] = []
        for cid in sorted(self._registry.members_of(key)):
            conn = self._registry.get(cid)
            if conn is not None:
                user_ids.append(conn.identity.subject_id)
        return user_ids
