"""Live connection registry and the group index derived from it."""
from __future__ import annotations

import logging
import threading

from notify_broker.application.exceptions import InvalidOperation
from notify_broker.domain.value_objects.enums import ConnectionState
from notify_broker.domain.value_objects.group_key import (
    BroadcastGroup,
    EntityGroup,
    GroupKey,
)
from notify_broker.services.connection import Connection

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """Tracks every registered connection and the groups it belongs to.

    Group membership is not stored separately; :meth:`members_of` scans the
    open connections each time. All operations share one lock.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._connections: dict[str, Connection] = {}

    def __len__(self) -> int:
        with self._lock:
            return sum(1 for c in self._connections.values() if c.is_open)

    def register(self, connection: Connection) -> None:
        with self._lock:
            if connection.id in self._connections:
                raise InvalidOperation(f"Connection {connection.id} already registered")
            connection.groups = set(connection.identity.base_groups())
            connection.state = ConnectionState.OPEN
            self._connections[connection.id] = connection
        logger.debug(
            "Registered %s for %s groups=%s",
            connection.id,
            connection.identity.subject_id,
            sorted(str(g) for g in connection.groups),
        )

    def get(self, connection_id: str) -> Connection | None:
        with self._lock:
            return self._connections.get(connection_id)

    def connections(self) -> list[Connection]:
        with self._lock:
            return list(self._connections.values())

    def subscribe(self, connection_id: str, key: GroupKey) -> None:
        with self._lock:
            conn = self._require_open(connection_id)
            if key in conn.groups:
                return
            if not isinstance(key, EntityGroup):
                raise InvalidOperation(f"Cannot subscribe to {key}")
            conn.groups.add(key)
        logger.debug("%s subscribed to %s", connection_id, key)

    def unsubscribe(self, connection_id: str, key: GroupKey) -> None:
        with self._lock:
            conn = self._require_open(connection_id)
            if isinstance(key, BroadcastGroup) or key in conn.identity.base_groups():
                raise InvalidOperation(f"{key} is not removable")
            conn.groups.discard(key)
        logger.debug("%s unsubscribed from %s", connection_id, key)

    def mark_closing(self, connection_id: str) -> Connection | None:
        """Move an open connection to closing; returns it, or None if it was not open."""
        with self._lock:
            conn = self._connections.get(connection_id)
            if conn is None or conn.state != ConnectionState.OPEN:
                return None
            conn.state = ConnectionState.CLOSING
            return conn

    def deregister(self, connection_id: str) -> None:
        with self._lock:
            conn = self._connections.pop(connection_id, None)
            if conn is None:
                return
            conn.groups.clear()
            conn.state = ConnectionState.CLOSED
        logger.debug("Deregistered %s", connection_id)

    def members_of(self, key: GroupKey) -> set[str]:
        with self._lock:
            if isinstance(key, BroadcastGroup):
                return {cid for cid, c in self._connections.items() if c.is_open}
            return {
                cid
                for cid, c in self._connections.items()
                if c.is_open and key in c.groups
            }

    def _require_open(self, connection_id: str) -> Connection:
        conn = self._connections.get(connection_id)
        if conn is None or not conn.is_open:
            raise InvalidOperation(f"Connection {connection_id} is not open")
        return conn
