from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from notify_broker.application.dto.identity import Identity
from notify_broker.application.ports.transport import Transport
from notify_broker.domain.value_objects.enums import ConnectionState
from notify_broker.domain.value_objects.group_key import GroupKey
from notify_broker.services.delivery import DeliveryChannel


@dataclass(eq=False)
class Connection:
    """One live client connection. Owned by the broker."""

    id: str
    identity: Identity
    transport: Transport
    outbound: DeliveryChannel
    groups: set[GroupKey] = field(default_factory=set)
    state: ConnectionState = ConnectionState.CONNECTING
    writer: asyncio.Task[None] | None = None

    @property
    def is_open(self) -> bool:
        return self.state == ConnectionState.OPEN
