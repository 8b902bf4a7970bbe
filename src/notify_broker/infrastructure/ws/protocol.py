"""WebSocket message envelope models."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from notify_broker.domain.entities.notification import NotificationMessage
from notify_broker.domain.value_objects.enums import NotificationKind, Priority


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class WsInbound(BaseModel):
    """Client → Server."""

    type: str  # subscribe-entity | unsubscribe-entity | ack | ping
    data: dict[str, Any] = {}


class WsOutbound(BaseModel):
    """Server → Client."""

    type: str  # notification | pong | heartbeat | error
    data: dict[str, Any] = {}


class EntityRef(_CamelModel):
    entity_type: str = Field(min_length=1)
    entity_id: str = Field(min_length=1)


class AckData(_CamelModel):
    message_id: str = Field(min_length=1)


class NotificationEnvelope(_CamelModel):
    """JSON form of a :class:`NotificationMessage`."""

    id: str
    kind: NotificationKind
    title: str
    body: str
    data: dict[str, Any] | None = None
    created_at: datetime
    priority: Priority
    action_ref: str | None = None

    @classmethod
    def from_message(cls, message: NotificationMessage) -> NotificationEnvelope:
        return cls(
            id=message.id,
            kind=message.kind,
            title=message.title,
            body=message.body,
            data=dict(message.data) if message.data is not None else None,
            created_at=message.created_at,
            priority=message.priority,
            action_ref=message.action_ref,
        )

    def to_message(self) -> NotificationMessage:
        return NotificationMessage(
            id=self.id,
            kind=self.kind,
            title=self.title,
            body=self.body,
            data=self.data,
            created_at=self.created_at,
            priority=self.priority,
            action_ref=self.action_ref,
        )


def notification_frame(message: NotificationMessage) -> str:
    envelope = NotificationEnvelope.from_message(message)
    return WsOutbound(
        type="notification",
        data=envelope.model_dump(mode="json", by_alias=True),
    ).model_dump_json()


def control_frame(frame_type: str, data: dict[str, Any] | None = None) -> str:
    return WsOutbound(type=frame_type, data=data or {}).model_dump_json()
