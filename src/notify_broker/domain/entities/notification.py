from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Mapping

from notify_broker.domain.value_objects.enums import NotificationKind, Priority


def new_notification_id(prefix: str = "notif") -> str:
    return f"{prefix}-{uuid.uuid4().hex}"


@dataclass(frozen=True, slots=True)
class NotificationMessage:
    """A single notification as pushed to clients. Never mutated after creation."""

    id: str
    kind: NotificationKind
    title: str
    body: str
    data: Mapping[str, Any] | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    priority: Priority = Priority.MEDIUM
    action_ref: str | None = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("NotificationMessage.id must be non-empty")
        if self.data is not None and not isinstance(self.data, MappingProxyType):
            object.__setattr__(self, "data", MappingProxyType(dict(self.data)))

    @classmethod
    def create(
        cls,
        kind: NotificationKind,
        title: str,
        body: str,
        *,
        id: str | None = None,
        data: Mapping[str, Any] | None = None,
        created_at: datetime | None = None,
        priority: Priority = Priority.MEDIUM,
        action_ref: str | None = None,
    ) -> NotificationMessage:
        return cls(
            id=id or new_notification_id(),
            kind=kind,
            title=title,
            body=body,
            data=data,
            created_at=created_at or datetime.now(timezone.utc),
            priority=priority,
            action_ref=action_ref,
        )
