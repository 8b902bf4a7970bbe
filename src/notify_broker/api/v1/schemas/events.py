"""Payloads of the events other platform services publish to the broker."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from notify_broker.domain.entities.notification import NotificationMessage
from notify_broker.domain.entities.target import TargetDescriptor
from notify_broker.domain.value_objects.enums import (
    NotificationKind,
    Priority,
    RegistrationStatus,
)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TargetSchema(_CamelModel):
    user_id: str | None = None
    role: str | None = None
    entity_type: str | None = None
    entity_id: str | None = None
    broadcast: bool = False

    @model_validator(mode="after")
    def _check_target(self) -> TargetSchema:
        self.to_target()
        return self

    def to_target(self) -> TargetDescriptor:
        return TargetDescriptor(
            user_id=self.user_id,
            role=self.role,
            entity_type=self.entity_type,
            entity_id=self.entity_id,
            broadcast=self.broadcast,
        )


class NotificationInput(_CamelModel):
    """Inbound notification; ``id`` and ``createdAt`` are generated when absent."""

    id: str | None = None
    kind: NotificationKind
    title: str
    body: str
    data: dict[str, Any] | None = None
    created_at: datetime | None = None
    priority: Priority = Priority.MEDIUM
    action_ref: str | None = None

    def to_message(self) -> NotificationMessage:
        return NotificationMessage.create(
            self.kind,
            self.title,
            self.body,
            id=self.id,
            data=self.data,
            created_at=self.created_at,
            priority=self.priority,
            action_ref=self.action_ref,
        )


class PublishRequest(_CamelModel):
    target: TargetSchema
    notification: NotificationInput


class RegistrationStatusEvent(_CamelModel):
    user_id: str = Field(min_length=1)
    status: RegistrationStatus
    professional_type: str = Field(min_length=1)
    registration_number: str | None = None
    reason: str | None = None


class CredentialIssuedEvent(_CamelModel):
    user_id: str = Field(min_length=1)
    credential_type: str = Field(min_length=1)
    credential_id: str = Field(min_length=1)


class SystemAlertEvent(_CamelModel):
    title: str
    body: str
    priority: Priority = Priority.LOW
    target: TargetSchema | None = None
