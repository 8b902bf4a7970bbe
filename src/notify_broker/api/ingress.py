"""Dispatch of platform events received over Redis Pub/Sub."""
from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from notify_broker.api.v1.schemas.events import (
    CredentialIssuedEvent,
    PublishRequest,
    RegistrationStatusEvent,
    SystemAlertEvent,
)
from notify_broker.services import notifications
from notify_broker.services.broker import Broker

logger = logging.getLogger(__name__)

EVENT_PUBLISH = "notification.publish"
EVENT_REGISTRATION_STATUS = "registration.status_changed"
EVENT_CREDENTIAL_ISSUED = "credential.issued"
EVENT_SYSTEM_ALERT = "system.alert"


async def dispatch_event(
    broker: Broker,
    event_type: str,
    data: dict[str, Any],
    *,
    registrar_role: str = "registrar",
) -> None:
    try:
        if event_type == EVENT_PUBLISH:
            req = PublishRequest.model_validate(data)
            broker.publish(req.target.to_target(), req.notification.to_message())

        elif event_type == EVENT_REGISTRATION_STATUS:
            reg = RegistrationStatusEvent.model_validate(data)
            notifications.publish_registration_status(
                broker,
                reg.user_id,
                reg.status,
                reg.professional_type,
                reg.registration_number,
                reg.reason,
                registrar_role=registrar_role,
            )

        elif event_type == EVENT_CREDENTIAL_ISSUED:
            cred = CredentialIssuedEvent.model_validate(data)
            notifications.publish_credential_issued(
                broker, cred.user_id, cred.credential_type, cred.credential_id,
            )

        elif event_type == EVENT_SYSTEM_ALERT:
            alert = SystemAlertEvent.model_validate(data)
            notifications.publish_system_alert(
                broker,
                alert.title,
                alert.body,
                priority=alert.priority,
                target=alert.target.to_target() if alert.target else None,
            )

        else:
            logger.debug("Ignoring unknown event: %s", event_type)

    except PydanticValidationError as exc:
        logger.warning("Rejected %s event: %s", event_type, exc.errors(include_url=False))
