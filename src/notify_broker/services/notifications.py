"""Convenience publishers for the notification kinds other services emit."""
from __future__ import annotations

from notify_broker.domain.entities.notification import (
    NotificationMessage,
    new_notification_id,
)
from notify_broker.domain.entities.target import TargetDescriptor
from notify_broker.domain.value_objects.enums import (
    NotificationKind,
    Priority,
    RegistrationStatus,
)
from notify_broker.services.broker import Broker, DeliveryReport

_REGISTRATION_KINDS: dict[RegistrationStatus, NotificationKind] = {
    RegistrationStatus.SUBMITTED: NotificationKind.REGISTRATION_SUBMITTED,
    RegistrationStatus.APPROVED: NotificationKind.REGISTRATION_APPROVED,
    RegistrationStatus.REJECTED: NotificationKind.REGISTRATION_REJECTED,
}

_REGISTRATION_TITLES: dict[RegistrationStatus, str] = {
    RegistrationStatus.SUBMITTED: "Registration Submitted",
    RegistrationStatus.APPROVED: "Registration Approved",
    RegistrationStatus.REJECTED: "Registration Rejected",
}


def _registration_body(
    status: RegistrationStatus,
    professional_type: str,
    registration_number: str | None,
    reason: str | None,
) -> str:
    if status == RegistrationStatus.APPROVED:
        return (
            f"Congratulations! Your {professional_type} registration has been approved. "
            f"Registration Number: {registration_number or 'pending'}"
        )
    if status == RegistrationStatus.REJECTED:
        return (
            f"Your {professional_type} registration has been rejected. "
            f"Reason: {reason or 'Not specified'}"
        )
    return f"Your {professional_type} registration has been submitted and is pending review."


def publish_registration_status(
    broker: Broker,
    user_id: str,
    status: RegistrationStatus | str,
    professional_type: str,
    registration_number: str | None = None,
    reason: str | None = None,
    *,
    registrar_role: str = "registrar",
) -> list[DeliveryReport]:
    """Tell the applicant about a status change; new submissions also reach registrars."""
    status = RegistrationStatus(status)
    approved = status == RegistrationStatus.APPROVED

    applicant_message = NotificationMessage.create(
        _REGISTRATION_KINDS[status],
        _REGISTRATION_TITLES[status],
        _registration_body(status, professional_type, registration_number, reason),
        id=new_notification_id("reg"),
        priority=Priority.HIGH if approved else Priority.MEDIUM,
        data={
            "professionalType": professional_type,
            "registrationNumber": registration_number,
            "reason": reason,
        },
        action_ref="/dashboard" if approved else "/enrollment",
    )
    reports = [broker.publish(TargetDescriptor(user_id=user_id), applicant_message)]

    if status == RegistrationStatus.SUBMITTED:
        registrar_message = NotificationMessage.create(
            NotificationKind.REGISTRATION_SUBMITTED,
            "New Registration",
            f"A new {professional_type} registration requires review.",
            id=new_notification_id("admin-reg"),
            priority=Priority.MEDIUM,
            data={"professionalType": professional_type, "userId": user_id},
            action_ref="/admin/pending",
        )
        reports.append(broker.publish(TargetDescriptor(role=registrar_role), registrar_message))

    return reports


def publish_credential_issued(
    broker: Broker,
    user_id: str,
    credential_type: str,
    credential_id: str,
) -> DeliveryReport:
    message = NotificationMessage.create(
        NotificationKind.CREDENTIAL_ISSUED,
        "Credential Issued",
        f"Your {credential_type} credential has been issued and is available in your digital wallet.",
        id=new_notification_id("cred"),
        priority=Priority.HIGH,
        data={"credentialType": credential_type, "credentialId": credential_id},
        action_ref="/wallet",
    )
    return broker.publish(TargetDescriptor(user_id=user_id), message)


def publish_system_alert(
    broker: Broker,
    title: str,
    body: str,
    *,
    priority: Priority | str = Priority.LOW,
    target: TargetDescriptor | None = None,
) -> DeliveryReport:
    message = NotificationMessage.create(
        NotificationKind.SYSTEM_ALERT,
        title,
        body,
        id=new_notification_id("alert"),
        priority=Priority(priority),
    )
    return broker.publish(target or TargetDescriptor(broadcast=True), message)
