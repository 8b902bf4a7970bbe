"""Publish a notification through Redis, the way platform services do.

    python -m notify_broker.scripts.send_notification --user u1 --title Hi --body "Hello"
    python -m notify_broker.scripts.send_notification --credential-issued u1 License LIC-1
"""
from __future__ import annotations

import argparse
import asyncio
import logging

import redis.asyncio as aioredis

from notify_broker.api.ingress import EVENT_CREDENTIAL_ISSUED, EVENT_PUBLISH
from notify_broker.config import settings
from notify_broker.domain.value_objects.enums import NotificationKind, Priority
from notify_broker.infrastructure.bus.redis_pubsub import RedisPubSubPublisher

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--user", help="target user id")
    parser.add_argument("--role", help="target role")
    parser.add_argument("--entity", nargs=2, metavar=("TYPE", "ID"), help="target entity")
    parser.add_argument("--broadcast", action="store_true")
    parser.add_argument("--kind", default=NotificationKind.SYSTEM_ALERT.value,
                        choices=[k.value for k in NotificationKind])
    parser.add_argument("--priority", default=Priority.LOW.value,
                        choices=[p.value for p in Priority])
    parser.add_argument("--title", default="Test notification")
    parser.add_argument("--body", default="Sent from send_notification")
    parser.add_argument("--credential-issued", nargs=3,
                        metavar=("USER_ID", "CREDENTIAL_TYPE", "CREDENTIAL_ID"))
    return parser.parse_args(argv)


def _build_event(args: argparse.Namespace) -> tuple[str, dict]:
    if args.credential_issued:
        user_id, credential_type, credential_id = args.credential_issued
        return EVENT_CREDENTIAL_ISSUED, {
            "userId": user_id,
            "credentialType": credential_type,
            "credentialId": credential_id,
        }

    target: dict = {"broadcast": args.broadcast}
    if args.user:
        target["userId"] = args.user
    if args.role:
        target["role"] = args.role
    if args.entity:
        target["entityType"], target["entityId"] = args.entity
    return EVENT_PUBLISH, {
        "target": target,
        "notification": {
            "kind": args.kind,
            "title": args.title,
            "body": args.body,
            "priority": args.priority,
        },
    }


async def send(event_type: str, payload: dict) -> None:
    redis = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    try:
        publisher = RedisPubSubPublisher(redis, settings.REDIS_PUBSUB_CHANNEL)
        receivers = await publisher.publish(event_type, payload)
        logger.info("Published %s to %d broker instance(s)", event_type, receivers)
    finally:
        await redis.aclose()


def main(argv: list[str] | None = None) -> None:
    logging.basicConfig(level=logging.INFO)
    args = _parse_args(argv)
    event_type, payload = _build_event(args)
    asyncio.run(send(event_type, payload))


if __name__ == "__main__":
    main()
