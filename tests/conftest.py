"""Shared test fixtures."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable

import jwt
import pytest
import pytest_asyncio

from notify_broker.application.dto.ack import AckRecord
from notify_broker.config import settings
from notify_broker.domain.entities.notification import NotificationMessage
from notify_broker.domain.value_objects.enums import NotificationKind, Priority
from notify_broker.infrastructure.auth.hs256_verifier import HS256Verifier
from notify_broker.services.broker import Broker
from notify_broker.services.token_decoder import TokenDecoder

TEST_CAPACITY = 4


def make_token(
    sub: str | None = "u1",
    roles: list[str] | None = None,
    *,
    realm_roles: list[str] | None = None,
    secret: str | None = None,
    **extra: Any,
) -> str:
    claims: dict[str, Any] = dict(extra)
    if sub is not None:
        claims["sub"] = sub
    if roles is not None:
        claims["roles"] = roles
    if realm_roles is not None:
        claims["realm_access"] = {"roles": realm_roles}
    return jwt.encode(claims, secret or settings.JWT_SECRET, algorithm="HS256")


def make_message(
    *,
    kind: NotificationKind = NotificationKind.SYSTEM_ALERT,
    title: str = "Test",
    body: str = "hello",
    id: str | None = None,
) -> NotificationMessage:
    return NotificationMessage.create(kind, title, body, id=id, priority=Priority.MEDIUM)


@dataclass
class FakeTransport:
    """In-memory transport. Set ``gate`` to hold the writer inside ``send``."""

    sent: list[NotificationMessage] = field(default_factory=list)
    accepted: bool = False
    closed: tuple[int, str] | None = None
    fail_sends: bool = False
    gate: asyncio.Event | None = None
    send_started: asyncio.Event = field(default_factory=asyncio.Event)

    async def accept(self) -> None:
        self.accepted = True

    async def send(self, message: NotificationMessage) -> None:
        self.send_started.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_sends:
            raise ConnectionResetError("peer went away")
        self.sent.append(message)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.closed = (code, reason)

    @property
    def kinds(self) -> list[str]:
        return [m.kind for m in self.sent]

    @property
    def ids(self) -> list[str]:
        return [m.id for m in self.sent]


@dataclass
class FakeAckRecorder:
    records: list[AckRecord] = field(default_factory=list)
    fail: bool = False

    async def record(self, ack: AckRecord) -> None:
        if self.fail:
            raise RuntimeError("audit store unavailable")
        self.records.append(ack)


@pytest.fixture
def decoder() -> TokenDecoder:
    return TokenDecoder(HS256Verifier(settings.JWT_SECRET))


@pytest.fixture
def ack_recorder() -> FakeAckRecorder:
    return FakeAckRecorder()


@pytest_asyncio.fixture
async def broker(decoder: TokenDecoder, ack_recorder: FakeAckRecorder) -> AsyncIterator[Broker]:
    b = Broker(decoder, ack_recorder=ack_recorder, queue_capacity=TEST_CAPACITY, flush_timeout=1.0)
    await b.start()
    yield b
    await b.stop()


@pytest.fixture
def transport_factory() -> Callable[..., FakeTransport]:
    def _make(**kwargs: Any) -> FakeTransport:
        return FakeTransport(**kwargs)

    return _make


async def drain(broker: Broker, connection_id: str) -> None:
    """Wait until everything queued for a connection has been written."""
    conn = broker.registry.get(connection_id)
    assert conn is not None
    assert await conn.outbound.flush(1.0)
