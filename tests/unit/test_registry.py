from __future__ import annotations

import pytest

from notify_broker.application.dto.identity import Identity
from notify_broker.application.exceptions import InvalidOperation
from notify_broker.domain.value_objects.enums import ConnectionState
from notify_broker.domain.value_objects.group_key import (
    BROADCAST,
    EntityGroup,
    RoleGroup,
    UserGroup,
)
from notify_broker.services.connection import Connection
from notify_broker.services.delivery import DeliveryChannel
from notify_broker.services.registry import ConnectionRegistry
from tests.conftest import FakeTransport


def _conn(cid: str, subject: str = "u1", roles: tuple[str, ...] = ("doctor",)) -> Connection:
    return Connection(
        id=cid,
        identity=Identity(subject, frozenset(roles)),
        transport=FakeTransport(),
        outbound=DeliveryChannel(4),
    )


@pytest.fixture
def registry() -> ConnectionRegistry:
    return ConnectionRegistry()


def test_register_opens_and_seeds_base_groups(registry):
    conn = _conn("c1", roles=("doctor", "registrar"))
    registry.register(conn)

    assert conn.state == ConnectionState.OPEN
    assert conn.groups == {UserGroup("u1"), RoleGroup("doctor"), RoleGroup("registrar")}
    assert len(registry) == 1


def test_register_twice_is_rejected(registry):
    conn = _conn("c1")
    registry.register(conn)
    with pytest.raises(InvalidOperation):
        registry.register(conn)


def test_subscribe_is_idempotent(registry):
    registry.register(_conn("c1"))
    key = EntityGroup("Doctor", "abc123")

    registry.subscribe("c1", key)
    once = set(registry.get("c1").groups)
    registry.subscribe("c1", key)

    assert registry.get("c1").groups == once
    assert registry.members_of(key) == {"c1"}


def test_subscribe_to_foreign_identity_group_is_rejected(registry):
    registry.register(_conn("c1"))
    with pytest.raises(InvalidOperation):
        registry.subscribe("c1", RoleGroup("admin"))
    with pytest.raises(InvalidOperation):
        registry.subscribe("c1", UserGroup("someone-else"))
    with pytest.raises(InvalidOperation):
        registry.subscribe("c1", BROADCAST)


def test_subscribe_to_own_base_group_is_a_noop(registry):
    registry.register(_conn("c1"))
    registry.subscribe("c1", RoleGroup("doctor"))
    assert RoleGroup("doctor") in registry.get("c1").groups


def test_base_groups_cannot_be_removed(registry):
    registry.register(_conn("c1"))

    with pytest.raises(InvalidOperation):
        registry.unsubscribe("c1", RoleGroup("doctor"))
    with pytest.raises(InvalidOperation):
        registry.unsubscribe("c1", UserGroup("u1"))

    assert registry.members_of(RoleGroup("doctor")) == {"c1"}


def test_unsubscribe_is_idempotent(registry):
    registry.register(_conn("c1"))
    key = EntityGroup("Doctor", "abc123")
    registry.subscribe("c1", key)

    registry.unsubscribe("c1", key)
    registry.unsubscribe("c1", key)

    assert registry.members_of(key) == set()


def test_operations_on_unknown_connection_are_rejected(registry):
    with pytest.raises(InvalidOperation):
        registry.subscribe("missing", EntityGroup("Doctor", "x"))
    with pytest.raises(InvalidOperation):
        registry.unsubscribe("missing", EntityGroup("Doctor", "x"))


def test_deregister_removes_every_membership(registry):
    registry.register(_conn("c1"))
    registry.register(_conn("c2", subject="u2"))
    entity = EntityGroup("Doctor", "abc123")
    registry.subscribe("c1", entity)
    groups_before = set(registry.get("c1").groups) | {BROADCAST}

    registry.deregister("c1")

    for key in groups_before:
        assert "c1" not in registry.members_of(key)
    assert registry.get("c1") is None
    assert registry.members_of(BROADCAST) == {"c2"}


def test_deregister_twice_is_a_noop(registry):
    conn = _conn("c1")
    registry.register(conn)
    registry.deregister("c1")
    registry.deregister("c1")
    assert conn.state == ConnectionState.CLOSED
    assert len(registry) == 0


def test_closing_connections_drop_out_of_groups(registry):
    registry.register(_conn("c1"))
    registry.register(_conn("c2"))

    assert registry.mark_closing("c1") is not None
    assert registry.mark_closing("c1") is None

    assert registry.members_of(UserGroup("u1")) == {"c2"}
    assert registry.members_of(BROADCAST) == {"c2"}
    with pytest.raises(InvalidOperation):
        registry.subscribe("c1", EntityGroup("Doctor", "x"))


def test_broadcast_contains_every_open_connection(registry):
    for i in range(3):
        registry.register(_conn(f"c{i}", subject=f"u{i}", roles=()))
    assert registry.members_of(BROADCAST) == {"c0", "c1", "c2"}
