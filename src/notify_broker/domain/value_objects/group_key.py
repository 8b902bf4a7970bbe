"""Delivery group keys.

A group key is one of four variants rendered on the wire as
``user:<id>``, ``role:<name>``, ``entity:<type>:<id>`` or ``broadcast``.
Each variant validates its parts on construction, so a malformed key
cannot exist in memory.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union


def _require_part(name: str, value: str, *, allow_colon: bool = True) -> None:
    if not isinstance(value, str) or not value:
        raise ValueError(f"{name} must be a non-empty string")
    if not allow_colon and ":" in value:
        raise ValueError(f"{name} must not contain ':' (got {value!r})")


@dataclass(frozen=True, slots=True)
class UserGroup:
    user_id: str

    def __post_init__(self) -> None:
        _require_part("user_id", self.user_id)

    def __str__(self) -> str:
        return f"user:{self.user_id}"


@dataclass(frozen=True, slots=True)
class RoleGroup:
    role: str

    def __post_init__(self) -> None:
        _require_part("role", self.role)

    def __str__(self) -> str:
        return f"role:{self.role}"


@dataclass(frozen=True, slots=True)
class EntityGroup:
    entity_type: str
    entity_id: str

    def __post_init__(self) -> None:
        # the type is the only part the wire form needs to split on
        _require_part("entity_type", self.entity_type, allow_colon=False)
        _require_part("entity_id", self.entity_id)

    def __str__(self) -> str:
        return f"entity:{self.entity_type}:{self.entity_id}"


@dataclass(frozen=True, slots=True)
class BroadcastGroup:
    def __str__(self) -> str:
        return "broadcast"


BROADCAST = BroadcastGroup()

GroupKey = Union[UserGroup, RoleGroup, EntityGroup, BroadcastGroup]


def parse_group_key(raw: str) -> GroupKey:
    """Parse the wire form of a group key. Raises ``ValueError`` if malformed."""
    if raw == "broadcast":
        return BROADCAST
    namespace, sep, rest = raw.partition(":")
    if not sep:
        raise ValueError(f"Unknown group key: {raw!r}")
    if namespace == "user":
        return UserGroup(rest)
    if namespace == "role":
        return RoleGroup(rest)
    if namespace == "entity":
        entity_type, sep, entity_id = rest.partition(":")
        if not sep:
            raise ValueError(f"Entity group key needs a type and an id: {raw!r}")
        return EntityGroup(entity_type, entity_id)
    raise ValueError(f"Unknown group namespace {namespace!r} in {raw!r}")
