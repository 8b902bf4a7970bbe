from __future__ import annotations

from dataclasses import dataclass

from notify_broker.domain.entities.target import TargetDescriptor
from notify_broker.domain.value_objects.group_key import (
    BROADCAST,
    EntityGroup,
    GroupKey,
    RoleGroup,
    UserGroup,
)
from notify_broker.services.registry import ConnectionRegistry


@dataclass(frozen=True, slots=True)
class Resolution:
    groups: tuple[GroupKey, ...]
    connection_ids: tuple[str, ...]
    empty_groups: frozenset[GroupKey]


class TopicRouter:
    """Maps a target descriptor to the live connections that should receive it."""

    def __init__(self, registry: ConnectionRegistry) -> None:
        self._registry = registry

    @staticmethod
    def groups_for(target: TargetDescriptor) -> tuple[GroupKey, ...]:
        groups: list[GroupKey] = []
        if target.user_id:
            groups.append(UserGroup(target.user_id))
        if target.role:
            groups.append(RoleGroup(target.role))
        if target.entity_type and target.entity_id:
            groups.append(EntityGroup(target.entity_type, target.entity_id))
        if target.broadcast:
            groups.append(BROADCAST)
        return tuple(groups)

    def resolve(self, target: TargetDescriptor) -> Resolution:
        groups = self.groups_for(target)
        seen: dict[str, None] = {}
        empty: set[GroupKey] = set()
        for key in groups:
            members = self._registry.members_of(key)
            if not members:
                empty.add(key)
            for cid in sorted(members):
                seen.setdefault(cid, None)
        return Resolution(
            groups=groups,
            connection_ids=tuple(seen),
            empty_groups=frozenset(empty),
        )
