from __future__ import annotations

from dataclasses import dataclass, field

from notify_broker.domain.value_objects.group_key import GroupKey, RoleGroup, UserGroup

ANONYMOUS_SUBJECT_ID = "anonymous"
PUBLIC_ROLE = "public"


@dataclass(frozen=True, slots=True)
class EntityBinding:
    entity_type: str
    entity_id: str


@dataclass(frozen=True, slots=True)
class Identity:
    """Caller identity extracted from the connection credential."""

    subject_id: str
    roles: frozenset[str] = field(default_factory=frozenset)
    entity_binding: EntityBinding | None = None

    @classmethod
    def anonymous(
        cls,
        subject_id: str = ANONYMOUS_SUBJECT_ID,
        public_role: str = PUBLIC_ROLE,
    ) -> Identity:
        return cls(subject_id=subject_id, roles=frozenset({public_role}))

    def has_role(self, role: str) -> bool:
        return role in self.roles

    def base_groups(self) -> frozenset[GroupKey]:
        """Groups a connection belongs to for as long as it is registered."""
        groups: set[GroupKey] = {UserGroup(self.subject_id)}
        groups.update(RoleGroup(role) for role in self.roles)
        return frozenset(groups)
