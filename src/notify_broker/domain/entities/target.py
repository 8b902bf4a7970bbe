from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class TargetDescriptor:
    """Where a notification should go.

    Every populated field is an independent fan-out instruction; a single
    descriptor may address a user, a role, an entity and everyone at once.
    """

    user_id: str | None = None
    role: str | None = None
    entity_type: str | None = None
    entity_id: str | None = None
    broadcast: bool = False

    def __post_init__(self) -> None:
        if bool(self.entity_type) != bool(self.entity_id):
            raise ValueError("entity_type and entity_id must be given together")
        if not (self.user_id or self.role or self.entity_type or self.broadcast):
            raise ValueError("TargetDescriptor needs at least one populated field")
