from __future__ import annotations

from pydantic import BaseModel


class ConnectedCountResponse(BaseModel):
    connected: int


class GroupMembersResponse(BaseModel):
    group: str
    members: list[str]
