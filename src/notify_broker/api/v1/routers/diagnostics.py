from __future__ import annotations

from fastapi import APIRouter

from notify_broker.api.deps import BrokerDep, CurrentOperator
from notify_broker.api.v1.schemas.diagnostics import (
    ConnectedCountResponse,
    GroupMembersResponse,
)
from notify_broker.application.exceptions import ValidationError
from notify_broker.domain.value_objects.group_key import parse_group_key

router = APIRouter(prefix="/api/v1/notifications", tags=["diagnostics"])


@router.get("/connections/count", response_model=ConnectedCountResponse)
async def connected_count(broker: BrokerDep, _operator: CurrentOperator) -> ConnectedCountResponse:
    return ConnectedCountResponse(connected=broker.connected_count())


@router.get("/groups/{group_key:path}/members", response_model=GroupMembersResponse)
async def group_members(
    group_key: str,
    broker: BrokerDep,
    _operator: CurrentOperator,
) -> GroupMembersResponse:
    try:
        key = parse_group_key(group_key)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
    return GroupMembersResponse(group=str(key), members=broker.members_of(key))
