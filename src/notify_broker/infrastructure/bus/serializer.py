from __future__ import annotations

import json
from collections.abc import Mapping, Set
from datetime import datetime
from enum import Enum
from typing import Any


class _Encoder(json.JSONEncoder):
    def default(self, o: object) -> Any:
        if isinstance(o, datetime):
            return o.isoformat()
        if isinstance(o, Enum):
            return o.value
        if isinstance(o, Mapping):
            return dict(o)
        if isinstance(o, Set):
            return sorted(o)
        return super().default(o)


def serialize_event(event_type: str, payload: Mapping[str, Any]) -> str:
    envelope = {"event": event_type, "data": payload}
    return json.dumps(envelope, cls=_Encoder)


def deserialize_event(raw: str | bytes) -> tuple[str, dict[str, Any]]:
    data = json.loads(raw)
    if not isinstance(data, dict) or "event" not in data:
        raise ValueError("Event envelope must be an object with an 'event' field")
    payload = data.get("data") or {}
    if not isinstance(payload, dict):
        raise ValueError("Event 'data' must be an object")
    return data["event"], payload
