from __future__ import annotations

from typing import Any, Mapping, Protocol


class TokenVerifier(Protocol):
    async def verify(self, token: str) -> Mapping[str, Any]: ...
