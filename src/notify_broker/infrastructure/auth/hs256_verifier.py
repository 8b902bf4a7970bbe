from __future__ import annotations

from typing import Any

import jwt

from notify_broker.infrastructure.auth._options import decode_kwargs


class HS256Verifier:
    """Verify JWTs signed with a shared HS256 secret."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        *,
        audience: str | None = None,
        issuer: str | None = None,
    ) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self._decode_kwargs = decode_kwargs(audience, issuer)

    async def verify(self, token: str) -> dict[str, Any]:
        return jwt.decode(
            token,
            self._secret,
            algorithms=[self._algorithm],
            **self._decode_kwargs,
        )
