from __future__ import annotations

import logging
from typing import Any

import jwt
from jwt import PyJWKClient

from notify_broker.infrastructure.auth._options import decode_kwargs

logger = logging.getLogger(__name__)


class JWKSVerifier:
    """Verify JWTs against the identity provider's JWKS endpoint (Keycloak)."""

    def __init__(
        self,
        jwks_url: str,
        *,
        audience: str | None = None,
        issuer: str | None = None,
    ) -> None:
        self._jwks_url = jwks_url
        self._jwk_client = PyJWKClient(jwks_url)
        self._decode_kwargs = decode_kwargs(audience, issuer)

    async def verify(self, token: str) -> dict[str, Any]:
        signing_key = self._jwk_client.get_signing_key_from_jwt(token)
        return jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256", "ES256"],
            **self._decode_kwargs,
        )
