from __future__ import annotations

import logging
from typing import Any

import jwt

logger = logging.getLogger(__name__)


class UnverifiedDecoder:
    """Reads JWT claims without checking the signature.

    Only for local development against an identity provider that is not
    reachable. Claims decoded this way are provisional.
    """

    def __init__(self) -> None:
        logger.warning(
            "JWT signature verification is DISABLED (JWT_VERIFY_MODE=unverified); "
            "do not run this configuration in production"
        )

    async def verify(self, token: str) -> dict[str, Any]:
        return jwt.decode(
            token,
            options={"verify_signature": False, "verify_exp": True},
        )
