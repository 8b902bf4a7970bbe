"""Turns a connection credential into an :class:`Identity`."""
from __future__ import annotations

import logging
from typing import Any, Mapping

from notify_broker.application.dto.identity import (
    ANONYMOUS_SUBJECT_ID,
    PUBLIC_ROLE,
    EntityBinding,
    Identity,
)
from notify_broker.application.exceptions import AuthenticationError
from notify_broker.application.ports.auth import TokenVerifier

logger = logging.getLogger(__name__)

_BEARER_PREFIX = "bearer "


def _strip_bearer(credential: str | None) -> str:
    if not credential:
        return ""
    token = credential.strip()
    if token[: len(_BEARER_PREFIX)].lower() == _BEARER_PREFIX:
        token = token[len(_BEARER_PREFIX):].strip()
    return token


def _is_compact_jws(token: str) -> bool:
    parts = token.split(".")
    return len(parts) == 3 and bool(parts[0]) and bool(parts[1])


def _roles_from_claims(claims: Mapping[str, Any]) -> frozenset[str]:
    roles: set[str] = set()
    realm_access = claims.get("realm_access")
    if isinstance(realm_access, Mapping):
        roles.update(r for r in realm_access.get("roles", []) if isinstance(r, str) and r)
    top_level = claims.get("roles")
    if isinstance(top_level, (list, tuple)):
        roles.update(r for r in top_level if isinstance(r, str) and r)
    return frozenset(roles)


def identity_from_claims(claims: Mapping[str, Any]) -> Identity:
    subject = claims.get("sub")
    if not subject:
        raise AuthenticationError("Token has no subject")

    binding = None
    entity_type = claims.get("entityType")
    entity_id = claims.get("entityId")
    if entity_type and entity_id:
        binding = EntityBinding(entity_type=str(entity_type), entity_id=str(entity_id))

    return Identity(
        subject_id=str(subject),
        roles=_roles_from_claims(claims),
        entity_binding=binding,
    )


class TokenDecoder:
    """Decodes bearer credentials presented at connect time.

    An absent credential is an anonymous viewer. A present but malformed
    or rejected credential raises :class:`AuthenticationError`; it never
    degrades to anonymous.
    """

    def __init__(
        self,
        verifier: TokenVerifier,
        *,
        anonymous_subject_id: str = ANONYMOUS_SUBJECT_ID,
        public_role: str = PUBLIC_ROLE,
    ) -> None:
        self._verifier = verifier
        self._anonymous = Identity.anonymous(anonymous_subject_id, public_role)

    async def decode(self, credential: str | None) -> Identity:
        token = _strip_bearer(credential)
        if not token:
            return self._anonymous

        if not _is_compact_jws(token):
            raise AuthenticationError("Invalid token format")

        try:
            claims = await self._verifier.verify(token)
        except AuthenticationError:
            raise
        except Exception as exc:
            logger.debug("Token verification failed", exc_info=True)
            raise AuthenticationError("Invalid authentication token") from exc

        return identity_from_claims(claims)
