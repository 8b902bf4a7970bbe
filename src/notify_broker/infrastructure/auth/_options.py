from __future__ import annotations

from typing import Any


def decode_kwargs(audience: str | None, issuer: str | None) -> dict[str, Any]:
    """Extra ``jwt.decode`` arguments for optional audience / issuer checks."""
    kwargs: dict[str, Any] = {}
    if audience:
        kwargs["audience"] = audience
    else:
        # Keycloak access tokens carry "aud"; without a configured audience skip the check
        kwargs["options"] = {"verify_aud": False}
    if issuer:
        kwargs["issuer"] = issuer
    return kwargs
