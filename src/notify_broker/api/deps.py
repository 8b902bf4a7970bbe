"""FastAPI dependency injection helpers."""
from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from notify_broker.application.dto.identity import Identity
from notify_broker.application.exceptions import AuthenticationError
from notify_broker.application.ports.auth import TokenVerifier
from notify_broker.config import Settings, settings
from notify_broker.infrastructure.auth.hs256_verifier import HS256Verifier
from notify_broker.infrastructure.auth.jwks_verifier import JWKSVerifier
from notify_broker.infrastructure.auth.unverified_decoder import UnverifiedDecoder
from notify_broker.services.broker import Broker
from notify_broker.services.token_decoder import TokenDecoder

_bearer_scheme = HTTPBearer(auto_error=False)


def build_verifier(cfg: Settings = settings) -> TokenVerifier:
    if cfg.JWT_VERIFY_MODE == "jwks":
        if not cfg.JWKS_URL:
            raise RuntimeError("JWKS_URL must be set when JWT_VERIFY_MODE=jwks")
        return JWKSVerifier(cfg.JWKS_URL, audience=cfg.JWT_AUDIENCE, issuer=cfg.JWT_ISSUER)
    if cfg.JWT_VERIFY_MODE == "unverified":
        return UnverifiedDecoder()
    return HS256Verifier(
        cfg.JWT_SECRET,
        cfg.JWT_ALGORITHM,
        audience=cfg.JWT_AUDIENCE,
        issuer=cfg.JWT_ISSUER,
    )


def build_decoder(cfg: Settings = settings) -> TokenDecoder:
    return TokenDecoder(
        build_verifier(cfg),
        anonymous_subject_id=cfg.ANONYMOUS_SUBJECT_ID,
        public_role=cfg.PUBLIC_ROLE,
    )


def get_broker(request: Request) -> Broker:
    return request.app.state.broker


BrokerDep = Annotated[Broker, Depends(get_broker)]


async def get_current_identity(
    broker: BrokerDep,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer_scheme)],
) -> Identity:
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    try:
        return await broker.decoder.decode(credentials.credentials)
    except AuthenticationError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=exc.detail,
        ) from exc


CurrentIdentity = Annotated[Identity, Depends(get_current_identity)]


async def get_current_operator(identity: CurrentIdentity) -> Identity:
    if not identity.has_role(settings.DIAGNOSTICS_ROLE):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Operator access required")
    return identity


CurrentOperator = Annotated[Identity, Depends(get_current_operator)]
