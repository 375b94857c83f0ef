"""FastAPI dependency injection helpers."""
from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from chat_sync.application.dto.principal import Principal
from chat_sync.application.ports.auth import TokenVerifier
from chat_sync.config import settings
from chat_sync.infrastructure.auth.hs256_verifier import HS256Verifier
from chat_sync.infrastructure.auth.jwks_verifier import JWKSVerifier
from chat_sync.services.chat_session import ChatSession
from chat_sync.services.session_registry import SessionRegistry
from chat_sync.state.presence import PresenceStore

_bearer_scheme = HTTPBearer()


def _get_verifier() -> TokenVerifier:
    if settings.JWT_VERIFY_MODE == "jwks":
        assert settings.JWKS_URL, "JWKS_URL must be set when JWT_VERIFY_MODE=jwks"
        return JWKSVerifier(settings.JWKS_URL)
    return HS256Verifier(settings.JWT_SECRET, settings.JWT_ALGORITHM)


_verifier: TokenVerifier | None = None


def get_verifier() -> TokenVerifier:
    global _verifier  # noqa: PLW0603
    if _verifier is None:
        _verifier = _get_verifier()
    return _verifier


async def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(_bearer_scheme)],
    verifier: Annotated[TokenVerifier, Depends(get_verifier)],
) -> Principal:
    try:
        return await verifier.verify(credentials.credentials)
    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.registry


def get_presence(request: Request) -> PresenceStore:
    return request.app.state.presence


RegistryDep = Annotated[SessionRegistry, Depends(get_registry)]
PresenceDep = Annotated[PresenceStore, Depends(get_presence)]


async def get_session(principal: CurrentPrincipal, registry: RegistryDep) -> ChatSession:
    return await registry.get_or_create(principal)


SessionDep = Annotated[ChatSession, Depends(get_session)]
