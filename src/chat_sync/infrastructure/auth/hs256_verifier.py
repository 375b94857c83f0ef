from __future__ import annotations

import jwt

from chat_sync.application.dto.principal import Principal


class HS256Verifier:
    """Verify JWTs signed with a shared HS256 secret."""

    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        self._secret = secret
        self._algorithm = algorithm

    async def verify(self, token: str) -> Principal:
        payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        return principal_from_claims(payload, token)


def principal_from_claims(payload: dict, token: str) -> Principal:
    subject = payload.get("sub") or payload.get("userId") or payload.get("id")
    if not subject:
        raise jwt.InvalidTokenError("Token has no subject")
    roles = payload.get("roles") or ([payload["role"]] if payload.get("role") else [])
    return Principal(user_id=str(subject), token=token, roles=list(roles))
