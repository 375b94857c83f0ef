"""One ``ChatSession`` per authenticated user, created on first use."""
from __future__ import annotations

import asyncio
import logging
from typing import Callable

from chat_sync.application.dto.principal import Principal
from chat_sync.services.chat_session import ChatSession

logger = logging.getLogger(__name__)

SessionFactory = Callable[[Principal], ChatSession]


class SessionRegistry:
    def __init__(self, factory: SessionFactory) -> None:
        self._factory = factory
        self._sessions: dict[str, ChatSession] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, principal: Principal) -> ChatSession | None:
        return self._sessions.get(principal.principal_key)

    async def get_or_create(self, principal: Principal) -> ChatSession:
        key = principal.principal_key
        session = self._sessions.get(key)
        if session is not None:
            return session

        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            session = self._sessions.get(key)
            if session is None:
                session = self._factory(principal)
                await session.start()
                self._sessions[key] = session
                logger.info("Session created for %s (active=%d)", key, len(self._sessions))
        return session

    async def close(self, principal: Principal) -> None:
        session = self._sessions.pop(principal.principal_key, None)
        self._locks.pop(principal.principal_key, None)
        if session is not None:
            await session.close()

    async def close_all(self) -> None:
        sessions = list(self._sessions.values())
        self._sessions.clear()
        self._locks.clear()
        for session in sessions:
            try:
                await session.close()
            except Exception:
                logger.exception("Failed to close session for %s", session.user_id)
