"""Send-side typing heartbeat."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine

logger = logging.getLogger(__name__)

EmitTyping = Callable[[str, bool], Coroutine[Any, Any, None]]


class TypingEmitter:
    """Emits typing=true on the first keystroke and every ``interval`` seconds
    while the input stays non-empty; typing=false on empty input or send.
    """

    def __init__(self, emit: EmitTyping, interval: float = 3.0) -> None:
        self._emit = emit
        self._interval = interval
        self._conversation_id: str | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def is_typing(self) -> bool:
        return self._conversation_id is not None

    async def on_input(self, conversation_id: str, text: str) -> None:
        if not text.strip():
            await self.stop()
            return
        if self._conversation_id == conversation_id:
            return
        await self.stop()
        self._conversation_id = conversation_id
        await self._safe_emit(conversation_id, True)
        self._task = asyncio.create_task(
            self._heartbeat(conversation_id), name=f"typing-heartbeat-{conversation_id}",
        )

    async def stop(self) -> None:
        conversation_id = self._conversation_id
        self._conversation_id = None
        await self._cancel()
        if conversation_id is not None:
            await self._safe_emit(conversation_id, False)

    async def _cancel(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _heartbeat(self, conversation_id: str) -> None:
        while True:
            await asyncio.sleep(self._interval)
            await self._safe_emit(conversation_id, True)

    async def _safe_emit(self, conversation_id: str, is_typing: bool) -> None:
        try:
            await self._emit(conversation_id, is_typing)
        except Exception:
            logger.warning("Typing signal for %s failed", conversation_id, exc_info=True)
