"""Callback registry for push events, keyed by conversation id or ``"*"``."""
from __future__ import annotations

import logging
from typing import Any, Callable, Coroutine

from chat_sync.domain.value_objects.ids import WILDCARD

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Coroutine[Any, Any, None]]


class EventRegistry:
    """Handlers per (event, key).

    ``dispatch`` fires the handlers registered under the event's conversation
    id and then those registered under ``"*"``. The same handler registered
    under both keys is called twice; deduplication belongs to the consumer.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, dict[str, list[Handler]]] = {}

    def add(self, event: str, key: str, handler: Handler) -> Callable[[], None]:
        handlers = self._handlers.setdefault(event, {}).setdefault(key, [])
        handlers.append(handler)

        def unsubscribe() -> None:
            by_key = self._handlers.get(event, {})
            registered = by_key.get(key, [])
            if handler in registered:
                registered.remove(handler)
            if not registered:
                by_key.pop(key, None)

        return unsubscribe

    def count(self, event: str, key: str | None = None) -> int:
        by_key = self._handlers.get(event, {})
        if key is not None:
            return len(by_key.get(key, []))
        return sum(len(h) for h in by_key.values())

    def clear(self) -> None:
        self._handlers.clear()

    async def dispatch(self, event: str, key: str | None, payload: Any) -> None:
        by_key = self._handlers.get(event, {})
        targets: list[Handler] = []
        if key is not None and key != WILDCARD:
            targets.extend(by_key.get(key, []))
        targets.extend(by_key.get(WILDCARD, []))
        for handler in targets:
            try:
                await handler(payload)
            except Exception:
                logger.exception("Push handler for %s failed", event)

    async def dispatch_plain(self, event: str) -> None:
        """Dispatch an event without payload (connect / disconnect)."""
        for handler in list(self._handlers.get(event, {}).get(WILDCARD, [])):
            try:
                await handler()
            except Exception:
                logger.exception("Push handler for %s failed", event)
