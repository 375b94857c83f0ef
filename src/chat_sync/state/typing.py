"""Remote typing indicators, keyed by conversation and user."""
from __future__ import annotations

from chat_sync.application.ports.clock import Clock, SystemClock


class TypingTracker:
    """Tracks who is typing where.

    An entry that is not refreshed within ``ttl`` seconds counts as stopped,
    so a lost "stop typing" delivery cannot leave the indicator stuck.
    A ``ttl`` of 0 disables expiry.
    """

    def __init__(self, ttl: float = 6.0, clock: Clock | None = None) -> None:
        self._ttl = ttl
        self._clock = clock or SystemClock()
        self._typing: dict[str, dict[str, float]] = {}

    def apply(self, conversation_id: str, user_id: str, is_typing: bool) -> bool:
        """Record a signal; returns True if the conversation flag flipped."""
        before = self.is_anyone_typing(conversation_id)
        users = self._typing.setdefault(conversation_id, {})
        if is_typing:
            users[user_id] = self._clock.monotonic()
        else:
            users.pop(user_id, None)
            if not users:
                del self._typing[conversation_id]
        return before != self.is_anyone_typing(conversation_id)

    def _alive(self, refreshed_at: float) -> bool:
        if self._ttl <= 0:
            return True
        return self._clock.monotonic() - refreshed_at < self._ttl

    def typing_users(self, conversation_id: str) -> list[str]:
        users = self._typing.get(conversation_id, {})
        return [uid for uid, at in users.items() if self._alive(at)]

    def is_anyone_typing(self, conversation_id: str) -> bool:
        return bool(self.typing_users(conversation_id))

    def prune(self) -> list[str]:
        """Drop expired entries; returns conversations whose flag went false."""
        cleared: list[str] = []
        for conversation_id in list(self._typing):
            users = self._typing[conversation_id]
            had_any = bool(users)
            for uid in [u for u, at in users.items() if not self._alive(at)]:
                del users[uid]
            if not users:
                del self._typing[conversation_id]
                if had_any:
                    cleared.append(conversation_id)
        return cleared

    def clear(self, conversation_id: str) -> None:
        self._typing.pop(conversation_id, None)
