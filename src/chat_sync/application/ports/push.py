from __future__ import annotations

from typing import Any, Callable, Coroutine, Protocol

from chat_sync.application.dto.events import (
    MentorshipEvent,
    MessageEvent,
    ReadReceipt,
    TypingSignal,
    UserStatus,
)

MessageHandler = Callable[[MessageEvent], Coroutine[Any, Any, None]]
TypingHandler = Callable[[TypingSignal], Coroutine[Any, Any, None]]
ReadHandler = Callable[[ReadReceipt], Coroutine[Any, Any, None]]
MentorshipHandler = Callable[[MentorshipEvent], Coroutine[Any, Any, None]]
UserStatusHandler = Callable[[UserStatus], Coroutine[Any, Any, None]]
ConnectionHandler = Callable[[], Coroutine[Any, Any, None]]
Unsubscribe = Callable[[], None]


class PushTransport(Protocol):
    """Duplex push connection to the chat server.

    Handlers registered under a conversation id and under ``"*"`` both fire
    for the same event.
    """

    @property
    def is_connected(self) -> bool: ...

    async def connect(self, token: str, user_id: str) -> None: ...

    async def disconnect(self) -> None: ...

    def on_connect(self, handler: ConnectionHandler) -> Unsubscribe: ...

    def on_disconnect(self, handler: ConnectionHandler) -> Unsubscribe: ...

    def on_user_status(self, handler: UserStatusHandler) -> Unsubscribe: ...

    def on_message(self, conversation_id: str, handler: MessageHandler) -> Unsubscribe: ...

    def on_typing(self, conversation_id: str, handler: TypingHandler) -> Unsubscribe: ...

    def on_read(self, conversation_id: str, handler: ReadHandler) -> Unsubscribe: ...

    def on_conversation_mentorship(
        self, conversation_id: str, handler: MentorshipHandler,
    ) -> Unsubscribe: ...

    def on_mentorship_ended(self, handler: MentorshipHandler) -> Unsubscribe: ...

    def on_mentorship_started(self, handler: MentorshipHandler) -> Unsubscribe: ...

    async def join_conversation(self, conversation_id: str) -> None: ...

    async def leave_conversation(self, conversation_id: str) -> None: ...

    async def send_typing(self, conversation_id: str, is_typing: bool) -> None: ...

    async def mark_as_read(self, conversation_id: str, message_ids: list[str]) -> None: ...
