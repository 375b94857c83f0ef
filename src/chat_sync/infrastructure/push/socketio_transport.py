"""Push transport on a python-socketio ``AsyncClient`` (namespace ``/chat``)."""
from __future__ import annotations

import logging
from typing import Any, Callable, Coroutine

import socketio

from chat_sync.application.exceptions import MalformedPayloadError
from chat_sync.application.ports.push import (
    ConnectionHandler,
    MentorshipHandler,
    MessageHandler,
    ReadHandler,
    TypingHandler,
    Unsubscribe,
    UserStatusHandler,
)
from chat_sync.domain.value_objects.enums import MessageEventKind
from chat_sync.domain.value_objects.ids import WILDCARD
from chat_sync.infrastructure.push.registry import EventRegistry
from chat_sync.infrastructure.wire import mappers

logger = logging.getLogger(__name__)

# Registry channels.
MESSAGE = "message"
TYPING = "typing"
READ = "read"
CONVERSATION_MENTORSHIP = "conversation_mentorship"
MENTORSHIP_ENDED = "mentorship_ended"
MENTORSHIP_STARTED = "mentorship_started"
USER_STATUS = "user_status"
CONNECT = "connect"
DISCONNECT = "disconnect"

_MESSAGE_EVENTS = {
    "message:new": MessageEventKind.NEW,
    "message:edited": MessageEventKind.EDITED,
    "message:deleted": MessageEventKind.DELETED,
}


class SocketIoPushTransport:
    """One Socket.IO connection per chat session.

    Inbound events are validated, mapped to DTOs and dispatched to the
    handlers registered under the event's conversation id and under ``"*"``.
    Malformed payloads are dropped.
    """

    def __init__(
        self,
        url: str,
        *,
        namespace: str = "/chat",
        socketio_path: str = "socket.io",
        reconnection_attempts: int = 5,
        reconnection_delay: float = 1.0,
        client_factory: Callable[..., Any] | None = None,
    ) -> None:
        self._url = url
        self._namespace = namespace
        self._socketio_path = socketio_path
        self._registry = EventRegistry()
        factory = client_factory or socketio.AsyncClient
        self._client = factory(
            reconnection=True,
            reconnection_attempts=reconnection_attempts,
            reconnection_delay=reconnection_delay,
            logger=False,
            engineio_logger=False,
        )
        self._bind()

    @property
    def registry(self) -> EventRegistry:
        return self._registry

    @property
    def is_connected(self) -> bool:
        return bool(self._client.connected)

    # ---- wiring ------------------------------------------------------------

    def _bind(self) -> None:
        on = self._client.on
        ns = self._namespace
        on("connect", self._handle_connect, namespace=ns)
        on("disconnect", self._handle_disconnect, namespace=ns)
        on("connect_error", self._handle_connect_error, namespace=ns)
        for event, kind in _MESSAGE_EVENTS.items():
            on(event, self._message_handler(kind), namespace=ns)
        on("messages:read", self._handle_read, namespace=ns)
        on("typing:start", self._typing_handler(True), namespace=ns)
        on("typing:stop", self._typing_handler(False), namespace=ns)
        on("mentorship:ended", self._mentorship_handler(MENTORSHIP_ENDED), namespace=ns)
        on("mentorship:started", self._mentorship_handler(MENTORSHIP_STARTED), namespace=ns)
        on("conversation:mentorship", self._handle_conversation_mentorship, namespace=ns)
        on("user:online", self._user_status_handler(True), namespace=ns)
        on("user:offline", self._user_status_handler(False), namespace=ns)
        on("user:status", self._user_status_handler(None), namespace=ns)

    async def _handle_connect(self) -> None:
        logger.info("Push connected to %s%s", self._url, self._namespace)
        await self._registry.dispatch_plain(CONNECT)

    async def _handle_disconnect(self, *_reason: Any) -> None:
        logger.warning("Push disconnected from %s%s", self._url, self._namespace)
        await self._registry.dispatch_plain(DISCONNECT)

    async def _handle_connect_error(self, data: Any) -> None:
        logger.error("Push connect error: %s", data)

    def _message_handler(self, kind: MessageEventKind) -> Callable[[Any], Coroutine[Any, Any, None]]:
        async def handler(payload: Any) -> None:
            try:
                event = mappers.message_event(kind, payload)
            except MalformedPayloadError as exc:
                logger.debug("Dropping message:%s payload: %s", kind, exc.detail)
                return
            await self._registry.dispatch(MESSAGE, event.message.conversation_id, event)

        return handler

    async def _handle_read(self, payload: Any) -> None:
        try:
            receipt = mappers.read_receipt(payload)
        except MalformedPayloadError as exc:
            logger.debug("Dropping messages:read payload: %s", exc.detail)
            return
        await self._registry.dispatch(READ, receipt.conversation_id, receipt)

    def _typing_handler(self, is_typing: bool) -> Callable[[Any], Coroutine[Any, Any, None]]:
        async def handler(payload: Any) -> None:
            try:
                signal = mappers.typing_signal(payload, is_typing)
            except MalformedPayloadError as exc:
                logger.debug("Dropping typing payload: %s", exc.detail)
                return
            await self._registry.dispatch(TYPING, signal.conversation_id, signal)

        return handler

    def _mentorship_handler(self, channel: str) -> Callable[[Any], Coroutine[Any, Any, None]]:
        async def handler(payload: Any) -> None:
            try:
                event = mappers.mentorship_event(payload)
            except MalformedPayloadError as exc:
                logger.debug("Dropping %s payload: %s", channel, exc.detail)
                return
            await self._registry.dispatch(channel, None, event)

        return handler

    async def _handle_conversation_mentorship(self, payload: Any) -> None:
        try:
            event = mappers.mentorship_event(payload)
        except MalformedPayloadError as exc:
            logger.debug("Dropping conversation:mentorship payload: %s", exc.detail)
            return
        await self._registry.dispatch(CONVERSATION_MENTORSHIP, event.conversation_id, event)

    def _user_status_handler(self, is_online: bool | None) -> Callable[[Any], Coroutine[Any, Any, None]]:
        async def handler(payload: Any) -> None:
            try:
                status = mappers.user_status(payload, is_online)
            except MalformedPayloadError as exc:
                logger.debug("Dropping user status payload: %s", exc.detail)
                return
            await self._registry.dispatch(USER_STATUS, None, status)

        return handler

    # ---- connection --------------------------------------------------------

    async def connect(self, token: str, user_id: str) -> None:
        if self.is_connected:
            return
        await self._client.connect(
            self._url,
            namespaces=[self._namespace],
            transports=["websocket", "polling"],
            socketio_path=self._socketio_path,
            auth={"token": token, "userId": user_id},
        )

    async def disconnect(self) -> None:
        await self._client.disconnect()

    # ---- subscriptions -----------------------------------------------------

    def on_connect(self, handler: ConnectionHandler) -> Unsubscribe:
        return self._registry.add(CONNECT, WILDCARD, handler)

    def on_disconnect(self, handler: ConnectionHandler) -> Unsubscribe:
        return self._registry.add(DISCONNECT, WILDCARD, handler)

    def on_user_status(self, handler: UserStatusHandler) -> Unsubscribe:
        return self._registry.add(USER_STATUS, WILDCARD, handler)

    def on_message(self, conversation_id: str, handler: MessageHandler) -> Unsubscribe:
        return self._registry.add(MESSAGE, conversation_id, handler)

    def on_typing(self, conversation_id: str, handler: TypingHandler) -> Unsubscribe:
        return self._registry.add(TYPING, conversation_id, handler)

    def on_read(self, conversation_id: str, handler: ReadHandler) -> Unsubscribe:
        return self._registry.add(READ, conversation_id, handler)

    def on_conversation_mentorship(
        self, conversation_id: str, handler: MentorshipHandler,
    ) -> Unsubscribe:
        return self._registry.add(CONVERSATION_MENTORSHIP, conversation_id, handler)

    def on_mentorship_ended(self, handler: MentorshipHandler) -> Unsubscribe:
        return self._registry.add(MENTORSHIP_ENDED, WILDCARD, handler)

    def on_mentorship_started(self, handler: MentorshipHandler) -> Unsubscribe:
        return self._registry.add(MENTORSHIP_STARTED, WILDCARD, handler)

    # ---- emits (no-ops while disconnected) ---------------------------------

    async def _emit(self, event: str, data: dict[str, Any]) -> None:
        if not self.is_connected:
            logger.debug("Not connected; dropping %s", event)
            return
        await self._client.emit(event, data, namespace=self._namespace)

    async def join_conversation(self, conversation_id: str) -> None:
        await self._emit("conversation:join", {"conversationId": conversation_id})

    async def leave_conversation(self, conversation_id: str) -> None:
        await self._emit("conversation:leave", {"conversationId": conversation_id})

    async def send_typing(self, conversation_id: str, is_typing: bool) -> None:
        event = "typing:start" if is_typing else "typing:stop"
        await self._emit(event, {"conversationId": conversation_id})

    async def mark_as_read(self, conversation_id: str, message_ids: list[str]) -> None:
        await self._emit("messages:read", {"conversationId": conversation_id, "messageIds": message_ids})
