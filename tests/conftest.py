"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from chat_sync.application.dto.events import MessageEvent
from chat_sync.application.dto.options import EngineOptions
from chat_sync.application.dto.page import Mentorship, MentorshipSnapshot, MessagePage
from chat_sync.application.dto.principal import Principal
from chat_sync.application.exceptions import NotFoundError, UpstreamError
from chat_sync.domain.entities.conversation import Conversation
from chat_sync.domain.entities.message import Message
from chat_sync.domain.entities.participant import Participant
from chat_sync.domain.value_objects.enums import MentorshipStatus, MessageEventKind, MessageType
from chat_sync.infrastructure.push.registry import EventRegistry
from chat_sync.services.chat_session import ChatSession
from chat_sync.state.presence import PresenceStore

ME = "user-me"
MENTOR = "user-mentor"
T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

_ids = itertools.count(1)


def at(seconds: float) -> datetime:
    return T0 + timedelta(seconds=seconds)


def make_message(
    *,
    message_id: str | None = None,
    conversation_id: str = "c1",
    sender_id: str = MENTOR,
    content: str | None = "hello",
    created_at: datetime | None = None,
    **overrides: Any,
) -> Message:
    return Message(
        id=message_id or f"m{next(_ids)}",
        conversation_id=conversation_id,
        sender_id=sender_id,
        type=MessageType.TEXT.value,
        content=content,
        created_at=created_at or T0,
        **overrides,
    )


def make_conversation(
    *,
    conversation_id: str = "c1",
    other_id: str = MENTOR,
    mentorship_id: str | None = None,
    status: MentorshipStatus = MentorshipStatus.ACTIVE,
    last_message_at: datetime | None = None,
    created_at: datetime | None = None,
    unread_count: int = 0,
    other_online: bool | None = None,
    **overrides: Any,
) -> Conversation:
    return Conversation(
        id=conversation_id,
        participant1_id=other_id,
        participant2_id=ME,
        created_at=created_at or T0 - timedelta(days=1),
        mentorship_id=mentorship_id or f"ms-{conversation_id}",
        mentor_id=other_id,
        student_id=ME,
        participant1=Participant(id=other_id, first_name="Ada", last_name="Mentor", is_online=other_online),
        participant2=Participant(id=ME, first_name="Sam", last_name="Student"),
        last_message_at=last_message_at,
        unread_count=unread_count,
        mentorship_status=status,
        **overrides,
    )


@pytest.fixture
def principal() -> Principal:
    return Principal(user_id=ME, token="token-me", roles=[])


@dataclass
class FakeClock:
    current: datetime = T0
    mono: float = 1000.0

    def now(self) -> datetime:
        return self.current

    def monotonic(self) -> float:
        return self.mono

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)
        self.mono += seconds


@dataclass
class FakeChatApi:
    """In-memory Chat API; records every call in ``calls``."""

    conversations: list[Conversation] = field(default_factory=list)
    pages: dict[str, list[Message]] = field(default_factory=dict)
    has_more: dict[str, bool] = field(default_factory=dict)
    mentorship: dict[str, MentorshipSnapshot] = field(default_factory=dict)
    fail_send: bool = False
    hold_conversations: asyncio.Event | None = None
    calls: list[tuple[str, tuple[Any, ...]]] = field(default_factory=list)
    _seq: itertools.count = field(default_factory=lambda: itertools.count(1))

    def calls_to(self, name: str) -> list[tuple[Any, ...]]:
        return [args for n, args in self.calls if n == name]

    def _find(self, message_id: str) -> Message:
        for messages in self.pages.values():
            for m in messages:
                if m.id == message_id:
                    return m
        raise NotFoundError("Message not found")

    def _store(self, message: Message) -> Message:
        msgs = self.pages.setdefault(message.conversation_id, [])
        for i, m in enumerate(msgs):
            if m.id == message.id:
                msgs[i] = message
                return message
        msgs.append(message)
        return message

    async def get_conversations(self) -> list[Conversation]:
        self.calls.append(("get_conversations", ()))
        if self.hold_conversations is not None:
            await self.hold_conversations.wait()
        return list(self.conversations)

    async def get_conversation_by_mentorship(self, mentorship_id: str) -> Conversation:
        self.calls.append(("get_conversation_by_mentorship", (mentorship_id,)))
        for c in self.conversations:
            if c.mentorship_id == mentorship_id:
                return c
        raise NotFoundError("Conversation not found")

    async def get_messages(
        self, conversation_id: str, *, limit: int = 50, before: str | None = None,
    ) -> MessagePage:
        self.calls.append(("get_messages", (conversation_id, limit, before)))
        msgs = self.pages.get(conversation_id, [])
        if before is not None:
            idx = next((i for i, m in enumerate(msgs) if m.id == before), len(msgs))
            msgs = msgs[:idx]
        window = msgs[-limit:]
        return MessagePage(
            messages=list(window),
            has_more=self.has_more.get(conversation_id, len(msgs) > limit),
            next_cursor=window[0].id if window else None,
            mentorship=self.mentorship.get(conversation_id),
        )

    async def send_message(
        self, conversation_id: str, content: str, parent_message_id: str | None = None,
    ) -> Message:
        self.calls.append(("send_message", (conversation_id, content, parent_message_id)))
        if self.fail_send:
            raise UpstreamError("Network Error")
        return self._store(
            make_message(
                message_id=f"srv-{next(self._seq)}",
                conversation_id=conversation_id,
                sender_id=ME,
                content=content,
                created_at=at(60),
                parent_message_id=parent_message_id,
            )
        )

    async def edit_message(self, message_id: str, content: str) -> Message:
        self.calls.append(("edit_message", (message_id, content)))
        m = self._find(message_id)
        return self._store(replace(m, content=content, is_edited=True, edited_at=at(90)))

    async def delete_message(self, message_id: str) -> Message:
        self.calls.append(("delete_message", (message_id,)))
        m = self._find(message_id)
        return self._store(replace(m, is_deleted=True, deleted_at=at(95)))

    async def get_unread_count(self, conversation_id: str) -> int:
        self.calls.append(("get_unread_count", (conversation_id,)))
        return sum(
            1 for m in self.pages.get(conversation_id, []) if m.sender_id != ME and m.read_at is None
        )

    async def upload_attachment(
        self,
        conversation_id: str,
        file_name: str,
        content: bytes,
        content_type: str | None = None,
        caption: str | None = None,
    ) -> Message:
        self.calls.append(("upload_attachment", (conversation_id, file_name, len(content))))
        return self._store(
            make_message(
                message_id=f"srv-{next(self._seq)}",
                conversation_id=conversation_id,
                sender_id=ME,
                content=caption,
                created_at=at(70),
                attachment_file_name=file_name,
                attachment_mime_type=content_type,
                attachment_size=len(content),
            )
        )


@dataclass
class FakeMentorshipApi:
    mentorships: dict[str, Mentorship] = field(default_factory=dict)
    calls: list[tuple[str, tuple[Any, ...]]] = field(default_factory=list)

    async def end_mentorship(self, mentorship_id: str, reason: str) -> Mentorship:
        self.calls.append(("end_mentorship", (mentorship_id, reason)))
        ended = Mentorship(
            id=mentorship_id,
            status=MentorshipStatus.ENDED,
            end_reason=reason,
            ended_by=ME,
            ended_at=at(120),
        )
        self.mentorships[mentorship_id] = ended
        return ended

    async def get_mentorships(self, status: MentorshipStatus | None = None) -> list[Mentorship]:
        self.calls.append(("get_mentorships", (status,)))
        return [m for m in self.mentorships.values() if status is None or m.status == status]


@dataclass
class FakePushTransport:
    """Registry-backed push fake. ``deliver_*`` simulate server events."""

    connected: bool = True
    registry: EventRegistry = field(default_factory=EventRegistry)
    emitted: list[tuple[str, dict[str, Any]]] = field(default_factory=list)

    @property
    def is_connected(self) -> bool:
        return self.connected

    def emitted_as(self, event: str) -> list[dict[str, Any]]:
        return [data for name, data in self.emitted if name == event]

    async def connect(self, token: str, user_id: str) -> None:
        self.emitted.append(("connect", {"token": token, "userId": user_id}))

    async def disconnect(self) -> None:
        self.connected = False

    def on_connect(self, handler):
        return self.registry.add("connect", "*", handler)

    def on_disconnect(self, handler):
        return self.registry.add("disconnect", "*", handler)

    def on_user_status(self, handler):
        return self.registry.add("user_status", "*", handler)

    def on_message(self, conversation_id, handler):
        return self.registry.add("message", conversation_id, handler)

    def on_typing(self, conversation_id, handler):
        return self.registry.add("typing", conversation_id, handler)

    def on_read(self, conversation_id, handler):
        return self.registry.add("read", conversation_id, handler)

    def on_conversation_mentorship(self, conversation_id, handler):
        return self.registry.add("conversation_mentorship", conversation_id, handler)

    def on_mentorship_ended(self, handler):
        return self.registry.add("mentorship_ended", "*", handler)

    def on_mentorship_started(self, handler):
        return self.registry.add("mentorship_started", "*", handler)

    async def join_conversation(self, conversation_id: str) -> None:
        self.emitted.append(("conversation:join", {"conversationId": conversation_id}))

    async def leave_conversation(self, conversation_id: str) -> None:
        self.emitted.append(("conversation:leave", {"conversationId": conversation_id}))

    async def send_typing(self, conversation_id: str, is_typing: bool) -> None:
        event = "typing:start" if is_typing else "typing:stop"
        self.emitted.append((event, {"conversationId": conversation_id}))

    async def mark_as_read(self, conversation_id: str, message_ids: list[str]) -> None:
        self.emitted.append(
            ("messages:read", {"conversationId": conversation_id, "messageIds": list(message_ids)})
        )

    async def deliver_message(
        self, message: Message, kind: MessageEventKind = MessageEventKind.NEW,
    ) -> None:
        await self.registry.dispatch(
            "message", message.conversation_id, MessageEvent(kind=kind, message=message),
        )

    async def deliver(self, channel: str, key: str | None, payload: Any) -> None:
        await self.registry.dispatch(channel, key, payload)


@dataclass
class FakeUiSink:
    events: list[tuple[str, str, dict[str, Any]]] = field(default_factory=list)

    async def send_to_principal(self, principal_key: str, event_type: str, data: dict[str, Any]) -> None:
        self.events.append((principal_key, event_type, data))

    def of_type(self, event_type: str) -> list[dict[str, Any]]:
        return [data for _, t, data in self.events if t == event_type]


@dataclass
class SessionHarness:
    session: ChatSession
    api: FakeChatApi
    mentorships: FakeMentorshipApi
    push: FakePushTransport
    ui: FakeUiSink
    clock: FakeClock
    presence: PresenceStore


def build_session(
    principal: Principal,
    *,
    conversations: list[Conversation] | None = None,
    pages: dict[str, list[Message]] | None = None,
    options: EngineOptions | None = None,
    presence: PresenceStore | None = None,
) -> SessionHarness:
    api = FakeChatApi(conversations=list(conversations or []), pages=dict(pages or {}))
    mentorships = FakeMentorshipApi()
    push = FakePushTransport()
    ui = FakeUiSink()
    clock = FakeClock()
    presence = presence or PresenceStore()
    session = ChatSession(
        principal,
        api,
        mentorships,
        push,
        presence,
        ui,
        options or EngineOptions(poll_interval=3600, typing_heartbeat=3600),
        clock,
    )
    return SessionHarness(session, api, mentorships, push, ui, clock, presence)

