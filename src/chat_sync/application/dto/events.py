from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from chat_sync.domain.entities.message import Message
from chat_sync.domain.value_objects.enums import MentorshipStatus, MessageEventKind


@dataclass(frozen=True, slots=True)
class MessageEvent:
    kind: MessageEventKind
    message: Message


@dataclass(frozen=True, slots=True)
class ReadReceipt:
    conversation_id: str
    message_ids: tuple[str, ...]
    read_by: str
    read_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class TypingSignal:
    conversation_id: str
    user_id: str
    is_typing: bool


@dataclass(frozen=True, slots=True)
class MentorshipEvent:
    mentorship_id: str
    status: MentorshipStatus
    conversation_id: str | None = None
    end_reason: str | None = None
    ended_by: str | None = None
    ended_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class UserStatus:
    user_id: str
    is_online: bool
