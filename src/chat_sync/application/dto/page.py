from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from chat_sync.domain.entities.message import Message
from chat_sync.domain.value_objects.enums import MentorshipStatus


@dataclass(frozen=True, slots=True)
class MentorshipSnapshot:
    """Mentorship fields piggybacked on a messages page."""

    status: MentorshipStatus
    mentorship_id: str | None = None
    end_reason: str | None = None
    ended_by: str | None = None
    ended_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class MessagePage:
    messages: list[Message] = field(default_factory=list)
    has_more: bool = False
    next_cursor: str | None = None
    mentorship: MentorshipSnapshot | None = None


@dataclass(frozen=True, slots=True)
class Mentorship:
    id: str
    status: MentorshipStatus
    mentor_id: str | None = None
    student_id: str | None = None
    end_reason: str | None = None
    ended_by: str | None = None
    ended_at: datetime | None = None
