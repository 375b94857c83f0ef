"""Wire models for the Chat API and push payloads (camelCase JSON)."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class ParticipantWire(WireModel):
    id: str
    first_name: str = ""
    last_name: str = ""
    avatar: str | None = None
    role: str | None = None
    is_online: bool | None = None


class MessageWire(WireModel):
    id: str
    conversation_id: str
    sender_id: str
    sender: ParticipantWire | None = None
    type: str = "text"
    content: str | None = None
    parent_message_id: str | None = None
    parent_message: MessageWire | None = None
    is_edited: bool = False
    edited_at: datetime | None = None
    is_deleted: bool = False
    deleted_at: datetime | None = None
    read_at: datetime | None = None
    created_at: datetime
    updated_at: datetime | None = None
    is_system_message: bool = False
    attachment_url: str | None = None
    attachment_thumbnail_url: str | None = None
    attachment_file_name: str | None = None
    attachment_mime_type: str | None = None
    attachment_size: int | None = None


class MentorshipFieldsWire(WireModel):
    mentorship_id: str | None = None
    mentorship_status: str | None = None
    mentorship_end_reason: str | None = None
    mentorship_ended_by: str | None = None
    mentorship_ended_at: datetime | None = None


class ConversationWire(MentorshipFieldsWire):
    id: str
    mentor_id: str | None = None
    student_id: str | None = None
    participant1_id: str = Field(alias="participant1Id")
    participant2_id: str = Field(alias="participant2Id")
    participant1: ParticipantWire | None = None
    participant2: ParticipantWire | None = None
    last_message_at: datetime | None = None
    last_message: MessageWire | None = None
    unread_count: int = 0
    created_at: datetime


class MessagesPageWire(MentorshipFieldsWire):
    messages: list[MessageWire] = []
    has_more: bool = False
    next_cursor: str | None = None


class UnreadCountWire(WireModel):
    count: int = 0


class MentorshipWire(WireModel):
    id: str
    status: str
    mentor_id: str | None = None
    student_id: str | None = None
    end_reason: str | None = None
    ended_by: str | None = None
    ended_at: datetime | None = None


class MentorshipsWire(WireModel):
    mentorships: list[MentorshipWire] = []
    meta: dict[str, Any] = {}


# ---- push payloads ---------------------------------------------------------


class ReadPush(WireModel):
    conversation_id: str
    message_ids: list[str] = []
    read_by: str = ""
    read_at: datetime | None = None


class TypingPush(WireModel):
    conversation_id: str
    user_id: str


class MentorshipPush(WireModel):
    mentorship_id: str = ""
    status: str
    conversation_id: str | None = None
    end_reason: str | None = None
    ended_by: str | None = None
    ended_at: datetime | None = None


class UserPresencePush(WireModel):
    user_id: str
    is_online: bool | None = None
