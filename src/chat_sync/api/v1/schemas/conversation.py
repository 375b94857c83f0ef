from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from chat_sync.api.v1.schemas.message import MessageResponse
from chat_sync.application.policies.mentorship_gate import can_write
from chat_sync.domain.entities.conversation import Conversation
from chat_sync.state.presence import PresenceStore


class ParticipantResponse(BaseModel):
    id: str
    first_name: str
    last_name: str
    avatar: str | None = None
    role: str | None = None

    model_config = {"from_attributes": True}


class ConversationResponse(BaseModel):
    id: str
    mentorship_id: str | None
    participant1_id: str
    participant2_id: str
    participant1: ParticipantResponse | None = None
    participant2: ParticipantResponse | None = None
    last_message: MessageResponse | None = None
    last_message_at: datetime | None = None
    unread_count: int
    created_at: datetime
    mentorship_status: str
    mentorship_end_reason: str | None = None
    mentorship_ended_by: str | None = None
    mentorship_ended_at: datetime | None = None
    can_write: bool
    is_other_online: bool = False
    is_active: bool = False

    model_config = {"from_attributes": True}

    @classmethod
    def build(
        cls,
        conv: Conversation,
        *,
        user_id: str,
        presence: PresenceStore,
        active_id: str | None = None,
    ) -> ConversationResponse:
        return cls.model_validate(
            {
                **{name: getattr(conv, name) for name in _CONVERSATION_FIELDS},
                "participant1": conv.participant1,
                "participant2": conv.participant2,
                "last_message": conv.last_message,
                "mentorship_status": conv.mentorship_status.value,
                "can_write": can_write(conv),
                "is_other_online": presence.is_online(conv.other_participant_id(user_id)),
                "is_active": conv.id == active_id,
            },
            from_attributes=True,
        )


_CONVERSATION_FIELDS = (
    "id",
    "mentorship_id",
    "participant1_id",
    "participant2_id",
    "last_message_at",
    "unread_count",
    "created_at",
    "mentorship_end_reason",
    "mentorship_ended_by",
    "mentorship_ended_at",
)


class EndMentorshipRequest(BaseModel):
    reason: str = Field(min_length=1)


class MessagePageResponse(BaseModel):
    conversation: ConversationResponse
    messages: list[MessageResponse]
    has_more: bool
    read_only_notice: dict[str, Any] | None = None


class ActiveConversationResponse(MessagePageResponse):
    loading_older: bool = False
    is_other_typing: bool = False
    draft: str = ""
