"""Write-eligibility of a conversation, derived from its mentorship lifecycle."""
from __future__ import annotations

from typing import Any

from chat_sync.application.exceptions import MentorshipEndedError, NotFoundError
from chat_sync.domain.entities.conversation import Conversation
from chat_sync.domain.value_objects.enums import MentorshipStatus


def can_write(conversation: Conversation) -> bool:
    return conversation.mentorship_status != MentorshipStatus.ENDED


def read_only_notice(
    conversation: Conversation,
    reconnect_path: str = "/mentorship/requests",
) -> dict[str, Any] | None:
    """UI notice for an ended mentorship, ``None`` while writable."""
    if can_write(conversation):
        return None
    return {
        "conversation_id": conversation.id,
        "mentorship_id": conversation.mentorship_id,
        "reason": conversation.mentorship_end_reason,
        "ended_by": conversation.mentorship_ended_by,
        "ended_at": (
            conversation.mentorship_ended_at.isoformat()
            if conversation.mentorship_ended_at
            else None
        ),
        "reconnect_path": reconnect_path,
    }


def assert_can_write(
    conversation: Conversation | None,
    reconnect_path: str = "/mentorship/requests",
) -> Conversation:
    """Raise unless the conversation exists and accepts writes."""
    if conversation is None:
        raise NotFoundError("Conversation not found")

    notice = read_only_notice(conversation, reconnect_path)
    if notice is not None:
        raise MentorshipEndedError(
            "This mentorship has ended; the conversation is read-only",
            notice,
        )
    return conversation
