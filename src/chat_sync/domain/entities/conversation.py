from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from chat_sync.domain.entities.message import Message
from chat_sync.domain.entities.participant import Participant
from chat_sync.domain.value_objects.enums import MentorshipStatus


@dataclass(frozen=True, slots=True)
class Conversation:
    id: str
    participant1_id: str
    participant2_id: str
    created_at: datetime
    mentorship_id: str | None = None
    mentor_id: str | None = None
    student_id: str | None = None
    participant1: Participant | None = None
    participant2: Participant | None = None
    last_message: Message | None = None
    last_message_at: datetime | None = None
    unread_count: int = 0
    mentorship_status: MentorshipStatus = MentorshipStatus.NONE
    mentorship_end_reason: str | None = None
    mentorship_ended_by: str | None = None
    mentorship_ended_at: datetime | None = None

    @property
    def activity_at(self) -> datetime:
        """Sort key: the list is ordered by this value, newest first."""
        return self.last_message_at or self.created_at

    def other_participant_id(self, user_id: str) -> str:
        if self.participant1_id == user_id:
            return self.participant2_id
        return self.participant1_id

    def other_participant(self, user_id: str) -> Participant | None:
        if self.participant1_id == user_id:
            return self.participant2
        return self.participant1
