from __future__ import annotations

from typing import Protocol

from chat_sync.application.dto.page import Mentorship, MessagePage
from chat_sync.domain.entities.conversation import Conversation
from chat_sync.domain.entities.message import Message
from chat_sync.domain.value_objects.enums import MentorshipStatus


class ChatApi(Protocol):
    async def get_conversations(self) -> list[Conversation]: ...

    async def get_conversation_by_mentorship(self, mentorship_id: str) -> Conversation: ...

    async def get_messages(
        self,
        conversation_id: str,
        *,
        limit: int = 50,
        before: str | None = None,
    ) -> MessagePage: ...

    async def send_message(
        self,
        conversation_id: str,
        content: str,
        parent_message_id: str | None = None,
    ) -> Message: ...

    async def edit_message(self, message_id: str, content: str) -> Message: ...

    async def delete_message(self, message_id: str) -> Message: ...

    async def get_unread_count(self, conversation_id: str) -> int: ...

    async def upload_attachment(
        self,
        conversation_id: str,
        file_name: str,
        content: bytes,
        content_type: str | None = None,
        caption: str | None = None,
    ) -> Message: ...


class MentorshipApi(Protocol):
    async def end_mentorship(self, mentorship_id: str, reason: str) -> Mentorship: ...

    async def get_mentorships(self, status: MentorshipStatus | None = None) -> list[Mentorship]: ...
