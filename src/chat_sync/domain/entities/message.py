from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class Message:
    id: str
    conversation_id: str
    sender_id: str
    type: str
    content: str | None
    created_at: datetime
    updated_at: datetime | None = None
    parent_message_id: str | None = None
    parent_message: Message | None = None
    is_edited: bool = False
    edited_at: datetime | None = None
    is_deleted: bool = False
    deleted_at: datetime | None = None
    read_at: datetime | None = None
    attachment_url: str | None = None
    attachment_thumbnail_url: str | None = None
    attachment_file_name: str | None = None
    attachment_mime_type: str | None = None
    attachment_size: int | None = None
    # Local-only: optimistic copy not yet confirmed by the server.
    pending: bool = False

    def is_from(self, user_id: str) -> bool:
        return self.sender_id == user_id
