from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class SendMessageRequest(BaseModel):
    content: str = Field(min_length=1)
    parent_message_id: str | None = None


class EditMessageRequest(BaseModel):
    content: str = Field(min_length=1)


class MessageResponse(BaseModel):
    id: str
    conversation_id: str
    sender_id: str
    type: str
    content: str | None
    created_at: datetime
    updated_at: datetime | None = None
    parent_message_id: str | None = None
    parent_message: MessageResponse | None = None
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
    pending: bool = False

    model_config = {"from_attributes": True}
