"""Wire payload -> domain mapping.

All timestamps leave this module timezone-aware (naive values are taken
as UTC), so comparisons between fetched and pushed copies are safe.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from chat_sync.application.dto.events import (
    MentorshipEvent,
    MessageEvent,
    ReadReceipt,
    TypingSignal,
    UserStatus,
)
from chat_sync.application.dto.page import Mentorship, MentorshipSnapshot, MessagePage
from chat_sync.application.exceptions import MalformedPayloadError
from chat_sync.domain.entities.conversation import Conversation
from chat_sync.domain.entities.message import Message
from chat_sync.domain.entities.participant import Participant
from chat_sync.domain.value_objects.enums import MentorshipStatus, MessageEventKind, MessageType
from chat_sync.infrastructure.wire.schemas import (
    ConversationWire,
    MentorshipFieldsWire,
    MentorshipPush,
    MentorshipWire,
    MessagesPageWire,
    MessageWire,
    ParticipantWire,
    ReadPush,
    TypingPush,
    UserPresencePush,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def parse(model: type[M], payload: Any) -> M:
    """Validate a decoded JSON payload, raising MalformedPayloadError."""
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        raise MalformedPayloadError(f"Malformed {model.__name__}: {exc.error_count()} error(s)") from exc


def _utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def mentorship_status(raw: str | None) -> MentorshipStatus:
    if not raw:
        return MentorshipStatus.NONE
    try:
        return MentorshipStatus(raw.lower())
    except ValueError:
        logger.debug("Unknown mentorship status %r", raw)
        return MentorshipStatus.NONE


def participant_from_wire(w: ParticipantWire) -> Participant:
    return Participant(
        id=w.id,
        first_name=w.first_name,
        last_name=w.last_name,
        avatar=w.avatar,
        role=w.role,
        is_online=w.is_online,
    )


def message_from_wire(w: MessageWire) -> Message:
    msg_type = MessageType.SYSTEM.value if w.is_system_message else w.type
    return Message(
        id=w.id,
        conversation_id=w.conversation_id,
        sender_id=w.sender_id,
        type=msg_type,
        content=w.content,
        created_at=_utc(w.created_at),  # type: ignore[arg-type]
        updated_at=_utc(w.updated_at),
        parent_message_id=w.parent_message_id,
        parent_message=message_from_wire(w.parent_message) if w.parent_message else None,
        is_edited=w.is_edited,
        edited_at=_utc(w.edited_at),
        is_deleted=w.is_deleted,
        deleted_at=_utc(w.deleted_at),
        read_at=_utc(w.read_at),
        attachment_url=w.attachment_url,
        attachment_thumbnail_url=w.attachment_thumbnail_url,
        attachment_file_name=w.attachment_file_name,
        attachment_mime_type=w.attachment_mime_type,
        attachment_size=w.attachment_size,
    )


def snapshot_from_wire(w: MentorshipFieldsWire) -> MentorshipSnapshot | None:
    if w.mentorship_status is None:
        return None
    return MentorshipSnapshot(
        status=mentorship_status(w.mentorship_status),
        mentorship_id=w.mentorship_id,
        end_reason=w.mentorship_end_reason,
        ended_by=w.mentorship_ended_by,
        ended_at=_utc(w.mentorship_ended_at),
    )


def conversation_from_wire(w: ConversationWire) -> Conversation:
    status = mentorship_status(w.mentorship_status)
    ended = status == MentorshipStatus.ENDED
    return Conversation(
        id=w.id,
        participant1_id=w.participant1_id,
        participant2_id=w.participant2_id,
        created_at=_utc(w.created_at),  # type: ignore[arg-type]
        mentorship_id=w.mentorship_id,
        mentor_id=w.mentor_id,
        student_id=w.student_id,
        participant1=participant_from_wire(w.participant1) if w.participant1 else None,
        participant2=participant_from_wire(w.participant2) if w.participant2 else None,
        last_message=message_from_wire(w.last_message) if w.last_message else None,
        last_message_at=_utc(w.last_message_at),
        unread_count=max(0, w.unread_count),
        mentorship_status=status,
        mentorship_end_reason=w.mentorship_end_reason if ended else None,
        mentorship_ended_by=w.mentorship_ended_by if ended else None,
        mentorship_ended_at=_utc(w.mentorship_ended_at) if ended else None,
    )


def page_from_wire(w: MessagesPageWire) -> MessagePage:
    return MessagePage(
        messages=[message_from_wire(m) for m in w.messages],
        has_more=w.has_more,
        next_cursor=w.next_cursor,
        mentorship=snapshot_from_wire(w),
    )


def mentorship_from_wire(w: MentorshipWire) -> Mentorship:
    return Mentorship(
        id=w.id,
        status=mentorship_status(w.status),
        mentor_id=w.mentor_id,
        student_id=w.student_id,
        end_reason=w.end_reason,
        ended_by=w.ended_by,
        ended_at=_utc(w.ended_at),
    )


# ---- push payloads ---------------------------------------------------------


def message_event(kind: MessageEventKind, payload: Any) -> MessageEvent:
    return MessageEvent(kind=kind, message=message_from_wire(parse(MessageWire, payload)))


def read_receipt(payload: Any) -> ReadReceipt:
    w = parse(ReadPush, payload)
    return ReadReceipt(
        conversation_id=w.conversation_id,
        message_ids=tuple(w.message_ids),
        read_by=w.read_by,
        read_at=_utc(w.read_at),
    )


def typing_signal(payload: Any, is_typing: bool) -> TypingSignal:
    w = parse(TypingPush, payload)
    return TypingSignal(conversation_id=w.conversation_id, user_id=w.user_id, is_typing=is_typing)


def mentorship_event(payload: Any) -> MentorshipEvent:
    w = parse(MentorshipPush, payload)
    return MentorshipEvent(
        mentorship_id=w.mentorship_id,
        status=mentorship_status(w.status),
        conversation_id=w.conversation_id,
        end_reason=w.end_reason,
        ended_by=w.ended_by,
        ended_at=_utc(w.ended_at),
    )


def user_status(payload: Any, is_online: bool | None = None) -> UserStatus:
    """``user:online`` / ``user:offline`` fix the flag; ``user:status`` carries it."""
    w = parse(UserPresencePush, payload)
    online = is_online if is_online is not None else w.is_online
    if online is None:
        raise MalformedPayloadError("user:status without isOnline")
    return UserStatus(user_id=w.user_id, is_online=online)
