"""Merge of incoming message copies into the local message list.

Every producer (initial fetch, backward pages, push on the scoped and the
wildcard channel, the poll tick and optimistic sends) goes through
``reconcile``. The merge is keyed by message id and is idempotent, so the
same copy delivered twice leaves the list unchanged the second time.
"""
from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from chat_sync.domain.entities.message import Message

DEFAULT_TOMBSTONE = "This message was deleted"


def _latest(a: datetime | None, b: datetime | None) -> datetime | None:
    if a is None:
        return b
    if b is None:
        return a
    return max(a, b)


def _index_of(messages: list[Message], message_id: str) -> int | None:
    for i, m in enumerate(messages):
        if m.id == message_id:
            return i
    return None


def merge(existing: Message, incoming: Message, *, tombstone: str = DEFAULT_TOMBSTONE) -> Message:
    """Field-by-field merge of two copies of the same message."""
    content = incoming.content if incoming.content is not None else existing.content
    if incoming.is_deleted:
        content = tombstone
    return replace(
        existing,
        content=content,
        is_edited=incoming.is_edited,
        edited_at=(incoming.edited_at or existing.edited_at) if incoming.is_edited else None,
        is_deleted=incoming.is_deleted,
        deleted_at=(incoming.deleted_at or existing.deleted_at) if incoming.is_deleted else None,
        # readAt only moves forward; None means "not read yet".
        read_at=_latest(existing.read_at, incoming.read_at),
        updated_at=_latest(existing.updated_at, incoming.updated_at),
        parent_message=incoming.parent_message or existing.parent_message,
        parent_message_id=incoming.parent_message_id or existing.parent_message_id,
        attachment_url=incoming.attachment_url or existing.attachment_url,
        attachment_thumbnail_url=(
            incoming.attachment_thumbnail_url or existing.attachment_thumbnail_url
        ),
        attachment_file_name=incoming.attachment_file_name or existing.attachment_file_name,
        attachment_mime_type=incoming.attachment_mime_type or existing.attachment_mime_type,
        attachment_size=(
            incoming.attachment_size
            if incoming.attachment_size is not None
            else existing.attachment_size
        ),
        pending=existing.pending and incoming.pending,
    )


def reconcile(
    messages: list[Message],
    incoming: Message,
    *,
    tombstone: str = DEFAULT_TOMBSTONE,
) -> tuple[list[Message], bool]:
    """Upsert ``incoming`` by id.

    Returns (messages, created). The list is never re-sorted: new ids are
    appended. When the merge changes nothing the same list object is
    returned, so callers can compare by identity to skip notifications.
    """
    idx = _index_of(messages, incoming.id)
    if idx is None:
        if incoming.is_deleted and incoming.content != tombstone:
            incoming = replace(incoming, content=tombstone)
        return [*messages, incoming], True

    merged = merge(messages[idx], incoming, tombstone=tombstone)
    if merged == messages[idx]:
        return messages, False
    updated = list(messages)
    updated[idx] = merged
    return updated, False


def reconcile_many(
    messages: list[Message],
    incoming: list[Message],
    *,
    tombstone: str = DEFAULT_TOMBSTONE,
) -> tuple[list[Message], list[Message]]:
    """Apply ``reconcile`` to each copy in order; returns (messages, created)."""
    created: list[Message] = []
    for message in incoming:
        messages, is_new = reconcile(messages, message, tombstone=tombstone)
        if is_new:
            created.append(message)
    return messages, created


def prepend_older(
    messages: list[Message],
    older: list[Message],
    *,
    tombstone: str = DEFAULT_TOMBSTONE,
) -> tuple[list[Message], int]:
    """Put an older page in front of the list.

    Ids already present are merged in place instead of being duplicated.
    Returns (messages, number of prepended entries).
    """
    fresh: list[Message] = []
    for message in older:
        if _index_of(messages, message.id) is None and _index_of(fresh, message.id) is None:
            if message.is_deleted and message.content != tombstone:
                message = replace(message, content=tombstone)
            fresh.append(message)
        else:
            messages, _ = reconcile(messages, message, tombstone=tombstone)
    if not fresh:
        return messages, 0
    return [*fresh, *messages], len(fresh)


def confirm_optimistic(
    messages: list[Message],
    local_id: str,
    server_copy: Message,
    *,
    tombstone: str = DEFAULT_TOMBSTONE,
) -> list[Message]:
    """Swap an optimistic copy for the authoritative one.

    If the push echo already inserted the server id, the optimistic copy is
    dropped and the server copy merged into the echo.
    """
    local_idx = _index_of(messages, local_id)
    if _index_of(messages, server_copy.id) is not None:
        if local_idx is not None:
            messages = [m for m in messages if m.id != local_id]
        messages, _ = reconcile(messages, server_copy, tombstone=tombstone)
        return messages
    if local_idx is None:
        messages, _ = reconcile(messages, server_copy, tombstone=tombstone)
        return messages
    updated = list(messages)
    updated[local_idx] = replace(server_copy, pending=False)
    return updated


def discard(messages: list[Message], message_id: str) -> list[Message]:
    if _index_of(messages, message_id) is None:
        return messages
    return [m for m in messages if m.id != message_id]


def apply_read_receipt(
    messages: list[Message],
    message_ids: list[str] | tuple[str, ...],
    read_at: datetime,
    *,
    tombstone: str = DEFAULT_TOMBSTONE,
) -> tuple[list[Message], int]:
    """Mark the given ids as read through the regular merge path.

    Unknown ids are ignored. Returns (messages, number of entries changed).
    """
    changed = 0
    for message_id in message_ids:
        idx = _index_of(messages, message_id)
        if idx is None:
            continue
        before = messages
        messages, _ = reconcile(
            messages, replace(messages[idx], read_at=read_at), tombstone=tombstone,
        )
        if messages is not before:
            changed += 1
    return messages, changed
