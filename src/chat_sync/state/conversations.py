"""Conversation list: sort order, unread counters and mentorship status."""
from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, replace
from datetime import datetime

from chat_sync.application.dto.events import MentorshipEvent
from chat_sync.application.dto.page import MentorshipSnapshot
from chat_sync.domain.entities.conversation import Conversation
from chat_sync.domain.entities.message import Message
from chat_sync.domain.value_objects.enums import MentorshipStatus, MessageEventKind
from chat_sync.services import reconciliation

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MessageApplied:
    known: bool = False
    is_new: bool = False
    changed: bool = False
    unread_incremented: bool = False


class ConversationStore:
    """Owns the conversation ordering and every unread counter.

    The list is kept sorted newest-activity first after every mutation
    that can move ``last_message_at``.
    """

    def __init__(
        self,
        seen_ids_max: int = 2000,
        tombstone: str = reconciliation.DEFAULT_TOMBSTONE,
    ) -> None:
        self._items: dict[str, Conversation] = {}
        self._order: list[str] = []
        self._seen_set: dict[str, set[str]] = {}
        self._seen_queue: dict[str, deque[str]] = {}
        self._seen_max = seen_ids_max
        self._tombstone = tombstone
        # (sequence, conversation id, created_at) per unread increment.
        self._sightings: deque[tuple[int, str, datetime]] = deque(maxlen=seen_ids_max)
        self._seq = 0
        self.active_id: str | None = None

    # ---- reads -------------------------------------------------------------

    def get(self, conversation_id: str) -> Conversation | None:
        return self._items.get(conversation_id)

    def ordered(self) -> list[Conversation]:
        return [self._items[cid] for cid in self._order]

    def find_by_mentorship(self, mentorship_id: str) -> list[Conversation]:
        return [c for c in self.ordered() if c.mentorship_id == mentorship_id]

    @property
    def active(self) -> Conversation | None:
        return self._items.get(self.active_id) if self.active_id else None

    def __contains__(self, conversation_id: object) -> bool:
        return conversation_id in self._items

    def __len__(self) -> int:
        return len(self._items)

    # ---- seeding -----------------------------------------------------------

    def mark(self) -> int:
        """Position in the sighting log; pass it back to :meth:`load`."""
        return self._seq

    def load(self, conversations: list[Conversation], *, since: int | None = None) -> None:
        """Replace the list with a fresh server snapshot.

        A later local ``last_message`` survives a snapshot that predates it.
        With ``since`` (a :meth:`mark` taken before the snapshot was
        requested), unread increments for messages first seen after that
        point and newer than the snapshot's last activity are applied again
        on top of it. The open conversation keeps an unread count of zero.
        """
        previous = self._items
        self._items = {}
        for conv in conversations:
            if since is not None:
                conv = replace(conv, unread_count=conv.unread_count + self._missed_by(conv, since))
            local = previous.get(conv.id)
            if local is not None and _is_later(local.last_message_at, conv.last_message_at):
                conv = replace(
                    conv,
                    last_message=local.last_message,
                    last_message_at=local.last_message_at,
                )
            if conv.id == self.active_id:
                conv = replace(conv, unread_count=0)
            self._items[conv.id] = conv
            if conv.last_message is not None:
                self.remember(conv.id, conv.last_message.id)
        self._resort()

    def _missed_by(self, snapshot: Conversation, since: int) -> int:
        """Unread increments recorded after ``since`` that ``snapshot`` cannot include."""
        return sum(
            1
            for seq, conversation_id, created_at in self._sightings
            if seq > since
            and conversation_id == snapshot.id
            and _is_later(created_at, snapshot.last_message_at)
        )

    def upsert(self, conversation: Conversation) -> Conversation:
        if conversation.id == self.active_id:
            conversation = replace(conversation, unread_count=0)
        self._items[conversation.id] = conversation
        if conversation.last_message is not None:
            self.remember(conversation.id, conversation.last_message.id)
        self._resort()
        return conversation

    def remember(self, conversation_id: str, message_id: str) -> bool:
        """Record a message id as seen; True the first time only."""
        seen = self._seen_set.setdefault(conversation_id, set())
        if message_id in seen:
            return False
        queue = self._seen_queue.setdefault(conversation_id, deque())
        seen.add(message_id)
        queue.append(message_id)
        while len(queue) > self._seen_max:
            seen.discard(queue.popleft())
        return True

    def has_seen(self, conversation_id: str, message_id: str) -> bool:
        return message_id in self._seen_set.get(conversation_id, set())

    # ---- selection ---------------------------------------------------------

    def select(self, conversation_id: str) -> Conversation | None:
        conv = self._items.get(conversation_id)
        if conv is None:
            return None
        self.active_id = conversation_id
        if conv.unread_count:
            conv = replace(conv, unread_count=0)
            self._items[conversation_id] = conv
        return conv

    def deselect(self) -> None:
        self.active_id = None

    def set_unread(self, conversation_id: str, count: int) -> bool:
        conv = self._items.get(conversation_id)
        if conv is None:
            return False
        count = 0 if conversation_id == self.active_id else max(0, count)
        if conv.unread_count == count:
            return False
        self._items[conversation_id] = replace(conv, unread_count=count)
        return True

    # ---- message events ----------------------------------------------------

    def apply_message_event(
        self,
        message: Message,
        kind: MessageEventKind,
        *,
        current_user_id: str,
    ) -> MessageApplied:
        conv = self._items.get(message.conversation_id)
        if conv is None:
            return MessageApplied()

        # Only a creation consumes the first sighting; an edit or delete that
        # overtakes its creation must not.
        is_new = kind == MessageEventKind.NEW and self.remember(conv.id, message.id)

        updated = conv
        if is_new:
            if conv.last_message_at is None or message.created_at >= conv.last_message_at:
                updated = replace(
                    updated,
                    last_message=message,
                    last_message_at=message.created_at,
                )
        elif conv.last_message is not None and conv.last_message.id == message.id:
            # Editing the latest message refreshes the preview; editing an
            # older one must not make it "last" again.
            updated = replace(
                updated,
                last_message=reconciliation.merge(
                    conv.last_message, message, tombstone=self._tombstone,
                ),
            )

        incremented = (
            is_new
            and not message.is_deleted
            and not message.pending
            and message.sender_id != current_user_id
            and conv.id != self.active_id
        )
        if incremented:
            updated = replace(updated, unread_count=updated.unread_count + 1)
            self._seq += 1
            self._sightings.append((self._seq, conv.id, message.created_at))

        if updated == conv:
            return MessageApplied(known=True, is_new=is_new)

        self._items[conv.id] = updated
        if updated.last_message_at != conv.last_message_at:
            self._resort()
        return MessageApplied(
            known=True, is_new=is_new, changed=True, unread_incremented=incremented,
        )

    def mark_last_message_read(
        self, conversation_id: str, message_ids: tuple[str, ...] | list[str], read_at: datetime,
    ) -> bool:
        conv = self._items.get(conversation_id)
        if conv is None or conv.last_message is None or conv.last_message.id not in message_ids:
            return False
        merged = reconciliation.merge(
            conv.last_message,
            replace(conv.last_message, read_at=read_at),
            tombstone=self._tombstone,
        )
        if merged == conv.last_message:
            return False
        self._items[conversation_id] = replace(conv, last_message=merged)
        return True

    # ---- mentorship --------------------------------------------------------

    def apply_mentorship_event(self, event: MentorshipEvent) -> list[str]:
        """Apply a lifecycle change; returns the ids of conversations it touched."""
        touched: list[str] = []
        for conv in list(self._items.values()):
            by_conversation = event.conversation_id is not None and conv.id == event.conversation_id
            by_mentorship = bool(event.mentorship_id) and conv.mentorship_id == event.mentorship_id
            if not (by_conversation or by_mentorship):
                continue
            updated = self._with_mentorship(
                conv,
                status=event.status,
                mentorship_id=event.mentorship_id or conv.mentorship_id,
                end_reason=event.end_reason,
                ended_by=event.ended_by,
                ended_at=event.ended_at,
            )
            if updated != conv:
                self._items[conv.id] = updated
                touched.append(conv.id)
        if touched:
            logger.info(
                "Mentorship %s is now %s (conversations: %s)",
                event.mentorship_id, event.status, ", ".join(touched),
            )
        return touched

    def apply_mentorship_snapshot(self, conversation_id: str, snapshot: MentorshipSnapshot) -> bool:
        conv = self._items.get(conversation_id)
        if conv is None:
            return False
        updated = self._with_mentorship(
            conv,
            status=snapshot.status,
            mentorship_id=snapshot.mentorship_id or conv.mentorship_id,
            end_reason=snapshot.end_reason,
            ended_by=snapshot.ended_by,
            ended_at=snapshot.ended_at,
        )
        if updated == conv:
            return False
        self._items[conversation_id] = updated
        return True

    @staticmethod
    def _with_mentorship(
        conv: Conversation,
        *,
        status: MentorshipStatus,
        mentorship_id: str | None,
        end_reason: str | None,
        ended_by: str | None,
        ended_at: datetime | None,
    ) -> Conversation:
        if status == MentorshipStatus.ENDED:
            return replace(
                conv,
                mentorship_status=status,
                mentorship_id=mentorship_id,
                mentorship_end_reason=end_reason or conv.mentorship_end_reason,
                mentorship_ended_by=ended_by or conv.mentorship_ended_by,
                mentorship_ended_at=ended_at or conv.mentorship_ended_at,
            )
        return replace(
            conv,
            mentorship_status=status,
            mentorship_id=mentorship_id,
            mentorship_end_reason=None,
            mentorship_ended_by=None,
            mentorship_ended_at=None,
        )

    def _resort(self) -> None:
        self._order = [
            c.id for c in sorted(self._items.values(), key=lambda c: c.activity_at, reverse=True)
        ]


def _is_later(candidate: datetime | None, reference: datetime | None) -> bool:
    if candidate is None:
        return False
    return reference is None or candidate > reference
