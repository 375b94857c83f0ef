"""Message list of the currently open conversation."""
from __future__ import annotations

from datetime import datetime

from chat_sync.domain.entities.message import Message
from chat_sync.services import reconciliation


class MessageStore:
    def __init__(self, tombstone: str = reconciliation.DEFAULT_TOMBSTONE) -> None:
        self._tombstone = tombstone
        self.conversation_id: str | None = None
        self.messages: list[Message] = []
        self.has_more = False
        self.next_cursor: str | None = None
        self.loading_older = False

    def reset(self, conversation_id: str | None) -> None:
        self.conversation_id = conversation_id
        self.messages = []
        self.has_more = False
        self.next_cursor = None
        self.loading_older = False

    def replace_all(self, messages: list[Message], *, has_more: bool, next_cursor: str | None) -> None:
        """Install a freshly fetched page.

        Entries that reached the store while the page was in flight (push
        deliveries, optimistic sends) are reconciled on top of it.
        """
        arrived_meanwhile = self.messages
        self.messages, _ = reconciliation.reconcile_many([], messages, tombstone=self._tombstone)
        self.messages, _ = reconciliation.reconcile_many(
            self.messages, arrived_meanwhile, tombstone=self._tombstone,
        )
        self.has_more = has_more
        self.next_cursor = next_cursor

    def upsert(self, message: Message) -> tuple[bool, bool]:
        """Reconcile one copy. Returns (created, changed)."""
        before = self.messages
        self.messages, created = reconciliation.reconcile(
            self.messages, message, tombstone=self._tombstone,
        )
        return created, self.messages is not before

    def prepend(self, older: list[Message], *, has_more: bool, next_cursor: str | None) -> int:
        self.messages, added = reconciliation.prepend_older(
            self.messages, older, tombstone=self._tombstone,
        )
        self.has_more = has_more
        self.next_cursor = next_cursor
        return added

    def insert_optimistic(self, message: Message) -> None:
        self.messages = [*self.messages, message]

    def confirm(self, local_id: str, server_copy: Message) -> None:
        self.messages = reconciliation.confirm_optimistic(
            self.messages, local_id, server_copy, tombstone=self._tombstone,
        )

    def discard(self, message_id: str) -> bool:
        before = self.messages
        self.messages = reconciliation.discard(self.messages, message_id)
        return self.messages is not before

    def mark_read(self, message_ids: list[str] | tuple[str, ...], read_at: datetime) -> int:
        self.messages, changed = reconciliation.apply_read_receipt(
            self.messages, message_ids, read_at, tombstone=self._tombstone,
        )
        return changed

    def get(self, message_id: str) -> Message | None:
        for m in self.messages:
            if m.id == message_id:
                return m
        return None

    @property
    def oldest(self) -> Message | None:
        for m in self.messages:
            if not m.pending:
                return m
        return None

    @property
    def newest(self) -> Message | None:
        return self.messages[-1] if self.messages else None

    def unread_from(self, user_id: str) -> list[str]:
        """Ids sent by ``user_id`` that still lack readAt."""
        return [
            m.id for m in self.messages
            if m.sender_id == user_id and m.read_at is None and not m.pending
        ]
