"""Per-user synchronization session.

A session owns the local view of one user's conversations and of the
conversation they have open. Four producers feed it: REST pages, the
conversation-scoped push subscription, the wildcard push subscription and
the poll tick. All message deliveries, whatever the producer, go through
``_ingest`` and from there through ``reconciliation.reconcile``.
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from chat_sync.application.dto.events import (
    MentorshipEvent,
    MessageEvent,
    ReadReceipt,
    TypingSignal,
    UserStatus,
)
from chat_sync.application.dto.options import EngineOptions
from chat_sync.application.dto.page import MessagePage
from chat_sync.application.dto.principal import Principal
from chat_sync.application.dto.viewport import ScrollMetrics
from chat_sync.application.exceptions import (
    AppError,
    ConflictError,
    ForbiddenError,
    MentorshipEndedError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from chat_sync.application.policies.mentorship_gate import (
    assert_can_write,
    can_write,
    read_only_notice,
)
from chat_sync.application.ports.chat_api import ChatApi, MentorshipApi
from chat_sync.application.ports.clock import Clock, SystemClock
from chat_sync.application.ports.push import PushTransport, Unsubscribe
from chat_sync.application.ports.ui import UiEventSink
from chat_sync.domain.entities.conversation import Conversation
from chat_sync.domain.entities.message import Message
from chat_sync.domain.value_objects.enums import (
    MentorshipStatus,
    MessageEventKind,
    MessageSource,
    MessageType,
)
from chat_sync.domain.value_objects.ids import LOCAL_ID_PREFIX, WILDCARD
from chat_sync.services.pagination import PaginationController, ScrollViewport
from chat_sync.services.typing import TypingEmitter
from chat_sync.state.conversations import ConversationStore
from chat_sync.state.messages import MessageStore
from chat_sync.state.presence import PresenceStore
from chat_sync.state.typing import TypingTracker

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ActiveView:
    conversation: Conversation
    messages: list[Message]
    has_more: bool
    loading_older: bool
    is_other_typing: bool
    is_other_online: bool
    can_write: bool
    read_only_notice: dict[str, Any] | None
    draft: str


class ChatSession:
    def __init__(
        self,
        principal: Principal,
        api: ChatApi,
        mentorships: MentorshipApi,
        push: PushTransport,
        presence: PresenceStore,
        ui: UiEventSink,
        options: EngineOptions | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.principal = principal
        self.user_id = principal.user_id
        self._api = api
        self._mentorships = mentorships
        self._push = push
        self._ui = ui
        self.options = options or EngineOptions()
        self._clock = clock or SystemClock()

        self.presence = presence
        self.conversations = ConversationStore(
            seen_ids_max=self.options.seen_ids_max, tombstone=self.options.deleted_text,
        )
        self.messages = MessageStore(tombstone=self.options.deleted_text)
        self.typing = TypingTracker(ttl=self.options.typing_ttl, clock=self._clock)
        self.viewport = ScrollViewport(
            load_threshold=self.options.load_older_threshold_px,
            near_bottom_threshold=self.options.near_bottom_threshold_px,
        )
        self.pagination = PaginationController(api, self.messages, self.options.page_size)
        self.emitter = TypingEmitter(self._emit_typing, interval=self.options.typing_heartbeat)

        self.drafts: dict[str, str] = {}
        self.connected = False
        self._global_unsubs: list[Unsubscribe] = []
        self._scoped_unsubs: list[Unsubscribe] = []
        self._poll_task: asyncio.Task[None] | None = None
        self._refresh_task: asyncio.Task[None] | None = None

    # ---- lifecycle ---------------------------------------------------------

    async def start(self) -> None:
        push = self._push
        self._global_unsubs = [
            push.on_connect(self._on_connect),
            push.on_disconnect(self._on_disconnect),
            push.on_user_status(self._on_user_status),
            push.on_message(WILDCARD, self._on_message),
            push.on_read(WILDCARD, self._on_read),
            push.on_conversation_mentorship(WILDCARD, self._on_mentorship),
            push.on_mentorship_ended(self._on_mentorship),
            push.on_mentorship_started(self._on_mentorship),
        ]

        try:
            await self.refresh_conversations()
        except AppError:
            logger.warning("Initial conversation load failed for %s", self.user_id)

        try:
            await push.connect(self.principal.token, self.user_id)
        except Exception:
            logger.warning("Push connect failed for %s; relying on polling", self.user_id, exc_info=True)

        self._poll_task = asyncio.create_task(
            self._poll_loop(), name=f"chat-poll-{self.user_id}",
        )
        logger.info(
            "Chat session started for %s (%d conversations)", self.user_id, len(self.conversations),
        )

    async def close(self) -> None:
        for task in (self._poll_task, self._refresh_task):
            if task:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._poll_task = self._refresh_task = None
        await self.emitter.stop()
        self._drop_scoped_subscriptions()
        for unsub in self._global_unsubs:
            unsub()
        self._global_unsubs = []
        try:
            await self._push.disconnect()
        except Exception:
            logger.warning("Push disconnect failed for %s", self.user_id, exc_info=True)
        logger.info("Chat session closed for %s", self.user_id)

    # ---- conversation list -------------------------------------------------

    async def refresh_conversations(self) -> list[Conversation]:
        # Pushes may land while the request is in flight.
        mark = self.conversations.mark()
        try:
            conversations = await self._api.get_conversations()
        except AppError as exc:
            await self._notice("error", f"Could not load conversations: {exc.detail}")
            raise

        self.conversations.load(conversations, since=mark)
        self._seed_presence(conversations)
        await self._backfill_mentorship_statuses()
        await self._notify("conversations.changed", {"reason": "refresh"})
        return self.conversations.ordered()

    def _seed_presence(self, conversations: list[Conversation]) -> None:
        seed: dict[str, bool] = {}
        for conv in conversations:
            for participant in (conv.participant1, conv.participant2):
                if participant is not None and participant.is_online is not None:
                    seed[participant.id] = participant.is_online
        if seed:
            self.presence.set_many(seed)

    async def _backfill_mentorship_statuses(self) -> None:
        """Conversation payloads may omit the mentorship status; ask the Mentorship API."""
        missing = [
            c for c in self.conversations.ordered()
            if c.mentorship_id and c.mentorship_status == MentorshipStatus.NONE
        ]
        if not missing:
            return
        try:
            mentorships = await self._mentorships.get_mentorships()
        except AppError:
            logger.warning("Mentorship status backfill failed for %s", self.user_id)
            return
        by_id = {m.id: m for m in mentorships}
        for conv in missing:
            mentorship = by_id.get(conv.mentorship_id or "")
            if mentorship is None:
                continue
            self.conversations.apply_mentorship_event(
                MentorshipEvent(
                    mentorship_id=mentorship.id,
                    status=mentorship.status,
                    conversation_id=conv.id,
                    end_reason=mentorship.end_reason,
                    ended_by=mentorship.ended_by,
                    ended_at=mentorship.ended_at,
                )
            )

    async def refresh_unread(self, conversation_id: str) -> int:
        count = await self._api.get_unread_count(conversation_id)
        if self.conversations.set_unread(conversation_id, count):
            await self._notify("conversations.changed", {"reason": "unread", "conversation_id": conversation_id})
        conv = self.conversations.get(conversation_id)
        return conv.unread_count if conv else count

    # ---- selection ---------------------------------------------------------

    @property
    def polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    @property
    def active_id(self) -> str | None:
        return self.conversations.active_id

    async def select(self, conversation_id: str) -> MessagePage | None:
        if conversation_id not in self.conversations:
            raise NotFoundError("Conversation not found")

        previous = self.conversations.active_id
        if previous is not None and previous != conversation_id:
            await self._leave_active(previous)

        self.conversations.select(conversation_id)
        await self._notify("conversations.changed", {"reason": "select", "conversation_id": conversation_id})

        if previous != conversation_id:
            self.messages.reset(conversation_id)
            self.viewport.reset()
            self._subscribe_scoped(conversation_id)
            await self._safe_room_call(self._push.join_conversation, conversation_id)

        try:
            page = await self.pagination.load_initial(conversation_id)
        except AppError as exc:
            await self._notice("error", f"Could not load messages: {exc.detail}")
            raise
        if page is None:
            return None

        if page.mentorship is not None:
            self.conversations.apply_mentorship_snapshot(conversation_id, page.mentorship)
        for message in self.messages.messages:
            self.conversations.remember(conversation_id, message.id)

        conv = self.conversations.get(conversation_id)
        if conv is not None:
            other_id = conv.other_participant_id(self.user_id)
            await self._mark_read(conversation_id, self.messages.unread_from(other_id))

        await self._notify("messages.changed", {"reason": "initial", "conversation_id": conversation_id})
        await self._notify("scroll.to_bottom", {"conversation_id": conversation_id, "instant": True})
        return page

    async def select_by_mentorship(self, mentorship_id: str) -> MessagePage | None:
        known = self.conversations.find_by_mentorship(mentorship_id)
        if known:
            return await self.select(known[0].id)
        conv = await self._api.get_conversation_by_mentorship(mentorship_id)
        self.conversations.upsert(conv)
        return await self.select(conv.id)

    async def _leave_active(self, conversation_id: str) -> None:
        await self.emitter.stop()
        self._drop_scoped_subscriptions()
        await self._safe_room_call(self._push.leave_conversation, conversation_id)
        self.typing.clear(conversation_id)
        self.conversations.deselect()
        self.messages.reset(None)
        self.viewport.reset()

    async def _safe_room_call(
        self, call: Callable[[str], Awaitable[None]], conversation_id: str,
    ) -> None:
        try:
            await call(conversation_id)
        except Exception:
            logger.warning("Room membership change for %s failed", conversation_id, exc_info=True)

    def _subscribe_scoped(self, conversation_id: str) -> None:
        self._drop_scoped_subscriptions()
        push = self._push
        self._scoped_unsubs = [
            push.on_message(conversation_id, self._on_message),
            push.on_typing(conversation_id, self._on_typing),
            push.on_read(conversation_id, self._on_read),
            push.on_conversation_mentorship(conversation_id, self._on_mentorship),
        ]

    def _drop_scoped_subscriptions(self) -> None:
        for unsub in self._scoped_unsubs:
            unsub()
        self._scoped_unsubs = []

    # ---- scrolling ---------------------------------------------------------

    async def report_scroll(self, metrics: ScrollMetrics) -> MessagePage | None:
        """Record the UI scroll position; loads an older page near the top."""
        self.viewport.report(metrics)
        conversation_id = self.messages.conversation_id
        if conversation_id is None:
            return None
        if not self.viewport.should_load_older(
            has_more=self.messages.has_more, loading=self.messages.loading_older,
        ):
            return None
        return await self.load_older()

    async def load_older(self, cursor: str | None = None) -> MessagePage | None:
        conversation_id = self.messages.conversation_id
        if conversation_id is None:
            return None
        before = len(self.messages.messages)
        self.viewport.begin_prepend()
        try:
            page = await self.pagination.load_older(conversation_id, cursor)
        except AppError as exc:
            self.viewport.cancel_prepend()
            await self._notice("error", f"Could not load older messages: {exc.detail}")
            raise
        if page is None or len(self.messages.messages) == before:
            self.viewport.cancel_prepend()
            return page
        for message in page.messages:
            self.conversations.remember(conversation_id, message.id)
        await self._notify(
            "messages.changed",
            {
                "reason": "prepend",
                "conversation_id": conversation_id,
                "added": len(self.messages.messages) - before,
            },
        )
        return page

    def complete_prepend(self, new_scroll_height: float) -> float | None:
        """Anchored scroll offset once the UI has rendered the prepended page."""
        return self.viewport.complete_prepend(new_scroll_height)

    # ---- the single ingestion path -----------------------------------------

    async def _ingest(self, message: Message, kind: MessageEventKind, source: MessageSource) -> None:
        conversation_id = message.conversation_id
        is_open = (
            conversation_id == self.conversations.active_id
            and conversation_id == self.messages.conversation_id
        )

        created = changed = False
        if is_open:
            created, changed = self.messages.upsert(message)

        applied = self.conversations.apply_message_event(
            message, kind, current_user_id=self.user_id,
        )
        if not applied.known and source == MessageSource.PUSH:
            self._schedule_refresh()

        if changed:
            await self._notify(
                "messages.changed",
                {
                    "reason": "append" if created else "update",
                    "conversation_id": conversation_id,
                    "message_id": message.id,
                    "source": source.value,
                },
            )
        if applied.changed:
            await self._notify(
                "conversations.changed",
                {"reason": "message", "conversation_id": conversation_id},
            )

        if not is_open:
            return
        own = message.sender_id == self.user_id
        if created and self.viewport.should_autoscroll(own_message=own):
            await self._notify("scroll.to_bottom", {"conversation_id": conversation_id, "instant": False})
        if (
            kind == MessageEventKind.NEW
            and (created or applied.is_new)
            and not own
            and not message.is_deleted
            and message.read_at is None
        ):
            await self._mark_read(conversation_id, [message.id])

    async def _mark_read(self, conversation_id: str, message_ids: list[str]) -> None:
        if not message_ids:
            return
        read_at = self._clock.now()
        if self.messages.conversation_id == conversation_id:
            self.messages.mark_read(message_ids, read_at)
        self.conversations.mark_last_message_read(conversation_id, message_ids, read_at)
        try:
            await self._push.mark_as_read(conversation_id, list(message_ids))
        except Exception:
            logger.warning("mark_as_read failed for %s", conversation_id, exc_info=True)

    # ---- push handlers -----------------------------------------------------

    async def _on_message(self, event: MessageEvent) -> None:
        await self._ingest(event.message, event.kind, MessageSource.PUSH)

    async def _on_read(self, receipt: ReadReceipt) -> None:
        read_at = receipt.read_at or self._clock.now()
        changed = 0
        if receipt.conversation_id == self.messages.conversation_id:
            changed = self.messages.mark_read(receipt.message_ids, read_at)
        preview = self.conversations.mark_last_message_read(
            receipt.conversation_id, receipt.message_ids, read_at,
        )
        if changed:
            await self._notify(
                "messages.changed",
                {"reason": "read", "conversation_id": receipt.conversation_id},
            )
        if preview:
            await self._notify(
                "conversations.changed",
                {"reason": "read", "conversation_id": receipt.conversation_id},
            )

    async def _on_typing(self, signal: TypingSignal) -> None:
        if signal.user_id == self.user_id:
            return
        flipped = self.typing.apply(signal.conversation_id, signal.user_id, signal.is_typing)
        if flipped and signal.conversation_id == self.conversations.active_id:
            await self._notify(
                "typing.changed",
                {
                    "conversation_id": signal.conversation_id,
                    "is_typing": self.typing.is_anyone_typing(signal.conversation_id),
                },
            )

    async def _on_mentorship(self, event: MentorshipEvent) -> None:
        touched = self.conversations.apply_mentorship_event(event)
        if not touched:
            return
        await self._notify("conversations.changed", {"reason": "mentorship", "conversation_ids": touched})
        active = self.conversations.active
        if active is None or active.id not in touched:
            return
        if not can_write(active):
            await self.emitter.stop()
            await self._notify(
                "notice",
                {
                    "level": "blocking",
                    "message": "This mentorship has ended",
                    "read_only": read_only_notice(active, self.options.reconnect_path),
                },
            )
        else:
            await self._notify("conversation.writable", {"conversation_id": active.id})

    async def _on_user_status(self, status: UserStatus) -> None:
        if self.presence.set_one(status.user_id, status.is_online):
            await self._notify(
                "presence.changed", {"user_id": status.user_id, "is_online": status.is_online},
            )

    async def _on_connect(self) -> None:
        self.connected = True
        logger.info("Push connected for %s", self.user_id)
        await self._notify("connectivity.changed", {"connected": True})
        if self.conversations.active_id is not None:
            await self._safe_room_call(self._push.join_conversation, self.conversations.active_id)
        # Catch up on anything missed while disconnected.
        self._schedule_refresh()

    async def _on_disconnect(self) -> None:
        self.connected = False
        logger.warning("Push disconnected for %s; polling continues", self.user_id)
        await self._notify("connectivity.changed", {"connected": False})

    def _schedule_refresh(self) -> None:
        if self._refresh_task is not None and not self._refresh_task.done():
            return
        self._refresh_task = asyncio.create_task(
            self._refresh_quietly(), name=f"chat-refresh-{self.user_id}",
        )

    async def _refresh_quietly(self) -> None:
        try:
            await self.refresh_conversations()
        except AppError:
            logger.warning("Conversation refresh failed for %s", self.user_id)

    # ---- poll --------------------------------------------------------------

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self.options.poll_interval)
            try:
                await self.poll_once()
            except AppError as exc:
                logger.warning("Poll failed for %s: %s", self.user_id, exc.detail)
            except Exception:
                logger.exception("Poll loop error for %s", self.user_id)

    async def poll_once(self) -> None:
        """Re-fetch the newest page of the open conversation and reconcile it."""
        for conversation_id in self.typing.prune():
            if conversation_id == self.conversations.active_id:
                await self._notify("typing.changed", {"conversation_id": conversation_id, "is_typing": False})

        conversation_id = self.messages.conversation_id
        if conversation_id is None:
            return
        page = await self._api.get_messages(conversation_id, limit=self.options.page_size)
        if self.messages.conversation_id != conversation_id:
            return
        if page.mentorship is not None and self.conversations.apply_mentorship_snapshot(
            conversation_id, page.mentorship,
        ):
            await self._notify("conversations.changed", {"reason": "mentorship", "conversation_ids": [conversation_id]})
        for message in page.messages:
            await self._ingest(message, MessageEventKind.NEW, MessageSource.POLL)

    # ---- actions -----------------------------------------------------------

    async def _writable_active(self) -> Conversation:
        conv = self.conversations.active
        if conv is None:
            raise ConflictError("No conversation is open")
        return await self._guard(conv)

    async def _guard(self, conv: Conversation | None) -> Conversation:
        try:
            return assert_can_write(conv, self.options.reconnect_path)
        except MentorshipEndedError as exc:
            await self._notify(
                "notice", {"level": "blocking", "message": exc.detail, "read_only": exc.notice},
            )
            raise

    async def send_message(self, content: str, parent_message_id: str | None = None) -> Message:
        conv = await self._writable_active()
        text = content.strip()
        if not text:
            raise ValidationError("Message content is empty")

        await self.emitter.stop()
        parent = self.messages.get(parent_message_id) if parent_message_id else None
        local = Message(
            id=f"{LOCAL_ID_PREFIX}{uuid.uuid4().hex}",
            conversation_id=conv.id,
            sender_id=self.user_id,
            type=MessageType.TEXT.value,
            content=text,
            created_at=self._clock.now(),
            parent_message_id=parent_message_id,
            parent_message=parent,
            pending=True,
        )
        self.messages.insert_optimistic(local)
        self.drafts.pop(conv.id, None)
        await self._notify(
            "messages.changed",
            {"reason": "append", "conversation_id": conv.id, "message_id": local.id, "source": "send"},
        )
        await self._notify("scroll.to_bottom", {"conversation_id": conv.id, "instant": False})

        try:
            sent = await self._api.send_message(conv.id, text, parent_message_id)
        except AppError as exc:
            await self._revert_send(conv.id, local, text, exc.detail)
            raise
        except Exception as exc:
            await self._revert_send(conv.id, local, text, str(exc))
            raise UpstreamError(str(exc)) from exc

        if self.messages.conversation_id == conv.id:
            self.messages.confirm(local.id, sent)
            await self._notify(
                "messages.changed",
                {"reason": "update", "conversation_id": conv.id, "message_id": sent.id, "source": "send"},
            )
        await self._ingest(sent, MessageEventKind.NEW, MessageSource.SEND)
        return sent

    async def _revert_send(self, conversation_id: str, local: Message, text: str, detail: str) -> None:
        logger.warning("Send to %s failed: %s", conversation_id, detail)
        if self.messages.discard(local.id):
            await self._notify(
                "messages.changed",
                {"reason": "update", "conversation_id": conversation_id, "message_id": local.id},
            )
        self.drafts[conversation_id] = text
        await self._notify("composer.restore_draft", {"conversation_id": conversation_id, "content": text})
        await self._notice("error", "Message could not be sent")

    def _own_message(self, message_id: str) -> Message:
        message = self.messages.get(message_id)
        if message is None:
            raise NotFoundError("Message not found in the open conversation")
        if message.sender_id != self.user_id:
            raise ForbiddenError("Only your own messages can be changed")
        if message.pending:
            raise ConflictError("Message is still being sent")
        if message.is_deleted:
            raise ConflictError("Message was deleted")
        return message

    async def edit_message(self, message_id: str, content: str) -> Message:
        conv = await self._writable_active()
        message = self._own_message(message_id)
        text = content.strip()
        if not text:
            raise ValidationError("Message content is empty")
        if text == message.content:
            return message
        try:
            edited = await self._api.edit_message(message_id, text)
        except AppError as exc:
            await self._notice("error", f"Message could not be edited: {exc.detail}")
            raise
        await self._ingest(edited, MessageEventKind.EDITED, MessageSource.SEND)
        logger.debug("Edited %s in %s", message_id, conv.id)
        return self.messages.get(message_id) or edited

    async def delete_message(self, message_id: str) -> Message:
        conv = await self._writable_active()
        self._own_message(message_id)
        try:
            deleted = await self._api.delete_message(message_id)
        except AppError as exc:
            await self._notice("error", f"Message could not be deleted: {exc.detail}")
            raise
        await self._ingest(deleted, MessageEventKind.DELETED, MessageSource.SEND)
        logger.debug("Deleted %s in %s", message_id, conv.id)
        return self.messages.get(message_id) or deleted

    async def upload_attachment(
        self,
        file_name: str,
        content: bytes,
        content_type: str | None = None,
        caption: str | None = None,
    ) -> Message:
        conv = await self._writable_active()
        if not content:
            raise ValidationError("Attachment is empty")
        try:
            message = await self._api.upload_attachment(
                conv.id, file_name, content, content_type, caption,
            )
        except AppError as exc:
            await self._notice("error", f"Attachment could not be uploaded: {exc.detail}")
            raise
        await self._ingest(message, MessageEventKind.NEW, MessageSource.SEND)
        return message

    async def on_input(self, text: str) -> None:
        """Composer text changed: keeps the draft and drives the typing heartbeat."""
        conv = self.conversations.active
        if conv is None:
            return
        self.drafts[conv.id] = text
        if not can_write(conv):
            await self.emitter.stop()
            return
        await self.emitter.on_input(conv.id, text)

    async def _emit_typing(self, conversation_id: str, is_typing: bool) -> None:
        conv = self.conversations.get(conversation_id)
        if conv is None or not can_write(conv):
            return
        await self._push.send_typing(conversation_id, is_typing)

    async def end_mentorship(self, conversation_id: str, reason: str) -> Conversation:
        conv = await self._guard(self.conversations.get(conversation_id))
        if not conv.mentorship_id:
            raise ValidationError("Conversation has no mentorship")
        if not reason.strip():
            raise ValidationError("A reason is required to end the mentorship")
        try:
            result = await self._mentorships.end_mentorship(conv.mentorship_id, reason.strip())
        except AppError as exc:
            await self._notice("error", f"Mentorship could not be ended: {exc.detail}")
            raise
        await self._on_mentorship(
            MentorshipEvent(
                mentorship_id=result.id or conv.mentorship_id,
                status=result.status if result.status != MentorshipStatus.NONE else MentorshipStatus.ENDED,
                conversation_id=conv.id,
                end_reason=result.end_reason or reason.strip(),
                ended_by=result.ended_by or self.user_id,
                ended_at=result.ended_at or self._clock.now(),
            )
        )
        return self.conversations.get(conv.id) or conv

    # ---- views -------------------------------------------------------------

    def active_view(self) -> ActiveView | None:
        conv = self.conversations.active
        if conv is None:
            return None
        other_id = conv.other_participant_id(self.user_id)
        return ActiveView(
            conversation=conv,
            messages=list(self.messages.messages),
            has_more=self.messages.has_more,
            loading_older=self.messages.loading_older,
            is_other_typing=self.typing.is_anyone_typing(conv.id),
            is_other_online=self.presence.is_online(other_id),
            can_write=can_write(conv),
            read_only_notice=read_only_notice(conv, self.options.reconnect_path),
            draft=self.drafts.get(conv.id, ""),
        )

    # ---- UI notifications --------------------------------------------------

    async def _notify(self, event_type: str, data: dict[str, Any]) -> None:
        try:
            await self._ui.send_to_principal(self.principal.principal_key, event_type, data)
        except Exception:
            logger.warning("UI notification %s failed", event_type, exc_info=True)

    async def _notice(self, level: str, message: str) -> None:
        await self._notify("notice", {"level": level, "message": message})
