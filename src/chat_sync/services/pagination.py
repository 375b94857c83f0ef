"""Cursor-based backward loading and scroll anchoring for the open conversation."""
from __future__ import annotations

import logging

from chat_sync.application.dto.page import MessagePage
from chat_sync.application.dto.viewport import ScrollMetrics
from chat_sync.application.ports.chat_api import ChatApi
from chat_sync.state.messages import MessageStore

logger = logging.getLogger(__name__)


class ScrollViewport:
    """Last reported scroll state of the message list.

    Between ``begin_prepend`` and ``complete_prepend`` the list is still
    growing at the top; the threshold check is suppressed for that window.
    """

    def __init__(self, load_threshold: float = 200.0, near_bottom_threshold: float = 150.0) -> None:
        self._load_threshold = load_threshold
        self._near_bottom_threshold = near_bottom_threshold
        self.metrics: ScrollMetrics | None = None
        self._anchor: ScrollMetrics | None = None

    @property
    def adjusting(self) -> bool:
        return self._anchor is not None

    def reset(self) -> None:
        self.metrics = None
        self._anchor = None

    def report(self, metrics: ScrollMetrics) -> None:
        self.metrics = metrics

    def should_load_older(self, *, has_more: bool, loading: bool) -> bool:
        if self.adjusting or loading or not has_more or self.metrics is None:
            return False
        return self.metrics.scroll_top <= self._load_threshold

    def is_near_bottom(self) -> bool:
        if self.metrics is None:
            return True
        return self.metrics.distance_from_bottom <= self._near_bottom_threshold

    def should_autoscroll(self, *, own_message: bool) -> bool:
        """Auto-scroll on a bottom append only for own messages or a reader at the bottom."""
        return own_message or self.is_near_bottom()

    def begin_prepend(self) -> None:
        self._anchor = self.metrics

    def cancel_prepend(self) -> None:
        self._anchor = None

    def complete_prepend(self, new_scroll_height: float) -> float | None:
        """Scroll offset that keeps the previously visible message in place."""
        anchor = self._anchor
        self._anchor = None
        if anchor is None:
            return None
        new_top = anchor.scroll_top + (new_scroll_height - anchor.scroll_height)
        client_height = self.metrics.client_height if self.metrics else anchor.client_height
        self.metrics = ScrollMetrics(
            scroll_top=new_top,
            scroll_height=new_scroll_height,
            client_height=client_height,
        )
        return new_top


class PaginationController:
    def __init__(self, api: ChatApi, store: MessageStore, page_size: int = 50) -> None:
        self._api = api
        self._store = store
        self._page_size = page_size

    def _is_current(self, conversation_id: str) -> bool:
        return self._store.conversation_id == conversation_id

    async def load_initial(self, conversation_id: str) -> MessagePage | None:
        """Fetch the newest page and replace the store wholesale.

        Returns None when the selection moved on while the request was in flight.
        """
        page = await self._api.get_messages(conversation_id, limit=self._page_size)
        if not self._is_current(conversation_id):
            logger.debug("Dropping initial page for %s: selection changed", conversation_id)
            return None
        self._store.replace_all(page.messages, has_more=page.has_more, next_cursor=page.next_cursor)
        return page

    def older_cursor(self) -> str | None:
        oldest = self._store.oldest
        if oldest is not None:
            return oldest.id
        return self._store.next_cursor

    async def load_older(self, conversation_id: str, cursor: str | None = None) -> MessagePage | None:
        """Fetch messages strictly older than ``cursor`` and prepend them."""
        if not self._is_current(conversation_id):
            return None
        if self._store.loading_older or not self._store.has_more:
            return None
        cursor = cursor or self.older_cursor()
        if cursor is None:
            return None

        self._store.loading_older = True
        try:
            page = await self._api.get_messages(
                conversation_id, limit=self._page_size, before=cursor,
            )
        finally:
            if self._is_current(conversation_id):
                self._store.loading_older = False

        if not self._is_current(conversation_id):
            logger.debug("Dropping older page for %s: selection changed", conversation_id)
            return None
        added = self._store.prepend(page.messages, has_more=page.has_more, next_cursor=page.next_cursor)
        logger.debug("Prepended %d older messages to %s", added, conversation_id)
        return page
