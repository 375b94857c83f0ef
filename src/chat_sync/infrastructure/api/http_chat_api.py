"""Chat and Mentorship REST clients on a shared ``httpx.AsyncClient``."""
from __future__ import annotations

import logging
from typing import Any

import httpx

from chat_sync.application.dto.page import Mentorship, MessagePage
from chat_sync.application.exceptions import (
    ForbiddenError,
    MalformedPayloadError,
    NotFoundError,
    UpstreamError,
)
from chat_sync.domain.entities.conversation import Conversation
from chat_sync.domain.entities.message import Message
from chat_sync.domain.value_objects.enums import MentorshipStatus
from chat_sync.infrastructure.wire import mappers
from chat_sync.infrastructure.wire.schemas import (
    ConversationWire,
    MentorshipsWire,
    MentorshipWire,
    MessagesPageWire,
    MessageWire,
    UnreadCountWire,
)

logger = logging.getLogger(__name__)


def create_http_client(base_url: str, timeout: float = 10.0) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=base_url.rstrip("/"),
        timeout=timeout,
        headers={"Accept": "application/json"},
    )


def error_message(response: httpx.Response) -> str:
    """Message from the upstream body's ``message`` or ``error`` field."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "error"):
            value = body.get(key)
            if isinstance(value, list):
                value = "; ".join(str(v) for v in value)
            if value:
                return str(value)
    return response.reason_phrase or f"HTTP {response.status_code}"


class _RestClient:
    def __init__(self, client: httpx.AsyncClient, token: str) -> None:
        self._client = client
        self._token = token

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        headers = {"Authorization": f"Bearer {self._token}"} if self._token else {}
        try:
            response = await self._client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise UpstreamError(f"Chat API unreachable: {exc}") from exc

        if response.is_success:
            if not response.content:
                return None
            try:
                return response.json()
            except ValueError as exc:
                raise MalformedPayloadError(f"Non-JSON response from {path}") from exc

        message = error_message(response)
        logger.warning("%s %s -> %d: %s", method, path, response.status_code, message)
        if response.status_code == 404:
            raise NotFoundError(message)
        if response.status_code == 403:
            raise ForbiddenError(message)
        raise UpstreamError(message, status_code=response.status_code)


class HttpChatApi(_RestClient):
    async def get_conversations(self) -> list[Conversation]:
        data = await self._request("GET", "/chat/conversations")
        if not isinstance(data, list):
            raise MalformedPayloadError("Expected a list of conversations")
        return [mappers.conversation_from_wire(mappers.parse(ConversationWire, c)) for c in data]

    async def get_conversation_by_mentorship(self, mentorship_id: str) -> Conversation:
        data = await self._request("GET", f"/chat/conversations/mentorship/{mentorship_id}")
        return mappers.conversation_from_wire(mappers.parse(ConversationWire, data))

    async def get_messages(
        self,
        conversation_id: str,
        *,
        limit: int = 50,
        before: str | None = None,
    ) -> MessagePage:
        params: dict[str, Any] = {"limit": limit}
        if before:
            params["before"] = before
        data = await self._request(
            "GET", f"/chat/conversations/{conversation_id}/messages", params=params,
        )
        return mappers.page_from_wire(mappers.parse(MessagesPageWire, data))

    async def send_message(
        self,
        conversation_id: str,
        content: str,
        parent_message_id: str | None = None,
    ) -> Message:
        body: dict[str, Any] = {"content": content}
        if parent_message_id:
            body["parentMessageId"] = parent_message_id
        data = await self._request(
            "POST", f"/chat/conversations/{conversation_id}/messages", json=body,
        )
        return mappers.message_from_wire(mappers.parse(MessageWire, data))

    async def edit_message(self, message_id: str, content: str) -> Message:
        data = await self._request("PUT", f"/chat/messages/{message_id}", json={"content": content})
        return mappers.message_from_wire(mappers.parse(MessageWire, data))

    async def delete_message(self, message_id: str) -> Message:
        data = await self._request("DELETE", f"/chat/messages/{message_id}")
        return mappers.message_from_wire(mappers.parse(MessageWire, data))

    async def get_unread_count(self, conversation_id: str) -> int:
        data = await self._request("GET", f"/chat/conversations/{conversation_id}/unread-count")
        return mappers.parse(UnreadCountWire, data).count

    async def upload_attachment(
        self,
        conversation_id: str,
        file_name: str,
        content: bytes,
        content_type: str | None = None,
        caption: str | None = None,
    ) -> Message:
        files = {"file": (file_name, content, content_type or "application/octet-stream")}
        form = {"caption": caption} if caption else None
        data = await self._request(
            "POST", f"/chat/conversations/{conversation_id}/attachments", files=files, data=form,
        )
        return mappers.message_from_wire(mappers.parse(MessageWire, data))


class HttpMentorshipApi(_RestClient):
    async def end_mentorship(self, mentorship_id: str, reason: str) -> Mentorship:
        data = await self._request("POST", f"/mentorships/{mentorship_id}/end", json={"reason": reason})
        return mappers.mentorship_from_wire(mappers.parse(MentorshipWire, data))

    async def get_mentorships(self, status: MentorshipStatus | None = None) -> list[Mentorship]:
        params = {"status": status.value} if status and status != MentorshipStatus.NONE else None
        data = await self._request("GET", "/mentorships", params=params)
        if isinstance(data, list):
            items = [mappers.parse(MentorshipWire, m) for m in data]
        else:
            items = mappers.parse(MentorshipsWire, data).mentorships
        return [mappers.mentorship_from_wire(m) for m in items]
