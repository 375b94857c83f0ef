from __future__ import annotations

from fastapi import APIRouter

from chat_sync.api.deps import PresenceDep, SessionDep
from chat_sync.api.v1.schemas.common import ConnectivityResponse
from chat_sync.api.v1.schemas.conversation import (
    ConversationResponse,
    EndMentorshipRequest,
    MessagePageResponse,
)
from chat_sync.api.v1.schemas.message import MessageResponse
from chat_sync.application.dto.page import MessagePage
from chat_sync.application.exceptions import ConflictError
from chat_sync.domain.entities.conversation import Conversation
from chat_sync.services.chat_session import ChatSession
from chat_sync.state.presence import PresenceStore

router = APIRouter(prefix="/api/v1/chat", tags=["conversations"])


def _conversation(
    session: ChatSession, presence: PresenceStore, conv: Conversation,
) -> ConversationResponse:
    return ConversationResponse.build(
        conv, user_id=session.user_id, presence=presence, active_id=session.active_id,
    )


def _page_response(
    session: ChatSession, presence: PresenceStore, page: MessagePage | None,
) -> MessagePageResponse:
    view = session.active_view()
    if page is None or view is None:
        raise ConflictError("Selection changed while the conversation was loading")
    return MessagePageResponse(
        conversation=_conversation(session, presence, view.conversation),
        messages=[MessageResponse.model_validate(m, from_attributes=True) for m in view.messages],
        has_more=view.has_more,
        read_only_notice=view.read_only_notice,
    )


@router.get("/conversations", response_model=list[ConversationResponse])
async def list_conversations(
    session: SessionDep,
    presence: PresenceDep,
) -> list[ConversationResponse]:
    return [_conversation(session, presence, c) for c in session.conversations.ordered()]


@router.post("/conversations/refresh", response_model=list[ConversationResponse])
async def refresh_conversations(
    session: SessionDep,
    presence: PresenceDep,
) -> list[ConversationResponse]:
    convs = await session.refresh_conversations()
    return [_conversation(session, presence, c) for c in convs]


@router.post("/conversations/{conversation_id}/select", response_model=MessagePageResponse)
async def select_conversation(
    conversation_id: str,
    session: SessionDep,
    presence: PresenceDep,
) -> MessagePageResponse:
    page = await session.select(conversation_id)
    return _page_response(session, presence, page)


@router.post(
    "/conversations/by-mentorship/{mentorship_id}/select",
    response_model=MessagePageResponse,
)
async def select_by_mentorship(
    mentorship_id: str,
    session: SessionDep,
    presence: PresenceDep,
) -> MessagePageResponse:
    page = await session.select_by_mentorship(mentorship_id)
    return _page_response(session, presence, page)


@router.get("/conversations/{conversation_id}/unread-count")
async def unread_count(conversation_id: str, session: SessionDep) -> dict[str, int]:
    return {"count": await session.refresh_unread(conversation_id)}


@router.post(
    "/conversations/{conversation_id}/mentorship/end",
    response_model=ConversationResponse,
)
async def end_mentorship(
    conversation_id: str,
    body: EndMentorshipRequest,
    session: SessionDep,
    presence: PresenceDep,
) -> ConversationResponse:
    conv = await session.end_mentorship(conversation_id, body.reason)
    return _conversation(session, presence, conv)


@router.get("/connectivity", response_model=ConnectivityResponse)
async def connectivity(session: SessionDep) -> ConnectivityResponse:
    return ConnectivityResponse(connected=session.connected, polling=session.polling)
