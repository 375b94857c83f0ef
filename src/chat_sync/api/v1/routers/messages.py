from __future__ import annotations

from fastapi import APIRouter, File, Form, Response, UploadFile, status

from chat_sync.api.deps import PresenceDep, SessionDep
from chat_sync.api.v1.schemas.conversation import (
    ActiveConversationResponse,
    ConversationResponse,
)
from chat_sync.api.v1.schemas.message import (
    EditMessageRequest,
    MessageResponse,
    SendMessageRequest,
)
from chat_sync.api.v1.schemas.viewport import (
    AnchorResult,
    ComposerInput,
    RenderedReport,
    ScrollReport,
    ScrollResult,
)
from chat_sync.application.dto.viewport import ScrollMetrics
from chat_sync.application.exceptions import NotFoundError

router = APIRouter(prefix="/api/v1/chat", tags=["messages"])


@router.get("/active", response_model=ActiveConversationResponse)
async def get_active(session: SessionDep, presence: PresenceDep) -> ActiveConversationResponse:
    view = session.active_view()
    if view is None:
        raise NotFoundError("No conversation is open")
    return ActiveConversationResponse(
        conversation=ConversationResponse.build(
            view.conversation,
            user_id=session.user_id,
            presence=presence,
            active_id=session.active_id,
        ),
        messages=[MessageResponse.model_validate(m, from_attributes=True) for m in view.messages],
        has_more=view.has_more,
        read_only_notice=view.read_only_notice,
        loading_older=view.loading_older,
        is_other_typing=view.is_other_typing,
        draft=view.draft,
    )


@router.post("/active/scroll", response_model=ScrollResult)
async def report_scroll(body: ScrollReport, session: SessionDep) -> ScrollResult:
    before = len(session.messages.messages)
    page = await session.report_scroll(
        ScrollMetrics(
            scroll_top=body.scroll_top,
            scroll_height=body.scroll_height,
            client_height=body.client_height,
        )
    )
    return ScrollResult(
        loaded_older=page is not None,
        added=max(0, len(session.messages.messages) - before),
        has_more=session.messages.has_more,
    )


@router.post("/active/scroll/rendered", response_model=AnchorResult)
async def report_rendered(body: RenderedReport, session: SessionDep) -> AnchorResult:
    return AnchorResult(scroll_top=session.complete_prepend(body.scroll_height))


@router.post("/active/messages", response_model=MessageResponse, status_code=201)
async def send_message(body: SendMessageRequest, session: SessionDep) -> MessageResponse:
    msg = await session.send_message(body.content, body.parent_message_id)
    return MessageResponse.model_validate(msg, from_attributes=True)


@router.put("/messages/{message_id}", response_model=MessageResponse)
async def edit_message(
    message_id: str,
    body: EditMessageRequest,
    session: SessionDep,
) -> MessageResponse:
    msg = await session.edit_message(message_id, body.content)
    return MessageResponse.model_validate(msg, from_attributes=True)


@router.delete("/messages/{message_id}", response_model=MessageResponse)
async def delete_message(message_id: str, session: SessionDep) -> MessageResponse:
    msg = await session.delete_message(message_id)
    return MessageResponse.model_validate(msg, from_attributes=True)


@router.post("/active/attachments", response_model=MessageResponse, status_code=201)
async def upload_attachment(
    session: SessionDep,
    file: UploadFile = File(...),
    caption: str | None = Form(None),
) -> MessageResponse:
    content = await file.read()
    msg = await session.upload_attachment(
        file.filename or "attachment", content, file.content_type, caption,
    )
    return MessageResponse.model_validate(msg, from_attributes=True)


@router.post("/active/input", status_code=status.HTTP_204_NO_CONTENT)
async def composer_input(body: ComposerInput, session: SessionDep) -> Response:
    await session.on_input(body.text)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
