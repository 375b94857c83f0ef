from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError as PydanticValidationError

from chat_sync.api.deps import get_verifier
from chat_sync.api.middleware.correlation_id import correlation_id_ctx, new_correlation_id
from chat_sync.application.dto.principal import Principal
from chat_sync.application.dto.viewport import ScrollMetrics
from chat_sync.application.exceptions import AppError
from chat_sync.config import settings
from chat_sync.infrastructure.ws.manager import ConnectionManager
from chat_sync.infrastructure.ws.protocol import (
    InputData,
    RenderedData,
    ScrollData,
    WsInbound,
    WsOutbound,
)
from chat_sync.services.chat_session import ChatSession
from chat_sync.services.session_registry import SessionRegistry

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])


async def _authenticate(token: str) -> Principal | None:
    try:
        verifier = get_verifier()
        return await verifier.verify(token)
    except Exception:
        logger.debug("WS auth failed", exc_info=True)
        return None


@router.websocket("/ws/chat")
async def ws_chat(
    websocket: WebSocket,
    token: str = Query(...),
) -> None:
    principal = await _authenticate(token)
    if principal is None:
        await websocket.close(code=4001, reason="Authentication failed")
        return

    correlation_id_ctx.set(new_correlation_id("ws-"))
    manager: ConnectionManager = websocket.app.state.ws_manager
    registry: SessionRegistry = websocket.app.state.registry

    pkey = principal.principal_key
    await manager.connect(websocket, pkey)
    session = await registry.get_or_create(principal)
    await _send(
        websocket,
        WsOutbound(
            type="connectivity.changed",
            data={"connected": session.connected, "polling": session.polling},
        ),
    )

    heartbeat_task = asyncio.create_task(
        _heartbeat(websocket), name=f"ws-heartbeat-{pkey}",
    )
    try:
        await _read_loop(websocket, session)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error for %s", pkey)
    finally:
        heartbeat_task.cancel()
        manager.disconnect(websocket, pkey)


async def _send(ws: WebSocket, message: WsOutbound) -> None:
    await ws.send_text(message.model_dump_json())


async def _heartbeat(ws: WebSocket) -> None:
    interval = settings.WS_HEARTBEAT_SECONDS
    try:
        while True:
            await asyncio.sleep(interval)
            await _send(ws, WsOutbound(type="pong"))
    except asyncio.CancelledError:
        pass
    except Exception:
        pass


async def _read_loop(ws: WebSocket, session: ChatSession) -> None:
    while True:
        raw = await ws.receive_text()
        try:
            msg = WsInbound.model_validate_json(raw)
        except PydanticValidationError:
            await _send(ws, WsOutbound.error("invalid_payload"))
            continue

        try:
            if msg.type == "ping":
                await _send(ws, WsOutbound(type="pong"))

            elif msg.type == "input":
                await session.on_input(InputData.model_validate(msg.data).text)

            elif msg.type == "scroll":
                scroll = ScrollData.model_validate(msg.data)
                await session.report_scroll(
                    ScrollMetrics(
                        scroll_top=scroll.scroll_top,
                        scroll_height=scroll.scroll_height,
                        client_height=scroll.client_height,
                    )
                )

            elif msg.type == "scroll.rendered":
                rendered = RenderedData.model_validate(msg.data)
                scroll_top = session.complete_prepend(rendered.scroll_height)
                await _send(ws, WsOutbound(type="scroll.anchor", data={"scroll_top": scroll_top}))

            else:
                await _send(ws, WsOutbound.error("unknown_type", type=msg.type))
        except PydanticValidationError as exc:
            await _send(ws, WsOutbound.error("invalid_payload", type=msg.type, errors=exc.error_count()))
        except AppError as exc:
            await _send(ws, WsOutbound.error("action_failed", detail=exc.detail))
