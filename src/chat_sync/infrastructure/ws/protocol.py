"""WebSocket envelopes between the UI and its chat session."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class WsInbound(BaseModel):
    """UI → session."""

    type: str
    data: dict[str, Any] = {}


class InputData(BaseModel):
    text: str = ""


class ScrollData(BaseModel):
    scroll_top: float = Field(ge=0)
    scroll_height: float = Field(ge=0)
    client_height: float = Field(0, ge=0)


class RenderedData(BaseModel):
    scroll_height: float = Field(ge=0)


class WsOutbound(BaseModel):
    """Session → UI.

    ``type`` is one of the session notifications (``conversations.changed``,
    ``messages.changed``, ``scroll.to_bottom``, ``typing.changed``,
    ``presence.changed``, ``connectivity.changed``, ``conversation.writable``,
    ``composer.restore_draft``, ``notice``) or a reply to the UI
    (``pong``, ``scroll.anchor``, ``error``).
    """

    type: str
    data: dict[str, Any] = {}

    @classmethod
    def error(cls, code: str, **details: Any) -> WsOutbound:
        return cls(type="error", data={"code": code, **details})
