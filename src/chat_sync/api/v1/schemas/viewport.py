from __future__ import annotations

from pydantic import BaseModel, Field


class ScrollReport(BaseModel):
    scroll_top: float = Field(ge=0)
    scroll_height: float = Field(ge=0)
    client_height: float = Field(0, ge=0)


class ScrollResult(BaseModel):
    loaded_older: bool
    added: int = 0
    has_more: bool


class RenderedReport(BaseModel):
    scroll_height: float = Field(ge=0)


class AnchorResult(BaseModel):
    scroll_top: float | None


class ComposerInput(BaseModel):
    text: str = ""
