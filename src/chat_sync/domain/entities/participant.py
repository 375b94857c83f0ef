from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Participant:
    id: str
    first_name: str
    last_name: str
    avatar: str | None = None
    role: str | None = None
    is_online: bool | None = None
