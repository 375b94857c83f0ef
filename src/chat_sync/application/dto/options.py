from __future__ import annotations

from dataclasses import dataclass

from chat_sync.config import Settings


@dataclass(frozen=True, slots=True)
class EngineOptions:
    """Tunables of a chat session, decoupled from the env-backed settings."""

    page_size: int = 50
    poll_interval: float = 3.0
    typing_heartbeat: float = 3.0
    typing_ttl: float = 6.0
    load_older_threshold_px: float = 200.0
    near_bottom_threshold_px: float = 150.0
    seen_ids_max: int = 2000
    deleted_text: str = "This message was deleted"
    reconnect_path: str = "/mentorship/requests"

    @classmethod
    def from_settings(cls, settings: Settings) -> EngineOptions:
        return cls(
            page_size=settings.PAGE_SIZE,
            poll_interval=settings.POLL_INTERVAL_SECONDS,
            typing_heartbeat=settings.TYPING_HEARTBEAT_SECONDS,
            typing_ttl=settings.TYPING_TTL_SECONDS,
            load_older_threshold_px=settings.LOAD_OLDER_THRESHOLD_PX,
            near_bottom_threshold_px=settings.NEAR_BOTTOM_THRESHOLD_PX,
            seen_ids_max=settings.SEEN_MESSAGE_IDS_MAX,
            deleted_text=settings.DELETED_MESSAGE_TEXT,
            reconnect_path=settings.RECONNECT_PATH,
        )
