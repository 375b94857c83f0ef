from __future__ import annotations

from typing import Literal

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    HOST: str = "0.0.0.0"
    PORT: int = 8080
    LOG_LEVEL: str = "INFO"

    CHAT_API_URL: str = "http://localhost:8000/api"
    CHAT_API_TIMEOUT: float = 10.0

    PUSH_URL: str | None = None
    PUSH_NAMESPACE: str = "/chat"
    PUSH_SOCKETIO_PATH: str = "socket.io"
    PUSH_RECONNECT_ATTEMPTS: int = 5
    PUSH_RECONNECT_DELAY: float = 1.0

    POLL_INTERVAL_SECONDS: float = 3.0
    TYPING_HEARTBEAT_SECONDS: float = 3.0
    TYPING_TTL_SECONDS: float = 6.0
    PAGE_SIZE: int = 50
    LOAD_OLDER_THRESHOLD_PX: float = 200.0
    NEAR_BOTTOM_THRESHOLD_PX: float = 150.0
    SEEN_MESSAGE_IDS_MAX: int = 2000
    DELETED_MESSAGE_TEXT: str = "This message was deleted"
    RECONNECT_PATH: str = "/mentorship/requests"

    JWT_SECRET: str = ""
    JWT_VERIFY_MODE: Literal["hs256", "jwks"] = "hs256"
    JWT_ALGORITHM: str = "HS256"
    JWKS_URL: str | None = None

    CORS_ORIGINS: list[str] = ["*"]

    WS_HEARTBEAT_SECONDS: int = 30

    @property
    def push_url(self) -> str:
        if self.PUSH_URL:
            return self.PUSH_URL.rstrip("/")
        base = self.CHAT_API_URL.rstrip("/")
        if base.endswith("/api"):
            base = base[: -len("/api")]
        return base

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
