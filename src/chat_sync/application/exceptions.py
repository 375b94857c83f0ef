from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class NotFoundError(AppError):
    pass


class ForbiddenError(AppError):
    pass


class ConflictError(AppError):
    pass


class ValidationError(AppError):
    pass


class MentorshipEndedError(ForbiddenError):
    """A write was attempted on a conversation whose mentorship has ended."""

    def __init__(self, detail: str, notice: dict[str, Any] | None = None) -> None:
        super().__init__(detail)
        self.notice = notice or {}


class UpstreamError(AppError):
    """The Chat or Mentorship API failed or was unreachable."""

    def __init__(self, detail: str = "", status_code: int | None = None) -> None:
        super().__init__(detail)
        self.status_code = status_code


class MalformedPayloadError(AppError):
    pass
