from __future__ import annotations

from enum import StrEnum


class MessageType(StrEnum):
    TEXT = "text"
    IMAGE = "image"
    FILE = "file"
    SYSTEM = "system"


class MentorshipStatus(StrEnum):
    ACTIVE = "active"
    ENDED = "ended"
    CANCELLED = "cancelled"
    NONE = "none"


class MessageEventKind(StrEnum):
    """What a message delivery means, independent of the channel it came on."""

    NEW = "new"
    EDITED = "edited"
    DELETED = "deleted"


class MessageSource(StrEnum):
    PUSH = "push"
    POLL = "poll"
    SEND = "send"
