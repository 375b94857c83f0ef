from __future__ import annotations

from typing import Any, Protocol


class UiEventSink(Protocol):
    """Delivers state-change notifications to a principal's UI connections."""

    async def send_to_principal(
        self,
        principal_key: str,
        event_type: str,
        data: dict[str, Any],
    ) -> None: ...
