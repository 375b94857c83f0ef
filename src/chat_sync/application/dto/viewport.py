from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ScrollMetrics:
    """Scroll state of the message list as reported by the UI, in pixels."""

    scroll_top: float
    scroll_height: float
    client_height: float = 0.0

    @property
    def distance_from_bottom(self) -> float:
        return self.scroll_height - self.scroll_top - self.client_height
