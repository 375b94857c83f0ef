"""Process-wide online/offline map."""
from __future__ import annotations

import logging
from typing import Mapping

logger = logging.getLogger(__name__)


class PresenceStore:
    """Last write wins; there is no ordering between snapshot seeds and push updates."""

    def __init__(self) -> None:
        self._online: dict[str, bool] = {}

    def set_one(self, user_id: str, is_online: bool) -> bool:
        """Record a status; returns True if it changed."""
        previous = self._online.get(user_id)
        self._online[user_id] = is_online
        if previous != is_online:
            logger.debug("Presence %s -> %s", user_id, "online" if is_online else "offline")
            return True
        return False

    def set_many(self, statuses: Mapping[str, bool]) -> bool:
        changed = False
        for user_id, is_online in statuses.items():
            changed = self.set_one(user_id, is_online) or changed
        return changed

    def is_online(self, user_id: str) -> bool:
        return self._online.get(user_id, False)

    def snapshot(self) -> dict[str, bool]:
        return dict(self._online)
