from __future__ import annotations

WILDCARD = "*"
LOCAL_ID_PREFIX = "local-"
