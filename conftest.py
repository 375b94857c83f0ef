"""Root conftest: test settings go into the environment before chat_sync.config is imported."""
from __future__ import annotations

import os
from pathlib import Path


def _load_env_file(path: Path) -> None:
    if not path.exists():
        return
    for line in path.read_text().splitlines():
        key, sep, value = line.strip().partition("=")
        if not sep or key.startswith("#"):
            continue
        os.environ.setdefault(key.strip(), value.strip().strip('"'))


_load_env_file(Path(__file__).resolve().parent / ".env.test")
