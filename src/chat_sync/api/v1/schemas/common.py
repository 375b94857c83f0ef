from __future__ import annotations

from pydantic import BaseModel


class ConnectivityResponse(BaseModel):
    connected: bool
    polling: bool
