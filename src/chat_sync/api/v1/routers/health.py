from __future__ import annotations

import httpx
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(request: Request) -> JSONResponse:
    errors: list[str] = []

    client: httpx.AsyncClient = request.app.state.http_client
    try:
        # Any HTTP answer means the Chat API is reachable.
        await client.get("/", timeout=2.0)
    except Exception as exc:  # noqa: BLE001
        errors.append(f"chat_api: {exc}")

    if errors:
        return JSONResponse(
            status_code=503,
            content={"status": "unavailable", "errors": errors},
        )
    return JSONResponse(
        content={"status": "ready", "sessions": len(request.app.state.registry)},
    )
