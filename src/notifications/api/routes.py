"""FastAPI routes for live notifications — a server-sent event stream."""

import asyncio

from fastapi import APIRouter, Header, HTTPException, Request
from fastapi.responses import StreamingResponse

from notifications.stream import format_sse, get_stream_registry

KEEPALIVE_SECONDS = 15.0

router = APIRouter(prefix="/notifications", tags=["notifications"])


async def _event_stream(request: Request, user_id: str, keepalive: float):
    registry = get_stream_registry()
    subscription = registry.open(user_id)
    try:
        yield ": connected\n\n"
        while not await request.is_disconnected():
            try:
                message = await subscription.next_message(timeout=keepalive)
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"
                continue
            yield format_sse(message)
    finally:
        registry.close(subscription)


@router.get("/stream")
async def notification_stream(request: Request, x_user_id: str | None = Header(default=None)):
    """Order and payment notifications for the caller, as they happen."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing caller identity")

    # The subscription opens on the stream's first iteration
    return StreamingResponse(
        _event_stream(request, x_user_id, KEEPALIVE_SECONDS),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
