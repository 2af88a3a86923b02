import asyncio

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from backend.app.services.events import SlotEvents, format_sse, get_events


KEEPALIVE_SECONDS = 25

router = APIRouter()


async def event_stream(request: Request, events: SlotEvents):
    queue = events.subscribe()
    try:
        yield ": connected\n\n"
        while not await request.is_disconnected():
            try:
                payload = await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_SECONDS)
            except asyncio.TimeoutError:
                yield ": keep-alive\n\n"
                continue
            yield format_sse(payload)
    finally:
        events.unsubscribe(queue)


@router.get("/stream")
async def stream(request: Request, events: SlotEvents = Depends(get_events)) -> StreamingResponse:
    return StreamingResponse(
        event_stream(request, events),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
