"""
Approval event SSE endpoint.

Supervisors subscribe here to watch requests arrive and settle without being
able to answer them.
"""

import json
from typing import AsyncGenerator

from fastapi import APIRouter, Depends, Query
from sse_starlette.sse import EventSourceResponse

from ..event_bus import SSEEventBus
from ..state import get_event_bus


router = APIRouter()

# Seconds between keepalive comments on an idle stream
PING_INTERVAL = 15


@router.get("/events")
async def approval_events(
    event_type: list[str] | None = Query(None, alias="type"),
    event_bus: SSEEventBus = Depends(get_event_bus),
) -> EventSourceResponse:
    """Stream approval events, optionally only the given ``type`` values."""
    wanted = set(event_type or ())

    async def stream() -> AsyncGenerator[dict, None]:
        queue = event_bus.subscribe()
        try:
            while True:
                event = await queue.get()
                if wanted and event["type"] not in wanted:
                    continue
                yield {"event": event["type"], "data": json.dumps(event)}
        finally:
            event_bus.unsubscribe(queue)

    return EventSourceResponse(stream(), ping=PING_INTERVAL)
