"""Server-sent event stream carrying occupancy updates to each visitor."""

import asyncio
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends, Query
from loguru import logger
from sse_starlette.sse import EventSourceResponse

from solitude.api.presence.dependency import get_presence_service, get_session_origin
from solitude.domain.presence import (
    PresenceEvent,
    PresenceEventType,
    PresenceService,
    SessionOrigin,
    SessionStream,
)

router = APIRouter(prefix="/presence")


async def single_event(event: PresenceEvent) -> AsyncIterator[dict[str, str]]:
    yield event.to_message()


async def stream_events(
    service: PresenceService,
    stream: SessionStream,
) -> AsyncIterator[dict[str, str]]:
    """
    Drain `stream` into SSE messages until it closes or a shutdown goes out.

    EventSourceResponse cancels this generator when the client goes away. The
    release in `finally` is shielded so that cancellation still frees the
    session and informs the others.
    """
    try:
        while True:
            event = await stream.receive()
            if event is None:
                break

            yield event.to_message()

            if event.type == PresenceEventType.SHUTDOWN:
                break
    finally:
        await asyncio.shield(service.release(stream))


@router.get("/events")
async def subscribe_events(
    session_id: str | None = Query(None, description="Client-generated session token"),
    origin: SessionOrigin = Depends(get_session_origin),
    service: PresenceService = Depends(get_presence_service),
) -> EventSourceResponse:
    """Open the push channel for one visitor.

    The first message is always `status` with the current count. A request
    without a session id gets a single `error` message and the stream ends.
    Idle streams get a ping comment every `stream_keepalive` seconds.
    """
    session_id = (session_id or "").strip()
    if not session_id:
        logger.warning("Event stream rejected: missing session_id from {}", origin.address)
        return EventSourceResponse(single_event(PresenceEvent.error("session_id is required")))

    stream = await service.subscribe(session_id, origin=origin)
    return EventSourceResponse(
        stream_events(service, stream),
        ping=service.settings.stream_keepalive,
    )
