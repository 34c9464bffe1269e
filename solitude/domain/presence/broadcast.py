"""Fan-out of presence events to every open stream."""

import asyncio

from loguru import logger

from .presence_models import PresenceEvent
from .session_store import SessionStore
from .stream import SessionStream, StreamWriteFailure


class BroadcastEngine:
    """Best-effort, non-blocking broadcaster.

    Passes are serialized by an emission lock, so every recipient observes
    events in the same order. A recipient whose stream rejects the event is
    removed from the store within the same pass; the failure never reaches
    the other recipients or the caller.
    """

    def __init__(self, store: SessionStore):
        self._store = store
        self._emit_lock = asyncio.Lock()

    async def notify(self, event: PresenceEvent) -> list[str]:
        """
        Push `event` to all open streams.

        Returns:
            Session ids evicted because their stream failed
        """
        async with self._emit_lock:
            failed: list[tuple[str, SessionStream]] = []

            def push(session_id: str, stream: SessionStream) -> None:
                try:
                    stream.send(event)
                except StreamWriteFailure as exc:
                    logger.warning("Dropping session {}: {}", session_id[:10], exc.reason)
                    failed.append((session_id, stream))

            visited = await self._store.for_each_open_stream(push)

            evicted = []
            for session_id, stream in failed:
                if await self._store.remove_with_stream(session_id, stream):
                    evicted.append(session_id)

        logger.debug(
            "Broadcast {} to {} stream(s), {} evicted",
            event.type,
            visited - len(failed),
            len(evicted),
        )
        return evicted
