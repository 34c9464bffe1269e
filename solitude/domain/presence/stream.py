"""Open push channel attached to a session record."""

import asyncio
from uuid import uuid4

from .presence_models import PresenceEvent


class StreamWriteFailure(Exception):
    """Push to a stream that is closed or cannot keep up."""

    def __init__(self, session_id: str, reason: str):
        self.session_id = session_id
        self.reason = reason
        super().__init__(f"stream for {session_id} rejected event: {reason}")


class SessionStream:
    """
    Bounded event buffer between the broadcaster and one client connection.

    `send` never blocks: a closed stream or a full buffer raises
    StreamWriteFailure so the broadcaster can treat the client as gone.
    The connection handler drains events with `receive` until it gets None.
    """

    def __init__(self, session_id: str, maxsize: int = 32):
        self.session_id = session_id
        self.stream_id = uuid4().hex[:8]
        self._queue: asyncio.Queue[PresenceEvent | None] = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, event: PresenceEvent) -> None:
        if self._closed:
            raise StreamWriteFailure(self.session_id, "stream closed")
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull as exc:
            raise StreamWriteFailure(self.session_id, "stream buffer full") from exc

    def close(self) -> None:
        """Mark closed and wake a waiting reader. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        try:
            self._queue.put_nowait(None)
        except asyncio.QueueFull:
            # reader is not blocked; it sees the closed flag once the buffer drains
            pass

    async def receive(self, timeout: float | None = None) -> PresenceEvent | None:
        """
        Next buffered event, or None once the stream is closed and drained.

        Raises:
            asyncio.TimeoutError: nothing arrived within `timeout` seconds
        """
        if self._closed and self._queue.empty():
            return None
        return await asyncio.wait_for(self._queue.get(), timeout)

    def receive_nowait(self) -> PresenceEvent | None:
        """Like `receive` but raises asyncio.QueueEmpty instead of waiting."""
        try:
            return self._queue.get_nowait()
        except asyncio.QueueEmpty:
            if self._closed:
                return None
            raise

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"SessionStream({self.session_id!r}, {self.stream_id}, {state})"
