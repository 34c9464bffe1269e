"""In-memory session registry guarded by a single asyncio lock."""

import asyncio
import time
from dataclasses import replace
from typing import Callable

from loguru import logger

from .presence_models import RegisterResult, SessionOrigin, SessionRecord, TouchResult
from .stream import SessionStream


class SessionStore:
    """Concurrency-safe mapping from session id to SessionRecord.

    Every read and mutation runs under one lock so no caller can observe a
    half-updated store. Stream handles are closed outside the lock; closing
    only flips a flag and wakes the reader, it never writes to the network.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._sessions: dict[str, SessionRecord] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    async def register(
        self,
        session_id: str,
        stream: SessionStream | None = None,
        origin: SessionOrigin | None = None,
    ) -> RegisterResult:
        """
        Insert or refresh the record for `session_id`.

        A re-registration refreshes `last_seen` on the existing record. When a
        new stream replaces an older one, the older stream is closed and
        returned as `displaced`.
        """
        displaced = None
        async with self._lock:
            now = self._clock()
            record = self._sessions.get(session_id)
            created = record is None

            if record is None:
                record = SessionRecord(session_id=session_id, last_seen=now, origin=origin)
                self._sessions[session_id] = record
            else:
                record.last_seen = now
                if origin is not None:
                    record.origin = origin

            if stream is not None and record.stream is not stream:
                displaced = record.stream
                record.stream = stream

            count = len(self._sessions)

        if displaced is not None:
            logger.info("Session {} re-registered, closing previous stream", session_id[:10])
            displaced.close()

        return RegisterResult(created=created, count=count, displaced=displaced)

    async def touch(self, session_id: str) -> TouchResult:
        """Refresh `last_seen`. Unknown ids are reported, never created."""
        async with self._lock:
            record = self._sessions.get(session_id)
            if record is None:
                return TouchResult.NOT_FOUND
            record.last_seen = self._clock()
            return TouchResult.REFRESHED

    async def remove(self, session_id: str) -> bool:
        """Delete the record and close its stream. Idempotent."""
        async with self._lock:
            record = self._sessions.pop(session_id, None)

        if record is None:
            return False
        if record.stream is not None:
            record.stream.close()
        return True

    async def remove_with_stream(self, session_id: str, stream: SessionStream) -> bool:
        """Delete the record only while `stream` is still its attached stream."""
        async with self._lock:
            record = self._sessions.get(session_id)
            if record is None or record.stream is not stream:
                removed = False
            else:
                del self._sessions[session_id]
                removed = True

        stream.close()
        return removed

    async def detach(self, session_id: str, stream: SessionStream) -> bool:
        """Clear the stream handle but keep the record for heartbeat reconnection."""
        async with self._lock:
            record = self._sessions.get(session_id)
            detached = record is not None and record.stream is stream
            if detached:
                record.stream = None

        stream.close()
        return detached

    async def size(self) -> int:
        async with self._lock:
            return len(self._sessions)

    async def for_each_open_stream(self, fn: Callable[[str, SessionStream], None]) -> int:
        """
        Apply `fn(session_id, stream)` to every record holding a stream handle.

        A handle that closed without being detached is still visited, so the
        failed push lets the caller reap it.

        The set of streams is snapshotted under the lock; `fn` runs after the
        lock is released so a slow recipient cannot stall other handlers.

        Returns:
            Number of streams visited
        """
        async with self._lock:
            targets = [
                (record.session_id, record.stream)
                for record in self._sessions.values()
                if record.stream is not None
            ]

        for session_id, stream in targets:
            fn(session_id, stream)  # type: ignore[arg-type]

        return len(targets)

    async def evict_stale(self, threshold: float, now: float | None = None) -> list[str]:
        """Remove every record idle for longer than `threshold` seconds."""
        streams: list[SessionStream] = []
        async with self._lock:
            if now is None:
                now = self._clock()
            stale = [
                session_id
                for session_id, record in self._sessions.items()
                if now - record.last_seen > threshold
            ]
            for session_id in stale:
                record = self._sessions.pop(session_id)
                if record.stream is not None:
                    streams.append(record.stream)

        for stream in streams:
            stream.close()

        return stale

    async def snapshot(self) -> list[SessionRecord]:
        """Copies of all records, for diagnostics."""
        async with self._lock:
            return [replace(record) for record in self._sessions.values()]

    async def clear(self) -> int:
        """Drop every record and close every stream."""
        async with self._lock:
            records = list(self._sessions.values())
            self._sessions.clear()

        for record in records:
            if record.stream is not None:
                record.stream.close()

        return len(records)
