"""Presence domain service - registry, policy and broadcast wiring."""

import asyncio
import time
from typing import Callable

from loguru import logger

from .broadcast import BroadcastEngine
from .occupancy_policy import OccupancyPolicy
from .presence_models import (
    OccupancySnapshot,
    PresenceEvent,
    PresenceSettings,
    SessionOrigin,
    TouchResult,
)
from .session_store import SessionStore
from .stream import SessionStream
from .sweeper import LivenessSweeper


class PresenceService:
    """Single owned entry point used by request handlers and the sweeper.

    Lock order is policy lock -> broadcaster emission lock -> store lock, and
    every re-evaluation of occupancy happens under the policy lock so the
    announced state always follows the store in order.
    """

    def __init__(
        self,
        settings: PresenceSettings | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings or PresenceSettings()
        self.store = SessionStore(clock=clock)
        self.policy = OccupancyPolicy()
        self.broadcaster = BroadcastEngine(self.store)
        self.sweeper = LivenessSweeper(self.sweep, self.settings.sweep_interval)
        self._policy_lock = asyncio.Lock()
        self._closed = False

    # ==================== LIFECYCLE ====================

    def start(self) -> None:
        self.sweeper.start()

    async def shutdown(self) -> None:
        """Stop sweeping, tell every open stream we are going away, then close them.

        Safe to call again: the signal hook and the lifespan teardown both call it.
        """
        await self.sweeper.stop()
        async with self._policy_lock:
            if self._closed:
                return
            self._closed = True
            await self.broadcaster.notify(PresenceEvent.shutdown())
            dropped = await self.store.clear()
            self.policy.reset()
        logger.info("Presence shut down, released {} session(s)", dropped)

    # ==================== SESSIONS ====================

    async def subscribe(self, session_id: str, origin: SessionOrigin | None = None) -> SessionStream:
        """
        Register `session_id` with a fresh stream and queue the initial status.

        Returns:
            The stream the connection handler should drain
        """
        stream = SessionStream(session_id, maxsize=self.settings.stream_queue_size)
        async with self._policy_lock:
            result = await self.store.register(session_id, stream=stream, origin=origin)
            stream.send(PresenceEvent.status(result.count))

        logger.info(
            "Session {} subscribed from {} (count={}, new={})",
            session_id[:10],
            origin.address if origin else "-",
            result.count,
            result.created,
        )
        await self._reconcile()
        return stream

    async def heartbeat(self, session_id: str) -> TouchResult:
        result = await self.store.touch(session_id)
        if result is TouchResult.NOT_FOUND:
            logger.debug("Heartbeat for unknown session {}", session_id[:10])
        return result

    async def disconnect(self, session_id: str) -> bool:
        """Explicit leave. Idempotent."""
        removed = await self.store.remove(session_id)
        if removed:
            logger.info("Session {} disconnected", session_id[:10])
            await self._reconcile()
        return removed

    async def release(self, stream: SessionStream) -> None:
        """Called when a stream's connection ends, for whatever reason."""
        if self.settings.release_on_stream_close:
            removed = await self.store.remove_with_stream(stream.session_id, stream)
            if removed:
                logger.info("Session {} left (stream closed)", stream.session_id[:10])
                await self._reconcile()
        else:
            await self.store.detach(stream.session_id, stream)

    async def sweep(self) -> list[str]:
        """Evict sessions idle past the staleness threshold."""
        evicted = await self.store.evict_stale(self.settings.stale_threshold)
        if evicted:
            for session_id in evicted:
                logger.info("Session {} evicted after missing heartbeats", session_id[:10])
            await self._reconcile()
        return evicted

    async def occupancy(self) -> OccupancySnapshot:
        count = await self.store.size()
        return OccupancySnapshot(state=self.policy.state_for(count), count=count)

    # ==================== BROADCAST ====================

    async def _reconcile(self) -> None:
        """Re-evaluate occupancy and broadcast until no broadcast evicts anyone."""
        async with self._policy_lock:
            while True:
                count = await self.store.size()
                event = self.policy.evaluate(count)
                if event is None:
                    return
                evicted = await self.broadcaster.notify(event)
                if not evicted:
                    return
