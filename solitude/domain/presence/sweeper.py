"""Periodic eviction of sessions that stopped sending heartbeats."""

import asyncio
from typing import Awaitable, Callable

from loguru import logger

from solitude.shared.api.utils import format_error


class LivenessSweeper:
    """Runs `sweep` every `interval` seconds until stopped.

    A failing tick is logged and the loop keeps going; a late tick only
    postpones eviction.
    """

    def __init__(self, sweep: Callable[[], Awaitable[list[str]]], interval: float):
        self._sweep = sweep
        self._interval = interval
        self._task: asyncio.Task | None = None

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> list[str]:
        return await self._sweep()

    async def _run(self) -> None:
        logger.info("Liveness sweeper started (interval={}s)", self._interval)
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.run_once()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.error("Liveness sweep failed:\n{}", format_error(exc))

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run(), name="presence-sweeper")
        return self._task

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Liveness sweeper stopped")
