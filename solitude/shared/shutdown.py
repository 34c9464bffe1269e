"""Run an async cleanup as soon as the process is asked to stop.

The ASGI server only runs lifespan teardown after it has drained its open
connections, and long-lived event streams never drain by themselves. Hooking
the termination signals lets the app say goodbye to its streams first, so the
server's drain finishes promptly.
"""

import asyncio
import signal
from typing import Awaitable, Callable

from loguru import logger

from solitude.shared.api.utils import format_error

SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT)


class ShutdownSignals:
    """Wraps the current SIGTERM/SIGINT handlers with `on_shutdown`.

    The wrapped handler is still called on every signal, so the server keeps
    its own stop logic. A signal whose previous disposition was SIG_DFL is
    re-raised once `on_shutdown` has finished.
    """

    def __init__(self, on_shutdown: Callable[[], Awaitable[None]]):
        self._on_shutdown = on_shutdown
        self._loop: asyncio.AbstractEventLoop | None = None
        self._previous: dict[signal.Signals, Callable | int] = {}
        self._task: asyncio.Task | None = None

    @property
    def triggered(self) -> bool:
        return self._task is not None

    def install(self) -> list[signal.Signals]:
        """
        Hook the termination signals on the running loop.

        Returns:
            The signals that were hooked; empty off the main thread
        """
        self._loop = asyncio.get_running_loop()
        for sig in SHUTDOWN_SIGNALS:
            previous = signal.getsignal(sig)
            if previous is None:
                logger.warning("{} handler was not installed from Python, leaving it alone", sig.name)
                continue
            try:
                signal.signal(sig, self._handle)
            except ValueError as exc:
                logger.warning("Cannot hook {} for early shutdown: {}", sig.name, exc)
                continue
            self._previous[sig] = previous

        if self._previous:
            logger.info("Early shutdown hooked on {}", ", ".join(sig.name for sig in self._previous))
        return list(self._previous)

    def uninstall(self) -> None:
        previous, self._previous = self._previous, {}
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    async def wait(self) -> None:
        """Block until a signal-triggered shutdown, if any, has finished."""
        if self._task is not None:
            await asyncio.shield(self._task)

    def _handle(self, signum: int, frame) -> None:
        sig = signal.Signals(signum)
        previous = self._previous.get(sig, signal.SIG_DFL)
        if self._loop is not None:
            self._loop.call_soon_threadsafe(self._begin, sig, previous)
        if callable(previous):
            previous(signum, frame)

    def _begin(self, sig: signal.Signals, previous: Callable | int) -> None:
        if self._task is None:
            logger.info("Received {}, notifying open streams before stopping", sig.name)
            self._task = asyncio.ensure_future(self._on_shutdown())
            self._task.add_done_callback(self._log_failure)

        if previous == signal.SIG_DFL:
            self._task.add_done_callback(lambda _: self._reraise(sig))

    def _reraise(self, sig: signal.Signals) -> None:
        self.uninstall()
        signal.signal(sig, signal.SIG_DFL)
        signal.raise_signal(sig)

    @staticmethod
    def _log_failure(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Early shutdown failed:\n{}", format_error(exc))
