"""
Shutdown coordination for the recorder process.

SIGINT and SIGTERM both end up in ``initiate_shutdown()``. The first request
runs the registered stop callbacks in order; later requests are ignored while
the first one finishes.
"""

import asyncio
import time
from enum import Enum
from typing import Awaitable, Callable, Optional

from .logging_utils import get_module_logger

StopCallback = Callable[[], Awaitable[None]]


class ShutdownState(Enum):
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


class ShutdownCoordinator:

    def __init__(self):
        self.logger = get_module_logger("Shutdown")
        self.state = ShutdownState.RUNNING
        self.source: Optional[str] = None
        self._callbacks: list[StopCallback] = []
        self._stopped = asyncio.Event()

    @property
    def is_shutting_down(self) -> bool:
        return self.state is not ShutdownState.RUNNING

    @property
    def is_complete(self) -> bool:
        return self.state is ShutdownState.STOPPED

    def register_cleanup(self, callback: StopCallback) -> None:
        self._callbacks.append(callback)

    async def initiate_shutdown(self, source: str = "unknown") -> None:
        # No await before the state flip.
        if self.state is not ShutdownState.RUNNING:
            self.logger.debug("Ignoring shutdown request from %s (%s)", source, self.state.value)
            return
        self.state = ShutdownState.STOPPING
        self.source = source

        self.logger.info("Received %s, shutting down gracefully...", source)
        started = time.monotonic()

        for callback in self._callbacks:
            name = getattr(callback, "__qualname__", repr(callback))
            step_started = time.monotonic()
            try:
                await callback()
            except Exception as e:
                self.logger.error("Stop callback %s failed: %s", name, e, exc_info=True)
            else:
                self.logger.debug("%s finished in %.2fs", name, time.monotonic() - step_started)

        self.state = ShutdownState.STOPPED
        self._stopped.set()
        self.logger.info("Shutdown complete after %.2fs", time.monotonic() - started)

    async def wait_for_shutdown(self) -> None:
        await self._stopped.wait()


__all__ = ["ShutdownCoordinator", "ShutdownState"]
