"""Main recording loop."""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from .log_housekeeping import cleanup_logs
from .logging_utils import get_module_logger
from .retry_governor import NextAction, RetryGovernor, RetryPolicy
from .segment_recorder import SegmentOutcome, SegmentRecorder, SegmentResult
from .settings import RecorderConfig

Housekeeping = Callable[[RecorderConfig], Awaitable[None]]


@dataclass(slots=True)
class SupervisorStats:
    segments_recorded: int = 0
    segments_failed: int = 0
    bytes_recorded: int = 0
    cooldowns: int = 0


class RecordingSupervisor:
    """Runs segments back to back until ``stop()`` is called.

    Exactly one segment is in flight at a time. Every outcome is handed to
    the retry governor, whose decision sets the pause before the next
    segment. Pauses wait on the shutdown event, so a stop request ends them
    immediately and also terminates a capture that is still running.
    """

    def __init__(
        self,
        config: RecorderConfig,
        *,
        recorder: Optional[SegmentRecorder] = None,
        governor: Optional[RetryGovernor] = None,
        policy: Optional[RetryPolicy] = None,
        housekeeping: Housekeeping = cleanup_logs,
    ) -> None:
        self.config = config
        self.recorder = recorder or SegmentRecorder(config)
        self.governor = governor or RetryGovernor(policy)
        self.housekeeping = housekeeping
        self.logger = get_module_logger("Supervisor")
        self.stats = SupervisorStats()
        self.shutdown_event = asyncio.Event()
        self.iterations = 0

    @property
    def consecutive_failures(self) -> int:
        return self.governor.consecutive_failures

    async def run(self) -> SupervisorStats:
        self.logger.debug("Recording loop started")

        while not self.shutdown_event.is_set():
            self.iterations += 1

            if self.governor.housekeeping_due():
                await self._run_housekeeping()

            result = await self._record_one()
            if result.interrupted or self.shutdown_event.is_set():
                break

            if result.ok:
                self.stats.segments_recorded += 1
                self.stats.bytes_recorded += result.size_bytes
                decision = self.governor.record_success()
            else:
                self.stats.segments_failed += 1
                decision = self.governor.record_failure()
                if decision.action is NextAction.COOLDOWN:
                    self.stats.cooldowns += 1

            await self._pause(decision.delay)

        self.logger.info(
            "Recording loop stopped: %d segments recorded (%d bytes), %d failed, %d cooldowns",
            self.stats.segments_recorded,
            self.stats.bytes_recorded,
            self.stats.segments_failed,
            self.stats.cooldowns,
        )
        return self.stats

    async def _record_one(self) -> SegmentResult:
        try:
            return await self.recorder.record_segment()
        except Exception as exc:
            self.logger.exception("Unexpected error while recording segment: %s", exc)
            return SegmentResult(outcome=SegmentOutcome.TOOL_FAILED, reason=f"unexpected error: {exc}")

    async def _run_housekeeping(self) -> None:
        try:
            await self.housekeeping(self.config)
        except Exception as exc:
            self.logger.debug("Log housekeeping failed: %s", exc)

    async def _pause(self, delay: float) -> None:
        if delay <= 0:
            return
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(self.shutdown_event.wait(), timeout=delay)

    async def stop(self) -> None:
        """End the loop, terminating the active capture if there is one."""
        if not self.shutdown_event.is_set():
            self.logger.info("Stopping recording loop")
        self.shutdown_event.set()
        await self.recorder.stop()


__all__ = ["RecordingSupervisor", "SupervisorStats"]
