"""Records exactly one segment per call and classifies the outcome."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from .capture import CaptureProcess, build_capture_command
from .logging_utils import get_module_logger
from .settings import RecorderConfig
from .storage_utils import (
    MIN_FREE_SPACE_MB,
    ensure_daily_directory,
    expand_filename,
    file_size,
    fsync_path,
    has_free_space,
    remove_file,
)

CaptureFactory = Callable[[list, Optional[Path]], CaptureProcess]


class SegmentOutcome(Enum):
    SUCCESS = "success"
    TOOL_FAILED = "tool_failed"
    EMPTY_OUTPUT = "empty_output"
    NO_DISK_SPACE = "no_disk_space"
    DIRECTORY_ERROR = "directory_error"
    FILENAME_ERROR = "filename_error"
    LAUNCH_FAILED = "launch_failed"
    INTERRUPTED = "interrupted"


@dataclass(slots=True)
class SegmentResult:
    outcome: SegmentOutcome
    reason: str = ""
    output_path: Optional[Path] = None
    started_at: datetime = field(default_factory=datetime.now)
    ended_at: Optional[datetime] = None
    duration_seconds: float = 0.0
    size_bytes: int = 0
    exit_code: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.outcome is SegmentOutcome.SUCCESS

    @property
    def interrupted(self) -> bool:
        return self.outcome is SegmentOutcome.INTERRUPTED


class SegmentRecorder:
    """Captures one segment of ``config.segment_duration`` seconds per call.

    Never retries: one ``record_segment()`` call launches the capture tool at
    most once. The capture currently running is kept in ``active_capture`` so
    ``stop()`` can end it from a signal handler.
    """

    def __init__(
        self,
        config: RecorderConfig,
        *,
        capture_factory: Optional[CaptureFactory] = None,
        min_free_mb: int = MIN_FREE_SPACE_MB,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.config = config
        self.capture_factory: CaptureFactory = capture_factory or CaptureProcess
        self.min_free_mb = min_free_mb
        self.clock = clock
        self.logger = get_module_logger("SegmentRecorder")
        self.active_capture: Optional[CaptureProcess] = None
        self._stop_requested = False

    async def stop(self) -> None:
        self._stop_requested = True
        capture = self.active_capture
        if capture is not None:
            await capture.stop()

    def _fail(self, result: SegmentResult, outcome: SegmentOutcome, reason: str) -> SegmentResult:
        result.outcome = outcome
        result.reason = reason
        result.ended_at = self.clock()
        return result

    async def record_segment(self) -> SegmentResult:
        now = self.clock()
        result = SegmentResult(outcome=SegmentOutcome.SUCCESS, started_at=now)

        daily_dir = ensure_daily_directory(self.config.output_dir, now)
        if daily_dir is None:
            return self._fail(result, SegmentOutcome.DIRECTORY_ERROR, "daily directory could not be created")

        filename = expand_filename(self.config.filename_pattern, now)
        if filename is None:
            return self._fail(result, SegmentOutcome.FILENAME_ERROR, "output filename could not be generated")

        output_path = daily_dir / filename
        result.output_path = output_path

        if not has_free_space(self.config.output_dir, self.min_free_mb):
            self.logger.warning("Skipping segment due to low disk space")
            return self._fail(result, SegmentOutcome.NO_DISK_SPACE, "insufficient disk space")

        if self._stop_requested:
            return self._fail(result, SegmentOutcome.INTERRUPTED, "shutdown requested")

        command = build_capture_command(self.config, output_path)
        capture = self.capture_factory(command, self.config.ffmpeg_log_file)
        self.active_capture = capture

        self.logger.info("Starting new segment: %s", output_path)
        started = time.monotonic()
        try:
            exit_code = await capture.run()
        except OSError as exc:
            self.logger.error("Capture tool could not be started: %s", exc)
            return self._fail(result, SegmentOutcome.LAUNCH_FAILED, "capture tool could not be started")
        finally:
            self.active_capture = None
            result.duration_seconds = time.monotonic() - started

        result.exit_code = exit_code
        result.ended_at = self.clock()
        result.size_bytes = file_size(output_path)

        if capture.stop_requested:
            return self._classify_interrupted(result)
        if exit_code == 0:
            return self._classify_completed(result)
        return self._classify_tool_failure(result)

    def _classify_completed(self, result: SegmentResult) -> SegmentResult:
        path = result.output_path
        if result.size_bytes > 0:
            fsync_path(path)
            self.logger.info(
                "Segment completed successfully: %s (size: %d bytes, duration: %ds)",
                path,
                result.size_bytes,
                round(result.duration_seconds),
            )
            result.outcome = SegmentOutcome.SUCCESS
            return result

        self.logger.error("Segment file missing or empty: %s", path)
        remove_file(path)
        result.outcome = SegmentOutcome.EMPTY_OUTPUT
        result.reason = "segment file missing or empty"
        return result

    def _classify_tool_failure(self, result: SegmentResult) -> SegmentResult:
        self.logger.error("FFmpeg failed with exit code %d: %s", result.exit_code, result.output_path)
        remove_file(result.output_path)
        result.size_bytes = 0
        result.outcome = SegmentOutcome.TOOL_FAILED
        result.reason = f"capture tool failed with exit code {result.exit_code}"
        return result

    def _classify_interrupted(self, result: SegmentResult) -> SegmentResult:
        path = result.output_path
        if result.size_bytes > 0:
            fsync_path(path)
            self.logger.info(
                "Segment interrupted by shutdown: %s (size: %d bytes, duration: %ds)",
                path,
                result.size_bytes,
                round(result.duration_seconds),
            )
        else:
            self.logger.info("Segment interrupted by shutdown before any data was written")
            remove_file(path)
        result.outcome = SegmentOutcome.INTERRUPTED
        result.reason = "shutdown requested"
        return result


__all__ = ["SegmentOutcome", "SegmentRecorder", "SegmentResult"]
