"""Capture subprocess: command line, output streaming and termination."""

from __future__ import annotations

import asyncio
import contextlib
import signal
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import aiofiles

from .logging_utils import LoggerLike, ensure_structured_logger, get_module_logger
from .settings import RecorderConfig

logger = get_module_logger("Capture")

DIAGNOSTIC_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
STREAM_READ_LIMIT = 1024 * 1024
DEFAULT_STOP_TIMEOUT = 10.0


def build_capture_command(config: RecorderConfig, output_path: Path) -> list[str]:
    """Return the fixed ffmpeg invocation for one segment.

    Only the binary, source URL, duration and output path vary; every other
    option is fixed.
    """
    duration = config.segment_duration
    if duration is None:
        raise ValueError(f"Invalid segment duration: {config.segment_duration_raw!r}")

    return [
        config.ffmpeg_binary,
        "-y",
        "-fflags", "+genpts+igndts",
        "-rtsp_transport", "tcp",
        "-analyzeduration", "10000000",
        "-probesize", "10000000",
        "-use_wallclock_as_timestamps", "1",
        "-i", config.rtsp_url,
        "-t", str(duration),
        "-avoid_negative_ts", "make_zero",
        "-c", "copy",
        "-f", "mp4",
        "-movflags", "+faststart",
        "-loglevel", "warning",
        "-err_detect", "ignore_err",
        "-reconnect", "1",
        "-reconnect_at_eof", "1",
        "-reconnect_streamed", "1",
        "-reconnect_delay_max", "2",
        "-timeout", "5000000",
        str(output_path),
    ]


def format_diagnostic_line(line: str, now: Optional[datetime] = None) -> str:
    stamp = (now or datetime.now()).strftime(DIAGNOSTIC_TIMESTAMP_FORMAT)
    return f"[{stamp}] FFmpeg: {line}"


class DiagnosticLog:
    """Append-only sink for capture-tool output.

    Writing is best effort: if the file cannot be opened or written, the
    problem is logged once and further lines are only echoed at DEBUG.
    """

    def __init__(self, path: Optional[Path], logger: LoggerLike = None) -> None:
        self.path = Path(path) if path is not None else None
        self.logger = ensure_structured_logger(logger, fallback_name="FFmpeg")
        self.lines_written = 0
        self._fh: Any = None
        self._failed = False

    async def __aenter__(self) -> "DiagnosticLog":
        if self.path is not None:
            try:
                self._fh = await aiofiles.open(self.path, "a", encoding="utf-8")
            except OSError as exc:
                self._disable(exc)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._fh is not None:
            with contextlib.suppress(OSError):
                await self._fh.close()
            self._fh = None

    def _disable(self, exc: OSError) -> None:
        if not self._failed:
            logger.warning("Diagnostic log %s is not writable: %s", self.path, exc)
        self._failed = True
        self._fh = None

    async def write_line(self, line: str) -> None:
        text = line.rstrip("\r\n")
        if not text.strip():
            return

        entry = format_diagnostic_line(text)
        self.logger.debug("%s", text)

        if self._fh is None:
            return
        try:
            await self._fh.write(entry + "\n")
            await self._fh.flush()
            self.lines_written += 1
        except OSError as exc:
            self._disable(exc)


class CaptureProcess:
    """One run of the capture tool.

    ``run()`` launches the process with stderr folded into stdout, drains that
    combined stream into the diagnostic log on a separate task while the
    caller awaits the exit code, and joins both before returning. ``stop()``
    may be called from another task to end the capture early.
    """

    def __init__(
        self,
        command: list[str],
        diagnostic_log_path: Optional[Path] = None,
        *,
        stop_timeout: float = DEFAULT_STOP_TIMEOUT,
    ) -> None:
        if not command:
            raise ValueError("Capture command must not be empty")
        self.command = list(command)
        self.diagnostic_log_path = diagnostic_log_path
        self.stop_timeout = stop_timeout
        self.process: Optional[asyncio.subprocess.Process] = None
        self.returncode: Optional[int] = None
        self.stop_requested = False
        self._exited = asyncio.Event()

    @property
    def is_running(self) -> bool:
        return self.process is not None and self.returncode is None

    async def run(self) -> int:
        """Run the capture to completion and return its exit code.

        Raises OSError if the tool cannot be launched.
        """
        if self.process is not None:
            raise RuntimeError("CaptureProcess instances are single use")

        logger.debug("Command: %s", " ".join(self.command))
        self.process = await asyncio.create_subprocess_exec(
            *self.command,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            limit=STREAM_READ_LIMIT,
        )
        logger.debug("Capture started with PID: %d", self.process.pid)

        try:
            async with DiagnosticLog(self.diagnostic_log_path) as diagnostic_log:
                drain_task = asyncio.create_task(
                    self._drain_output(diagnostic_log), name="capture-output"
                )
                try:
                    if self.stop_requested:
                        # stop() arrived while the process was being spawned.
                        await self._terminate()
                    returncode = await self.process.wait()
                except asyncio.CancelledError:
                    await self._terminate()
                    raise
                finally:
                    await self._join_drain(drain_task)
        finally:
            self.returncode = self.process.returncode
            self._exited.set()

        return returncode

    async def _drain_output(self, diagnostic_log: DiagnosticLog) -> None:
        stream = self.process.stdout if self.process else None
        if stream is None:
            return

        while True:
            try:
                raw = await stream.readline()
            except ValueError:
                # Line longer than the reader limit; take what is buffered.
                raw = await stream.read(STREAM_READ_LIMIT)
            if not raw:
                break
            await diagnostic_log.write_line(raw.decode("utf-8", errors="replace"))

    async def _join_drain(self, drain_task: asyncio.Task) -> None:
        # The pipe reaches EOF once the child exits, unless a grandchild
        # inherited it; do not wait on that forever.
        try:
            await asyncio.wait_for(drain_task, timeout=self.stop_timeout)
        except asyncio.TimeoutError:
            logger.warning("Capture output did not close after exit; abandoning reader")
        except Exception as exc:
            logger.error("Capture output reader failed: %s", exc, exc_info=True)

    async def stop(self) -> None:
        """Ask the capture to finish now and wait for it to exit.

        SIGINT makes the capture tool finalise the container and quit; if it
        has not exited within ``stop_timeout`` it is killed. A stop issued
        before the process has been spawned is honoured by ``run()`` as soon
        as the spawn completes.
        """
        self.stop_requested = True
        if not self.is_running:
            return

        await self._terminate()
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(self._exited.wait(), timeout=self.stop_timeout)

    async def _terminate(self) -> None:
        process = self.process
        if process is None or process.returncode is not None:
            return

        logger.info("Stopping capture (PID %d)", process.pid)
        with contextlib.suppress(ProcessLookupError):
            process.send_signal(signal.SIGINT)

        try:
            await asyncio.wait_for(process.wait(), timeout=self.stop_timeout)
        except asyncio.TimeoutError:
            logger.warning("Capture did not exit after SIGINT, sending SIGKILL")
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            await process.wait()


__all__ = [
    "CaptureProcess",
    "DiagnosticLog",
    "build_capture_command",
    "format_diagnostic_line",
]
