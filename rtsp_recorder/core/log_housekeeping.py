"""Line-count based truncation of the recorder's append-only logs."""

from __future__ import annotations

import contextlib
from collections import deque
from pathlib import Path
from typing import Optional

import aiofiles
import aiofiles.os

from .logging_utils import get_module_logger
from .settings import RecorderConfig

logger = get_module_logger("Housekeeping")

MAX_LOG_LINES = 10_000
KEEP_LOG_LINES = MAX_LOG_LINES // 2


async def truncate_log(
    path: Path,
    *,
    max_lines: int = MAX_LOG_LINES,
    keep_lines: int = KEEP_LOG_LINES,
) -> Optional[int]:
    """Cut ``path`` down to its last ``keep_lines`` lines once it exceeds ``max_lines``.

    Returns the number of lines kept when the file was rewritten, None when it
    was left alone or the rewrite failed. The new content is written to a
    sibling temp file and moved into place, so readers never see a partial log.
    """
    path = Path(path)
    tmp_path = path.with_name(path.name + ".tmp")
    try:
        if not await aiofiles.os.path.isfile(path):
            return None

        tail: deque[str] = deque(maxlen=keep_lines)
        line_count = 0
        async with aiofiles.open(path, "r", encoding="utf-8", errors="replace") as fh:
            async for line in fh:
                line_count += 1
                tail.append(line)

        if line_count <= max_lines:
            return None

        async with aiofiles.open(tmp_path, "w", encoding="utf-8") as fh:
            await fh.writelines(tail)
        await aiofiles.os.replace(tmp_path, path)
    except OSError as exc:
        logger.debug("Log truncation skipped for %s: %s", path, exc)
        with contextlib.suppress(OSError):
            await aiofiles.os.remove(tmp_path)
        return None

    return len(tail)


async def cleanup_logs(
    config: RecorderConfig,
    *,
    max_lines: int = MAX_LOG_LINES,
    keep_lines: int = KEEP_LOG_LINES,
) -> None:
    """Truncate the application log and the capture-tool diagnostic log."""
    kept = await truncate_log(config.log_file, max_lines=max_lines, keep_lines=keep_lines)
    if kept is not None:
        logger.info("Rotated log file (kept last %d lines)", kept)

    kept = await truncate_log(config.ffmpeg_log_file, max_lines=max_lines, keep_lines=keep_lines)
    if kept is not None:
        logger.debug("Rotated capture log %s (kept last %d lines)", config.ffmpeg_log_file, kept)


__all__ = ["KEEP_LOG_LINES", "MAX_LOG_LINES", "cleanup_logs", "truncate_log"]
