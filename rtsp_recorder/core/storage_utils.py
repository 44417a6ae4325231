"""Helpers for segment output paths and the output volume."""

from __future__ import annotations

import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from .logging_utils import get_module_logger

logger = get_module_logger("Storage")

MIN_FREE_SPACE_MB = 100
_BYTES_PER_MB = 1024 * 1024


def daily_directory(output_root: Path, now: Optional[datetime] = None) -> Path:
    """Return ``output_root/YYYY-MM-DD`` for the local date of ``now``."""
    now = now or datetime.now()
    return Path(output_root) / now.strftime("%Y-%m-%d")


def ensure_daily_directory(output_root: Path, now: Optional[datetime] = None) -> Optional[Path]:
    target = daily_directory(output_root, now)
    try:
        target.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.error("Failed to create daily directory: %s (%s)", target, exc)
        return None
    return target


def expand_filename(pattern: str, now: Optional[datetime] = None) -> Optional[str]:
    """Expand strftime placeholders in ``pattern``.

    Returns None when the expansion fails or yields an unusable name.
    """
    now = now or datetime.now()
    try:
        name = now.strftime(pattern)
    except (ValueError, UnicodeError) as exc:
        logger.error("Failed to generate output filename from %r: %s", pattern, exc)
        return None
    if not name or name in (".", "..") or "\x00" in name:
        logger.error("Failed to generate output filename from %r", pattern)
        return None
    return name


def available_space_mb(path: Union[str, Path]) -> Optional[int]:
    """Free space on the volume holding ``path`` in whole MB, or None if unknown."""
    try:
        usage = shutil.disk_usage(path)
    except OSError as exc:
        logger.debug("disk_usage failed for %s: %s", path, exc)
        return None
    return usage.free // _BYTES_PER_MB


def has_free_space(path: Union[str, Path], required_mb: int = MIN_FREE_SPACE_MB) -> bool:
    """Return False only when the volume is known to be below ``required_mb``."""
    available_mb = available_space_mb(path)
    if available_mb is None:
        logger.warning("Could not check disk space")
        return True

    if available_mb < required_mb:
        logger.error(
            "Insufficient disk space: %dMB available, %dMB required",
            available_mb,
            required_mb,
        )
        return False
    return True


def file_size(path: Path) -> int:
    """Size of ``path`` in bytes; 0 when it does not exist."""
    try:
        return path.stat().st_size
    except OSError:
        return 0


def remove_file(path: Path) -> bool:
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Could not remove incomplete file %s: %s", path, exc)
        return False
    return True


def fsync_path(path: Union[str, Path]) -> bool:
    """Flush a file written by another process to disk.

    Best effort: failures are logged at debug level and reported as False.
    """
    try:
        fd = os.open(str(path), os.O_RDONLY)
    except OSError as exc:
        logger.debug("fsync_path could not open %s: %s", path, exc)
        return False
    try:
        os.fsync(fd)
        return True
    except OSError as exc:
        logger.debug("fsync failed for %s: %s", path, exc)
        return False
    finally:
        os.close(fd)


__all__ = [
    "MIN_FREE_SPACE_MB",
    "available_space_mb",
    "daily_directory",
    "ensure_daily_directory",
    "expand_filename",
    "file_size",
    "fsync_path",
    "has_free_space",
    "remove_file",
]
