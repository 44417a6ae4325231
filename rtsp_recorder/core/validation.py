"""Preflight checks run once before the recording loop starts."""

from __future__ import annotations

import os
import shutil

from .logging_utils import get_module_logger
from .settings import RecorderConfig

logger = get_module_logger("Preflight")

STREAM_SCHEME = "rtsp://"


def check_stream_url(config: RecorderConfig) -> bool:
    if config.rtsp_url.startswith(STREAM_SCHEME):
        return True
    logger.error("Invalid RTSP URL format: %s", config.rtsp_url)
    return False


def check_segment_duration(config: RecorderConfig) -> bool:
    if config.segment_duration is not None:
        return True
    logger.error(
        "Invalid SEGMENT_DURATION: %s (must be positive integer)",
        config.segment_duration_raw,
    )
    return False


def check_output_dir(config: RecorderConfig) -> bool:
    directory = config.output_dir
    if directory.is_dir() and os.access(directory, os.W_OK | os.X_OK):
        return True
    logger.error("Output directory is not writable: %s", directory)
    return False


def check_capture_tool(config: RecorderConfig) -> bool:
    if shutil.which(config.ffmpeg_binary):
        return True
    logger.error("%s command not found", config.ffmpeg_binary)
    return False


PREFLIGHT_CHECKS = (
    check_stream_url,
    check_segment_duration,
    check_output_dir,
    check_capture_tool,
)


def validate_config(config: RecorderConfig) -> int:
    """Run every preflight check and return the number that failed.

    Checks never short-circuit; each failing check logs its own error.
    """
    errors = 0
    for check in PREFLIGHT_CHECKS:
        if not check(config):
            errors += 1
    return errors


__all__ = [
    "PREFLIGHT_CHECKS",
    "STREAM_SCHEME",
    "check_capture_tool",
    "check_output_dir",
    "check_segment_duration",
    "check_stream_url",
    "validate_config",
]
