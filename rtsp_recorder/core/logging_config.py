"""Root logging setup for the recorder process."""

from __future__ import annotations

import contextlib
import logging
import sys
from logging.handlers import WatchedFileHandler
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

_configured = False


def _coerce_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level '{level}'")
    return numeric


class _BelowLevelFilter(logging.Filter):
    """Pass only records strictly below ``threshold``."""

    def __init__(self, threshold: int) -> None:
        super().__init__()
        self.threshold = threshold

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < self.threshold


def _console_handlers(level: int, formatter: logging.Formatter) -> list[logging.Handler]:
    # Records below ERROR go to stdout, ERROR and above to stderr.
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setLevel(level)
    stdout_handler.addFilter(_BelowLevelFilter(logging.ERROR))

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(max(level, logging.ERROR))

    for handler in (stdout_handler, stderr_handler):
        handler.setFormatter(formatter)
    return [stdout_handler, stderr_handler]


def _file_handler(log_path: Path, level: int, formatter: logging.Formatter) -> logging.Handler:
    # WatchedFileHandler reopens the path after housekeeping swaps the file.
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = WatchedFileHandler(log_path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def configure_logging(
    level: Union[int, str] = logging.INFO,
    *,
    force: bool = False,
    console: bool = True,
    log_file: Optional[Union[str, Path]] = None,
) -> None:
    """Install the recorder's handlers on the root logger.

    Args:
        level: Logging level as an int or a name such as "info".
        force: Rebuild the handlers even if logging was already configured.
            Without it a second call only changes the level.
        console: Emit records to stdout/stderr.
        log_file: Application log file. If it cannot be opened a warning is
            logged and the process continues with console output only.

    Raises:
        ValueError: ``level`` is not a known level name.
    """
    global _configured
    numeric_level = _coerce_level(level)
    root = logging.getLogger()

    if _configured and not force:
        root.setLevel(numeric_level)
        return

    for handler in list(root.handlers):
        root.removeHandler(handler)
        with contextlib.suppress(Exception):
            handler.close()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)
    if console:
        for handler in _console_handlers(numeric_level, formatter):
            root.addHandler(handler)

    file_error: Optional[OSError] = None
    if log_file:
        try:
            root.addHandler(_file_handler(Path(log_file), numeric_level, formatter))
        except OSError as exc:
            file_error = exc

    if not root.handlers:
        root.addHandler(logging.NullHandler())
    root.setLevel(numeric_level)
    _configured = True

    if file_error is not None:
        logging.getLogger(__name__).warning(
            "Log file %s is not writable (%s); logging to console only", log_file, file_error
        )


__all__ = ["LOG_DATEFMT", "LOG_FORMAT", "configure_logging"]
