"""Component-tagged loggers for the RTSP recorder.

Every logger lives under the ``rtsp_recorder`` namespace and prefixes its
messages with ``[Component]`` so the shared log file stays readable when the
supervisor, the segment recorder and the capture tool interleave.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

LOGGER_NAMESPACE = "rtsp_recorder"
DEFAULT_COMPONENT = "Recorder"


def _qualify(name: Optional[str]) -> str:
    if not name:
        return LOGGER_NAMESPACE
    if name == LOGGER_NAMESPACE or name.startswith(LOGGER_NAMESPACE + "."):
        return name
    return f"{LOGGER_NAMESPACE}.{name}"


def _component_for(logger_name: str) -> str:
    # rtsp_recorder.core.capture -> capture
    tail = logger_name.rsplit(".", 1)[-1]
    if not tail or tail == LOGGER_NAMESPACE:
        return DEFAULT_COMPONENT
    return tail


class StructuredLogger:
    """Wraps a ``logging.Logger`` and tags each message with its component."""

    __slots__ = ("_logger", "_component")

    def __init__(self, logger: logging.Logger, component: Optional[str] = None) -> None:
        self._logger = logger
        self._component = component or _component_for(logger.name)

    def __getattr__(self, item):
        return getattr(self._logger, item)

    @property
    def name(self) -> str:
        return self._logger.name

    @property
    def component(self) -> str:
        return self._component

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def _render(self, message: object, args: tuple) -> str:
        text = str(message)
        if args:
            try:
                text = text % args
            except (TypeError, ValueError):
                text = f"{text} {args!r}"
        tag = f"[{self._component}]"
        return text if text.startswith(tag) else f"{tag} {text}"

    def _log(self, level: int, message: object, args: tuple, kwargs: dict) -> None:
        if self._logger.isEnabledFor(level):
            # Attribute the record to our caller, not to this wrapper.
            kwargs.setdefault("stacklevel", 3)
            self._logger.log(level, self._render(message, args), **kwargs)

    def debug(self, message: object, *args, **kwargs) -> None:
        self._log(logging.DEBUG, message, args, kwargs)

    def info(self, message: object, *args, **kwargs) -> None:
        self._log(logging.INFO, message, args, kwargs)

    def warning(self, message: object, *args, **kwargs) -> None:
        self._log(logging.WARNING, message, args, kwargs)

    def error(self, message: object, *args, **kwargs) -> None:
        self._log(logging.ERROR, message, args, kwargs)

    def exception(self, message: object, *args, **kwargs) -> None:
        kwargs.setdefault("exc_info", True)
        self._log(logging.ERROR, message, args, kwargs)


LoggerLike = Union[StructuredLogger, logging.Logger, None]


def ensure_structured_logger(
    logger: LoggerLike,
    *,
    component: Optional[str] = None,
    fallback_name: Optional[str] = None,
) -> StructuredLogger:
    """Return ``logger`` as a StructuredLogger, creating one when it is None."""
    if isinstance(logger, StructuredLogger):
        return logger
    if isinstance(logger, logging.Logger):
        return StructuredLogger(logger, component=component)
    return get_module_logger(fallback_name)


def get_module_logger(name: Optional[str] = None) -> StructuredLogger:
    return StructuredLogger(logging.getLogger(_qualify(name)))


__all__ = [
    "LOGGER_NAMESPACE",
    "LoggerLike",
    "StructuredLogger",
    "ensure_structured_logger",
    "get_module_logger",
]
