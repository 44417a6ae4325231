"""Continuous RTSP-to-file recorder supervising an ffmpeg capture per segment."""

from __future__ import annotations

from importlib import metadata

from .app.main import main, run

try:
    __version__ = metadata.version("rtsp-recorder")
except metadata.PackageNotFoundError:  # pragma: no cover - local dev
    __version__ = "0.0.0"


__all__ = ["__version__", "main", "run"]
