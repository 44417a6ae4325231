"""Recorder settings: resolution from environment and settings files."""

from __future__ import annotations

import os
import re
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

from .config_manager import get_config_manager
from .logging_utils import get_module_logger

logger = get_module_logger("Settings")

PRIMARY_CONFIG_PATH = Path("/app/config.env")
SECONDARY_CONFIG_PATH = Path(".env")

DEFAULTS: dict[str, str] = {
    "RTSP_URL": "rtsp://example.com/stream",
    "SEGMENT_DURATION": "1200",
    "OUTPUT_DIR": "/recordings",
    "FILENAME_PATTERN": "recording_%Y%m%d_%H%M%S.mp4",
    "LOG_FILE": "/tmp/rtsp-recorder.log",
    "FFMPEG_LOG_FILE": "/tmp/ffmpeg.log",
    "FFMPEG_BINARY": "ffmpeg",
    "LOG_LEVEL": "info",
}

_POSITIVE_INT_RE = re.compile(r"^[1-9][0-9]*$")


def parse_segment_duration(raw: str) -> Optional[int]:
    """Return ``raw`` as a positive integer, or None when it is not one."""
    text = raw.strip()
    if not _POSITIVE_INT_RE.match(text):
        return None
    return int(text)


@dataclass(frozen=True, slots=True)
class RecorderConfig:
    rtsp_url: str = DEFAULTS["RTSP_URL"]
    segment_duration_raw: str = DEFAULTS["SEGMENT_DURATION"]
    output_dir: Path = Path(DEFAULTS["OUTPUT_DIR"])
    filename_pattern: str = DEFAULTS["FILENAME_PATTERN"]
    log_file: Path = Path(DEFAULTS["LOG_FILE"])
    ffmpeg_log_file: Path = Path(DEFAULTS["FFMPEG_LOG_FILE"])
    ffmpeg_binary: str = DEFAULTS["FFMPEG_BINARY"]
    log_level: str = DEFAULTS["LOG_LEVEL"]

    @property
    def segment_duration(self) -> Optional[int]:
        """Segment length in seconds, or None if the raw value is malformed."""
        return parse_segment_duration(self.segment_duration_raw)

    @classmethod
    def from_mapping(cls, values: Mapping[str, str]) -> "RecorderConfig":
        manager = get_config_manager()

        def pick(key: str) -> str:
            return manager.get_str(values, key, DEFAULTS[key])

        return cls(
            rtsp_url=pick("RTSP_URL"),
            segment_duration_raw=pick("SEGMENT_DURATION"),
            output_dir=Path(pick("OUTPUT_DIR")),
            filename_pattern=pick("FILENAME_PATTERN"),
            log_file=Path(pick("LOG_FILE")),
            ffmpeg_log_file=Path(pick("FFMPEG_LOG_FILE")),
            ffmpeg_binary=pick("FFMPEG_BINARY"),
            log_level=pick("LOG_LEVEL").lower(),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def resolve_config(
    environ: Optional[Mapping[str, str]] = None,
    *,
    primary_path: Optional[Path] = PRIMARY_CONFIG_PATH,
    secondary_path: Optional[Path] = SECONDARY_CONFIG_PATH,
) -> RecorderConfig:
    """Build the recorder configuration.

    Each key is taken from the first layer that sets it to a non-empty value:
    the process environment, then the primary settings file, then the
    secondary settings file, then the built-in default. Values are never
    validated here.
    """
    manager = get_config_manager()
    env = os.environ if environ is None else environ

    layers = [{key: env[key] for key in DEFAULTS if key in env}]
    for path in (primary_path, secondary_path):
        if path is not None:
            layers.append(manager.read_config(Path(path)))

    return RecorderConfig.from_mapping(manager.merge_layers(layers))


def prepare_directories(config: RecorderConfig) -> bool:
    """Create the output root and both log directories.

    Returns False if any of them could not be created. Failures are only
    logged; the preflight validator decides whether they are fatal.
    """
    ok = True
    targets = (config.output_dir, config.log_file.parent, config.ffmpeg_log_file.parent)
    for directory in targets:
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.warning("Could not create directory %s: %s", directory, exc)
            ok = False
    return ok


__all__ = [
    "DEFAULTS",
    "PRIMARY_CONFIG_PATH",
    "SECONDARY_CONFIG_PATH",
    "RecorderConfig",
    "parse_segment_duration",
    "prepare_directories",
    "resolve_config",
]
