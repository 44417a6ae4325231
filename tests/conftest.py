"""Shared pytest configuration and fixtures for the recorder test suite."""

import dataclasses
import logging
import stat
import sys
from pathlib import Path

import pytest

# Ensure the project root is in the path for imports
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from rtsp_recorder.core.settings import RecorderConfig  # noqa: E402


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
    config.addinivalue_line(
        "markers", "posix: mark test as requiring a POSIX shell"
    )


def pytest_collection_modifyitems(config, items):
    """Skip tests that need /bin/sh on platforms without it."""
    if sys.platform != "win32" and Path("/bin/sh").exists():
        return

    skip_posix = pytest.mark.skip(reason="Requires a POSIX shell")
    for item in items:
        if "posix" in item.keywords:
            item.add_marker(skip_posix)


# =============================================================================
# Shared Fixtures
# =============================================================================

@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def write_executable(tmp_path: Path):
    """Factory that writes an executable script into ``tmp_path/bin``."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir(exist_ok=True)

    def factory(name: str, body: str) -> Path:
        script = bin_dir / name
        script.write_text(body, encoding="utf-8")
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return script

    return factory


@pytest.fixture
def fake_ffmpeg(write_executable) -> Path:
    """A do-nothing executable that satisfies the capture tool lookup."""
    return write_executable("ffmpeg", "#!/bin/sh\nexit 0\n")


@pytest.fixture
def recorder_config(tmp_path: Path, fake_ffmpeg: Path) -> RecorderConfig:
    """A valid configuration rooted entirely inside ``tmp_path``."""
    output_dir = tmp_path / "recordings"
    output_dir.mkdir()
    return RecorderConfig(
        rtsp_url="rtsp://cam/test",
        segment_duration_raw="5",
        output_dir=output_dir,
        filename_pattern="recording_%Y%m%d_%H%M%S.mp4",
        log_file=tmp_path / "logs" / "rtsp-recorder.log",
        ffmpeg_log_file=tmp_path / "logs" / "ffmpeg.log",
        ffmpeg_binary=str(fake_ffmpeg),
    )


@pytest.fixture
def make_config(recorder_config: RecorderConfig):
    """Return ``recorder_config`` with selected fields replaced."""
    def factory(**changes) -> RecorderConfig:
        return dataclasses.replace(recorder_config, **changes)

    return factory


@pytest.fixture
def restore_root_logging():
    """Undo handler changes made by ``configure_logging(force=True)``."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
