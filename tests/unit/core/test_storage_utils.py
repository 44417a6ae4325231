"""Unit tests for output-path and disk-space helpers."""

from collections import namedtuple
from datetime import datetime

import pytest

from rtsp_recorder.core import storage_utils
from rtsp_recorder.core.storage_utils import (
    daily_directory,
    ensure_daily_directory,
    expand_filename,
    file_size,
    fsync_path,
    has_free_space,
    remove_file,
)

DiskUsage = namedtuple("DiskUsage", "total used free")
MB = 1024 * 1024

NOW = datetime(2024, 3, 9, 7, 5, 3)


def test_daily_directory_uses_calendar_date(tmp_path):
    assert daily_directory(tmp_path, NOW) == tmp_path / "2024-03-09"


def test_ensure_daily_directory_creates_it(tmp_path):
    target = ensure_daily_directory(tmp_path, NOW)
    assert target == tmp_path / "2024-03-09"
    assert target.is_dir()


def test_ensure_daily_directory_failure_returns_none(tmp_path):
    blocker = tmp_path / "root"
    blocker.write_text("x", encoding="utf-8")
    assert ensure_daily_directory(blocker, NOW) is None


def test_expand_filename_default_pattern():
    assert expand_filename("recording_%Y%m%d_%H%M%S.mp4", NOW) == "recording_20240309_070503.mp4"


def test_expand_filename_rejects_empty_result():
    assert expand_filename("", NOW) is None


class TestFreeSpace:

    def test_below_threshold(self, tmp_path, monkeypatch):
        monkeypatch.setattr(storage_utils.shutil, "disk_usage", lambda _: DiskUsage(0, 0, 50 * MB))
        assert has_free_space(tmp_path, 100) is False

    def test_at_threshold(self, tmp_path, monkeypatch):
        monkeypatch.setattr(storage_utils.shutil, "disk_usage", lambda _: DiskUsage(0, 0, 100 * MB))
        assert has_free_space(tmp_path, 100) is True

    def test_probe_failure_assumes_ok(self, tmp_path, monkeypatch):
        def broken(_):
            raise OSError("no such volume")

        monkeypatch.setattr(storage_utils.shutil, "disk_usage", broken)
        assert has_free_space(tmp_path, 100) is True


def test_file_size_and_remove(tmp_path):
    path = tmp_path / "segment.mp4"
    assert file_size(path) == 0

    path.write_bytes(b"x" * 42)
    assert file_size(path) == 42

    assert remove_file(path) is True
    assert not path.exists()
    assert remove_file(path) is True


@pytest.mark.parametrize("exists", [True, False])
def test_fsync_path(tmp_path, exists):
    path = tmp_path / "segment.mp4"
    if exists:
        path.write_bytes(b"data")
    assert fsync_path(path) is exists
