#!/usr/bin/env python3
"""Tests for photo replication utilities using should/when pattern."""

import os
from datetime import datetime
from unittest.mock import patch

from photo_replicator.utils import (
    ensure_directory,
    format_bytes,
    format_duration,
    get_available_space,
    set_file_times,
)


def test_should_format_bytes_as_human_readable_when_size_provided():
    """Should format bytes as human-readable string when size is provided."""

    test_cases = [
        (0, "0B"),
        (500, "500.0B"),
        (1024, "1.0KB"),
        (1024 * 1024, "1.0MB"),
        (1024 * 1024 * 1024, "1.0GB"),
        (1536, "1.5KB"),  # 1.5 * 1024
        (2048 * 1024 * 1024, "2.0GB")  # 2GB
    ]

    for byte_value, expected_format in test_cases:
        result = format_bytes(byte_value)
        assert result == expected_format, f"Expected {expected_format}, got {result} for {byte_value}"


def test_should_format_duration_when_seconds_provided():
    """Should render seconds, minutes and hours compactly."""
    assert format_duration(6.25) == "6.2s"
    assert format_duration(245) == "4m05s"
    assert format_duration(3723) == "1h02m03s"


def test_should_ensure_directory_exists_when_path_provided(tmp_path):
    """Should ensure directory exists when path is provided."""

    new_dir = tmp_path / "new" / "nested" / "directory"
    assert not new_dir.exists(), "Directory should not exist initially"

    assert ensure_directory(new_dir) is True
    assert new_dir.is_dir(), "Path should be a directory"

    # Existing directory is fine too
    assert ensure_directory(new_dir) is True


def test_should_report_failure_when_directory_cannot_be_created(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("not a directory")

    assert ensure_directory(blocker / "child") is False


def test_should_measure_space_at_nearest_existing_parent(tmp_path):
    """Should not fail for a destination that does not exist yet."""
    missing = tmp_path / "not" / "created" / "yet"

    with patch('photo_replicator.utils.psutil.disk_usage') as disk_usage:
        disk_usage.return_value.free = 12345
        assert get_available_space(missing) == 12345

    disk_usage.assert_called_once_with(str(tmp_path))


def test_should_return_zero_space_when_probe_fails(tmp_path):
    with patch('photo_replicator.utils.psutil.disk_usage', side_effect=OSError("gone")):
        assert get_available_space(tmp_path) == 0


def test_should_set_file_times_when_timestamp_provided(tmp_path):
    path = tmp_path / "photo.jpg"
    path.write_bytes(b"jpeg")
    when = datetime(2015, 6, 1, 12, 30, 0)

    set_file_times(path, when)

    stat = os.stat(path)
    assert stat.st_mtime == when.timestamp()
    assert stat.st_atime == when.timestamp()
