"""Tests for umd.core.formatting module."""

from umd.core.formatting import format_duration, format_file_size


class TestFormatFileSize:
    """Tests for format_file_size function."""

    def test_bytes(self):
        assert format_file_size(512) == "512 B"

    def test_kilobytes(self):
        assert format_file_size(1536) == "1.5 KB"

    def test_megabytes(self):
        assert format_file_size(25 * 1024 * 1024) == "25.0 MB"

    def test_gigabytes(self):
        assert format_file_size(3 * 1024**3) == "3.0 GB"


class TestFormatDuration:
    """Tests for format_duration function."""

    def test_none(self):
        """Missing durations render as a dash."""
        assert format_duration(None) == "-"

    def test_sub_second(self):
        assert format_duration(0.5) == "500ms"

    def test_seconds(self):
        assert format_duration(12.34) == "12.3s"

    def test_minutes(self):
        assert format_duration(245) == "4m 05s"
