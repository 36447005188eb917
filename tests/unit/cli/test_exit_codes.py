"""Tests for cli/exit_codes.py module."""

from umd.cli.exit_codes import ExitCode


class TestExitCode:
    """Tests for ExitCode enum."""

    def test_success_is_zero(self) -> None:
        assert ExitCode.SUCCESS == 0

    def test_documented_values(self) -> None:
        """Scripts depend on these exact values."""
        assert ExitCode.TARGET_NOT_FOUND == 3
        assert ExitCode.CONVERSION_FAILED == 4
        assert ExitCode.INTERRUPTED == 130

    def test_exit_codes_are_unique(self) -> None:
        values = [int(code) for code in ExitCode]
        assert len(values) == len(set(values))
