"""Process exit codes for CLI commands."""

from enum import IntEnum


class ExitCode(IntEnum):
    SUCCESS = 0
    GENERAL_ERROR = 1
    INVALID_ARGUMENTS = 2
    TARGET_NOT_FOUND = 3
    CONVERSION_FAILED = 4
    INTERRUPTED = 130
