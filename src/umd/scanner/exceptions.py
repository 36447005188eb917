"""Exceptions raised by directory scanning.

Only root path validation is fatal to a scan; problems inside the tree are
accumulated in ScanResult.errors instead.
"""


class ScanError(Exception):
    """Base exception for scan failures.

    Attributes:
        path: The root path that was requested.
    """

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(message)


class ScanPathNotFoundError(ScanError):
    """Raised when the scan root does not exist."""

    def __init__(self, path: str) -> None:
        super().__init__(path, f"Path does not exist: {path}")


class ScanPathNotDirectoryError(ScanError):
    """Raised when the scan root is not a directory."""

    def __init__(self, path: str) -> None:
        super().__init__(path, f"Path is not a directory: {path}")
