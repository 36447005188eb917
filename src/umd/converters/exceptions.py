"""Exceptions raised by conversion strategies."""


class ConversionError(Exception):
    """Raised when a strategy cannot produce markdown for a file."""


class UnsupportedFileTypeError(ConversionError):
    """Raised when no strategy is registered for a file's extension.

    Attributes:
        path: The file that was requested.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Unsupported file type: {path}")
