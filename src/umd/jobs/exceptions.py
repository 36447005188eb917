"""Custom exceptions for conversion state tracking.

Lookup failures are the only errors the state store raises; everything
that goes wrong while converting a file is captured in its record instead.
"""


class ConversionStateError(Exception):
    """Base exception for conversion state errors."""


class BatchNotFoundError(ConversionStateError):
    """Raised when a batch id is unknown.

    Attributes:
        job_id: The id that was looked up.
        operation: The operation that was attempted (e.g., "add file to").
    """

    def __init__(self, job_id: str, operation: str) -> None:
        self.job_id = job_id
        self.operation = operation
        super().__init__(f"Cannot {operation} batch {job_id}: not found")


class FileNotInBatchError(ConversionStateError):
    """Raised when a file path has no record in the batch.

    Attributes:
        job_id: The batch that was searched.
        file_path: The path that was looked up.
    """

    def __init__(self, job_id: str, file_path: str) -> None:
        self.job_id = job_id
        self.file_path = file_path
        super().__init__(f"File not found in batch {job_id}: {file_path}")
