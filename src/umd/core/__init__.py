"""Core utilities package.

Pure helpers shared across the orchestrator: timestamps, path
normalization, supported file types, JSON persistence and display
formatting.
"""

from umd.core.datetime_utils import (
    calculate_duration_seconds,
    parse_iso_timestamp,
    to_iso,
    utc_now,
)
from umd.core.file_types import (
    ALL_SUPPORTED_EXTENSIONS,
    DOCUMENT_EXTENSIONS,
    IMAGE_EXTENSIONS,
    FileType,
    get_file_type,
    get_mime_type,
    is_supported_extension,
)
from umd.core.formatting import format_duration, format_file_size
from umd.core.json_utils import JsonLoadResult, load_json_file, write_json_file
from umd.core.paths import (
    common_parent,
    is_within_root,
    normalize_input_path,
    normalize_root_key,
    normalize_separators,
)

__all__ = [
    # datetime_utils
    "calculate_duration_seconds",
    "parse_iso_timestamp",
    "to_iso",
    "utc_now",
    # file_types
    "ALL_SUPPORTED_EXTENSIONS",
    "DOCUMENT_EXTENSIONS",
    "IMAGE_EXTENSIONS",
    "FileType",
    "get_file_type",
    "get_mime_type",
    "is_supported_extension",
    # formatting
    "format_duration",
    "format_file_size",
    # json_utils
    "JsonLoadResult",
    "load_json_file",
    "write_json_file",
    # paths
    "common_parent",
    "is_within_root",
    "normalize_input_path",
    "normalize_root_key",
    "normalize_separators",
]
