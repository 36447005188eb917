"""Format-specific conversion strategies and child process launches."""

from umd.converters.base import ConversionStrategy, sidecar_path
from umd.converters.commands import (
    Invocation,
    build_agent_invocation,
    build_subprocess_invocation,
    default_converter_command,
)
from umd.converters.exceptions import ConversionError, UnsupportedFileTypeError
from umd.converters.registry import STRATEGIES, convert_file, get_strategy

__all__ = [
    "STRATEGIES",
    "ConversionError",
    "ConversionStrategy",
    "Invocation",
    "UnsupportedFileTypeError",
    "build_agent_invocation",
    "build_subprocess_invocation",
    "convert_file",
    "default_converter_command",
    "get_strategy",
    "sidecar_path",
]
