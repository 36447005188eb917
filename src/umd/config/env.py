"""Environment variable reader with dependency injection support.

Reads and type-converts ``UMD_*`` environment variables. Accepts an optional
mapping so tests can inject an environment without touching os.environ.
"""

from __future__ import annotations

import logging
import os
import shlex
from collections.abc import Mapping
from pathlib import Path

logger = logging.getLogger(__name__)


class EnvReader:
    """Environment variable reader with type conversion.

    Example:
        reader = EnvReader(env={"UMD_SERVER_PORT": "9000"})
        port = reader.get_int("UMD_SERVER_PORT", 3000)  # Returns 9000
    """

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        self._env: Mapping[str, str] = env if env is not None else os.environ

    def get_str(self, var: str, default: str | None = None) -> str | None:
        """Get a string, or default if unset or empty."""
        value = self._env.get(var)
        if not value:
            return default
        return value

    def get_int(self, var: str, default: int | None = None) -> int | None:
        """Get an integer; logs a warning and returns default if invalid."""
        value = self._env.get(var)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            logger.warning("Invalid integer value for %s: %s", var, value)
            return default

    def get_float(self, var: str, default: float | None = None) -> float | None:
        """Get a float; logs a warning and returns default if invalid."""
        value = self._env.get(var)
        if value is None:
            return default
        try:
            return float(value)
        except ValueError:
            logger.warning("Invalid float value for %s: %s", var, value)
            return default

    def get_bool(self, var: str, default: bool | None = None) -> bool | None:
        """Get a boolean ("true", "1", "yes", "on" are true)."""
        value = self._env.get(var)
        if value is None:
            return default
        return value.lower() in ("true", "1", "yes", "on")

    def get_path(self, var: str, default: Path | None = None) -> Path | None:
        """Get a path with tilde expansion."""
        value = self._env.get(var)
        if not value:
            return default
        return Path(value).expanduser()

    def get_command(self, var: str) -> list[str] | None:
        """Get a command line split with shell quoting rules."""
        value = self._env.get(var)
        if not value:
            return None
        try:
            return shlex.split(value)
        except ValueError:
            logger.warning("Invalid command value for %s: %s", var, value)
            return None
