"""Configuration loader with precedence handling.

Configuration is loaded with the following precedence (highest to lowest):
1. CLI arguments (applied by the caller on the returned config)
2. Environment variables (UMD_*)
3. Config file (~/.umd/config.toml)
4. Default values

Environment variables:
- UMD_DATA_DIR: Data directory (overrides ~/.umd/)
- UMD_CONFIG_PATH: Path to config file (overrides <data_dir>/config.toml)
- UMD_LOG_LEVEL, UMD_LOG_FORMAT, UMD_LOG_FILE: Logging overrides
- UMD_SERVER_HOST, UMD_SERVER_PORT: HTTP server bind address
- UMD_CACHE_TTL: Scan cache lifetime in seconds
- UMD_MAX_CONCURRENCY: Default batch concurrency
- UMD_MAX_FILE_SIZE_MB: Conversion size ceiling
- UMD_FILE_TIMEOUT: Per-file conversion timeout in seconds
- UMD_CANCEL_GRACE_PERIOD: Seconds between SIGTERM and SIGKILL on cancel
- UMD_CONVERTER_COMMAND: Command prefix for subprocess conversions
- UMD_AGENT_COMMAND: Executable for agent conversions
"""

from __future__ import annotations

import logging
import threading
import tomllib
from pathlib import Path
from typing import Any

from umd.config.env import EnvReader
from umd.config.models import (
    ConversionConfig,
    LoggingConfig,
    ScanConfig,
    ServerConfig,
    UMDConfig,
)

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path.home() / ".umd"
CONFIG_FILE_NAME = "config.toml"

# Cache for loaded config files (path -> (parsed dict, mtime))
_config_cache: dict[Path, tuple[dict[str, Any], float]] = {}
_config_cache_lock = threading.Lock()


class ConfigError(Exception):
    """Raised when a config file cannot be parsed or holds invalid values."""


def get_data_dir(env_reader: EnvReader | None = None) -> Path:
    """Get the data directory.

    Holds exclusions.json, scan-cache.json, orchestrator-state.json and the
    config file. Can be overridden by UMD_DATA_DIR (tilde expanded).

    Returns:
        Path to the data directory (~/.umd/ by default).
    """
    reader = env_reader or EnvReader()
    return reader.get_path("UMD_DATA_DIR", DEFAULT_DATA_DIR) or DEFAULT_DATA_DIR


def get_default_config_path(env_reader: EnvReader | None = None) -> Path:
    """Get the config file path, honoring UMD_CONFIG_PATH."""
    reader = env_reader or EnvReader()
    env_path = reader.get_path("UMD_CONFIG_PATH")
    if env_path is not None:
        return env_path
    return get_data_dir(reader) / CONFIG_FILE_NAME


def load_config_file(path: Path | None = None, *, strict: bool = False) -> dict:
    """Load configuration from a TOML file.

    Results are cached with mtime-based invalidation, so an edited file is
    re-read on the next call. Thread-safe.

    Args:
        path: Path to config file. If None, uses the default location.
        strict: If True, raise ConfigError on parse failures.
                If False (default), log and return an empty dict.

    Returns:
        Parsed configuration dict. Empty dict if the file doesn't exist.

    Raises:
        ConfigError: When strict=True and the file cannot be parsed.
    """
    if path is None:
        path = get_default_config_path()

    try:
        current_mtime = path.stat().st_mtime
    except FileNotFoundError:
        return {}
    except OSError as e:
        logger.warning("Cannot stat config file %s: %s", path, e)
        return {}

    with _config_cache_lock:
        cached = _config_cache.get(path)
        if cached is not None and cached[1] == current_mtime:
            return cached[0]

        try:
            with path.open("rb") as f:
                result = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            if strict:
                raise ConfigError(f"Cannot parse config file {path}: {e}") from e
            logger.warning("Ignoring unreadable config file %s: %s", path, e)
            return {}

        _config_cache[path] = (result, current_mtime)
        return result


def clear_config_cache() -> None:
    """Clear the config file cache. Primarily useful for testing."""
    with _config_cache_lock:
        _config_cache.clear()


def _pick(*values: Any) -> Any:
    """Return the first value that is not None."""
    for value in values:
        if value is not None:
            return value
    return None


def _section(file_config: dict, name: str) -> dict:
    section = file_config.get(name, {})
    if not isinstance(section, dict):
        logger.warning("Config section [%s] is not a table, ignoring", name)
        return {}
    return section


def get_config(
    config_path: Path | None = None,
    env_reader: EnvReader | None = None,
    *,
    strict: bool = False,
) -> UMDConfig:
    """Build the effective configuration.

    Args:
        config_path: Path to config file (overrides UMD_CONFIG_PATH).
        env_reader: Optional EnvReader for testing (uses os.environ if None).
        strict: If True, raise ConfigError on parse or validation failures.
                If False (default), fall back to defaults.

    Returns:
        UMDConfig with merged configuration.

    Raises:
        ConfigError: When strict=True and the configuration is invalid.
    """
    reader = env_reader or EnvReader()
    if config_path is None:
        config_path = get_default_config_path(reader)
    file_config = load_config_file(config_path, strict=strict)

    log_file = _section(file_config, "logging")
    server_file = _section(file_config, "server")
    scan_file = _section(file_config, "scan")
    conv_file = _section(file_config, "conversion")

    data_dir_value = reader.get_path("UMD_DATA_DIR") or file_config.get("data_dir")
    data_dir = (
        Path(data_dir_value).expanduser() if data_dir_value else DEFAULT_DATA_DIR
    )

    try:
        log_path = _pick(reader.get_path("UMD_LOG_FILE"), log_file.get("file"))
        logging_config = LoggingConfig(
            level=_pick(reader.get_str("UMD_LOG_LEVEL"), log_file.get("level"), "info"),
            file=Path(log_path).expanduser() if log_path else None,
            format=_pick(
                reader.get_str("UMD_LOG_FORMAT"), log_file.get("format"), "text"
            ),
            include_stderr=bool(log_file.get("include_stderr", False)),
            max_bytes=int(log_file.get("max_bytes", 10_485_760)),
            backup_count=int(log_file.get("backup_count", 5)),
        )
        server_config = ServerConfig(
            host=_pick(
                reader.get_str("UMD_SERVER_HOST"), server_file.get("host"), "127.0.0.1"
            ),
            port=int(
                _pick(reader.get_int("UMD_SERVER_PORT"), server_file.get("port"), 3000)
            ),
            shutdown_timeout=float(server_file.get("shutdown_timeout", 30.0)),
            max_sse_connections=int(server_file.get("max_sse_connections", 100)),
        )
        scan_config = ScanConfig(
            cache_ttl=float(
                _pick(
                    reader.get_float("UMD_CACHE_TTL"),
                    scan_file.get("cache_ttl"),
                    300.0,
                )
            ),
        )
        file_timeout = _pick(
            reader.get_float("UMD_FILE_TIMEOUT"), conv_file.get("file_timeout")
        )
        conversion_config = ConversionConfig(
            mode=conv_file.get("mode", "subprocess"),
            concurrency=int(
                _pick(
                    reader.get_int("UMD_MAX_CONCURRENCY"),
                    conv_file.get("concurrency"),
                    3,
                )
            ),
            max_file_size_mb=float(
                _pick(
                    reader.get_float("UMD_MAX_FILE_SIZE_MB"),
                    conv_file.get("max_file_size_mb"),
                    25.0,
                )
            ),
            file_timeout=float(file_timeout) if file_timeout is not None else None,
            cancel_grace_period=float(
                _pick(
                    reader.get_float("UMD_CANCEL_GRACE_PERIOD"),
                    conv_file.get("cancel_grace_period"),
                    5.0,
                )
            ),
            converter_command=_pick(
                reader.get_command("UMD_CONVERTER_COMMAND"),
                conv_file.get("converter_command"),
            ),
            agent_command=_pick(
                reader.get_str("UMD_AGENT_COMMAND"),
                conv_file.get("agent_command"),
                "claude",
            ),
            agent_model=conv_file.get("agent_model", "opus"),
        )
    except (TypeError, ValueError) as e:
        if strict:
            raise ConfigError(f"Invalid configuration in {config_path}: {e}") from e
        logger.warning("Invalid configuration (%s), using defaults", e)
        return UMDConfig(data_dir=data_dir)

    return UMDConfig(
        data_dir=data_dir,
        logging=logging_config,
        server=server_config,
        scan=scan_config,
        conversion=conversion_config,
    )
