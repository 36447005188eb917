"""Configuration package.

Dataclass models for each config section plus the loader that merges
defaults, ``config.toml`` and ``UMD_*`` environment variables.
"""

from umd.config.env import EnvReader
from umd.config.loader import (
    ConfigError,
    clear_config_cache,
    get_config,
    get_data_dir,
    get_default_config_path,
    load_config_file,
)
from umd.config.models import (
    ConversionConfig,
    LoggingConfig,
    ScanConfig,
    ServerConfig,
    UMDConfig,
)

__all__ = [
    "ConfigError",
    "ConversionConfig",
    "EnvReader",
    "LoggingConfig",
    "ScanConfig",
    "ServerConfig",
    "UMDConfig",
    "clear_config_cache",
    "get_config",
    "get_data_dir",
    "get_default_config_path",
    "load_config_file",
]
