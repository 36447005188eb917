"""Configuration data models.

Each section of ``config.toml`` maps onto one dataclass. Validation happens
in ``__post_init__`` so an invalid value fails fast at load time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

VALID_LOG_LEVELS = frozenset({"debug", "info", "warning", "error"})
VALID_LOG_FORMATS = frozenset({"text", "json"})
VALID_CONVERSION_MODES = frozenset({"subprocess", "agent"})


@dataclass
class LoggingConfig:
    """Configuration for structured logging."""

    # Log level: debug, info, warning, error
    level: str = "info"

    # Log file path (None = stderr only)
    file: Path | None = None

    # Log format: text or json
    format: str = "text"

    # Also log to stderr when file is set
    include_stderr: bool = False

    # Rotation threshold in bytes (default 10MB)
    max_bytes: int = 10_485_760

    # Number of rotated files to keep
    backup_count: int = 5

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.level.lower() not in VALID_LOG_LEVELS:
            raise ValueError(
                f"level must be one of {sorted(VALID_LOG_LEVELS)}, got {self.level}"
            )
        if self.format.lower() not in VALID_LOG_FORMATS:
            raise ValueError(
                f"format must be one of {sorted(VALID_LOG_FORMATS)}, "
                f"got {self.format}"
            )


@dataclass
class ServerConfig:
    """Configuration for the HTTP orchestration server."""

    host: str = "127.0.0.1"
    """Address to bind to. Localhost by default."""

    port: int = 3000
    """Port to listen on."""

    shutdown_timeout: float = 30.0
    """Seconds to wait for in-flight work during graceful shutdown."""

    max_sse_connections: int = 100
    """Maximum concurrent event stream clients."""

    def __post_init__(self) -> None:
        """Validate configuration."""
        if not 1 <= self.port <= 65535:
            raise ValueError(f"port must be 1-65535, got {self.port}")
        if self.shutdown_timeout < 0:
            raise ValueError(
                f"shutdown_timeout must be non-negative, got {self.shutdown_timeout}"
            )
        if self.max_sse_connections < 1:
            raise ValueError(
                f"max_sse_connections must be at least 1, "
                f"got {self.max_sse_connections}"
            )


@dataclass
class ScanConfig:
    """Configuration for directory scanning."""

    cache_ttl: float = 300.0
    """Seconds a cached scan result stays valid."""

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.cache_ttl <= 0:
            raise ValueError(f"cache_ttl must be positive, got {self.cache_ttl}")


@dataclass
class ConversionConfig:
    """Configuration for batch conversion."""

    mode: str = "subprocess"
    """How each file is converted: 'subprocess' or 'agent'."""

    concurrency: int = 3
    """Default number of simultaneous conversions per batch."""

    max_file_size_mb: float = 25.0
    """Files larger than this are failed without spawning a process."""

    file_timeout: float | None = None
    """Seconds before a single conversion is killed (None = no limit)."""

    cancel_grace_period: float = 5.0
    """Seconds between SIGTERM and SIGKILL when cancelling."""

    converter_command: list[str] | None = None
    """Command prefix for subprocess mode (None = built-in converter)."""

    agent_command: str = "claude"
    """Executable for agent mode."""

    agent_model: str = "opus"
    """Model name passed to the agent."""

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.mode not in VALID_CONVERSION_MODES:
            raise ValueError(
                f"mode must be one of {sorted(VALID_CONVERSION_MODES)}, "
                f"got {self.mode}"
            )
        if self.concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {self.concurrency}")
        if self.max_file_size_mb <= 0:
            raise ValueError(
                f"max_file_size_mb must be positive, got {self.max_file_size_mb}"
            )
        if self.file_timeout is not None and self.file_timeout <= 0:
            raise ValueError(
                f"file_timeout must be positive, got {self.file_timeout}"
            )
        if self.cancel_grace_period < 0:
            raise ValueError(
                f"cancel_grace_period must be non-negative, "
                f"got {self.cancel_grace_period}"
            )

    @property
    def max_file_size_bytes(self) -> int:
        """Size ceiling in bytes."""
        return int(self.max_file_size_mb * 1024 * 1024)


@dataclass
class UMDConfig:
    """Top-level configuration."""

    data_dir: Path
    """Directory holding exclusions.json, scan-cache.json and job state."""

    logging: LoggingConfig = field(default_factory=LoggingConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)
    conversion: ConversionConfig = field(default_factory=ConversionConfig)

    @property
    def exclusions_path(self) -> Path:
        return self.data_dir / "exclusions.json"

    @property
    def scan_cache_path(self) -> Path:
        return self.data_dir / "scan-cache.json"

    @property
    def state_path(self) -> Path:
        return self.data_dir / "orchestrator-state.json"
