"""
Configuration management for ntpburst.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import toml

from .errors import ConfigError


OUTPUT_FORMATS = ("json", "text")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class NTPConfig:
    """NTP server and exchange settings."""
    server: str = "pool.ntp.org"
    port: int = 123
    version: int = 3
    timeout: float = 10.0


@dataclass
class FanoutConfig:
    """Worker pool settings."""
    workers: int = 0
    completion_timeout: float = 0.0

    def worker_count(self) -> int:
        """Configured worker count, or the number of CPUs when set to 0."""
        if self.workers > 0:
            return self.workers
        return os.cpu_count() or 1

    def deadline(self) -> Optional[float]:
        """Overall wait bound in seconds, ``None`` to wait for every worker."""
        if self.completion_timeout > 0:
            return self.completion_timeout
        return None


@dataclass
class OutputConfig:
    """Result output settings."""
    format: str = "json"
    file: str = ""
    indent: int = 2


@dataclass
class LoggingConfig:
    """Logging configuration settings."""
    level: str = "INFO"
    file: str = ""
    max_size: int = 10
    backup_count: int = 5


@dataclass
class Config:
    """Main configuration class."""
    ntp: NTPConfig = field(default_factory=NTPConfig)
    fanout: FanoutConfig = field(default_factory=FanoutConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def default(cls) -> 'Config':
        """Configuration used when no file is given."""
        return cls()

    @classmethod
    def from_file(cls, config_path: Path) -> 'Config':
        """Load configuration from TOML file."""
        try:
            config_data = toml.load(config_path)
        except (OSError, toml.TomlDecodeError) as e:
            raise ConfigError(f"Failed to load configuration: {e}") from e
        return cls.from_dict(config_data)

    @classmethod
    def from_dict(cls, config_data: Dict[str, Any]) -> 'Config':
        """Build configuration from parsed TOML data.

        Missing sections and keys keep their defaults; unknown keys are rejected.
        """
        try:
            config = cls(
                ntp=NTPConfig(**config_data.get('ntp', {})),
                fanout=FanoutConfig(**config_data.get('fanout', {})),
                output=OutputConfig(**config_data.get('output', {})),
                logging=LoggingConfig(**config_data.get('logging', {})),
            )
        except TypeError as e:
            raise ConfigError(f"Invalid configuration key: {e}") from e

        config.validate()
        return config

    def validate(self) -> bool:
        """Validate configuration values and their types."""
        # Validate NTP settings
        if not isinstance(self.ntp.server, str) or not self.ntp.server:
            raise ConfigError("NTP server must be a non-empty string")

        if not _is_int(self.ntp.port) or not 0 < self.ntp.port < 65536:
            raise ConfigError("NTP port must be between 1 and 65535")

        if not _is_int(self.ntp.version) or self.ntp.version not in (1, 2, 3, 4):
            raise ConfigError("NTP version must be between 1 and 4")

        if not _is_number(self.ntp.timeout) or self.ntp.timeout <= 0:
            raise ConfigError("NTP timeout must be a positive number")

        # Validate fan-out settings
        if not _is_int(self.fanout.workers) or self.fanout.workers < 0:
            raise ConfigError("Worker count must be 0 (auto) or a positive integer")

        if not _is_number(self.fanout.completion_timeout) or self.fanout.completion_timeout < 0:
            raise ConfigError("Completion timeout must be a non-negative number")

        # Validate output settings
        if self.output.format not in OUTPUT_FORMATS:
            raise ConfigError(
                f"Output format must be one of {', '.join(OUTPUT_FORMATS)}, "
                f"got {self.output.format!r}"
            )

        if not isinstance(self.output.file, str):
            raise ConfigError("Output file must be a string")

        if not _is_int(self.output.indent) or self.output.indent < 0:
            raise ConfigError("Output indent must be a non-negative integer")

        # Validate logging settings
        if not isinstance(self.logging.level, str) or self.logging.level.upper() not in LOG_LEVELS:
            raise ConfigError(
                f"Logging level must be one of {', '.join(LOG_LEVELS)}, "
                f"got {self.logging.level!r}"
            )

        if not isinstance(self.logging.file, str):
            raise ConfigError("Log file must be a string")

        if not _is_int(self.logging.max_size) or self.logging.max_size <= 0:
            raise ConfigError("Log max_size must be a positive integer (MB)")

        if not _is_int(self.logging.backup_count) or self.logging.backup_count < 0:
            raise ConfigError("Log backup_count must be a non-negative integer")

        return True


def _is_int(value: Any) -> bool:
    # bool is an int subclass but never a valid count or port
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return _is_int(value) or isinstance(value, float)
