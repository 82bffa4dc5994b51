"""
nmapctl Configuration Management

Provides centralized configuration with validation and environment support.
"""

from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Logging level")
    file_path: Optional[str] = Field(default=None, description="Log file path")
    max_file_size: int = Field(
        default=10_000_000, description="Max log file size in bytes"
    )
    backup_count: int = Field(default=5, description="Number of backup log files")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()


class ScannerConfig(BaseModel):
    """Defaults used by every Scanner."""

    binary_name: str = Field(
        default="nmap", description="Executable looked up on PATH"
    )
    binary_path: Optional[str] = Field(
        default=None, description="Explicit path to the scanner binary"
    )
    default_timeout: Optional[float] = Field(
        default=None, description="Deadline in seconds applied when no context is given"
    )
    kill_grace_period: float = Field(
        default=5.0, description="Seconds to wait for a killed process to exit"
    )
    stream_chunk_size: int = Field(
        default=65536, description="Bytes read from the process pipes per chunk"
    )

    @field_validator("default_timeout")
    @classmethod
    def validate_timeout(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError(f"Invalid timeout: {v}. Must be greater than 0")
        return v

    @field_validator("kill_grace_period", "stream_chunk_size")
    @classmethod
    def validate_positive(cls, v: Any) -> Any:
        if v <= 0:
            raise ValueError(f"Invalid value: {v}. Must be greater than 0")
        return v


class NmapctlConfig(BaseSettings):
    """Main nmapctl configuration."""

    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    scanner: ScannerConfig = Field(default_factory=ScannerConfig)

    model_config = SettingsConfigDict(
        env_prefix="NMAPCTL_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
    )


# Global configuration instance
_config: Optional[NmapctlConfig] = None


def get_config() -> NmapctlConfig:
    """
    Get the global configuration instance.

    Returns:
        The global NmapctlConfig instance
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def load_config(config_file: Optional[Path] = None) -> NmapctlConfig:
    """
    Load configuration from file and environment variables.

    Args:
        config_file: Optional path to a dotenv style configuration file

    Returns:
        Loaded configuration instance
    """
    if config_file and config_file.exists():
        return NmapctlConfig(_env_file=str(config_file))

    return NmapctlConfig()


def reload_config(config_file: Optional[Path] = None) -> NmapctlConfig:
    """
    Reload the global configuration.

    Args:
        config_file: Optional path to configuration file

    Returns:
        Reloaded configuration instance
    """
    global _config
    _config = load_config(config_file)
    return _config


def update_config(**kwargs: Any) -> None:
    """
    Update configuration values at runtime.

    Args:
        **kwargs: Configuration values to update

    Raises:
        ValueError: If a key is not a known configuration field
    """
    global _config
    if _config is None:
        _config = load_config()

    for key, value in kwargs.items():
        if hasattr(_config, key):
            setattr(_config, key, value)
        else:
            raise ValueError(f"Unknown configuration key: {key}")
