"""
nmapctl Core

Configuration, logging and the exception hierarchy shared by every module.
"""

from .config import NmapctlConfig, LoggingConfig, ScannerConfig, get_config
from .exceptions import (
    NmapctlException,
    ConfigurationError,
    OptionConflictError,
    ScannerStateError,
    ExecutionError,
    ScanTimeoutError,
    NoTargetsError,
    ParseError,
)

__all__ = [
    "NmapctlConfig",
    "LoggingConfig",
    "ScannerConfig",
    "get_config",
    "NmapctlException",
    "ConfigurationError",
    "OptionConflictError",
    "ScannerStateError",
    "ExecutionError",
    "ScanTimeoutError",
    "NoTargetsError",
    "ParseError",
]
