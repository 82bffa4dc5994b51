"""
nmapctl - configuration and execution engine for nmap scans

Builds validated nmap command lines from composable options, runs the
scanner under cancellation control and parses its XML report.
"""

__version__ = "0.1.0"
__author__ = "nmapctl Team"

from .core.exceptions import (
    NmapctlException,
    ConfigurationError,
    OptionConflictError,
    ScannerStateError,
    ExecutionError,
    ScanTimeoutError,
    NoTargetsError,
    ParseError,
)
from .scanner import *  # noqa: F401,F403
from .scanner import __all__ as _scanner_all

__all__ = [
    "__version__",
    "NmapctlException",
    "ConfigurationError",
    "OptionConflictError",
    "ScannerStateError",
    "ExecutionError",
    "ScanTimeoutError",
    "NoTargetsError",
    "ParseError",
] + list(_scanner_all)
