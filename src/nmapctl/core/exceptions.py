"""
nmapctl Exception Hierarchy

Defines the exceptions raised while configuring, running and parsing scans.
"""

from typing import Any, Dict, Optional


class NmapctlException(Exception):
    """Base exception for all nmapctl errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class ConfigurationError(NmapctlException, ValueError):
    """Invalid option value supplied while configuring a scanner."""

    pass


class OptionConflictError(ConfigurationError):
    """Two options from the same mutually exclusive category were applied."""

    pass


class ScannerStateError(NmapctlException):
    """Scanner used outside of its configure-once, run-once lifecycle."""

    pass


class ExecutionError(NmapctlException):
    """The scanner binary could not be started."""

    pass


class ScanTimeoutError(ExecutionError):
    """The scan deadline expired or the scan was cancelled."""

    def __str__(self) -> str:
        return self.message


class NoTargetsError(ExecutionError):
    """The scanner reported that no targets were specified."""

    pass


class ParseError(NmapctlException):
    """The scanner output could not be parsed."""

    pass
