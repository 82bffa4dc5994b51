"""
Shared fixtures for integration tests.
"""

import sys
from pathlib import Path
from typing import Callable

import pytest

from nmapctl.core.config import NmapctlConfig, ScannerConfig
from nmapctl.scanner.engine import Scanner
from nmapctl.scanner.options import Option, with_binary_path


if sys.platform == "win32":
    collect_ignore_glob = ["test_*.py"]


@pytest.fixture
def integration_config() -> NmapctlConfig:
    """Provide an integration test configuration with a safety deadline."""
    return NmapctlConfig(
        environment="test",
        scanner=ScannerConfig(default_timeout=30.0, kill_grace_period=2.0),
    )


@pytest.fixture
def scanner_for(integration_config: NmapctlConfig) -> Callable[..., Scanner]:
    """Provide a factory building scanners bound to a given binary."""

    def _scanner_for(binary: Path, *options: Option) -> Scanner:
        return Scanner(
            with_binary_path(str(binary)), *options, config=integration_config
        )

    return _scanner_for
