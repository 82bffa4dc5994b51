"""
nmapctl Scanner Module

Option assembly, process execution and result filtering for nmap scans.
"""

from .arguments import ArgumentSet, OptionCategory
from .context import ScanContext
from .engine import Scanner, NO_TARGETS_WARNING, OUTPUT_ARGUMENTS
from .execution import ExecutionController, ExecutionResult, ExecutionState
from .filtering import (
    apply_filters,
    host_has_open_ports,
    host_is_up,
    port_is_open,
    port_state_in,
)
from .models import Host, NmapRun, Port, Service, State, Status, Address
from .parser import parse
from .options import *  # noqa: F401,F403
from .options import __all__ as _options_all

__all__ = [
    "ArgumentSet",
    "OptionCategory",
    "ScanContext",
    "Scanner",
    "NO_TARGETS_WARNING",
    "OUTPUT_ARGUMENTS",
    "ExecutionController",
    "ExecutionResult",
    "ExecutionState",
    "apply_filters",
    "host_has_open_ports",
    "host_is_up",
    "port_is_open",
    "port_state_in",
    "Host",
    "NmapRun",
    "Port",
    "Service",
    "State",
    "Status",
    "Address",
    "parse",
] + list(_options_all)
