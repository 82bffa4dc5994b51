"""
Result Filtering

Prunes hosts and ports from a parsed report using caller-registered
predicates. Every predicate of a kind must accept an element for it to be
kept; surviving elements keep their original order.
"""

import logging
from typing import Callable, Sequence

from .models import Host, NmapRun, Port


logger = logging.getLogger(__name__)

HostFilter = Callable[[Host], bool]
PortFilter = Callable[[Port], bool]


def host_matches(host: Host, host_filters: Sequence[HostFilter]) -> bool:
    """Check if a host is accepted by every host filter."""
    return all(predicate(host) for predicate in host_filters)


def port_matches(port: Port, port_filters: Sequence[PortFilter]) -> bool:
    """Check if a port is accepted by every port filter."""
    return all(predicate(port) for predicate in port_filters)


def apply_filters(
    run: NmapRun,
    host_filters: Sequence[HostFilter] = (),
    port_filters: Sequence[PortFilter] = (),
) -> NmapRun:
    """
    Filter a report in place.

    Hosts are filtered first, then the ports of each surviving host.
    Report metadata is never modified.

    Args:
        run: Parsed report to prune
        host_filters: Predicates a host must all satisfy
        port_filters: Predicates a port must all satisfy

    Returns:
        The same report instance
    """
    if host_filters:
        before = len(run.hosts)
        run.hosts = [host for host in run.hosts if host_matches(host, host_filters)]
        logger.debug(f"Host filters kept {len(run.hosts)} of {before} host(s)")

    if port_filters:
        for host in run.hosts:
            host.ports = [port for port in host.ports if port_matches(port, port_filters)]

    return run


def host_is_up(host: Host) -> bool:
    """Host filter keeping hosts reported as up."""
    return host.is_up


def port_is_open(port: Port) -> bool:
    """Port filter keeping open ports."""
    return port.is_open


def host_has_open_ports(host: Host) -> bool:
    """Host filter keeping hosts with at least one open port."""
    return any(port.is_open for port in host.ports)


def port_state_in(*states: str) -> PortFilter:
    """Build a port filter keeping ports in one of ``states``."""
    wanted = frozenset(states)

    def predicate(port: Port) -> bool:
        return port.state.state in wanted

    return predicate
