"""
Scanner Options

Composable configuration functions. Each factory validates its input as
soon as it is called and returns an option that mutates a Scanner when
applied. Options append their tokens in the order they are applied.
"""

import math
from datetime import timedelta
from enum import IntEnum, IntFlag
from typing import TYPE_CHECKING, Callable, Mapping, Optional, Union

from ..core.exceptions import ConfigurationError
from .arguments import OptionCategory
from .context import ScanContext
from .execution import OutputSink
from .filtering import HostFilter, PortFilter

if TYPE_CHECKING:
    from .engine import Scanner


Option = Callable[["Scanner"], None]
Duration = Union[timedelta, int, float]


class TCPFlag(IntFlag):
    """TCP header flags accepted by ``--scanflags``."""

    NULL = 0
    FIN = 1
    SYN = 2
    RST = 4
    PSH = 8
    ACK = 16
    URG = 32
    ECE = 64
    CWR = 128
    NS = 256


class Timing(IntEnum):
    """Timing templates, ``-T0`` through ``-T5``."""

    PARANOID = 0
    SNEAKY = 1
    POLITE = 2
    NORMAL = 3
    AGGRESSIVE = 4
    INSANE = 5


def _check_range(option_name: str, value: Union[int, float], low, high) -> None:
    if not (low <= value <= high):
        raise ConfigurationError(
            f"value given to nmap.{option_name}() should be between {low} and {high}",
            {"option": option_name, "value": value},
        )


def _check_non_negative(option_name: str, value: Union[int, float]) -> None:
    if value < 0:
        raise ConfigurationError(
            f"value given to nmap.{option_name}() should not be negative",
            {"option": option_name, "value": value},
        )


def _milliseconds(option_name: str, value: Duration) -> str:
    seconds = value.total_seconds() if isinstance(value, timedelta) else float(value)
    if not math.isfinite(seconds) or seconds < 0:
        raise ConfigurationError(
            f"value given to nmap.{option_name}() should be a finite, non-negative duration",
            {"option": option_name, "value": value},
        )
    return f"{int(round(seconds * 1000))}ms"


def _join(option_name: str, values) -> str:
    joined = ",".join(value for value in values if value)
    if not joined:
        raise ConfigurationError(
            f"value given to nmap.{option_name}() should not be empty",
            {"option": option_name},
        )
    return joined


def _flag(flag: str, category: Optional[OptionCategory] = None) -> Option:
    def option(scanner: "Scanner") -> None:
        scanner.args.add_flag(flag, category=category)

    return option


def _value(flag: str, *values: str, category: Optional[OptionCategory] = None) -> Option:
    def option(scanner: "Scanner") -> None:
        scanner.args.add_option(flag, *values, category=category)

    return option


def _compound(
    flag: str, value: str = "", separator: str = "", category: Optional[OptionCategory] = None
) -> Option:
    def option(scanner: "Scanner") -> None:
        scanner.args.add_compound(flag, value, separator, category=category)

    return option


# ---------------------------------------------------------------------------
# Execution settings
# ---------------------------------------------------------------------------

def with_context(context: ScanContext) -> Option:
    """Run the scan under a caller-owned cancellable context."""

    def option(scanner: "Scanner") -> None:
        scanner.context = context

    return option


def with_timeout(seconds: float) -> Option:
    """Run the scan under a context that expires after ``seconds``."""
    context = ScanContext(timeout=seconds)
    return with_context(context)


def with_binary_path(binary_path: str) -> Option:
    """Use a specific scanner binary instead of searching PATH."""

    def option(scanner: "Scanner") -> None:
        scanner.binary_path = binary_path

    return option


def with_filter_host(predicate: HostFilter) -> Option:
    """Keep only hosts for which ``predicate`` returns True."""

    def option(scanner: "Scanner") -> None:
        scanner.host_filters.append(predicate)

    return option


def with_filter_port(predicate: PortFilter) -> Option:
    """Keep only ports for which ``predicate`` returns True."""

    def option(scanner: "Scanner") -> None:
        scanner.port_filters.append(predicate)

    return option


def with_stdout_sink(sink: OutputSink) -> Option:
    """Receive standard output chunks as the scanner writes them."""

    def option(scanner: "Scanner") -> None:
        scanner.stdout_sinks.append(sink)

    return option


def with_stderr_sink(sink: OutputSink) -> Option:
    """Receive standard error chunks as the scanner writes them."""

    def option(scanner: "Scanner") -> None:
        scanner.stderr_sinks.append(sink)

    return option


def with_custom_arguments(*args: str) -> Option:
    """Append arbitrary arguments verbatim."""

    def option(scanner: "Scanner") -> None:
        scanner.args.add_raw(*args)

    return option


# ---------------------------------------------------------------------------
# Target specification
# ---------------------------------------------------------------------------

def with_targets(*targets: str) -> Option:
    """Scan hostnames, IP addresses, networks or ranges."""

    def option(scanner: "Scanner") -> None:
        for target in targets:
            scanner.args.add_target(target)

    return option


def with_target(target: str) -> Option:
    return with_targets(target)


def with_target_input(input_file_name: str) -> Option:
    """Read targets from a file (``-iL``)."""
    return _value("-iL", input_file_name)


def with_random_targets(random_targets: int) -> Option:
    """Choose random targets (``-iR``)."""
    _check_non_negative("with_random_targets", random_targets)
    return _value("-iR", str(random_targets))


def with_target_exclusion(target: str) -> Option:
    """Exclude hosts or networks (``--exclude``)."""
    return _value("--exclude", target)


def with_target_exclusion_input(input_file_name: str) -> Option:
    """Exclude targets listed in a file (``--excludefile``)."""
    return _value("--excludefile", input_file_name)


# ---------------------------------------------------------------------------
# Host discovery
# ---------------------------------------------------------------------------

def with_list_scan() -> Option:
    return _flag("-sL")


def with_ping_scan() -> Option:
    return _flag("-sn")


def with_skip_host_discovery() -> Option:
    return _flag("-Pn")


def with_syn_discovery(ports: str = "") -> Option:
    """TCP SYN discovery probes, optionally on specific ports."""
    return _compound("-PS", ports)


def with_ack_discovery(ports: str = "") -> Option:
    return _compound("-PA", ports)


def with_udp_discovery(ports: str = "") -> Option:
    return _compound("-PU", ports)


def with_sctp_discovery(ports: str = "") -> Option:
    return _compound("-PY", ports)


def with_icmp_echo_discovery() -> Option:
    return _flag("-PE")


def with_icmp_timestamp_discovery() -> Option:
    return _flag("-PP")


def with_icmp_netmask_discovery() -> Option:
    return _flag("-PM")


def with_ip_protocol_ping_discovery(protocols: str = "") -> Option:
    return _compound("-PO", protocols)


def with_disabled_dns_resolution() -> Option:
    return _flag("-n", OptionCategory.DNS_RESOLUTION)


def with_forced_dns_resolution() -> Option:
    return _flag("-R", OptionCategory.DNS_RESOLUTION)


def with_custom_dns_servers(dns_servers: str) -> Option:
    return _value("--dns-servers", dns_servers)


def with_system_dns() -> Option:
    return _flag("--system-dns")


def with_traceroute() -> Option:
    return _flag("--traceroute")


# ---------------------------------------------------------------------------
# Scan techniques
# ---------------------------------------------------------------------------

def with_syn_scan() -> Option:
    return _flag("-sS", OptionCategory.SCAN_TECHNIQUE)


def with_connect_scan() -> Option:
    return _flag("-sT", OptionCategory.SCAN_TECHNIQUE)


def with_ack_scan() -> Option:
    return _flag("-sA", OptionCategory.SCAN_TECHNIQUE)


def with_window_scan() -> Option:
    return _flag("-sW", OptionCategory.SCAN_TECHNIQUE)


def with_maimon_scan() -> Option:
    return _flag("-sM", OptionCategory.SCAN_TECHNIQUE)


def with_udp_scan() -> Option:
    return _flag("-sU", OptionCategory.SCAN_TECHNIQUE)


def with_tcp_null_scan() -> Option:
    return _flag("-sN", OptionCategory.SCAN_TECHNIQUE)


def with_tcp_fin_scan() -> Option:
    return _flag("-sF", OptionCategory.SCAN_TECHNIQUE)


def with_tcp_xmas_scan() -> Option:
    return _flag("-sX", OptionCategory.SCAN_TECHNIQUE)


def with_sctp_init_scan() -> Option:
    return _flag("-sY", OptionCategory.SCAN_TECHNIQUE)


def with_sctp_cookie_echo_scan() -> Option:
    return _flag("-sZ", OptionCategory.SCAN_TECHNIQUE)


def with_ip_protocol_scan() -> Option:
    return _flag("-sO", OptionCategory.SCAN_TECHNIQUE)


def with_idle_scan(zombie_host: str, probe_port: int = 0) -> Option:
    """Idle scan through a zombie host; a probe port of 0 is omitted."""
    _check_range("with_idle_scan", probe_port, 0, 65535)
    value = f"{zombie_host}:{probe_port}" if probe_port else zombie_host
    return _value("-sI", value, category=OptionCategory.SCAN_TECHNIQUE)


def with_ftp_bounce_scan(ftp_relay_host: str) -> Option:
    return _value("-b", ftp_relay_host, category=OptionCategory.SCAN_TECHNIQUE)


def with_tcp_scan_flags(*flags: TCPFlag) -> Option:
    """Custom TCP scan flags, rendered as the decimal sum of ``flags``."""
    bitmask = 0
    for flag in flags:
        bitmask |= int(flag)
    return _value("--scanflags", str(bitmask))


# ---------------------------------------------------------------------------
# Port specification and scan order
# ---------------------------------------------------------------------------

def with_ports(*ports: str) -> Option:
    """Only scan the given ports or ranges (``-p``)."""
    return _value("-p", _join("with_ports", ports))


def with_port_exclusions(*ports: str) -> Option:
    return _value("--exclude-ports", _join("with_port_exclusions", ports))


def with_fast_mode() -> Option:
    return _flag("-F")


def with_consecutive_port_scanning() -> Option:
    return _flag("-r")


def with_most_common_ports(number: int) -> Option:
    """Scan the ``number`` most common ports (``--top-ports``)."""
    _check_non_negative("with_most_common_ports", number)
    return _value("--top-ports", str(number))


def with_port_ratio(ratio: float) -> Option:
    """Scan ports more common than ``ratio``, rounded to one decimal."""
    _check_range("with_port_ratio", ratio, 0, 1)
    return _value("--port-ratio", f"{ratio:.1f}")


# ---------------------------------------------------------------------------
# Service and version detection
# ---------------------------------------------------------------------------

def with_service_info() -> Option:
    return _flag("-sV")


def with_version_intensity(version_intensity: int) -> Option:
    """Version detection intensity from 0 (light) to 9 (try all probes)."""
    _check_range("with_version_intensity", version_intensity, 0, 9)
    return _value(
        "--version-intensity",
        str(version_intensity),
        category=OptionCategory.VERSION_INTENSITY,
    )


def with_version_light() -> Option:
    return _flag("--version-light", OptionCategory.VERSION_INTENSITY)


def with_version_all() -> Option:
    return _flag("--version-all", OptionCategory.VERSION_INTENSITY)


def with_version_trace() -> Option:
    return _flag("--version-trace")


# ---------------------------------------------------------------------------
# Script scan
# ---------------------------------------------------------------------------

def with_default_script() -> Option:
    return _flag("-sC")


def with_scripts(scripts: str) -> Option:
    return _compound("--script", scripts, "=")


def with_script_arguments(*arguments: Mapping[str, str]) -> Option:
    """
    Merge script argument mappings into a single ``--script-args=`` token.

    Later mappings override keys of earlier ones.
    """
    merged = {}
    for mapping in arguments:
        merged.update(mapping)
    if not merged:
        raise ConfigurationError(
            "value given to nmap.with_script_arguments() should not be empty",
            {"option": "with_script_arguments"},
        )
    pairs = ",".join(f"{key}={value}" for key, value in merged.items())
    return _compound("--script-args", pairs, "=")


def with_script_arguments_file(input_file_path: str) -> Option:
    return _compound("--script-args-file", input_file_path, "=")


def with_script_trace() -> Option:
    return _flag("--script-trace")


def with_script_update_db() -> Option:
    return _flag("--script-updatedb")


# ---------------------------------------------------------------------------
# OS detection
# ---------------------------------------------------------------------------

def with_os_detection() -> Option:
    return _flag("-O")


def with_os_scan_limit() -> Option:
    return _flag("--osscan-limit")


def with_os_scan_guess() -> Option:
    return _flag("--osscan-guess")


# ---------------------------------------------------------------------------
# Timing and performance
# ---------------------------------------------------------------------------

def with_timing_template(timing: Timing) -> Option:
    _check_range("with_timing_template", int(timing), 0, 5)
    return _flag(f"-T{int(timing)}", OptionCategory.TIMING_TEMPLATE)


def with_min_hostgroup(size: int) -> Option:
    _check_non_negative("with_min_hostgroup", size)
    return _value("--min-hostgroup", str(size))


def with_max_hostgroup(size: int) -> Option:
    _check_non_negative("with_max_hostgroup", size)
    return _value("--max-hostgroup", str(size))


def with_min_parallelism(probes: int) -> Option:
    _check_non_negative("with_min_parallelism", probes)
    return _value("--min-parallelism", str(probes))


def with_max_parallelism(probes: int) -> Option:
    _check_non_negative("with_max_parallelism", probes)
    return _value("--max-parallelism", str(probes))


def with_min_rtt_timeout(timeout: Duration) -> Option:
    return _value("--min-rtt-timeout", _milliseconds("with_min_rtt_timeout", timeout))


def with_max_rtt_timeout(timeout: Duration) -> Option:
    return _value("--max-rtt-timeout", _milliseconds("with_max_rtt_timeout", timeout))


def with_initial_rtt_timeout(timeout: Duration) -> Option:
    return _value(
        "--initial-rtt-timeout", _milliseconds("with_initial_rtt_timeout", timeout)
    )


def with_max_retries(tries: int) -> Option:
    _check_non_negative("with_max_retries", tries)
    return _value("--max-retries", str(tries))


def with_host_timeout(timeout: Duration) -> Option:
    """Give up on a host after ``timeout`` (timedelta or seconds)."""
    return _value("--host-timeout", _milliseconds("with_host_timeout", timeout))


def with_scan_delay(delay: Duration) -> Option:
    return _value("--scan-delay", _milliseconds("with_scan_delay", delay))


def with_max_scan_delay(delay: Duration) -> Option:
    return _value("--max-scan-delay", _milliseconds("with_max_scan_delay", delay))


def with_min_rate(packets_per_second: int) -> Option:
    _check_non_negative("with_min_rate", packets_per_second)
    return _value("--min-rate", str(packets_per_second))


def with_max_rate(packets_per_second: int) -> Option:
    _check_non_negative("with_max_rate", packets_per_second)
    return _value("--max-rate", str(packets_per_second))


# ---------------------------------------------------------------------------
# Firewall/IDS evasion and spoofing
# ---------------------------------------------------------------------------

def with_fragment_packets() -> Option:
    return _flag("-f")


def with_mtu(offset: int) -> Option:
    """Fragment packets using the given MTU, which must be a multiple of 8."""
    if offset <= 0 or offset % 8 != 0:
        raise ConfigurationError(
            "value given to nmap.with_mtu() should be a positive multiple of 8",
            {"option": "with_mtu", "value": offset},
        )
    return _value("--mtu", str(offset))


def with_decoys(*decoys: str) -> Option:
    return _value("-D", _join("with_decoys", decoys))


def with_spoof_ip_address(ip: str) -> Option:
    return _value("-S", ip)


def with_interface(interface: str) -> Option:
    return _value("-e", interface)


def with_source_port(port: int) -> Option:
    _check_range("with_source_port", port, 0, 65535)
    return _value("--source-port", str(port))


def with_proxies(*proxies: str) -> Option:
    return _value("--proxies", _join("with_proxies", proxies))


def with_hex_data(data: str) -> Option:
    return _value("--data", data)


def with_ascii_data(data: str) -> Option:
    return _value("--data-string", data)


def with_data_length(length: int) -> Option:
    _check_non_negative("with_data_length", length)
    return _value("--data-length", str(length))


def with_ip_options(options: str) -> Option:
    return _value("--ip-options", options)


def with_ip_time_to_live(ttl: int) -> Option:
    _check_range("with_ip_time_to_live", ttl, 0, 255)
    return _value("--ttl", str(ttl))


def with_spoof_mac(mac: str) -> Option:
    return _value("--spoof-mac", mac)


def with_bad_sum() -> Option:
    return _flag("--badsum")


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

def with_verbosity(level: int) -> Option:
    _check_range("with_verbosity", level, 0, 10)
    return _compound("-v", str(level))


def with_debugging(level: int) -> Option:
    _check_range("with_debugging", level, 0, 10)
    return _compound("-d", str(level))


def with_reason() -> Option:
    return _flag("--reason")


def with_open_only() -> Option:
    return _flag("--open")


def with_packet_trace() -> Option:
    return _flag("--packet-trace")


def with_append_output() -> Option:
    return _flag("--append-output")


def with_resume_previous_scan(file_path: str) -> Option:
    return _value("--resume", file_path)


def with_stylesheet(stylesheet_path: str) -> Option:
    return _value("--stylesheet", stylesheet_path, category=OptionCategory.STYLESHEET)


def with_webxml() -> Option:
    return _flag("--webxml", OptionCategory.STYLESHEET)


def with_no_stylesheet() -> Option:
    return _flag("--no-stylesheet", OptionCategory.STYLESHEET)


# ---------------------------------------------------------------------------
# Miscellaneous
# ---------------------------------------------------------------------------

def with_ipv6_scanning() -> Option:
    return _flag("-6")


def with_aggressive_scan() -> Option:
    return _flag("-A")


def with_datadir(directory_path: str) -> Option:
    return _value("--datadir", directory_path)


def with_send_ethernet() -> Option:
    return _flag("--send-eth", OptionCategory.PACKET_LAYER)


def with_send_ip() -> Option:
    return _flag("--send-ip", OptionCategory.PACKET_LAYER)


def with_privileged() -> Option:
    return _flag("--privileged", OptionCategory.PRIVILEGE)


def with_unprivileged() -> Option:
    return _flag("--unprivileged", OptionCategory.PRIVILEGE)


__all__ = ["Option", "Duration", "TCPFlag", "Timing"] + sorted(
    name for name in globals() if name.startswith("with_")
)
