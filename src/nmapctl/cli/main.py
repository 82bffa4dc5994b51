"""
nmapctl CLI Main Entry Point

Command-line interface for building and running nmap scans.
"""

import json
import sys
from pathlib import Path
from typing import List, Optional

import click

from .. import __version__
from ..core.config import get_config
from ..core.exceptions import NmapctlException
from ..core.logging import setup_logging
from ..scanner.engine import Scanner
from ..scanner.filtering import port_is_open
from ..scanner.models import NmapRun
from ..scanner.options import (
    Option,
    Timing,
    with_binary_path,
    with_filter_port,
    with_most_common_ports,
    with_ports,
    with_service_info,
    with_targets,
    with_timeout,
    with_timing_template,
)


def _build_options(
    targets: tuple,
    ports: Optional[str],
    top_ports: Optional[int],
    service_info: bool,
    timing: Optional[int],
    timeout: Optional[float],
    binary: Optional[str],
    open_only: bool,
) -> List[Option]:
    options: List[Option] = [with_targets(*targets)]
    if ports:
        options.append(with_ports(ports))
    if top_ports is not None:
        options.append(with_most_common_ports(top_ports))
    if service_info:
        options.append(with_service_info())
    if timing is not None:
        options.append(with_timing_template(Timing(timing)))
    if timeout is not None:
        options.append(with_timeout(timeout))
    if binary:
        options.append(with_binary_path(binary))
    if open_only:
        options.append(with_filter_port(port_is_open))
    return options


def _scan_options(func):
    decorators = [
        click.argument("targets", nargs=-1, required=True),
        click.option("--ports", "-p", help="Ports to scan, e.g. 22,80,443 or 1-1024"),
        click.option("--top-ports", type=click.IntRange(min=0), help="Scan the N most common ports"),
        click.option("--service-info", is_flag=True, help="Probe open ports for service info"),
        click.option("--timing", "-T", type=click.IntRange(0, 5), help="Timing template (0-5)"),
        click.option("--timeout", type=click.FloatRange(min=0, min_open=True), help="Overall scan timeout in seconds"),
        click.option("--binary", type=click.Path(), help="Path to the nmap binary"),
        click.option("--open-only", is_flag=True, help="Only keep open ports in the report"),
    ]
    for decorator in reversed(decorators):
        func = decorator(func)
    return func


def _print_report(report: NmapRun) -> None:
    click.echo(f"{report.scanner} {report.version}: {report.args}")
    for host in report.hosts:
        names = ", ".join(h.name for h in host.hostnames)
        label = f"{host.main_address() or 'unknown'}" + (f" ({names})" if names else "")
        click.echo(f"\n{label} is {host.status.state or 'unknown'}")
        if not host.ports:
            continue
        click.echo(f"  {'PORT':<12}{'STATE':<14}SERVICE")
        for port in host.ports:
            service = ""
            if port.service:
                service = " ".join(
                    part
                    for part in (port.service.name, port.service.product, port.service.version)
                    if part
                )
            click.echo(f"  {f'{port.id}/{port.protocol}':<12}{port.state.state:<14}{service}")

    summary = report.run_stats.finished.summary
    if summary:
        click.echo(f"\n{summary}")


@click.group()
@click.version_option(version=__version__)
@click.option("--log-level", default=None, help="Logging level (DEBUG, INFO, ...)")
def cli(log_level: Optional[str]):
    """
    nmapctl - build, run and filter nmap scans.
    """
    config = get_config()
    setup_logging(
        log_level=(log_level or config.logging.level).upper(),
        log_file=Path(config.logging.file_path) if config.logging.file_path else None,
    )


@cli.command("args")
@_scan_options
def show_args(targets: tuple, ports, top_ports, service_info, timing, timeout, binary, open_only):
    """
    Print the command line a scan would run, without running it.

    Example:
        nmapctl args scanme.nmap.org -p 22,80
    """
    try:
        scanner = Scanner(
            *_build_options(targets, ports, top_ports, service_info, timing, timeout, binary, open_only)
        )
    except NmapctlException as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(2)

    click.echo(" ".join(scanner.build_argv()))


@cli.command("scan")
@_scan_options
@click.option("--json", "as_json", is_flag=True, help="Print the report as JSON")
def scan(targets: tuple, ports, top_ports, service_info, timing, timeout, binary, open_only, as_json: bool):
    """
    Run a scan and print the report.

    Example:
        nmapctl scan 192.168.1.0/24 -p 22,80,443 --open-only
    """
    try:
        scanner = Scanner(
            *_build_options(targets, ports, top_ports, service_info, timing, timeout, binary, open_only)
        )
        report = scanner.run_sync()
    except NmapctlException as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(report.model_dump(mode="json"), indent=2))
    else:
        _print_report(report)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
