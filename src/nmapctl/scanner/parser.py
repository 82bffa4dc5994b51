"""
XML Report Parser

Turns the scanner's ``-oX`` output into an NmapRun tree, keeping the
order in which elements appear in the document.
"""

import logging
import xml.etree.ElementTree as ET
from datetime import datetime, UTC
from typing import Callable, List, Optional

from ..core.exceptions import ParseError
from .models import (
    OS,
    Address,
    Distance,
    ExtraPorts,
    Finished,
    Hop,
    Host,
    Hostname,
    HostStats,
    NmapRun,
    OSClass,
    OSMatch,
    Port,
    RunStats,
    ScanInfo,
    Script,
    Service,
    State,
    Status,
    Task,
    Trace,
    Uptime,
)


logger = logging.getLogger(__name__)

OutputParser = Callable[[bytes], NmapRun]

_TASK_TAGS = ("taskbegin", "taskprogress", "taskend")


def _int(value: Optional[str], default: int = 0) -> int:
    try:
        return int(value) if value not in (None, "") else default
    except ValueError:
        return default


def _float(value: Optional[str], default: float = 0.0) -> float:
    try:
        return float(value) if value not in (None, "") else default
    except ValueError:
        return default


def _timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromtimestamp(int(value), UTC)
    except (ValueError, OverflowError, OSError):
        return None


def _cpes(element: ET.Element) -> List[str]:
    return [cpe.text or "" for cpe in element.findall("cpe")]


def _scripts(element: Optional[ET.Element]) -> List[Script]:
    if element is None:
        return []
    return [
        Script(id=script.get("id", ""), output=script.get("output", ""))
        for script in element.findall("script")
    ]


def _parse_state(element: Optional[ET.Element]) -> State:
    if element is None:
        return State()
    return State(
        state=element.get("state", ""),
        reason=element.get("reason", ""),
        reason_ttl=_int(element.get("reason_ttl")),
    )


def _parse_service(element: ET.Element) -> Service:
    return Service(
        name=element.get("name", ""),
        product=element.get("product", ""),
        version=element.get("version", ""),
        extra_info=element.get("extrainfo", ""),
        method=element.get("method", ""),
        confidence=_int(element.get("conf")),
        tunnel=element.get("tunnel", ""),
        device_type=element.get("devicetype", ""),
        os_type=element.get("ostype", ""),
        hostname=element.get("hostname", ""),
        cpes=_cpes(element),
    )


def _parse_port(element: ET.Element) -> Port:
    service = element.find("service")
    owner = element.find("owner")
    return Port(
        id=_int(element.get("portid")),
        protocol=element.get("protocol", "tcp"),
        state=_parse_state(element.find("state")),
        owner=owner.get("name", "") if owner is not None else "",
        service=_parse_service(service) if service is not None else None,
        scripts=_scripts(element),
    )


def _parse_os(element: ET.Element) -> OS:
    matches = []
    for match in element.findall("osmatch"):
        classes = [
            OSClass(
                type=cls.get("type", ""),
                vendor=cls.get("vendor", ""),
                family=cls.get("osfamily", ""),
                generation=cls.get("osgen", ""),
                accuracy=_int(cls.get("accuracy")),
                cpes=_cpes(cls),
            )
            for cls in match.findall("osclass")
        ]
        matches.append(
            OSMatch(
                name=match.get("name", ""),
                accuracy=_int(match.get("accuracy")),
                line=_int(match.get("line")),
                classes=classes,
            )
        )

    ports_used = [
        Port(
            id=_int(used.get("portid")),
            protocol=used.get("proto", "tcp"),
            state=State(state=used.get("state", "")),
        )
        for used in element.findall("portused")
    ]
    fingerprint = element.find("osfingerprint")
    return OS(
        ports_used=ports_used,
        matches=matches,
        fingerprint=fingerprint.get("fingerprint", "") if fingerprint is not None else "",
    )


def _parse_trace(element: ET.Element) -> Trace:
    hops = [
        Hop(
            ttl=_int(hop.get("ttl")),
            ip_addr=hop.get("ipaddr", ""),
            rtt=_float(hop.get("rtt")),
            host=hop.get("host", ""),
        )
        for hop in element.findall("hop")
    ]
    return Trace(
        port=_int(element.get("port")),
        protocol=element.get("proto", ""),
        hops=hops,
    )


def _parse_host(element: ET.Element) -> Host:
    status = element.find("status")
    host = Host(
        start_time=_timestamp(element.get("starttime")),
        end_time=_timestamp(element.get("endtime")),
        comment=element.get("comment", ""),
        status=Status(
            state=status.get("state", ""),
            reason=status.get("reason", ""),
            reason_ttl=_int(status.get("reason_ttl")),
        )
        if status is not None
        else Status(),
        addresses=[
            Address(
                addr=address.get("addr", ""),
                addr_type=address.get("addrtype", "ipv4"),
                vendor=address.get("vendor", ""),
            )
            for address in element.findall("address")
        ],
        hostnames=[
            Hostname(name=name.get("name", ""), type=name.get("type", ""))
            for name in element.findall("hostnames/hostname")
        ],
        host_scripts=_scripts(element.find("hostscript")),
    )

    ports = element.find("ports")
    if ports is not None:
        host.ports = [_parse_port(port) for port in ports.findall("port")]
        host.extra_ports = [
            ExtraPorts(
                state=extra.get("state", ""),
                count=_int(extra.get("count")),
                reasons=[r.get("reason", "") for r in extra.findall("extrareasons")],
            )
            for extra in ports.findall("extraports")
        ]

    os_element = element.find("os")
    if os_element is not None:
        host.os = _parse_os(os_element)

    uptime = element.find("uptime")
    if uptime is not None:
        host.uptime = Uptime(
            seconds=_int(uptime.get("seconds")), last_boot=uptime.get("lastboot", "")
        )

    distance = element.find("distance")
    if distance is not None:
        host.distance = Distance(value=_int(distance.get("value")))

    trace = element.find("trace")
    if trace is not None:
        host.trace = _parse_trace(trace)

    return host


def _parse_run_stats(element: Optional[ET.Element]) -> RunStats:
    if element is None:
        return RunStats()
    stats = RunStats()
    finished = element.find("finished")
    if finished is not None:
        stats.finished = Finished(
            time=_timestamp(finished.get("time")),
            time_str=finished.get("timestr", ""),
            elapsed=_float(finished.get("elapsed")),
            summary=finished.get("summary", ""),
            exit=finished.get("exit", ""),
            error_msg=finished.get("errormsg", ""),
        )
    hosts = element.find("hosts")
    if hosts is not None:
        stats.hosts = HostStats(
            up=_int(hosts.get("up")),
            down=_int(hosts.get("down")),
            total=_int(hosts.get("total")),
        )
    return stats


def parse(data: bytes) -> NmapRun:
    """
    Parse an XML scan report.

    Args:
        data: Raw bytes written by the scanner to standard output

    Returns:
        The parsed report with ``raw_xml`` set to ``data``

    Raises:
        ParseError: If the document is not a well-formed scan report
    """
    try:
        root = ET.fromstring(data)
    except ET.ParseError as e:
        raise ParseError(f"unable to parse nmap output: {e}") from e

    if root.tag != "nmaprun":
        raise ParseError(
            f"unexpected root element <{root.tag}>, expected <nmaprun>",
            {"root": root.tag},
        )

    verbose = root.find("verbose")
    debugging = root.find("debugging")
    run = NmapRun(
        scanner=root.get("scanner", ""),
        args=root.get("args", ""),
        start=_timestamp(root.get("start")),
        start_str=root.get("startstr", ""),
        version=root.get("version", ""),
        xml_output_version=root.get("xmloutputversion", ""),
        profile_name=root.get("profile_name", ""),
        scan_info=[
            ScanInfo(
                type=info.get("type", ""),
                protocol=info.get("protocol", ""),
                num_services=_int(info.get("numservices")),
                services=info.get("services", ""),
            )
            for info in root.findall("scaninfo")
        ],
        verbose=_int(verbose.get("level")) if verbose is not None else 0,
        debugging=_int(debugging.get("level")) if debugging is not None else 0,
        run_stats=_parse_run_stats(root.find("runstats")),
        raw_xml=data,
    )

    for child in root:
        if child.tag == "host":
            run.hosts.append(_parse_host(child))
        elif child.tag in _TASK_TAGS:
            run.tasks.append(
                Task(
                    kind=child.tag,
                    task=child.get("task", ""),
                    time=_timestamp(child.get("time")),
                    percent=_float(child.get("percent")) if child.get("percent") else None,
                    remaining=_int(child.get("remaining")) if child.get("remaining") else None,
                    etc=_timestamp(child.get("etc")),
                    extra_info=child.get("extrainfo", ""),
                )
            )

    logger.debug(f"Parsed report with {len(run.hosts)} host(s)")
    return run
