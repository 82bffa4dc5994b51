"""
Scan Result Models

Typed representation of the scanner's XML report.
"""

from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel, Field


class ScanInfo(BaseModel):
    """Scan type and protocol summary."""

    type: str = Field(default="", description="Scan technique, e.g. syn")
    protocol: str = Field(default="", description="Protocol scanned")
    num_services: int = Field(default=0, description="Number of ports scanned")
    services: str = Field(default="", description="Port specification scanned")


class Task(BaseModel):
    """A task event emitted while the scan was running."""

    kind: str = Field(description="taskbegin, taskprogress or taskend")
    task: str = Field(default="", description="Task name")
    time: Optional[datetime] = Field(default=None, description="Event time")
    percent: Optional[float] = Field(default=None, description="Progress percent")
    remaining: Optional[int] = Field(default=None, description="Seconds remaining")
    etc: Optional[datetime] = Field(default=None, description="Estimated completion")
    extra_info: str = Field(default="", description="Extra information")


class Status(BaseModel):
    state: str = Field(default="", description="up, down or unknown")
    reason: str = Field(default="")
    reason_ttl: int = Field(default=0)


class Address(BaseModel):
    addr: str = Field(description="Address value")
    addr_type: str = Field(default="ipv4", description="ipv4, ipv6 or mac")
    vendor: str = Field(default="", description="Hardware vendor for MAC addresses")


class Hostname(BaseModel):
    name: str
    type: str = ""


class Script(BaseModel):
    """Output of a single script run against a port or host."""

    id: str
    output: str = ""


class State(BaseModel):
    state: str = Field(default="", description="open, closed, filtered, ...")
    reason: str = Field(default="")
    reason_ttl: int = Field(default=0)


class Service(BaseModel):
    """Service detection detail for a port."""

    name: str = ""
    product: str = ""
    version: str = ""
    extra_info: str = ""
    method: str = ""
    confidence: int = 0
    tunnel: str = ""
    device_type: str = ""
    os_type: str = ""
    hostname: str = ""
    cpes: List[str] = Field(default_factory=list)


class Port(BaseModel):
    """A single examined port."""

    id: int = Field(description="Port number")
    protocol: str = Field(default="tcp", description="tcp, udp, sctp or ip")
    state: State = Field(default_factory=State)
    owner: str = Field(default="", description="Owner reported by ident scan")
    service: Optional[Service] = Field(default=None, description="Service detection")
    scripts: List[Script] = Field(default_factory=list)

    @property
    def is_open(self) -> bool:
        return self.state.state == "open"


class ExtraPorts(BaseModel):
    """Ports collapsed into a single state summary."""

    state: str = ""
    count: int = 0
    reasons: List[str] = Field(default_factory=list)


class OSClass(BaseModel):
    type: str = ""
    vendor: str = ""
    family: str = ""
    generation: str = ""
    accuracy: int = 0
    cpes: List[str] = Field(default_factory=list)


class OSMatch(BaseModel):
    name: str = ""
    accuracy: int = 0
    line: int = 0
    classes: List[OSClass] = Field(default_factory=list)


class OS(BaseModel):
    """Operating system detection results."""

    ports_used: List[Port] = Field(default_factory=list)
    matches: List[OSMatch] = Field(default_factory=list)
    fingerprint: str = ""


class Uptime(BaseModel):
    seconds: int = 0
    last_boot: str = ""


class Distance(BaseModel):
    value: int = 0


class Hop(BaseModel):
    ttl: int = 0
    ip_addr: str = ""
    rtt: float = 0.0
    host: str = ""


class Trace(BaseModel):
    port: int = 0
    protocol: str = ""
    hops: List[Hop] = Field(default_factory=list)


class Host(BaseModel):
    """A scanned endpoint."""

    start_time: Optional[datetime] = Field(default=None)
    end_time: Optional[datetime] = Field(default=None)
    comment: str = Field(default="")
    status: Status = Field(default_factory=Status)
    addresses: List[Address] = Field(default_factory=list)
    hostnames: List[Hostname] = Field(default_factory=list)
    ports: List[Port] = Field(default_factory=list)
    extra_ports: List[ExtraPorts] = Field(default_factory=list)
    os: Optional[OS] = Field(default=None)
    uptime: Optional[Uptime] = Field(default=None)
    distance: Optional[Distance] = Field(default=None)
    trace: Optional[Trace] = Field(default=None)
    host_scripts: List[Script] = Field(default_factory=list)

    @property
    def is_up(self) -> bool:
        return self.status.state == "up"

    def main_address(self) -> Optional[str]:
        """Return the first IP address, falling back to any address."""
        for address in self.addresses:
            if address.addr_type in ("ipv4", "ipv6"):
                return address.addr
        return self.addresses[0].addr if self.addresses else None

    def open_ports(self) -> List[Port]:
        return [port for port in self.ports if port.is_open]


class Finished(BaseModel):
    time: Optional[datetime] = None
    time_str: str = ""
    elapsed: float = 0.0
    summary: str = ""
    exit: str = ""
    error_msg: str = ""


class HostStats(BaseModel):
    up: int = 0
    down: int = 0
    total: int = 0


class RunStats(BaseModel):
    """Summary statistics written at the end of a scan."""

    finished: Finished = Field(default_factory=Finished)
    hosts: HostStats = Field(default_factory=HostStats)


class NmapRun(BaseModel):
    """Root of a parsed scan report."""

    scanner: str = Field(default="", description="Name of the scanning tool")
    args: str = Field(default="", description="Command line the tool recorded")
    start: Optional[datetime] = Field(default=None, description="Scan start time")
    start_str: str = Field(default="")
    version: str = Field(default="", description="Scanner version")
    xml_output_version: str = Field(default="")
    profile_name: str = Field(default="")
    scan_info: List[ScanInfo] = Field(default_factory=list)
    verbose: int = Field(default=0)
    debugging: int = Field(default=0)
    tasks: List[Task] = Field(default_factory=list)
    hosts: List[Host] = Field(default_factory=list)
    run_stats: RunStats = Field(default_factory=RunStats)
    raw_xml: bytes = Field(default=b"", repr=False, exclude=True)

    def up_hosts(self) -> List[Host]:
        return [host for host in self.hosts if host.is_up]

    def to_file(self, path: Union[str, Path]) -> Path:
        """Write the unmodified XML report to ``path``."""
        path = Path(path)
        path.write_bytes(self.raw_xml)
        return path
