"""
Pytest configuration and shared fixtures for nmapctl tests.
"""

import stat
import tempfile
from pathlib import Path
from typing import Callable, Generator

import pytest

from nmapctl.core.config import NmapctlConfig, ScannerConfig


SAMPLE_REPORT = b"""<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE nmaprun>
<nmaprun scanner="nmap" args="/usr/bin/nmap -oX - -sV scanme.example 10.0.0.7" start="1700000000" startstr="Tue Nov 14 22:13:20 2023" version="7.94" xmloutputversion="1.05">
<scaninfo type="syn" protocol="tcp" numservices="1000" services="1-1000"/>
<verbose level="0"/>
<debugging level="0"/>
<taskbegin task="Ping Scan" time="1700000001"/>
<taskprogress task="SYN Stealth Scan" time="1700000002" percent="42.50" remaining="12" etc="1700000014"/>
<taskend task="Ping Scan" time="1700000003" extrainfo="2 total hosts"/>
<host starttime="1700000004" endtime="1700000020"><status state="up" reason="echo-reply" reason_ttl="54"/>
<address addr="45.33.32.156" addrtype="ipv4"/>
<address addr="00:11:22:33:44:55" addrtype="mac" vendor="Acme"/>
<hostnames>
<hostname name="scanme.example" type="user"/>
<hostname name="li86-156.members.example" type="PTR"/>
</hostnames>
<ports><extraports state="closed" count="996">
<extrareasons reason="reset" count="996"/>
</extraports>
<port protocol="tcp" portid="22"><state state="open" reason="syn-ack" reason_ttl="54"/><service name="ssh" product="OpenSSH" version="6.6.1p1 Ubuntu 2ubuntu2.13" extrainfo="Ubuntu Linux; protocol 2.0" ostype="Linux" method="probed" conf="10"><cpe>cpe:/a:openbsd:openssh:6.6.1p1</cpe><cpe>cpe:/o:linux:linux_kernel</cpe></service><script id="ssh-hostkey" output="2048 aa:bb (RSA)"/></port>
<port protocol="tcp" portid="80"><state state="open" reason="syn-ack" reason_ttl="54"/><service name="http" product="Apache httpd" version="2.4.7" method="probed" conf="10"/></port>
<port protocol="tcp" portid="443"><state state="filtered" reason="no-response" reason_ttl="0"/><service name="https" method="table" conf="3"/></port>
<port protocol="tcp" portid="9929"><state state="closed" reason="reset" reason_ttl="54"/><service name="nping-echo" method="table" conf="3"/></port>
</ports>
<os><portused state="open" proto="tcp" portid="22"/>
<osmatch name="Linux 4.15 - 5.8" accuracy="96" line="67744">
<osclass type="general purpose" vendor="Linux" osfamily="Linux" osgen="4.X" accuracy="96"><cpe>cpe:/o:linux:linux_kernel:4</cpe></osclass>
</osmatch>
</os>
<uptime seconds="1209600" lastboot="Tue Oct 31 22:13:20 2023"/>
<distance value="12"/>
<trace port="80" proto="tcp">
<hop ttl="1" ipaddr="10.0.0.1" rtt="0.52"/>
<hop ttl="12" ipaddr="45.33.32.156" rtt="85.10" host="scanme.example"/>
</trace>
<hostscript><script id="clock-skew" output="0s"/></hostscript>
</host>
<host starttime="1700000004" endtime="1700000021"><status state="down" reason="no-response" reason_ttl="0"/>
<address addr="10.0.0.7" addrtype="ipv4"/>
<hostnames/>
</host>
<runstats><finished time="1700000021" timestr="Tue Nov 14 22:13:41 2023" elapsed="21.35" summary="Nmap done; 2 IP addresses (1 host up) scanned in 21.35 seconds" exit="success"/><hosts up="1" down="1" total="2"/>
</runstats>
</nmaprun>
"""


# Mimics the scanner: records its own command line, warns when no target follows "-oX -"
STUB_REPORT_SCRIPT = """#!/bin/sh
if [ "$#" -le 2 ]; then
  echo "WARNING: No targets were specified, so 0 hosts scanned." >&2
fi
cat <<XML
<?xml version="1.0" encoding="UTF-8"?>
<nmaprun scanner="nmap" args="$0 $*" start="1700000000" startstr="Tue Nov 14 22:13:20 2023" version="7.94" xmloutputversion="1.05">
<scaninfo type="connect" protocol="tcp" numservices="3" services="22,80,443"/>
<host><status state="up" reason="conn-refused" reason_ttl="0"/>
<address addr="127.0.0.1" addrtype="ipv4"/>
<hostnames><hostname name="localhost" type="user"/></hostnames>
<ports>
<port protocol="tcp" portid="22"><state state="open" reason="syn-ack" reason_ttl="0"/><service name="ssh" method="table" conf="3"/></port>
<port protocol="tcp" portid="80"><state state="closed" reason="conn-refused" reason_ttl="0"/><service name="http" method="table" conf="3"/></port>
<port protocol="tcp" portid="443"><state state="open" reason="syn-ack" reason_ttl="0"/><service name="https" method="table" conf="3"/></port>
</ports>
</host>
<host><status state="down" reason="no-response" reason_ttl="0"/>
<address addr="127.0.0.2" addrtype="ipv4"/>
</host>
<runstats><finished time="1700000001" timestr="Tue Nov 14 22:13:21 2023" elapsed="0.05" summary="Nmap done; 2 IP addresses (1 host up) scanned in 0.05 seconds" exit="success"/><hosts up="1" down="1" total="2"/></runstats>
</nmaprun>
XML
exit ${STUB_EXIT_CODE:-0}
"""

# exec keeps the killable process the one holding the pipes
STUB_SLEEP_SCRIPT = """#!/bin/sh
exec sleep 30
"""

STUB_GARBAGE_SCRIPT = """#!/bin/sh
echo "this is not xml"
"""

STUB_FAILING_SCRIPT = """#!/bin/sh
echo 'Failed to resolve "nowhere.invalid".' >&2
echo "QUITTING!" >&2
exit 1
"""


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def test_config() -> NmapctlConfig:
    """Provide a test configuration that never consults the environment."""
    return NmapctlConfig(
        environment="test",
        debug=True,
        logging={"level": "DEBUG"},
        scanner=ScannerConfig(kill_grace_period=2.0, stream_chunk_size=1024),
    )


@pytest.fixture
def sample_report() -> bytes:
    """Provide a realistic XML report."""
    return SAMPLE_REPORT


@pytest.fixture
def make_stub(temp_dir: Path) -> Callable[[str], Path]:
    """Provide a factory writing executable stub scanner binaries."""

    def _make_stub(script: str, name: str = "nmap") -> Path:
        stub_dir = temp_dir / f"bin-{len(list(temp_dir.iterdir()))}"
        stub_dir.mkdir()
        path = stub_dir / name
        path.write_text(script)
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path

    return _make_stub


@pytest.fixture
def stub_nmap(make_stub) -> Path:
    """Provide a stub scanner that emits a two-host report."""
    return make_stub(STUB_REPORT_SCRIPT)


@pytest.fixture
def sleeping_nmap(make_stub) -> Path:
    """Provide a stub scanner that never finishes on its own."""
    return make_stub(STUB_SLEEP_SCRIPT)


@pytest.fixture
def garbage_nmap(make_stub) -> Path:
    """Provide a stub scanner that writes output which is not XML."""
    return make_stub(STUB_GARBAGE_SCRIPT)


@pytest.fixture
def failing_nmap(make_stub) -> Path:
    """Provide a stub scanner that exits non-zero with only a diagnostic on stderr."""
    return make_stub(STUB_FAILING_SCRIPT)
