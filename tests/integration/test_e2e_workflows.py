"""
End-to-end workflow integration tests.

Runs complete scans against stub scanner binaries: option application,
process execution, report parsing and filtering.
"""

import asyncio

import pytest

from nmapctl.core.exceptions import (
    ExecutionError,
    NoTargetsError,
    ParseError,
    ScannerStateError,
    ScanTimeoutError,
)
from nmapctl.scanner.context import ScanContext
from nmapctl.scanner.engine import NO_TARGETS_WARNING, Scanner
from nmapctl.scanner.filtering import host_is_up, port_is_open
from nmapctl.scanner.options import (
    with_binary_path,
    with_context,
    with_filter_host,
    with_filter_port,
    with_ports,
    with_stdout_sink,
    with_syn_scan,
    with_target,
    with_timeout,
)


class TestScanWorkflow:
    """Test the configure, run and parse workflow."""

    @pytest.mark.asyncio
    async def test_localhost_scan(self, stub_nmap, scanner_for):
        """Test that a plain scan records the exact command line it ran."""
        scanner = scanner_for(stub_nmap, with_target("localhost"))

        result = await scanner.run()

        assert result.args == f"{stub_nmap} -oX - localhost"
        assert result.scanner == "nmap"
        assert [host.main_address() for host in result.hosts] == ["127.0.0.1", "127.0.0.2"]
        assert scanner.args.frozen

    @pytest.mark.asyncio
    async def test_options_reach_the_binary_in_order(self, stub_nmap, scanner_for):
        scanner = scanner_for(
            stub_nmap, with_syn_scan(), with_ports("22,80,443"), with_target("localhost")
        )

        result = await scanner.run()

        assert result.args == f"{stub_nmap} -oX - -sS -p 22,80,443 localhost"

    @pytest.mark.asyncio
    async def test_filters_applied_to_report(self, stub_nmap, scanner_for):
        scanner = scanner_for(
            stub_nmap,
            with_target("localhost"),
            with_filter_host(host_is_up),
            with_filter_port(port_is_open),
        )

        result = await scanner.run()

        assert len(result.hosts) == 1
        assert [port.id for port in result.hosts[0].ports] == [22, 443]
        assert result.run_stats.hosts.total == 2

    @pytest.mark.asyncio
    async def test_stdout_sink_sees_raw_report(self, stub_nmap, scanner_for):
        chunks = []
        scanner = scanner_for(stub_nmap, with_target("localhost"), with_stdout_sink(chunks.append))

        result = await scanner.run()

        assert b"".join(chunks) == result.raw_xml

    @pytest.mark.asyncio
    async def test_non_zero_exit_still_parsed(self, stub_nmap, scanner_for, monkeypatch):
        monkeypatch.setenv("STUB_EXIT_CODE", "1")
        scanner = scanner_for(stub_nmap, with_target("localhost"))

        result = await scanner.run()

        assert result.scanner == "nmap"
        assert scanner.controller.state.value == "completed"

    def test_run_sync(self, stub_nmap, scanner_for):
        result = scanner_for(stub_nmap, with_target("localhost")).run_sync()

        assert result.scanner == "nmap"

    @pytest.mark.asyncio
    async def test_report_round_trips_to_file(self, stub_nmap, scanner_for, temp_dir):
        result = await scanner_for(stub_nmap, with_target("localhost")).run()

        path = result.to_file(temp_dir / "report.xml")

        assert path.read_bytes() == result.raw_xml


class TestScanFailures:
    """Test the failure paths of a scan."""

    @pytest.mark.asyncio
    async def test_no_targets(self, stub_nmap, scanner_for):
        """Test that the no-targets warning becomes a dedicated error."""
        scanner = scanner_for(stub_nmap)

        with pytest.raises(NoTargetsError) as exc_info:
            await scanner.run()

        assert str(exc_info.value) == NO_TARGETS_WARNING + "\n"

    @pytest.mark.asyncio
    async def test_invalid_binary(self, integration_config):
        scanner = Scanner(
            with_binary_path("/invalid"), with_target("localhost"), config=integration_config
        )

        with pytest.raises(ExecutionError) as exc_info:
            await scanner.run()

        assert "No such file or directory" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_timeout(self, sleeping_nmap, scanner_for):
        scanner = scanner_for(sleeping_nmap, with_target("localhost"), with_timeout(0.2))

        with pytest.raises(ScanTimeoutError, match="nmap scan timed out"):
            await scanner.run()

        assert scanner.controller.process.returncode is not None

    @pytest.mark.asyncio
    async def test_caller_cancellation(self, sleeping_nmap, scanner_for):
        context = ScanContext()
        scanner = scanner_for(sleeping_nmap, with_target("localhost"), with_context(context))

        asyncio.get_running_loop().call_later(0.2, context.cancel)

        with pytest.raises(ScanTimeoutError):
            await scanner.run()

    @pytest.mark.asyncio
    async def test_configured_default_timeout(self, sleeping_nmap, integration_config):
        """Test that the configured default deadline applies without a context."""
        integration_config.scanner.default_timeout = 0.2
        scanner = Scanner(
            with_binary_path(str(sleeping_nmap)),
            with_target("localhost"),
            config=integration_config,
        )

        with pytest.raises(ScanTimeoutError):
            await scanner.run()

    @pytest.mark.asyncio
    async def test_unparseable_output(self, garbage_nmap, scanner_for):
        scanner = scanner_for(garbage_nmap, with_target("localhost"))

        with pytest.raises(ParseError):
            await scanner.run()

    @pytest.mark.asyncio
    async def test_parse_error_keeps_scanner_diagnostics(self, failing_nmap, scanner_for):
        """Test that a failed scan's stderr travels with the parse error."""
        scanner = scanner_for(failing_nmap, with_target("nowhere.invalid"))

        with pytest.raises(ParseError) as exc_info:
            await scanner.run()

        error = exc_info.value
        assert error.message.startswith("unable to parse nmap output")
        assert error.details["returncode"] == 1
        assert error.details["stderr"] == 'Failed to resolve "nowhere.invalid".\nQUITTING!\n'

    @pytest.mark.asyncio
    async def test_scanner_runs_once(self, stub_nmap, scanner_for):
        scanner = scanner_for(stub_nmap, with_target("localhost"))
        await scanner.run()

        with pytest.raises(ScannerStateError):
            await scanner.run()

    @pytest.mark.asyncio
    async def test_arguments_frozen_after_run(self, stub_nmap, scanner_for):
        scanner = scanner_for(stub_nmap, with_target("localhost"))
        await scanner.run()

        with pytest.raises(ScannerStateError):
            with_syn_scan()(scanner)
