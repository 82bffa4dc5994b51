"""
Scanner

Single point of assembly and execution: applies options, runs the scanner
binary once and returns the parsed, filtered report.
"""

import asyncio
import logging
import shutil
from typing import List, Optional

from ..core.config import NmapctlConfig, get_config
from ..core.exceptions import NoTargetsError, ParseError, ScannerStateError
from ..core.logging import log_structured
from .arguments import ArgumentSet
from .context import ScanContext
from .execution import ExecutionController, OutputSink
from .filtering import HostFilter, PortFilter, apply_filters
from .models import NmapRun
from .options import Option
from .parser import OutputParser, parse


logger = logging.getLogger(__name__)

# Forces an XML report on standard output
OUTPUT_ARGUMENTS = ("-oX", "-")

NO_TARGETS_WARNING = "WARNING: No targets were specified, so 0 hosts scanned."


class Scanner:
    """
    A configured, not yet executed scan.

    Options are applied in order when the scanner is created; any validation
    or conflict error propagates from the constructor. A scanner runs once.

    Example:
        scanner = Scanner(with_target("localhost"), with_ports("80,443"))
        result = await scanner.run()
    """

    def __init__(
        self,
        *options: Option,
        config: Optional[NmapctlConfig] = None,
        parser: OutputParser = parse,
    ):
        self.config = config or get_config()
        self.args = ArgumentSet()
        self.binary_path: Optional[str] = None
        self.context: Optional[ScanContext] = None
        self.host_filters: List[HostFilter] = []
        self.port_filters: List[PortFilter] = []
        self.stdout_sinks: List[OutputSink] = []
        self.stderr_sinks: List[OutputSink] = []
        self.parser = parser
        self.controller: Optional[ExecutionController] = None
        self._has_run = False

        for option in options:
            option(self)

    def resolve_binary_path(self) -> str:
        """
        Return the binary to execute.

        An explicit path wins, then the configured path, then a PATH lookup.
        When the lookup fails the bare name is returned so the failure
        surfaces when the process is launched.
        """
        if self.binary_path:
            return self.binary_path
        scanner_config = self.config.scanner
        if scanner_config.binary_path:
            return scanner_config.binary_path
        return shutil.which(scanner_config.binary_name) or scanner_config.binary_name

    def build_argv(self) -> List[str]:
        """Return the full command line, binary path first."""
        return [self.resolve_binary_path(), *OUTPUT_ARGUMENTS, *self.args]

    async def run(self) -> NmapRun:
        """
        Execute the scan and return the parsed report.

        Returns:
            NmapRun with registered host and port filters applied

        Raises:
            ExecutionError: If the binary could not be started
            ScanTimeoutError: If the context was cancelled or expired first
            NoTargetsError: If the scanner reported that no targets were given
            ParseError: If the output could not be parsed
            ScannerStateError: If the scanner was already run
        """
        if self._has_run:
            raise ScannerStateError("scanner has already been run, create a new one")
        self._has_run = True
        self.args.freeze()

        argv = self.build_argv()
        log_structured(logger, logging.DEBUG, "Running scanner", argv=argv)

        scanner_config = self.config.scanner
        context = self.context
        if context is None and scanner_config.default_timeout is not None:
            context = ScanContext(timeout=scanner_config.default_timeout)

        self.controller = ExecutionController(
            argv,
            context=context,
            stdout_sinks=self.stdout_sinks,
            stderr_sinks=self.stderr_sinks,
            chunk_size=scanner_config.stream_chunk_size,
            kill_grace_period=scanner_config.kill_grace_period,
        )
        result = await self.controller.execute()

        stderr = result.stderr.decode("utf-8", errors="replace")
        if NO_TARGETS_WARNING in stderr:
            raise NoTargetsError(stderr)

        if result.returncode != 0:
            logger.warning(
                f"Scanner exited with code {result.returncode}, parsing its output anyway"
            )

        try:
            report = self.parser(result.stdout)
        except ParseError as e:
            e.details.setdefault("returncode", result.returncode)
            if stderr:
                e.details.setdefault("stderr", stderr)
            raise
        return apply_filters(report, self.host_filters, self.port_filters)

    def run_sync(self) -> NmapRun:
        """Blocking wrapper around ``run()`` for callers without a loop."""
        return asyncio.run(self.run())
