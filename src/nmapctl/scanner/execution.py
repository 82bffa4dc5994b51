"""
Execution Controller

Runs the scanner process, streams its output and races completion against
context cancellation.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence

from ..core.exceptions import ExecutionError, ScanTimeoutError, ScannerStateError
from .context import ScanContext


logger = logging.getLogger(__name__)

OutputSink = Callable[[bytes], Any]


class ExecutionState(str, Enum):
    """Lifecycle of a single process execution."""

    IDLE = "idle"
    LAUNCHED = "launched"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass
class ExecutionResult:
    """Captured output of a finished process."""

    returncode: int
    stdout: bytes
    stderr: bytes
    duration_seconds: float = 0.0


class ExecutionController:
    """
    Launches the scanner and waits for either its exit or the context.

    Whichever finishes first decides the outcome; when both are ready at the
    same time cancellation wins. On the cancellation path the process is
    killed and reaped before the timeout error is raised.
    """

    def __init__(
        self,
        argv: Sequence[str],
        context: Optional[ScanContext] = None,
        stdout_sinks: Sequence[OutputSink] = (),
        stderr_sinks: Sequence[OutputSink] = (),
        chunk_size: int = 65536,
        kill_grace_period: float = 5.0,
    ):
        if not argv:
            raise ValueError("argv must contain at least the binary path")
        self.argv: List[str] = list(argv)
        self.context = context
        self.stdout_sinks = list(stdout_sinks)
        self.stderr_sinks = list(stderr_sinks)
        self.chunk_size = chunk_size
        self.kill_grace_period = kill_grace_period
        self.state = ExecutionState.IDLE
        self.process: Optional[asyncio.subprocess.Process] = None

    async def execute(self) -> ExecutionResult:
        """
        Run the process to completion.

        Returns:
            ExecutionResult with the captured output. A non-zero return code
            is not an error.

        Raises:
            ExecutionError: If the process could not be started
            ScanTimeoutError: If the context finished before the process
            ScannerStateError: If this controller was already used
        """
        if self.state is not ExecutionState.IDLE:
            raise ScannerStateError(
                f"execution already {self.state.value}, controllers run once"
            )

        if self.context is not None and self.context.done:
            self.state = ExecutionState.CANCELLED
            raise ScanTimeoutError(
                "nmap scan timed out", {"reason": self.context.reason}
            )

        started = time.monotonic()
        logger.debug(f"Launching {self.argv}")
        try:
            self.process = await asyncio.create_subprocess_exec(
                *self.argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            self.state = ExecutionState.FAILED
            raise ExecutionError(f"nmap scan failed: {e}") from e

        self.state = ExecutionState.LAUNCHED
        logger.info(f"Started scanner process {self.process.pid}")

        process_task = asyncio.ensure_future(self._communicate())
        waiters = {process_task}
        cancel_task = None
        if self.context is not None:
            cancel_task = asyncio.ensure_future(self.context.wait())
            waiters.add(cancel_task)

        try:
            done, _ = await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            await self._abort(process_task, cancel_task)
            self.state = ExecutionState.CANCELLED
            raise

        if cancel_task is not None and cancel_task in done:
            await self._abort(process_task, None)
            self.state = ExecutionState.CANCELLED
            reason = self.context.reason if self.context else None
            logger.warning(f"Scan {reason or 'cancelled'}, process terminated")
            raise ScanTimeoutError("nmap scan timed out", {"reason": reason})

        if cancel_task is not None:
            cancel_task.cancel()

        try:
            returncode, stdout, stderr = process_task.result()
        except Exception:
            await self._terminate()
            self.state = ExecutionState.FAILED
            raise

        self.state = ExecutionState.COMPLETED
        duration = time.monotonic() - started
        logger.info(
            f"Scanner exited with code {returncode} after {duration:.2f}s "
            f"({len(stdout)} bytes stdout, {len(stderr)} bytes stderr)"
        )
        return ExecutionResult(
            returncode=returncode,
            stdout=stdout,
            stderr=stderr,
            duration_seconds=duration,
        )

    async def _communicate(self):
        assert self.process is not None
        stdout, stderr = await asyncio.gather(
            self._drain(self.process.stdout, self.stdout_sinks),
            self._drain(self.process.stderr, self.stderr_sinks),
        )
        returncode = await self.process.wait()
        return returncode, stdout, stderr

    async def _drain(
        self, stream: Optional[asyncio.StreamReader], sinks: Sequence[OutputSink]
    ) -> bytes:
        if stream is None:
            return b""
        buffer = bytearray()
        while True:
            chunk = await stream.read(self.chunk_size)
            if not chunk:
                break
            buffer.extend(chunk)
            for sink in sinks:
                sink(chunk)
        return bytes(buffer)

    async def _abort(self, process_task: asyncio.Future, cancel_task) -> None:
        for task in (process_task, cancel_task):
            if task is not None and not task.done():
                task.cancel()
        await asyncio.gather(
            *(t for t in (process_task, cancel_task) if t is not None),
            return_exceptions=True,
        )
        await self._terminate()

    async def _terminate(self) -> None:
        process = self.process
        if process is None or process.returncode is not None:
            return
        try:
            process.kill()
        except ProcessLookupError:
            pass  # Process already exited
        try:
            await asyncio.wait_for(process.wait(), timeout=self.kill_grace_period)
        except asyncio.TimeoutError:
            logger.warning(
                f"Scanner process {process.pid} did not exit within "
                f"{self.kill_grace_period}s of being killed"
            )
