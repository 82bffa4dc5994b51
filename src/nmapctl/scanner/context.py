"""
Scan Context

Cancellation signal with an optional deadline, shared between the caller
and the execution controller.
"""

import asyncio
import time
from typing import Optional

from ..core.exceptions import ConfigurationError


class ScanContext:
    """
    Cancellable execution context.

    The deadline, when given, is counted from construction. ``cancel()`` may
    be called from any thread; it is idempotent.
    """

    def __init__(self, timeout: Optional[float] = None) -> None:
        if timeout is not None and timeout <= 0:
            raise ConfigurationError(
                f"context timeout should be greater than 0, got {timeout}"
            )
        self.timeout = timeout
        self._deadline = time.monotonic() + timeout if timeout is not None else None
        self._cancelled = False
        self._event: Optional[asyncio.Event] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def deadline_exceeded(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    @property
    def done(self) -> bool:
        return self.cancelled or self.deadline_exceeded

    @property
    def reason(self) -> Optional[str]:
        """Why the context finished, or None while it is still live."""
        if self._cancelled:
            return "cancelled"
        if self.deadline_exceeded:
            return "deadline exceeded"
        return None

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None without one."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def cancel(self) -> None:
        """Signal cancellation to whoever is waiting on this context."""
        self._cancelled = True
        loop, event = self._loop, self._event
        if loop is None or event is None or loop.is_closed():
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            event.set()
        else:
            loop.call_soon_threadsafe(event.set)

    async def wait(self) -> None:
        """Return once the context is cancelled or its deadline passes."""
        if self._event is None or self._loop is not asyncio.get_running_loop():
            self._loop = asyncio.get_running_loop()
            self._event = asyncio.Event()
        if self._cancelled:
            return

        remaining = self.remaining()
        if remaining is None:
            await self._event.wait()
            return

        try:
            await asyncio.wait_for(self._event.wait(), timeout=remaining)
        except asyncio.TimeoutError:
            pass
