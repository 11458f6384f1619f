"""
Deadline and cooperative cancellation for long-running operations.

A Deadline is shared by every step of one operation. Waits go through
Deadline.sleep so that expiry or cancellation ends them immediately.
"""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, TypeVar

from imperva_export.exceptions import RequestCancelledError

T = TypeVar("T")


class Deadline:
    """
    Wall-clock budget plus a cancel signal.

    Example:
        >>> deadline = Deadline(timeout=600)
        >>> if not await deadline.sleep(2.0):
        ...     raise OperationTimeoutError()
    """

    def __init__(
        self,
        timeout: float | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> None:
        self._expires_at = None if timeout is None else time.monotonic() + timeout
        self._cancel_event = cancel_event if cancel_event is not None else asyncio.Event()

    def remaining(self) -> float | None:
        """Seconds left, or None for no deadline."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    @property
    def expired(self) -> bool:
        """True once the deadline passed or cancel() was called."""
        if self.cancelled:
            return True
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def cancel(self) -> None:
        self._cancel_event.set()

    async def sleep(self, delay: float) -> bool:
        """
        Wait up to delay seconds.

        Returns:
            True if the full delay elapsed, False if the deadline expired
            or the operation was cancelled first.
        """
        if self.expired:
            return False

        remaining = self.remaining()
        truncated = remaining is not None and remaining < delay
        wait = remaining if truncated else delay
        try:
            await asyncio.wait_for(self._cancel_event.wait(), timeout=wait)
        except asyncio.TimeoutError:
            return not truncated and not self.cancelled
        return False

    async def run(self, awaitable: Awaitable[T]) -> T:
        """
        Await within the remaining budget.

        Raises:
            RequestCancelledError: If the deadline expires first.
        """
        if self.expired:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise RequestCancelledError()

        try:
            return await asyncio.wait_for(awaitable, timeout=self.remaining())
        except asyncio.TimeoutError as e:
            raise RequestCancelledError(cause=e) from e

    def __repr__(self) -> str:
        remaining = self.remaining()
        budget = "none" if remaining is None else f"{remaining:.1f}s"
        return f"<Deadline remaining={budget} cancelled={self.cancelled}>"


__all__ = ["Deadline"]
