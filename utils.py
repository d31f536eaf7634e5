#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
General utilities and helper classes for Playlist Purge.

Includes the cancellation token shared by every adapter operation and the
performance timer used around upstream calls.
"""

import asyncio
import time
from contextlib import contextmanager
from typing import Any, Awaitable, Optional, TypeVar

from exceptions import CancellationError
from logging_config import StructuredLogger

logger = StructuredLogger(__name__)

T = TypeVar("T")


# --- Cancellation ---

class CancellationToken:
    """Caller-owned cancellation signal.

    ``cancel()`` may be called from any coroutine on the same loop. Operations
    check the token between pages/items and race each in-flight request
    against it, so a cancel aborts the request immediately instead of waiting
    for it to finish.
    """

    def __init__(self):
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    def cancel(self, reason: Optional[str] = None) -> None:
        """Signal cancellation. Idempotent."""
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def _error(self, operation: str) -> CancellationError:
        suffix = f": {self.reason}" if self.reason else ""
        return CancellationError(f"{operation} cancelled{suffix}")

    def raise_if_cancelled(self, operation: str = "operation") -> None:
        """Raise CancellationError if the token was cancelled."""
        if self._event.is_set():
            raise self._error(operation)

    async def wait(self) -> None:
        await self._event.wait()

    async def guard(self, awaitable: Awaitable[T], operation: str = "operation") -> T:
        """Await ``awaitable`` unless the token is cancelled first.

        Args:
            awaitable: The request coroutine or future to run
            operation: Name used in the CancellationError message and logs

        Returns:
            The awaitable's result.

        Raises:
            CancellationError: If the token fires before the awaitable completes.
        """
        if self._event.is_set():
            # Close an un-started coroutine so it does not warn about never being awaited
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            self.raise_if_cancelled(operation)

        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            waiter.cancel()
            raise

        if task in done:
            waiter.cancel()
            return task.result()

        task.cancel()
        # Let the aborted request unwind; its outcome is irrelevant once cancelled
        await asyncio.gather(task, return_exceptions=True)
        logger.info(f"Cancelled in-flight request for '{operation}'", operation=operation)
        raise self._error(operation)


async def run_cancellable(awaitable: Awaitable[T], cancellation: Optional[CancellationToken],
                          operation: str) -> T:
    """Await ``awaitable`` under ``cancellation`` when one is given."""
    if cancellation is None:
        return await awaitable
    return await cancellation.guard(awaitable, operation)


# --- Performance Timer ---

@contextmanager
def performance_timer(operation_name: str, threshold_ms: float = 1000.0):
    """Context manager for timing operations with threshold-based logging.

    Logs at INFO level if duration exceeds threshold_ms, WARNING if it
    significantly exceeds it, otherwise DEBUG.

    Args:
        operation_name: A descriptive name for the operation being timed.
        threshold_ms: Threshold in milliseconds.

    Yields:
        None
    """
    start_time = time.monotonic()
    try:
        yield
    finally:
        duration_ms = (time.monotonic() - start_time) * 1000
        log_data: dict[str, Any] = {
            "operation": operation_name,
            "duration_ms": round(duration_ms, 2),
            "threshold_ms": threshold_ms,
        }

        if duration_ms > threshold_ms * 10:  # Significantly slow
            logger.warning(f"SLOW OPERATION: '{operation_name}' took {duration_ms:.2f}ms", **log_data)
        elif duration_ms > threshold_ms:
            logger.info(f"Performance watch: '{operation_name}' took {duration_ms:.2f}ms", **log_data)
        else:
            logger.debug(f"Performance: '{operation_name}' completed in {duration_ms:.2f}ms", **log_data)
