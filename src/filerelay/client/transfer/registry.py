"""Cancellation handles and the registry of in-flight transfers.

This module provides:
- CancelHandle: Cooperative cancellation signal for one transfer
- CancellationRegistry: Maps task identifiers to their handles

All transfers run on one event loop, so the registry needs no lock.
Orchestrators register before their first await and discard in a
finally block.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Awaitable
from typing import TypeVar

from filerelay.client.transfer.types import TransferCancelledError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def new_task_id() -> str:
    """Generate a unique transfer task identifier."""
    return uuid.uuid4().hex


class CancelHandle:
    """Cancellation signal shared by all network phases of one transfer.

    Usage:
        handle = CancelHandle()
        response = await handle.run(client.get(url))  # raises if cancelled
        handle.cancel()  # from anywhere on the loop
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None

    @property
    def cancelled(self) -> bool:
        """Check if cancellation was requested."""
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        """Get the reason passed to cancel()."""
        return self._reason

    def cancel(self, reason: str = "Transfer canceled by user") -> None:
        """Request cancellation. Idempotent."""
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    async def run(self, awaitable: Awaitable[T]) -> T:
        """Await a network call unless cancellation wins the race.

        An operation that completed before cancellation was observed keeps
        its result; the next phase will see the signal instead.

        Args:
            awaitable: The in-flight operation.

        Returns:
            The operation's result.

        Raises:
            TransferCancelledError: If cancellation was requested before the
                operation started or while it was in flight.
        """
        if self.cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise self._cancelled_error()

        operation = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({operation, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            await self._abort(operation)
            raise
        finally:
            waiter.cancel()

        if not operation.done():
            await self._abort(operation)
            raise self._cancelled_error()
        return operation.result()

    @staticmethod
    async def _abort(operation: asyncio.Future[T]) -> None:
        """Cancel an operation and wait until it has unwound."""
        operation.cancel()
        await asyncio.wait({operation})
        if not operation.cancelled():
            operation.exception()

    def _cancelled_error(self) -> TransferCancelledError:
        return TransferCancelledError(self._reason or "Transfer canceled")


class CancellationRegistry:
    """Tracks in-flight transfers by task identifier."""

    def __init__(self) -> None:
        self._handles: dict[str, CancelHandle] = {}

    def register(self, task_id: str, handle: CancelHandle) -> None:
        """Track a transfer.

        Raises:
            ValueError: If task_id is already registered.
        """
        if task_id in self._handles:
            raise ValueError(f"Transfer {task_id} is already registered")
        self._handles[task_id] = handle

    def get(self, task_id: str) -> CancelHandle | None:
        """Get the handle for a task."""
        return self._handles.get(task_id)

    def cancel(self, task_id: str) -> bool:
        """Cancel one transfer and stop tracking it.

        Returns:
            True if the task was found.
        """
        handle = self._handles.pop(task_id, None)
        if handle is None:
            return False
        handle.cancel()
        logger.info(f"Transfer {task_id}: cancellation requested")
        return True

    def cancel_all(self) -> int:
        """Cancel every tracked transfer.

        Returns:
            Number of transfers cancelled.
        """
        handles = list(self._handles.values())
        self._handles.clear()
        for handle in handles:
            handle.cancel("All transfers canceled")
        if handles:
            logger.info(f"Cancelled {len(handles)} transfer(s)")
        return len(handles)

    def discard(self, task_id: str) -> bool:
        """Stop tracking a finished transfer.

        Returns:
            True if the task was still tracked.
        """
        return self._handles.pop(task_id, None) is not None

    def __len__(self) -> int:
        """Get number of tracked transfers."""
        return len(self._handles)

    def __contains__(self, task_id: object) -> bool:
        """Check if a task is tracked."""
        return task_id in self._handles
