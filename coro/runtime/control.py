"""
Cooperative cancellation for agent execution.

This module provides:
- AbortController: Owner side of a one-shot cancellation cell
- AbortRegistration: Observer side, polled or awaited by workers
- race_cancellation: Run work until it finishes or cancellation fires
"""

import asyncio
from typing import Any, Awaitable, TypeVar

from coro.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_CANCEL_REASON = "Operation cancelled"


# ============================================================================
# Shared cell
# ============================================================================


class _AbortState:
    """One-shot cancellation cell shared by a controller and its registrations."""

    def __init__(self):
        self._event = asyncio.Event()
        self._reason: str | None = None

    def set(self, reason: str) -> bool:
        if self._event.is_set():
            return False
        self._reason = reason
        self._event.set()
        return True

    def is_set(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()

    @property
    def reason(self) -> str | None:
        return self._reason


# ============================================================================
# Controller / Registration
# ============================================================================


class AbortRegistration:
    """
    Observer handle of an AbortController.

    Examples:
        >>> controller, registration = AbortController.new()
        >>> if registration.is_cancelled():
        >>>     return  # Early exit
        >>> await registration.cancelled()  # or wait for it
    """

    def __init__(self, state: _AbortState):
        self._state = state

    def is_cancelled(self) -> bool:
        """Synchronous poll."""
        return self._state.is_set()

    async def cancelled(self) -> None:
        """Wait until the owning controller is cancelled."""
        await self._state.wait()

    @property
    def reason(self) -> str | None:
        return self._state.reason


class AbortController:
    """
    Cancellation owner.

    Cancelling is idempotent and irreversible: the first reason sticks, and
    every registration derived before or after the cancel observes it.
    There is no reset; a fresh run gets a fresh controller.
    """

    def __init__(self):
        self._state = _AbortState()

    @classmethod
    def new(cls) -> tuple["AbortController", AbortRegistration]:
        controller = cls()
        return controller, controller.subscribe()

    def subscribe(self) -> AbortRegistration:
        return AbortRegistration(self._state)

    def cancel(self, reason: str = DEFAULT_CANCEL_REASON) -> None:
        if self._state.set(reason):
            logger.info("abort_requested", reason=reason)

    def is_cancelled(self) -> bool:
        return self._state.is_set()

    @property
    def reason(self) -> str | None:
        return self._state.reason

    def __repr__(self) -> str:
        return f"AbortController(cancelled={self.is_cancelled()}, reason={self.reason!r})"


# ============================================================================
# Race
# ============================================================================


async def race_cancellation(
    registration: AbortRegistration, work: Awaitable[T]
) -> tuple[bool, Any]:
    """
    Run work until it completes or the registration is cancelled.

    Returns:
        (True, None) if cancellation won; the work task is cancelled and
        awaited before returning. (False, result) otherwise. Exceptions
        raised by the work propagate.
    """
    work_task = asyncio.ensure_future(work)

    if registration.is_cancelled():
        await _cancel_and_wait(work_task)
        return True, None

    cancel_task = asyncio.ensure_future(registration.cancelled())
    try:
        done, _ = await asyncio.wait(
            {work_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED
        )
    except asyncio.CancelledError:
        await _cancel_and_wait(work_task)
        raise
    finally:
        if not cancel_task.done():
            cancel_task.cancel()

    if work_task in done:
        return False, work_task.result()

    await _cancel_and_wait(work_task)
    return True, None


async def _cancel_and_wait(task: asyncio.Future) -> None:
    if task.done():
        if not task.cancelled() and task.exception() is not None:
            logger.debug("raced_work_failed_after_cancel", error=str(task.exception()))
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
    except Exception as e:
        logger.debug("raced_work_failed_after_cancel", error=str(e))


__all__ = ["AbortController", "AbortRegistration", "race_cancellation"]
