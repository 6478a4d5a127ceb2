"""
Periodic tick scheduling for StreamAtlas.

Drivers (the live poller and the playback clock) never own timers
themselves; they call ``Scheduler.schedule(interval_s, callback)`` and
keep the returned ``CancellationHandle``.  A callback may be a plain
function or return an awaitable; each schedule awaits its callback before
sleeping again, so ticks of one schedule never overlap.

``AsyncioScheduler`` is the production implementation.  ``ManualScheduler``
fires ticks only when told to, which makes driver behaviour deterministic
under test.
"""

from __future__ import annotations

import asyncio
import inspect
import itertools
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

import structlog

logger = structlog.get_logger()

TickCallback = Callable[[], "Awaitable[Any] | Any"]


class CancellationHandle(Protocol):
    """Handle returned by ``Scheduler.schedule``."""

    @property
    def cancelled(self) -> bool: ...

    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Delivers periodic ticks to a callback."""

    def schedule(self, interval_s: float, callback: TickCallback) -> CancellationHandle: ...


async def _invoke(callback: TickCallback) -> None:
    result = callback()
    if inspect.isawaitable(result):
        await result


# ── asyncio implementation ──


class _TaskHandle:
    """Cancels the asyncio task driving one schedule."""

    def __init__(self, task: asyncio.Task[None]) -> None:
        self._task = task
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled or self._task.done()

    def cancel(self) -> None:
        self._cancelled = True
        if not self._task.done():
            self._task.cancel()


class AsyncioScheduler:
    """Schedules ticks as asyncio tasks on the running event loop."""

    def __init__(self) -> None:
        self._names = itertools.count(1)

    def schedule(self, interval_s: float, callback: TickCallback) -> _TaskHandle:
        """Call *callback* every *interval_s* seconds until cancelled.

        The first tick fires one interval after scheduling.  A callback
        raising an exception is logged and the schedule keeps running.

        Args:
            interval_s: Seconds between the end of one tick and the next.
            callback: Sync callable or coroutine function.

        Returns:
            A handle whose ``cancel()`` stops further ticks.
        """
        task = asyncio.create_task(
            self._run(interval_s, callback),
            name=f"tick-{next(self._names)}",
        )
        return _TaskHandle(task)

    async def _run(self, interval_s: float, callback: TickCallback) -> None:
        while True:
            await asyncio.sleep(interval_s)
            try:
                await _invoke(callback)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("scheduled_tick_failed", interval_s=interval_s)


# ── manual implementation ──


class _ManualHandle:
    def __init__(self, scheduler: ManualScheduler, job_id: int) -> None:
        self._scheduler = scheduler
        self._job_id = job_id
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True
        self._scheduler._jobs.pop(self._job_id, None)


class ManualScheduler:
    """Scheduler whose ticks are delivered explicitly via ``tick()``."""

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self._jobs: dict[int, tuple[float, TickCallback]] = {}

    def schedule(self, interval_s: float, callback: TickCallback) -> _ManualHandle:
        job_id = next(self._ids)
        self._jobs[job_id] = (interval_s, callback)
        return _ManualHandle(self, job_id)

    @property
    def active_jobs(self) -> int:
        """Number of schedules that have not been cancelled."""
        return len(self._jobs)

    async def tick(self, times: int = 1) -> None:
        """Fire every live schedule once, *times* times over.

        A schedule cancelled by an earlier callback in the same round is
        skipped.
        """
        for _ in range(times):
            for job_id in list(self._jobs):
                job = self._jobs.get(job_id)
                if job is None:
                    continue
                await _invoke(job[1])
