"""Periodic tick driven by APScheduler.

`schedule_every` registers an interval job and hands back a cancel handle;
`Ticker` wraps that in an async context manager so the job can never outlive
its owner.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Awaitable, Callable

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .store import TimeStore

logger = logging.getLogger("timesync.scheduler")

DEFAULT_TICK_MS = 1000


class CancelHandle:
    """Removes one scheduled job. Safe to call more than once."""

    def __init__(self, scheduler: AsyncIOScheduler, job_id: str):
        self.scheduler = scheduler
        self.job_id = job_id
        self.cancelled = False

    def cancel(self) -> None:
        if self.cancelled:
            return
        self.cancelled = True
        try:
            self.scheduler.remove_job(self.job_id)
        except JobLookupError:
            pass


def schedule_every(
    scheduler: AsyncIOScheduler,
    interval_ms: int,
    callback: Callable[[], Awaitable[Any] | Any],
    name: str = "tick",
) -> CancelHandle:
    """Run `callback` every `interval_ms` milliseconds until cancelled."""
    if interval_ms <= 0:
        raise ValueError(f"Interval must be positive, got {interval_ms}ms")
    job_id = f"{name}_{uuid.uuid4().hex[:8]}"
    scheduler.add_job(
        callback,
        trigger=IntervalTrigger(seconds=interval_ms / 1000),
        id=job_id,
        name=name,
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )
    logger.debug(f"Ticker: scheduled '{job_id}' every {interval_ms}ms")
    return CancelHandle(scheduler, job_id)


class Ticker:
    """Scoped tick job for a TimeStore.

        async with Ticker(store, scheduler):
            ...  # store.tick() fires every interval

    The job is cancelled on exit, including when the body raises.
    """

    def __init__(self, store: TimeStore, scheduler: AsyncIOScheduler, interval_ms: int = DEFAULT_TICK_MS):
        self.store = store
        self.scheduler = scheduler
        self.interval_ms = interval_ms
        self.handle: CancelHandle | None = None

    def start(self) -> CancelHandle:
        if self.handle is None or self.handle.cancelled:
            self.handle = schedule_every(self.scheduler, self.interval_ms, self.store.tick, name="timesync_tick")
            logger.info(f"Ticker: started ({self.interval_ms}ms)")
        return self.handle

    def stop(self) -> None:
        if self.handle is not None and not self.handle.cancelled:
            self.handle.cancel()
            logger.info("Ticker: stopped")

    async def __aenter__(self) -> "Ticker":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.stop()
