"""
Once-a-day trigger anchored to a wall-clock time in a fixed time zone.

The scheduler owns a single asyncio task for the lifetime of the process.
It sleeps in bounded chunks and re-reads the clock after every wake-up, so
system clock adjustments and DST transitions are picked up. After a fire
the next target is always the following occurrence strictly after both the
previous target and the current time: a slow or early-waking loop can
neither fire twice on the same day nor replay missed days in a burst.
"""

import asyncio
from datetime import datetime, time, timedelta, timezone, tzinfo
from typing import Awaitable, Callable, Optional, Union
from zoneinfo import ZoneInfo

from dashboard_gate.security.passwords import utc_now
from dashboard_gate.utils.exceptions import SchedulerError
from dashboard_gate.utils.logging import get_service_logger


Callback = Callable[[], Awaitable[object]]


class DailyScheduler:
    """
    Run an async callback once per calendar day at ``at`` in ``tz``.

    Args:
        at: Local time of day to fire
        tz: Zone name or tzinfo the time of day is expressed in
        callback: Coroutine function called with no arguments
        clock: Returns the current aware instant
        sleep: Awaitable sleep, injectable for tests
        max_sleep: Longest single sleep in seconds before the clock is re-read
    """

    def __init__(
        self,
        at: time,
        tz: Union[str, tzinfo],
        callback: Callback,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        max_sleep: float = 300.0,
    ) -> None:
        self.at = at.replace(tzinfo=None)
        self.zone = ZoneInfo(tz) if isinstance(tz, str) else tz
        self.callback = callback
        self.clock = clock
        self.sleep = sleep
        self.max_sleep = max_sleep
        self.logger = get_service_logger("scheduler")
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def next_run_after(self, instant: datetime) -> datetime:
        """
        First occurrence of the daily time strictly after ``instant``.

        Returned as an aware datetime in the scheduler's zone.
        """
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        local = instant.astimezone(self.zone)
        day = local.date()
        while True:
            candidate = datetime.combine(day, self.at, tzinfo=self.zone)
            # Compare in UTC; same-tzinfo comparisons ignore the offset
            if candidate.astimezone(timezone.utc) > instant.astimezone(timezone.utc):
                return candidate
            day += timedelta(days=1)

    def _seconds_until(self, target: datetime) -> float:
        now = self.clock().astimezone(timezone.utc)
        return (target.astimezone(timezone.utc) - now).total_seconds()

    def start(self) -> asyncio.Task:
        """
        Arm the daily timer. Must be called from a running event loop.

        Raises:
            SchedulerError: If the timer was already started
        """
        if self._task is not None:
            raise SchedulerError(
                "Daily scheduler already started",
                context={"at": self.at.isoformat(), "tz": str(self.zone)},
            )
        self._task = asyncio.create_task(self._run(), name="daily-scheduler")
        return self._task

    async def stop(self) -> None:
        """Cancel the timer; an in-flight callback is abandoned."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self.logger.info("Daily scheduler stopped")

    async def _run(self) -> None:
        target = self.next_run_after(self.clock())
        self.logger.info("Daily scheduler armed", next_run=target.isoformat())

        while True:
            remaining = self._seconds_until(target)
            if remaining > 0:
                await self.sleep(min(remaining, self.max_sleep))
                continue

            await self._fire(target)

            now = self.clock()
            after = target if target.astimezone(timezone.utc) >= now.astimezone(timezone.utc) else now
            target = self.next_run_after(after)
            self.logger.info("Next daily run scheduled", next_run=target.isoformat())

    async def _fire(self, target: datetime) -> None:
        self.logger.info("Daily trigger firing", scheduled_for=target.isoformat())
        try:
            await self.callback()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.error(
                "Daily callback failed",
                error_type=type(e).__name__,
                error_message=str(e),
            )
