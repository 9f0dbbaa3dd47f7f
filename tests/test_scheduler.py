"""Tests for the once-a-day scheduler."""

import asyncio
from datetime import datetime, time
from zoneinfo import ZoneInfo

import pytest

from conftest import CAIRO, utc

from dashboard_gate.notifier.scheduler import DailyScheduler
from dashboard_gate.utils.exceptions import SchedulerError


NINE = time(9, 0)


async def noop():
    return None


class TestNextRunAfter:
    @pytest.fixture
    def scheduler(self):
        return DailyScheduler(NINE, "Africa/Cairo", noop)

    def test_later_the_same_day(self, scheduler):
        nxt = scheduler.next_run_after(datetime(2025, 1, 15, 8, 59, tzinfo=CAIRO))
        assert nxt == datetime(2025, 1, 15, 9, 0, tzinfo=CAIRO)

    def test_exactly_at_fire_time_moves_to_tomorrow(self, scheduler):
        nxt = scheduler.next_run_after(datetime(2025, 1, 15, 9, 0, tzinfo=CAIRO))
        assert nxt == datetime(2025, 1, 16, 9, 0, tzinfo=CAIRO)

    def test_after_fire_time(self, scheduler):
        nxt = scheduler.next_run_after(datetime(2025, 1, 15, 17, 0, tzinfo=CAIRO))
        assert nxt == datetime(2025, 1, 16, 9, 0, tzinfo=CAIRO)

    def test_input_in_other_zone(self, scheduler):
        # 06:59 UTC is 08:59 in Cairo
        nxt = scheduler.next_run_after(utc(2025, 1, 15, 6, 59))
        assert nxt == utc(2025, 1, 15, 7, 0)
        assert nxt.tzinfo is CAIRO

    def test_utc_evening_is_next_local_day(self, scheduler):
        # 23:30 UTC on the 14th is already the 15th in Cairo
        nxt = scheduler.next_run_after(utc(2025, 1, 14, 23, 30))
        assert nxt == datetime(2025, 1, 15, 9, 0, tzinfo=CAIRO)

    def test_dst_start_keeps_wall_clock_time(self):
        ny = ZoneInfo("America/New_York")
        scheduler = DailyScheduler(NINE, ny, noop)
        nxt = scheduler.next_run_after(datetime(2025, 3, 8, 12, 0, tzinfo=ny))
        assert nxt == utc(2025, 3, 9, 13, 0)


class TestLifecycle:
    async def test_cannot_start_twice(self):
        scheduler = DailyScheduler(NINE, "Africa/Cairo", noop)
        scheduler.start()
        try:
            assert scheduler.running
            with pytest.raises(SchedulerError):
                scheduler.start()
        finally:
            await scheduler.stop()
        assert not scheduler.running

    async def test_stop_before_start_is_noop(self):
        await DailyScheduler(NINE, "Africa/Cairo", noop).stop()


class TestRunLoop:
    async def run_until(self, scheduler, done: asyncio.Event):
        scheduler.start()
        try:
            await asyncio.wait_for(done.wait(), timeout=10)
        finally:
            await scheduler.stop()

    async def test_fires_once_per_day_at_configured_time(self, fake_clock):
        fired = []
        done = asyncio.Event()

        async def callback():
            fired.append(fake_clock())
            # delivery takes a few seconds
            fake_clock.advance(seconds=3)
            if len(fired) == 3:
                done.set()

        scheduler = DailyScheduler(NINE, CAIRO, callback, clock=fake_clock, sleep=fake_clock.sleep)
        await self.run_until(scheduler, done)

        assert fired == [
            datetime(2025, 1, 15, 9, 0, tzinfo=CAIRO),
            datetime(2025, 1, 16, 9, 0, tzinfo=CAIRO),
            datetime(2025, 1, 17, 9, 0, tzinfo=CAIRO),
        ]
        assert max(fake_clock.sleeps) <= scheduler.max_sleep

    async def test_callback_failure_does_not_stop_timer(self, fake_clock):
        calls = []
        done = asyncio.Event()

        async def callback():
            calls.append(fake_clock())
            if len(calls) == 1:
                raise RuntimeError("webhook exploded")
            done.set()

        scheduler = DailyScheduler(NINE, CAIRO, callback, clock=fake_clock, sleep=fake_clock.sleep)
        await self.run_until(scheduler, done)

        assert [c.date().isoformat() for c in calls] == ["2025-01-15", "2025-01-16"]

    async def test_missed_days_are_not_replayed(self, fake_clock):
        calls = []
        done = asyncio.Event()

        async def callback():
            calls.append(fake_clock())
            if len(calls) == 1:
                # process suspended for three days
                fake_clock.advance(days=3, hours=1)
            else:
                done.set()

        scheduler = DailyScheduler(NINE, CAIRO, callback, clock=fake_clock, sleep=fake_clock.sleep)
        await self.run_until(scheduler, done)

        assert calls == [
            datetime(2025, 1, 15, 9, 0, tzinfo=CAIRO),
            datetime(2025, 1, 19, 9, 0, tzinfo=CAIRO),
        ]
