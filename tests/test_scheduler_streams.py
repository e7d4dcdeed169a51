"""
Scheduler and Metric Stream Tests

Timer ordering, synchronous cancellation and subscriber isolation, on the
manual scheduler and on a real asyncio loop.
"""

import asyncio
import logging
import threading
import time

import pytest

from core.events import MetricStream
from core.scheduler import AsyncioScheduler, ManualScheduler, RecurringTask


class TestManualScheduler:

    def test_timers_fire_in_due_order(self, scheduler):
        fired = []
        scheduler.call_later(200.0, lambda: fired.append("b"))
        scheduler.call_later(100.0, lambda: fired.append("a"))

        scheduler.advance(250.0)

        assert fired == ["a", "b"]
        assert scheduler.now() == 250.0

    def test_clock_reads_due_time_inside_callback(self, scheduler):
        seen = []
        scheduler.call_later(100.0, lambda: seen.append(scheduler.now()))

        scheduler.advance(1_000.0)

        assert seen == [100.0]

    def test_cancelled_timer_never_fires(self, scheduler):
        fired = []
        handle = scheduler.call_later(100.0, lambda: fired.append(True))
        handle.cancel()

        scheduler.advance(500.0)

        assert fired == []
        assert scheduler.pending == 0

    def test_deferred_job_failure_is_contained(self, scheduler, caplog):
        def boom():
            raise RuntimeError("write failed")

        scheduler.defer(boom, name="metrics-write")

        assert "metrics-write" in caplog.text


class TestRecurringTask:

    def test_runs_every_interval(self, scheduler):
        ticks = []
        task = RecurringTask(scheduler, 1_000.0, lambda: ticks.append(scheduler.now()))
        task.start()

        scheduler.advance(3_500.0)

        assert ticks == [1_000.0, 2_000.0, 3_000.0]

    def test_cancel_from_inside_callback(self, scheduler):
        ticks = []

        def tick():
            ticks.append(scheduler.now())
            task.cancel()

        task = RecurringTask(scheduler, 1_000.0, tick)
        task.start()
        scheduler.advance(5_000.0)

        assert ticks == [1_000.0]

    def test_failing_callback_keeps_schedule(self, scheduler):
        calls = []

        def flaky():
            calls.append(scheduler.now())
            raise ValueError("flaky")

        RecurringTask(scheduler, 1_000.0, flaky).start()
        scheduler.advance(2_000.0)

        assert calls == [1_000.0, 2_000.0]

    def test_rejects_non_positive_interval(self):
        with pytest.raises(ValueError):
            RecurringTask(ManualScheduler(), 0.0, lambda: None)


class TestAsyncioScheduler:
    """Timers and deferred jobs on a real event loop."""

    def test_requires_running_loop(self):
        with pytest.raises(RuntimeError):
            AsyncioScheduler()

    def test_timer_fires_after_delay(self):
        async def scenario():
            scheduler = AsyncioScheduler()
            fired = []
            scheduler.call_later(10.0, lambda: fired.append(True))
            await asyncio.sleep(0.1)
            scheduler.shutdown()
            return fired

        assert asyncio.run(scenario()) == [True]

    def test_cancelled_timer_never_fires(self):
        async def scenario():
            scheduler = AsyncioScheduler()
            fired = []
            handle = scheduler.call_later(20.0, lambda: fired.append(True))
            handle.cancel()
            await asyncio.sleep(0.1)
            scheduler.shutdown()
            return fired

        assert asyncio.run(scenario()) == []

    def test_deferred_jobs_run_off_loop_in_order(self):
        async def scenario():
            scheduler = AsyncioScheduler()
            order = []
            threads = set()

            def job(index):
                time.sleep(0.01 * (5 - index))
                threads.add(threading.get_ident())
                order.append(index)

            for i in range(5):
                scheduler.defer(lambda i=i: job(i), name=f"job-{i}")
            await scheduler.flush()
            scheduler.shutdown()
            return order, threads

        order, threads = asyncio.run(scenario())

        # Later jobs sleep less, so only serial execution keeps the order
        assert order == [0, 1, 2, 3, 4]
        assert threading.get_ident() not in threads

    def test_deferred_failure_is_logged(self, caplog):
        async def scenario():
            scheduler = AsyncioScheduler()
            ran = []

            def boom():
                raise RuntimeError("write failed")

            scheduler.defer(boom, name="metrics-write")
            scheduler.defer(lambda: ran.append(True), name="next-write")
            await scheduler.flush()
            # Done callbacks run on the next loop iterations
            await asyncio.sleep(0.01)
            scheduler.shutdown()
            return ran

        with caplog.at_level(logging.ERROR):
            ran = asyncio.run(scenario())

        assert ran == [True]
        assert "Deferred metrics-write failed: write failed" in caplog.text

    def test_recurring_task_stops_on_cancel(self):
        async def scenario():
            scheduler = AsyncioScheduler()
            ticks = []
            task = RecurringTask(scheduler, 10.0, lambda: ticks.append(True))
            task.start()
            await asyncio.sleep(0.06)
            task.cancel()
            seen = len(ticks)
            await asyncio.sleep(0.06)
            scheduler.shutdown()
            return seen, len(ticks)

        seen, total = asyncio.run(scenario())

        assert seen >= 1
        assert total == seen


class TestMetricStream:

    def test_publish_reaches_all_subscribers(self):
        stream = MetricStream("rate")
        a, b = [], []
        stream.subscribe(a.append)
        stream.subscribe(b.append)

        stream.publish(12.0)

        assert a == [12.0]
        assert b == [12.0]
        assert stream.latest == 12.0

    def test_unsubscribe(self):
        stream = MetricStream("rate")
        values = []
        unsubscribe = stream.subscribe(values.append)

        unsubscribe()
        stream.publish(1.0)

        assert values == []
        assert stream.subscriber_count == 0

    def test_failing_subscriber_is_isolated(self):
        stream = MetricStream("rate")
        values = []

        def broken(_value):
            raise RuntimeError("subscriber bug")

        stream.subscribe(broken)
        stream.subscribe(values.append)
        stream.publish(3.0)

        assert values == [3.0]

    def test_closed_stream_ignores_publish(self):
        stream = MetricStream("rate")
        values = []
        stream.subscribe(values.append)

        stream.close()
        stream.publish(1.0)

        assert values == []
        assert stream.latest is None
