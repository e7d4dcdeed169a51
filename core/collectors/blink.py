"""
AuraLock Blink Collector

Counts de-bounced blink events over a monitoring window and emits the
count as a blinks-per-minute sample.

Window lifecycle:
    start() -> count=0, periodic window timer armed
    every BLINK_WINDOW_MS -> publish count as rate, reset count
    stop() -> cancel timer, publish final count as rate, reset count

The final window is not rescaled to a full minute: a stop() after
20 seconds reports the raw 20-second count.

Also provides two blink sources that feed the collector:
    BlinkSimulator        -> random blinks for devices without a camera
    EyeOpennessDetector   -> open/closed transitions from a face tracker
"""

import logging
import random
from typing import Optional

from core.events import MetricStream
from core.scheduler import RecurringTask, Scheduler
from core.schemas.outputs import BlinkStat


logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Minimum gap between two blinks for both to count
DEFAULT_BLINK_COOLDOWN_MS = 300.0

# Rate window (nominally one minute)
DEFAULT_BLINK_WINDOW_MS = 60_000.0

# Simulation: one draw every 3 seconds with a 25% chance of a blink
DEFAULT_SIMULATION_INTERVAL_MS = 3_000.0
DEFAULT_SIMULATION_PROBABILITY = 0.25

# Eye openness below this probability counts as closed
DEFAULT_EYE_OPEN_THRESHOLD = 0.3


# =============================================================================
# Blink Collector
# =============================================================================

class BlinkCollector:
    """
    De-bounced blink counter with periodic rate emission.

    Streams:
        count_stream -> running count after each accepted blink (and 0 on reset)
        rate_stream  -> per-window rate samples, including the final one on stop
    """

    def __init__(
        self,
        scheduler: Scheduler,
        cooldown_ms: float = DEFAULT_BLINK_COOLDOWN_MS,
        window_ms: float = DEFAULT_BLINK_WINDOW_MS
    ) -> None:
        self._scheduler = scheduler
        self.cooldown_ms = cooldown_ms
        self.window_ms = window_ms

        self.count_stream: MetricStream[int] = MetricStream("blink_count")
        self.rate_stream: MetricStream[float] = MetricStream("blink_rate")

        self._count: int = 0
        self._last_blink_ts: Optional[float] = None
        self._window_start: Optional[float] = None
        self._latest_rate: Optional[float] = None
        self._monitoring: bool = False
        self._window_task = RecurringTask(
            scheduler, window_ms, self._close_window, name="blink-window"
        )

    # -------------------------------------------------------------------------
    # Monitoring Lifecycle
    # -------------------------------------------------------------------------

    def start(self, now: Optional[float] = None) -> None:
        """Begin a monitoring session. No-op if already monitoring."""
        if self._monitoring:
            return

        self._monitoring = True
        self._count = 0
        self._last_blink_ts = None
        self._window_start = self._now(now)
        self._window_task.start()

        logger.info("Blink monitoring started")

    def record_blink(self, now: Optional[float] = None) -> bool:
        """
        Register a detected blink.

        Returns:
            True if the blink was counted, False if not monitoring or
            still inside the cooldown of the previous blink.
        """
        if not self._monitoring:
            return False

        ts = self._now(now)
        if self._last_blink_ts is not None and ts - self._last_blink_ts < self.cooldown_ms:
            logger.debug(f"Blink ignored ({ts - self._last_blink_ts:.0f}ms after previous)")
            return False

        self._count += 1
        self._last_blink_ts = ts
        self.count_stream.publish(self._count)

        logger.debug(f"Blink counted: {self._count}")
        return True

    def stop(self, now: Optional[float] = None) -> Optional[float]:
        """
        End monitoring and emit the final window's count as the rate.

        Returns:
            The final rate, or None if monitoring was not active.
        """
        if not self._monitoring:
            return None

        self._monitoring = False
        self._window_task.cancel()

        rate = self._emit_rate(self._now(now))
        logger.info(f"Blink monitoring stopped (final rate {rate:.1f}/min)")
        return rate

    # -------------------------------------------------------------------------
    # Window Emission
    # -------------------------------------------------------------------------

    def _close_window(self) -> None:
        """Timer callback: emit the current window and open the next one."""
        if not self._monitoring:
            return
        rate = self._emit_rate(self._scheduler.now())
        logger.info(f"Blink window closed: {rate:.1f}/min")

    def _emit_rate(self, now: float) -> float:
        rate = float(self._count)
        self._latest_rate = rate
        self.rate_stream.publish(rate)

        self._count = 0
        self._window_start = now
        self.count_stream.publish(0)
        return rate

    def _now(self, now: Optional[float]) -> float:
        return self._scheduler.now() if now is None else now

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def is_monitoring(self) -> bool:
        return self._monitoring

    @property
    def count(self) -> int:
        return self._count

    @property
    def latest_rate(self) -> Optional[float]:
        """Most recent emitted rate sample, None before the first window closes."""
        return self._latest_rate

    def snapshot(self) -> BlinkStat:
        return BlinkStat(count=self._count, window_start=self._window_start)


# =============================================================================
# Blink Sources
# =============================================================================

class BlinkSimulator:
    """
    Random blink source for devices without camera-based detection.

    Every interval a single draw is made; with the configured probability
    a blink is pushed into the collector (subject to its cooldown).
    """

    def __init__(
        self,
        collector: BlinkCollector,
        scheduler: Scheduler,
        interval_ms: float = DEFAULT_SIMULATION_INTERVAL_MS,
        probability: float = DEFAULT_SIMULATION_PROBABILITY,
        rng: Optional[random.Random] = None
    ) -> None:
        self._collector = collector
        self._probability = probability
        self._rng = rng or random.Random()
        self._task = RecurringTask(scheduler, interval_ms, self._tick, name="blink-simulation")

    @property
    def running(self) -> bool:
        return self._task.active

    def start(self) -> None:
        self._task.start()
        logger.info("Blink simulation started")

    def stop(self) -> None:
        self._task.cancel()

    def _tick(self) -> None:
        if not self._collector.is_monitoring:
            return
        if self._rng.random() < self._probability:
            self._collector.record_blink()


class EyeOpennessDetector:
    """
    Converts per-frame eye openness into blink events.

    A blink is reported once per open -> closed transition, where closed
    means the mean openness of the available eyes is below the threshold.
    """

    def __init__(
        self,
        collector: BlinkCollector,
        threshold: float = DEFAULT_EYE_OPEN_THRESHOLD
    ) -> None:
        self._collector = collector
        self.threshold = threshold
        self._eyes_closed = False

    def observe(
        self,
        left_openness: float,
        right_openness: Optional[float] = None,
        now: Optional[float] = None
    ) -> bool:
        """
        Feed one frame.

        Returns:
            True if this frame produced a counted blink.
        """
        if right_openness is None:
            openness = left_openness
        else:
            openness = (left_openness + right_openness) / 2.0

        if openness < self.threshold:
            if self._eyes_closed:
                return False
            self._eyes_closed = True
            return self._collector.record_blink(now)

        self._eyes_closed = False
        return False

    def reset(self) -> None:
        self._eyes_closed = False
