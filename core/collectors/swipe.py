"""
AuraLock Swipe Collector

Records drag gestures as immutable SwipeGesture records and measures how
consistent the user's swipe speed is.

Per gesture:
    distance  = |end - start| (Euclidean, px)
    duration  = end_time - start_time (ms)
    speed     = distance / duration (px/ms), 0 for a zero-length duration
    direction = dominant axis; |dx| > |dy| is horizontal, ties are vertical

Stability:
    1 - stddev(speeds) / mean(speeds), clamped to [0, 1]
    1.0 with fewer than two gestures or a zero mean speed
"""

import logging
import math
from collections import Counter
from typing import List, Optional, Sequence, Tuple

import numpy as np

from core.events import MetricStream
from core.scheduler import Scheduler
from core.schemas.outputs import Point, SwipeDirection, SwipeGesture, SwipeStat


logger = logging.getLogger(__name__)


# =============================================================================
# Geometry & Statistics
# =============================================================================

def classify_direction(start: Point, end: Point) -> SwipeDirection:
    """Dominant direction of a drag; equal magnitudes resolve vertically."""
    dx = end.x - start.x
    dy = end.y - start.y

    if abs(dx) > abs(dy):
        return SwipeDirection.RIGHT if dx > 0 else SwipeDirection.LEFT
    return SwipeDirection.DOWN if dy > 0 else SwipeDirection.UP


def compute_stability(speeds: Sequence[float]) -> float:
    """
    Speed stability coefficient (1 - coefficient of variation).

    Uses the population standard deviation.
    """
    if len(speeds) < 2:
        return 1.0

    values = np.asarray(speeds, dtype=np.float64)
    mean = float(values.mean())
    if mean <= 0:
        return 1.0

    cv = float(values.std()) / mean
    return min(1.0, max(0.0, 1.0 - cv))


def summarize_gestures(gestures: Sequence[SwipeGesture]) -> SwipeStat:
    """Aggregate a gesture history into a SwipeStat."""
    if not gestures:
        return SwipeStat()

    speeds = np.array([g.speed for g in gestures], dtype=np.float64)
    distances = np.array([g.distance for g in gestures], dtype=np.float64)
    durations = np.array([g.duration_ms for g in gestures], dtype=np.float64)

    return SwipeStat(
        average_speed=float(speeds.mean()),
        average_distance=float(distances.mean()),
        average_duration=float(durations.mean()),
        count=len(gestures),
        direction_histogram=dict(Counter(g.direction for g in gestures)),
        stability=compute_stability(speeds.tolist()),
    )


# =============================================================================
# Swipe Collector
# =============================================================================

class SwipeCollector:
    """
    Drag gesture collector.

    A gesture is the pair (on_gesture_start, on_gesture_end). Only one
    gesture can be pending: a second start replaces the first, and a
    start without an end when tracking stops is dropped.

    Streams:
        gesture_stream   -> each completed SwipeGesture
        stability_stream -> stability after each gesture
        stat_stream      -> final SwipeStat on stop_tracking()
    """

    def __init__(self, scheduler: Scheduler) -> None:
        self._scheduler = scheduler

        self.gesture_stream: MetricStream[SwipeGesture] = MetricStream("swipe_gesture")
        self.stability_stream: MetricStream[float] = MetricStream("swipe_stability")
        self.stat_stream: MetricStream[SwipeStat] = MetricStream("swipe_stat")

        self._gestures: List[SwipeGesture] = []
        self._pending_start: Optional[Tuple[Point, float]] = None
        self._tracking: bool = False

    # -------------------------------------------------------------------------
    # Tracking Lifecycle
    # -------------------------------------------------------------------------

    def start_tracking(self) -> None:
        """Clear gesture history and begin tracking."""
        self._gestures.clear()
        self._pending_start = None
        self._tracking = True
        logger.info("Swipe tracking started")

    def on_gesture_start(self, position: Point, now: Optional[float] = None) -> None:
        """Record the start of a drag. Replaces any pending start."""
        if not self._tracking:
            logger.debug("Ignoring gesture start - tracking not active")
            return
        self._pending_start = (position, self._now(now))

    def on_gesture_end(
        self,
        position: Point,
        now: Optional[float] = None
    ) -> Optional[SwipeGesture]:
        """
        Complete the pending drag.

        Returns:
            The recorded gesture, or None if not tracking or no start
            is pending.
        """
        if not self._tracking:
            logger.debug("Ignoring gesture end - tracking not active")
            return None
        if self._pending_start is None:
            logger.debug("Gesture end without start - ignoring")
            return None

        start_position, start_time = self._pending_start
        end_time = self._now(now)

        duration = end_time - start_time
        distance = math.hypot(position.x - start_position.x, position.y - start_position.y)
        speed = distance / duration if duration > 0 else 0.0

        gesture = SwipeGesture(
            start_position=start_position,
            end_position=position,
            start_time=start_time,
            end_time=end_time,
            duration_ms=duration,
            distance=distance,
            speed=speed,
            direction=classify_direction(start_position, position),
        )

        self._gestures.append(gesture)
        self._pending_start = None

        self.gesture_stream.publish(gesture)
        self.stability_stream.publish(self.stability)

        logger.debug(
            f"Swipe #{len(self._gestures)}: {gesture.direction.value}, "
            f"{speed:.3f} px/ms, {distance:.1f}px, {duration:.0f}ms"
        )
        return gesture

    def stop_tracking(self) -> SwipeStat:
        """Stop tracking and publish the aggregate over the full history."""
        self._tracking = False
        self._pending_start = None

        stat = summarize_gestures(self._gestures)
        self.stat_stream.publish(stat)

        logger.info(
            f"Swipe tracking stopped: {stat.count} swipes, "
            f"stability {stat.stability:.3f}"
        )
        return stat

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def is_tracking(self) -> bool:
        return self._tracking

    @property
    def count(self) -> int:
        return len(self._gestures)

    @property
    def gestures(self) -> Tuple[SwipeGesture, ...]:
        return tuple(self._gestures)

    @property
    def average_speed(self) -> float:
        if not self._gestures:
            return 0.0
        return sum(g.speed for g in self._gestures) / len(self._gestures)

    @property
    def stability(self) -> float:
        return compute_stability([g.speed for g in self._gestures])

    def snapshot(self) -> SwipeStat:
        return summarize_gestures(self._gestures)

    def _now(self, now: Optional[float]) -> float:
        return self._scheduler.now() if now is None else now
