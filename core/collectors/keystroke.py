"""
AuraLock Typing Collector

Observes text-change notifications from a monitored input field and
derives typing cadence:

- words_per_minute: words currently in the field / elapsed session minutes
- average_delay_ms: mean delay between consecutive text changes

Words are non-empty whitespace-delimited tokens, so repeated spaces do
not inflate the count.
"""

import logging
from typing import List, Optional

from core.events import MetricStream
from core.scheduler import Scheduler
from core.schemas.outputs import TypingStat


logger = logging.getLogger(__name__)


MS_PER_MINUTE = 60_000.0


def count_words(text: str) -> int:
    """Number of non-empty whitespace-delimited tokens."""
    return len(text.split())


def words_per_minute(total_words: int, elapsed_ms: float) -> float:
    """WPM with a 0.0 fallback for non-positive elapsed time."""
    if elapsed_ms <= 0:
        return 0.0
    return total_words / (elapsed_ms / MS_PER_MINUTE)


class TypingCollector:
    """
    Keystroke cadence collector.

    Streams:
        typing_speed_stream  -> live WPM (only once elapsed time is positive)
        average_delay_stream -> running mean inter-key delay (from 2nd event)
        word_count_stream    -> word count after each change
        stat_stream          -> final TypingStat on stop()
    """

    def __init__(self, scheduler: Scheduler) -> None:
        self._scheduler = scheduler

        self.typing_speed_stream: MetricStream[float] = MetricStream("typing_speed")
        self.average_delay_stream: MetricStream[float] = MetricStream("typing_average_delay")
        self.word_count_stream: MetricStream[int] = MetricStream("typing_word_count")
        self.stat_stream: MetricStream[TypingStat] = MetricStream("typing_stat")

        self._keystroke_times: List[float] = []
        self._inter_key_delays: List[int] = []
        self._total_words: int = 0
        self._total_characters: int = 0
        self._session_start: Optional[float] = None
        self._session_end: Optional[float] = None
        self._final: Optional[TypingStat] = None
        self._monitoring: bool = False

    # -------------------------------------------------------------------------
    # Monitoring Lifecycle
    # -------------------------------------------------------------------------

    def start(self, now: Optional[float] = None) -> None:
        """Reset metrics and begin observing. No-op if already monitoring."""
        if self._monitoring:
            return

        self._keystroke_times.clear()
        self._inter_key_delays.clear()
        self._total_words = 0
        self._total_characters = 0
        self._session_end = None
        self._final = None
        self._session_start = self._now(now)
        self._monitoring = True

        logger.info("Typing monitoring started")

    def on_text_changed(self, current_text: str, now: Optional[float] = None) -> None:
        """Record a text-change notification with the field's current contents."""
        if not self._monitoring:
            return

        ts = self._now(now)
        self._keystroke_times.append(ts)

        if len(self._keystroke_times) >= 2:
            delay = int(ts - self._keystroke_times[-2])
            self._inter_key_delays.append(delay)
            self.average_delay_stream.publish(self.average_inter_key_delay)

        self._total_characters = len(current_text)
        self._total_words = count_words(current_text)
        self.word_count_stream.publish(self._total_words)

        elapsed = ts - self._session_start
        if elapsed > 0:
            self.typing_speed_stream.publish(words_per_minute(self._total_words, elapsed))

    def stop(self, now: Optional[float] = None) -> Optional[TypingStat]:
        """
        Freeze the session and compute final metrics.

        Returns:
            Final TypingStat, or None if monitoring was not active.
        """
        if not self._monitoring:
            return None

        self._monitoring = False
        self._session_end = self._now(now)

        stat = self._build_stat(self._session_end)
        self._final = stat
        self.stat_stream.publish(stat)

        logger.info(
            f"Typing monitoring stopped: {stat.words_per_minute:.1f} WPM, "
            f"{stat.average_delay_ms:.1f}ms avg delay"
        )
        return stat

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def is_monitoring(self) -> bool:
        return self._monitoring

    @property
    def total_words(self) -> int:
        return self._total_words

    @property
    def total_characters(self) -> int:
        return self._total_characters

    @property
    def keystroke_count(self) -> int:
        return len(self._keystroke_times)

    @property
    def inter_key_delays(self) -> List[int]:
        return list(self._inter_key_delays)

    @property
    def average_inter_key_delay(self) -> float:
        if not self._inter_key_delays:
            return 0.0
        return sum(self._inter_key_delays) / len(self._inter_key_delays)

    @property
    def final_stat(self) -> Optional[TypingStat]:
        """Stat frozen by the last stop(), None while a session is running."""
        return self._final

    def current_typing_speed(self, now: Optional[float] = None) -> float:
        """Live WPM for a running session, final WPM after stop, else 0."""
        if self._final is not None:
            return self._final.words_per_minute
        if self._session_start is None:
            return 0.0
        return words_per_minute(self._total_words, self._now(now) - self._session_start)

    def snapshot(self, now: Optional[float] = None) -> TypingStat:
        if self._final is not None:
            return self._final
        return self._build_stat(self._now(now))

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _build_stat(self, end: float) -> TypingStat:
        elapsed = end - self._session_start if self._session_start is not None else 0.0
        return TypingStat(
            total_words=self._total_words,
            total_characters=self._total_characters,
            inter_key_delays=list(self._inter_key_delays),
            elapsed_ms=elapsed,
            words_per_minute=words_per_minute(self._total_words, elapsed),
            average_delay_ms=self.average_inter_key_delay,
        )

    def _now(self, now: Optional[float]) -> float:
        return self._scheduler.now() if now is None else now
