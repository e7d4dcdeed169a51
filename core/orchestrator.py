"""
AuraLock Trust Orchestrator

Coordinates the three collectors of a user session with the ZKScore
engine and the persistence backends.

Data flow:
    BlinkCollector.rate_stream      -> blink_rate      -> persist blinkRate
    TypingCollector streams         -> typing_speed    -> persist typing fields
    SwipeCollector streams          -> swipe_stability -> persist swipeMetrics
    recompute()                     -> ZKScore         -> persist score + baselines

Persistence is fire-and-forget through Scheduler.defer: a failed write
is logged and dropped, the in-memory statistics stay valid, and the next
natural recomputation writes again.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from core.context import AppContext, CollectorSet
from core.errors import PersistenceError, SessionNotFoundError
from core.events import MetricStream
from core.models import ZKScoreEngine
from core.scheduler import RecurringTask, Scheduler
from core.schemas.outputs import (
    Point,
    SessionSnapshot,
    SwipeGesture,
    SwipeMetricsDocument,
    SwipeStat,
    TypingStat,
    ZKScore,
)
from persistence.baseline_cache import BaselineCache
from persistence.metrics_repository import MetricsRepository


logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Inputs used before any statistic is available
DEFAULT_BLINK_RATE = 0.0
DEFAULT_TYPING_SPEED = 0.0
DEFAULT_SWIPE_STABILITY = 1.0

DEFAULT_RECOMPUTE_INTERVAL_MS = 60_000.0


# =============================================================================
# Orchestrator
# =============================================================================

class TrustOrchestrator:
    """
    Per-user monitoring session.

    Owns no statistics itself: it mirrors the latest value published by
    each collector and recomputes the score from those mirrors.
    """

    def __init__(
        self,
        user_id: Optional[str],
        collectors: CollectorSet,
        engine: ZKScoreEngine,
        scheduler: Scheduler,
        repository: Optional[MetricsRepository] = None,
        baseline_cache: Optional[BaselineCache] = None,
        recompute_interval_ms: float = DEFAULT_RECOMPUTE_INTERVAL_MS
    ) -> None:
        self.user_id = user_id
        self.collectors = collectors
        self.engine = engine
        self.scheduler = scheduler
        self.repository = repository
        self.baseline_cache = baseline_cache

        self.score_stream: MetricStream[ZKScore] = MetricStream("zk_score")

        self._blink_rate = DEFAULT_BLINK_RATE
        self._typing_speed = DEFAULT_TYPING_SPEED
        self._swipe_stability = DEFAULT_SWIPE_STABILITY
        self._swipe_stat: Optional[SwipeStat] = None
        self._last_score: Optional[ZKScore] = None
        self._monitoring = False

        self._recompute_task = RecurringTask(
            scheduler, recompute_interval_ms, self.recompute, name="zk-score"
        )
        self._unsubscribers = [
            collectors.blink.rate_stream.subscribe(self._on_blink_rate),
            collectors.typing.typing_speed_stream.subscribe(self._on_typing_speed),
            collectors.typing.stat_stream.subscribe(self._on_typing_stat),
            collectors.swipe.stability_stream.subscribe(self._on_swipe_stability),
            collectors.swipe.stat_stream.subscribe(self._on_swipe_stat),
        ]

        logger.info(f"TrustOrchestrator ready for user {user_id}")

    @classmethod
    def from_context(cls, user_id: Optional[str], context: AppContext) -> TrustOrchestrator:
        return cls(
            user_id=user_id,
            collectors=context.build_collectors(),
            engine=context.engine,
            scheduler=context.scheduler,
            repository=context.repository,
            baseline_cache=context.baseline_cache,
            recompute_interval_ms=context.settings.score_recompute_seconds * 1000.0,
        )

    # -------------------------------------------------------------------------
    # Monitoring Lifecycle
    # -------------------------------------------------------------------------

    @property
    def is_monitoring(self) -> bool:
        return self._monitoring

    def start_monitoring(self, now: Optional[float] = None) -> None:
        """
        Start every collector and the periodic recomputation.

        Args:
            now: Session start on the event clock. Pass it when events
                carry client timestamps so elapsed time stays consistent.
        """
        if self._monitoring:
            return
        self._monitoring = True

        self.collectors.blink.start(now)
        self.collectors.typing.start(now)
        self.collectors.swipe.start_tracking()
        self.collectors.eye_detector.reset()
        if self.collectors.blink_simulator is not None:
            self.collectors.blink_simulator.start()
        self._recompute_task.start()

        logger.info(f"Monitoring started for user {self.user_id}")

    def stop_monitoring(self, now: Optional[float] = None) -> Optional[ZKScore]:
        """
        Stop all collectors, then recompute and persist the final score.

        Args:
            now: Session end on the same clock as start_monitoring().

        Returns:
            Final ZKScore, or the last score if monitoring was not active.
        """
        if not self._monitoring:
            return self._last_score
        self._monitoring = False

        self._recompute_task.cancel()
        if self.collectors.blink_simulator is not None:
            self.collectors.blink_simulator.stop()
        self.collectors.blink.stop(now)
        self.collectors.typing.stop(now)
        self.collectors.swipe.stop_tracking()

        score = self.recompute()
        logger.info(
            f"Monitoring stopped for user {self.user_id}: "
            f"ZKScore {score.value:.3f} ({score.risk_tier.value})"
        )
        return score

    def close(self) -> None:
        """Stop monitoring and detach from the collector streams."""
        self.stop_monitoring()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        self.score_stream.close()

    # -------------------------------------------------------------------------
    # Event Ingestion
    # -------------------------------------------------------------------------

    def record_blink(self, now: Optional[float] = None) -> bool:
        return self.collectors.blink.record_blink(now)

    def observe_eyes(
        self,
        left_openness: float,
        right_openness: Optional[float] = None,
        now: Optional[float] = None
    ) -> bool:
        return self.collectors.eye_detector.observe(left_openness, right_openness, now)

    def text_changed(self, text: str, now: Optional[float] = None) -> None:
        self.collectors.typing.on_text_changed(text, now)

    def gesture_start(self, position: Point, now: Optional[float] = None) -> None:
        self.collectors.swipe.on_gesture_start(position, now)

    def gesture_end(self, position: Point, now: Optional[float] = None) -> Optional[SwipeGesture]:
        return self.collectors.swipe.on_gesture_end(position, now)

    # -------------------------------------------------------------------------
    # Scoring
    # -------------------------------------------------------------------------

    @property
    def last_score(self) -> Optional[ZKScore]:
        return self._last_score

    def recompute(self) -> ZKScore:
        """Score the latest statistics, publish and persist the result."""
        score = self.engine.evaluate(
            self._blink_rate,
            self._typing_speed,
            self._swipe_stability,
        )
        self._last_score = score
        self.score_stream.publish(score)

        self._persist({
            "blinkRate": self._blink_rate,
            "typingSpeed": self._typing_speed,
            "swipeStability": self._swipe_stability,
            "zkScore": score.value,
            "riskLevel": score.risk_tier.value,
        })
        self._cache_baselines()

        logger.debug(
            f"ZKScore for {self.user_id}: {score.value:.3f} ({score.risk_tier.value}) "
            f"from blink={self._blink_rate:.1f}, typing={self._typing_speed:.1f}, "
            f"stability={self._swipe_stability:.3f}"
        )
        return score

    def resume(self) -> SessionSnapshot:
        """
        Seed the inputs from previously persisted statistics.

        The document store wins; the baseline cache is the fallback.
        Missing values keep their defaults.
        """
        restored = False

        record = None
        if self.user_id and self.repository is not None:
            try:
                record = self.repository.load_metrics(self.user_id)
            except PersistenceError as e:
                logger.error(f"Resume read failed for {self.user_id}: {e}")

        if record is not None:
            if record.blink_rate is not None:
                self._blink_rate = record.blink_rate
            if record.typing_speed is not None:
                self._typing_speed = record.typing_speed
            self._swipe_stability = record.resolved_swipe_stability(self._swipe_stability)
            restored = True
        elif self.user_id and self.baseline_cache is not None:
            baselines = self.baseline_cache.get_baselines(self.user_id)
            if baselines["blink_rate"] is not None:
                self._blink_rate = baselines["blink_rate"]
                restored = True
            if baselines["typing_speed"] is not None:
                self._typing_speed = baselines["typing_speed"]
                restored = True
            if baselines["swipe_stability"] is not None:
                self._swipe_stability = baselines["swipe_stability"]
                restored = True

        if restored:
            self._last_score = self.engine.evaluate(
                self._blink_rate,
                self._typing_speed,
                self._swipe_stability,
            )
            logger.info(f"Session resumed for {self.user_id}")
        return self.snapshot()

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            user_id=self.user_id or "",
            monitoring=self._monitoring,
            blink_rate=self._blink_rate,
            typing_speed=self._typing_speed,
            swipe_stability=self._swipe_stability,
            blink_count=self.collectors.blink.count,
            swipe_metrics=self._swipe_stat,
            zk_score=self._last_score,
        )

    # -------------------------------------------------------------------------
    # Collector Subscriptions
    # -------------------------------------------------------------------------

    def _on_blink_rate(self, rate: float) -> None:
        self._blink_rate = rate
        self._persist({"blinkRate": rate})

    def _on_typing_speed(self, wpm: float) -> None:
        self._typing_speed = wpm

    def _on_typing_stat(self, stat: TypingStat) -> None:
        self._typing_speed = stat.words_per_minute
        self._persist({
            "typingSpeed": stat.words_per_minute,
            "averageInterKeyDelay": stat.average_delay_ms,
            "totalWordsTyped": stat.total_words,
            "totalCharactersTyped": stat.total_characters,
        })

    def _on_swipe_stability(self, stability: float) -> None:
        self._swipe_stability = stability

    def _on_swipe_stat(self, stat: SwipeStat) -> None:
        self._swipe_stat = stat
        if stat.count == 0:
            return
        self._swipe_stability = stat.stability
        document = SwipeMetricsDocument.from_stat(stat)
        self._persist({
            "swipeMetrics": document.model_dump(by_alias=True, mode="json"),
            "swipeStability": stat.stability,
        })

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def _persist(self, fields: Dict[str, Any]) -> None:
        """Queue a partial document write; never raises."""
        if self.repository is None:
            return
        if not self.user_id:
            logger.warning("No current user, statistic computed but not persisted")
            return

        user_id = self.user_id
        repository = self.repository

        def write() -> None:
            try:
                repository.save_metrics(user_id, fields)
            except PersistenceError as e:
                logger.error(f"Statistic for {user_id} computed but not persisted: {e}")

        self.scheduler.defer(write, name="metrics-write")

    def _cache_baselines(self) -> None:
        if self.baseline_cache is None or not self.user_id:
            return

        user_id = self.user_id
        cache = self.baseline_cache
        repository = self.repository
        blink_rate, typing_speed, stability = (
            self._blink_rate, self._typing_speed, self._swipe_stability
        )
        now = self.scheduler.now()

        def write() -> None:
            cache.save_baselines(user_id, blink_rate, typing_speed, stability)
            if repository is not None and cache.needs_sync(user_id, now):
                cache.sync_to_store(user_id, repository, now)

        self.scheduler.defer(write, name="baseline-cache")


# =============================================================================
# Session Registry
# =============================================================================

class SessionRegistry:
    """One orchestrator per user, created on demand from the app context."""

    def __init__(self, context: AppContext) -> None:
        self.context = context
        self._sessions: Dict[str, TrustOrchestrator] = {}

    def get(self, user_id: str) -> TrustOrchestrator:
        try:
            return self._sessions[user_id]
        except KeyError:
            raise SessionNotFoundError(user_id) from None

    def get_or_create(self, user_id: str) -> TrustOrchestrator:
        session = self._sessions.get(user_id)
        if session is None:
            session = TrustOrchestrator.from_context(user_id, self.context)
            self._sessions[user_id] = session
        return session

    def remove(self, user_id: str) -> None:
        session = self._sessions.pop(user_id, None)
        if session is not None:
            session.close()

    def user_ids(self) -> List[str]:
        return list(self._sessions)

    def close_all(self) -> None:
        for user_id in list(self._sessions):
            self.remove(user_id)
