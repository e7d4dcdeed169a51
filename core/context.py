"""
AuraLock Application Context

Explicit wiring of the shared services. The context is built once at
startup and handed to whatever needs it; nothing is looked up through
globals.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from redis.exceptions import RedisError

from core.collectors import (
    BlinkCollector,
    BlinkSimulator,
    EyeOpennessDetector,
    SwipeCollector,
    TypingCollector,
)
from core.config import Settings
from core.models import ZKScoreEngine
from core.scheduler import Scheduler
from persistence.baseline_cache import BaselineCache
from persistence.connection import get_redis_client
from persistence.metrics_repository import MetricsRepository


logger = logging.getLogger(__name__)


@dataclass
class CollectorSet:
    """The collectors (and blink sources) of one monitoring session."""
    blink: BlinkCollector
    typing: TypingCollector
    swipe: SwipeCollector
    eye_detector: EyeOpennessDetector
    blink_simulator: Optional[BlinkSimulator] = None


@dataclass
class AppContext:
    """Services shared by every monitoring session."""
    settings: Settings
    scheduler: Scheduler
    engine: ZKScoreEngine
    repository: Optional[MetricsRepository] = None
    baseline_cache: Optional[BaselineCache] = None

    def build_collectors(self) -> CollectorSet:
        """Fresh collectors configured from settings."""
        blink = BlinkCollector(
            self.scheduler,
            cooldown_ms=self.settings.blink_cooldown_ms,
            window_ms=self.settings.blink_window_seconds * 1000.0,
        )
        simulator = None
        if self.settings.blink_simulation:
            simulator = BlinkSimulator(
                blink,
                self.scheduler,
                interval_ms=self.settings.blink_simulation_interval_seconds * 1000.0,
                probability=self.settings.blink_simulation_probability,
            )
        return CollectorSet(
            blink=blink,
            typing=TypingCollector(self.scheduler),
            swipe=SwipeCollector(self.scheduler),
            eye_detector=EyeOpennessDetector(blink, threshold=self.settings.eye_open_threshold),
            blink_simulator=simulator,
        )


def build_app_context(settings: Settings, scheduler: Scheduler) -> AppContext:
    """
    Build the context from settings.

    Missing or unreachable backends disable the matching feature instead
    of failing startup.
    """
    repository = MetricsRepository(settings=settings)

    baseline_cache = None
    try:
        baseline_cache = BaselineCache(
            get_redis_client(),
            sync_interval_hours=settings.baseline_sync_hours,
        )
    except (ValueError, RedisError) as e:
        logger.warning(f"Baseline cache disabled: {e}")

    return AppContext(
        settings=settings,
        scheduler=scheduler,
        engine=ZKScoreEngine(),
        repository=repository,
        baseline_cache=baseline_cache,
    )
