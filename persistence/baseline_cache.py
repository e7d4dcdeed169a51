"""
AuraLock Baseline Cache

Redis-backed cache of each user's latest behavioral baselines, with
periodic mirroring into the document store.

Key Schema:
    BASELINE:{user_id}   # Redis HASH
        blink_rate       -> float
        typing_speed     -> float
        swipe_stability  -> float
        last_sync_ms     -> epoch ms of the last sync with the store

Redis failures fail open: reads return empty baselines, writes return
False, and needs_sync() reports True.
"""

from __future__ import annotations

import logging
import time
from typing import Dict, Optional

import redis
from redis.exceptions import RedisError

from core.errors import PersistenceError
from persistence.metrics_repository import MetricsRepository


logger = logging.getLogger(__name__)


BASELINE_FIELDS = ("blink_rate", "typing_speed", "swipe_stability")

# Stored field name -> document key under localBaselines
DOCUMENT_KEYS = {
    "blink_rate": "blinkRate",
    "typing_speed": "typingSpeed",
    "swipe_stability": "swipeStability",
}


class BaselineCache:
    """
    Per-user baseline store in Redis.

    Restored values seed a resumed session when the document store has
    nothing for the user.
    """

    def __init__(self, client: redis.Redis, sync_interval_hours: float = 24.0) -> None:
        self.client = client
        self.sync_interval_ms = sync_interval_hours * 3600.0 * 1000.0

    def _key(self, user_id: str) -> str:
        return f"BASELINE:{user_id}"

    # -------------------------------------------------------------------------
    # Baselines
    # -------------------------------------------------------------------------

    def save_baselines(
        self,
        user_id: str,
        blink_rate: float,
        typing_speed: float,
        swipe_stability: float
    ) -> bool:
        """Store all three baselines at once."""
        try:
            self.client.hset(self._key(user_id), mapping={
                "blink_rate": blink_rate,
                "typing_speed": typing_speed,
                "swipe_stability": swipe_stability,
            })
            return True
        except RedisError as e:
            logger.warning(f"Baseline write failed for {user_id}: {e}")
            return False

    def get_baselines(self, user_id: str) -> Dict[str, Optional[float]]:
        """Cached baselines; missing values are None."""
        baselines: Dict[str, Optional[float]] = {name: None for name in BASELINE_FIELDS}
        try:
            raw = self.client.hgetall(self._key(user_id))
        except RedisError as e:
            logger.warning(f"Baseline read failed for {user_id}: {e}")
            return baselines

        for name in BASELINE_FIELDS:
            value = raw.get(name)
            if value is None:
                continue
            try:
                baselines[name] = float(value)
            except (TypeError, ValueError):
                logger.warning(f"Corrupt baseline {name}={value!r} for {user_id}")
        return baselines

    def clear(self, user_id: str) -> None:
        try:
            self.client.delete(self._key(user_id))
        except RedisError as e:
            logger.warning(f"Failed to clear baselines for {user_id}: {e}")

    # -------------------------------------------------------------------------
    # Sync Bookkeeping
    # -------------------------------------------------------------------------

    def last_sync_time(self, user_id: str) -> Optional[float]:
        try:
            value = self.client.hget(self._key(user_id), "last_sync_ms")
        except RedisError as e:
            logger.warning(f"Sync timestamp read failed for {user_id}: {e}")
            return None
        return float(value) if value is not None else None

    def needs_sync(self, user_id: str, now: Optional[float] = None) -> bool:
        """True when the user was never synced or the last sync is stale."""
        last_sync = self.last_sync_time(user_id)
        if last_sync is None:
            return True
        now = time.time() * 1000.0 if now is None else now
        return now - last_sync >= self.sync_interval_ms

    def _mark_synced(self, user_id: str, now: Optional[float] = None) -> None:
        now = time.time() * 1000.0 if now is None else now
        try:
            self.client.hset(self._key(user_id), "last_sync_ms", now)
        except RedisError as e:
            logger.warning(f"Sync timestamp write failed for {user_id}: {e}")

    def sync_to_store(
        self,
        user_id: str,
        repository: MetricsRepository,
        now: Optional[float] = None
    ) -> bool:
        """Mirror complete baselines into the user's localBaselines document."""
        baselines = self.get_baselines(user_id)
        if any(value is None for value in baselines.values()):
            logger.debug(f"Incomplete baselines for {user_id}, skipping sync")
            return False

        try:
            written = repository.save_metrics(user_id, {
                "localBaselines": {
                    DOCUMENT_KEYS[name]: value for name, value in baselines.items()
                },
            })
        except PersistenceError as e:
            logger.error(f"Baseline sync to store failed for {user_id}: {e}")
            return False

        if written:
            self._mark_synced(user_id, now)
            logger.info(f"Baselines synced to store for {user_id}")
        return written

    def sync_from_store(
        self,
        user_id: str,
        repository: MetricsRepository,
        now: Optional[float] = None
    ) -> bool:
        """Restore baselines from the user's localBaselines document."""
        try:
            record = repository.load_metrics(user_id)
        except PersistenceError as e:
            logger.error(f"Baseline sync from store failed for {user_id}: {e}")
            return False

        if record is None or record.local_baselines is None:
            logger.debug(f"No stored baselines for {user_id}")
            return False

        stored = record.local_baselines
        saved = self.save_baselines(
            user_id,
            blink_rate=stored.blink_rate if stored.blink_rate is not None else 0.0,
            typing_speed=stored.typing_speed if stored.typing_speed is not None else 0.0,
            swipe_stability=stored.swipe_stability if stored.swipe_stability is not None else 1.0,
        )
        if saved:
            self._mark_synced(user_id, now)
        return saved
