"""
AuraLock Test Suite - Shared Pytest Fixtures

This conftest.py provides fixtures for all test categories including:
- Deterministic scheduler for collectors and orchestration
- Collector and engine instances
- Mocked Supabase and Redis clients for the persistence layer

Usage:
    pytest tests/ -v -s
"""

import time
from typing import Any, Dict
from unittest.mock import MagicMock

import pytest

from core.collectors import (
    BlinkCollector,
    EyeOpennessDetector,
    SwipeCollector,
    TypingCollector,
)
from core.config import Settings
from core.context import AppContext, CollectorSet
from core.models import ZKScoreEngine
from core.scheduler import ManualScheduler
from persistence.baseline_cache import BaselineCache
from persistence.metrics_repository import MetricsRepository


# =============================================================================
# Scheduler & Collectors
# =============================================================================

@pytest.fixture
def scheduler():
    """Manual scheduler starting at t=0ms."""
    return ManualScheduler(start_ms=0.0)


@pytest.fixture
def blink_collector(scheduler):
    return BlinkCollector(scheduler, cooldown_ms=300.0, window_ms=60_000.0)


@pytest.fixture
def typing_collector(scheduler):
    return TypingCollector(scheduler)


@pytest.fixture
def swipe_collector(scheduler):
    return SwipeCollector(scheduler)


@pytest.fixture
def collector_set(scheduler, blink_collector, typing_collector, swipe_collector):
    return CollectorSet(
        blink=blink_collector,
        typing=typing_collector,
        swipe=swipe_collector,
        eye_detector=EyeOpennessDetector(blink_collector),
    )


@pytest.fixture
def engine():
    return ZKScoreEngine()


# =============================================================================
# Supabase Mock
# =============================================================================

class FakeSupabaseTable:
    """
    Minimal stand-in for the supabase query builder.

    Supports the chains used by MetricsRepository:
        table(...).select("document").eq("user_id", uid).execute()
        table(...).upsert({...}).execute()
    """

    def __init__(self, rows: Dict[str, Dict[str, Any]], delay_s: float = 0.0):
        self._rows = rows
        self._delay_s = delay_s
        self._pending = None

    def select(self, *_columns):
        self._pending = ("select", None)
        return self

    def eq(self, column, value):
        self._pending = ("select", value)
        return self

    def upsert(self, row):
        self._pending = ("upsert", row)
        return self

    def execute(self):
        kind, arg = self._pending
        if self._delay_s:
            time.sleep(self._delay_s)
        response = MagicMock()
        if kind == "upsert":
            self._rows[arg["user_id"]] = {"document": arg["document"]}
            response.data = [arg]
        else:
            row = self._rows.get(arg)
            response.data = [row] if row is not None else []
        return response


class FakeSupabaseClient:
    """
    In-memory user_metrics table keyed by user_id.

    delay_s simulates network latency on every call, which widens the
    window between a read and the following upsert.
    """

    def __init__(self, delay_s: float = 0.0):
        self.rows: Dict[str, Dict[str, Any]] = {}
        self.delay_s = delay_s

    def table(self, name):
        assert name == MetricsRepository.TABLE_NAME
        return FakeSupabaseTable(self.rows, self.delay_s)

    def document(self, user_id: str) -> Dict[str, Any]:
        return self.rows[user_id]["document"]


@pytest.fixture
def supabase_client():
    return FakeSupabaseClient()


@pytest.fixture
def slow_supabase_client():
    """Supabase fake with 50ms latency per call."""
    return FakeSupabaseClient(delay_s=0.05)


@pytest.fixture
def repository(supabase_client):
    return MetricsRepository(client=supabase_client)


@pytest.fixture
def failing_repository():
    """Repository whose client raises on every call."""
    client = MagicMock()
    client.table.side_effect = RuntimeError("connection refused")
    return MetricsRepository(client=client)


# =============================================================================
# Redis Mock
# =============================================================================

class FakeRedis:
    """Hash-only in-memory Redis with decode_responses semantics."""

    def __init__(self):
        self.hashes: Dict[str, Dict[str, str]] = {}

    def hset(self, key, field=None, value=None, mapping=None):
        target = self.hashes.setdefault(key, {})
        if mapping:
            for name, item in mapping.items():
                target[name] = str(item)
        if field is not None:
            target[field] = str(value)
        return 1

    def hget(self, key, field):
        return self.hashes.get(key, {}).get(field)

    def hgetall(self, key):
        return dict(self.hashes.get(key, {}))

    def delete(self, key):
        return 1 if self.hashes.pop(key, None) is not None else 0


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def baseline_cache(fake_redis):
    return BaselineCache(fake_redis, sync_interval_hours=24.0)


# =============================================================================
# Application Context
# =============================================================================

@pytest.fixture
def app_context(scheduler, engine, repository, baseline_cache):
    """Context wired to the manual scheduler and in-memory backends."""
    return AppContext(
        settings=Settings(score_recompute_seconds=60.0),
        scheduler=scheduler,
        engine=engine,
        repository=repository,
        baseline_cache=baseline_cache,
    )
