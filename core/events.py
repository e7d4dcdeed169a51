"""
AuraLock Metric Streams

Publish/subscribe channel for live collector metrics.

A producer publishes immutable snapshots; any number of consumers
(scoring, persistence, API snapshots) subscribe without the producer
knowing who they are. Publishing with no subscribers is a no-op.
"""

from __future__ import annotations

import logging
from typing import Callable, Generic, List, Optional, TypeVar


logger = logging.getLogger(__name__)

T = TypeVar("T")
Handler = Callable[[T], None]


class MetricStream(Generic[T]):
    """Broadcast channel for a single metric."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._subscribers: List[Handler] = []
        self._latest: Optional[T] = None
        self._closed = False

    @property
    def latest(self) -> Optional[T]:
        """Last published value, or None before the first publish."""
        return self._latest

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, handler: Handler) -> Callable[[], None]:
        """
        Register a handler; returns a callable that removes it again.
        """
        self._subscribers.append(handler)

        def unsubscribe() -> None:
            if handler in self._subscribers:
                self._subscribers.remove(handler)

        return unsubscribe

    def publish(self, value: T) -> None:
        """Deliver a value to every subscriber. Handler errors are isolated."""
        if self._closed:
            return
        self._latest = value
        for handler in list(self._subscribers):
            try:
                handler(value)
            except Exception as e:
                logger.error(f"Subscriber of stream '{self.name}' failed: {e}")

    def close(self) -> None:
        """Drop all subscribers and ignore further publishes."""
        self._closed = True
        self._subscribers.clear()
