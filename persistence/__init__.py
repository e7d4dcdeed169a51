"""
AuraLock Persistence Layer

Public exports for the Redis connection, baseline cache and metrics
document store.
"""

from .connection import create_redis_client, get_redis_client
from .metrics_repository import MetricsRepository
from .baseline_cache import BaselineCache

__all__ = [
    "create_redis_client",
    "get_redis_client",
    "MetricsRepository",
    "BaselineCache",
]
