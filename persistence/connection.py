import logging
from functools import lru_cache

import redis
from redis.exceptions import RedisError, AuthenticationError

from core.config import Settings, get_settings

# Configure module-level logger
logger = logging.getLogger(__name__)

MAX_CONNECTIONS = 20
SOCKET_TIMEOUT_SECONDS = 5.0


def create_redis_client(settings: Settings) -> redis.Redis:
    """
    Build a pooled Redis client for the baseline cache and ping it.

    Raises:
        ValueError: REDIS_PASSWORD is not configured.
        RedisError: the server is unreachable or rejects the credentials.
    """
    if not settings.redis_password:
        logger.critical("REDIS_PASSWORD environment variable is not set.")
        raise ValueError("REDIS_PASSWORD is required for the baseline cache.")

    pool = redis.ConnectionPool(
        host=settings.redis_host,
        port=settings.redis_port,
        password=settings.redis_password,
        decode_responses=True,  # Hash values come back as str
        max_connections=MAX_CONNECTIONS,
        socket_timeout=SOCKET_TIMEOUT_SECONDS,
    )
    client = redis.Redis(connection_pool=pool)

    try:
        client.ping()
    except AuthenticationError:
        logger.critical("Redis authentication failed. Check REDIS_PASSWORD.")
        raise
    except RedisError as e:
        logger.critical(f"Could not reach Redis at {settings.redis_host}:{settings.redis_port}: {e}")
        raise

    logger.info(f"Baseline cache connected to Redis at {settings.redis_host}:{settings.redis_port}")
    return client


@lru_cache(maxsize=1)
def get_redis_client() -> redis.Redis:
    """Process-wide client built from the cached settings."""
    return create_redis_client(get_settings())
