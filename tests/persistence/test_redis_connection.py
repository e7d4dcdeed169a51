"""
Redis Connection Tests

Client construction from settings, with the network layer mocked out.
"""

from unittest.mock import MagicMock, patch

import pytest
from redis.exceptions import AuthenticationError, ConnectionError as RedisConnectionError

from core.config import Settings
from persistence.connection import create_redis_client


class TestCreateRedisClient:

    def test_missing_password_is_rejected(self):
        with pytest.raises(ValueError):
            create_redis_client(Settings(redis_password=None))

    @patch("persistence.connection.redis.Redis")
    @patch("persistence.connection.redis.ConnectionPool")
    def test_pool_uses_settings(self, mock_pool, mock_redis):
        settings = Settings(redis_host="cache", redis_port=6380, redis_password="secret")

        client = create_redis_client(settings)

        _, kwargs = mock_pool.call_args
        assert kwargs["host"] == "cache"
        assert kwargs["port"] == 6380
        assert kwargs["password"] == "secret"
        assert kwargs["decode_responses"] is True
        mock_redis.return_value.ping.assert_called_once()
        assert client is mock_redis.return_value

    @pytest.mark.parametrize("error", [
        AuthenticationError("bad password"),
        RedisConnectionError("refused"),
    ])
    def test_ping_failure_propagates(self, error):
        fake_client = MagicMock()
        fake_client.ping.side_effect = error

        with patch("persistence.connection.redis.ConnectionPool"), \
                patch("persistence.connection.redis.Redis", return_value=fake_client):
            with pytest.raises(type(error)):
                create_redis_client(Settings(redis_password="secret"))
