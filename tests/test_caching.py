"""Tests for the Redis cache manager."""

from unittest.mock import MagicMock

import redis

from clinic_gateway.core.redis_client import CacheManager


def test_cache_manager_get_json():
    """Test CacheManager get_json method."""
    mock_redis = MagicMock()
    cache_manager = CacheManager(redis_client=mock_redis)

    # Cache miss
    mock_redis.get.return_value = None
    assert cache_manager.get_json("diagnosis_draft:1") is None
    mock_redis.get.assert_called_once_with("diagnosis_draft:1")

    # Cache hit
    mock_redis.reset_mock()
    mock_redis.get.return_value = '{"diagnosis": "Gripe", "recommendations": ""}'
    result = cache_manager.get_json("diagnosis_draft:1")
    assert result == {"diagnosis": "Gripe", "recommendations": ""}


def test_cache_manager_set_json():
    """Test CacheManager set_json method."""
    mock_redis = MagicMock()
    cache_manager = CacheManager(redis_client=mock_redis)

    assert cache_manager.set_json("key", {"value": 1}) is True
    mock_redis.set.assert_called_once_with("key", '{"value": 1}')

    mock_redis.reset_mock()
    assert cache_manager.set_json("key", {"value": 1}, ttl=300) is True
    mock_redis.setex.assert_called_once_with("key", 300, '{"value": 1}')


def test_cache_manager_exists_and_delete():
    """Test CacheManager exists and delete methods."""
    mock_redis = MagicMock()
    cache_manager = CacheManager(redis_client=mock_redis)

    mock_redis.exists.return_value = 1
    assert cache_manager.exists("blacklist:token") is True

    assert cache_manager.delete("blacklist:token") is True
    mock_redis.delete.assert_called_once_with("blacklist:token")


def test_cache_manager_degrades_when_redis_is_down():
    """Reads miss and writes report failure instead of raising."""
    mock_redis = MagicMock()
    error = redis.ConnectionError("connection refused")
    mock_redis.get.side_effect = error
    mock_redis.setex.side_effect = error
    mock_redis.exists.side_effect = error
    cache_manager = CacheManager(redis_client=mock_redis)

    assert cache_manager.get_json("key") is None
    assert cache_manager.set("key", "1", ttl=10) is False
    assert cache_manager.exists("key") is False
