"""Tests for Redis caching implementation."""

from unittest.mock import MagicMock
from uuid import uuid4

import pytest
import redis

from app.core.redis_client import CacheManager
from app.schemas.users import Role
from app.services.user_service import UserService


def test_cache_manager_get_json():
    """Test CacheManager get_json method."""
    mock_redis = MagicMock()
    cache_manager = CacheManager(redis_client=mock_redis)

    # Test cache miss
    mock_redis.get.return_value = None
    result = cache_manager.get_json("test_key")
    assert result is None
    mock_redis.get.assert_called_once_with("test_key")

    # Test cache hit
    mock_redis.reset_mock()
    mock_redis.get.return_value = '{"role": "patient", "first_name": "Anna"}'
    result = cache_manager.get_json("test_key")
    assert result == {"role": "patient", "first_name": "Anna"}


def test_cache_manager_set_json():
    """Test CacheManager set_json method."""
    mock_redis = MagicMock()
    cache_manager = CacheManager(redis_client=mock_redis)

    # Test without TTL
    assert cache_manager.set_json("test_key", {"id": 1}) is True
    mock_redis.set.assert_called_once_with("test_key", '{"id": 1}')

    # Test with TTL
    mock_redis.reset_mock()
    assert cache_manager.set_json("test_key", {"id": 1}, ttl=300) is True
    mock_redis.setex.assert_called_once_with("test_key", 300, '{"id": 1}')


def test_cache_manager_delete():
    """Test CacheManager delete method."""
    mock_redis = MagicMock()
    cache_manager = CacheManager(redis_client=mock_redis)

    assert cache_manager.delete("test_key") is True
    mock_redis.delete.assert_called_once_with("test_key")


def test_cache_manager_treats_redis_errors_as_misses():
    """Test a failing Redis never breaks the caller."""
    mock_redis = MagicMock()
    mock_redis.get.side_effect = redis.ConnectionError("down")
    mock_redis.setex.side_effect = redis.ConnectionError("down")
    mock_redis.delete.side_effect = redis.ConnectionError("down")
    cache_manager = CacheManager(redis_client=mock_redis)

    assert cache_manager.get_json("test_key") is None
    assert cache_manager.set_json("test_key", {"id": 1}, ttl=60) is False
    assert cache_manager.delete("test_key") is False


def test_cache_manager_ignores_corrupt_entries():
    mock_redis = MagicMock()
    mock_redis.get.return_value = "{not json"
    assert CacheManager(redis_client=mock_redis).get_json("test_key") is None


@pytest.mark.asyncio
async def test_user_lookup_populates_cache(db_session, patient):
    """Test a database read is written back to the cache."""
    mock_cache = MagicMock()
    mock_cache.get_json.return_value = None
    service = UserService(cache_manager=mock_cache)

    user = await service.get_user_by_id(db_session, patient.id)

    assert user == patient
    mock_cache.get_json.assert_called_once_with(f"user:{patient.id}")
    mock_cache.set_json.assert_called_once()
    key, payload = mock_cache.set_json.call_args.args
    assert key == f"user:{patient.id}"
    assert payload["role"] == "patient"
    assert mock_cache.set_json.call_args.kwargs["ttl"] == UserService.USER_CACHE_TTL


@pytest.mark.asyncio
async def test_user_lookup_served_from_cache(db_session):
    """Test a cache hit skips the database."""
    user_id = uuid4()
    mock_cache = MagicMock()
    mock_cache.get_json.return_value = {
        "id": str(user_id),
        "role": "doctor",
        "first_name": "Ewa",
        "last_name": "Lis",
        "phone_number": None,
    }
    service = UserService(cache_manager=mock_cache)

    # The user does not exist in the database, so only the cache can answer
    user = await service.get_user_by_id(db_session, user_id)

    assert user is not None
    assert user.role == Role.DOCTOR
    mock_cache.set_json.assert_not_called()


@pytest.mark.asyncio
async def test_missing_user_is_not_cached(db_session):
    mock_cache = MagicMock()
    mock_cache.get_json.return_value = None

    assert await UserService(cache_manager=mock_cache).get_user_by_id(db_session, uuid4()) is None
    mock_cache.set_json.assert_not_called()
