"""
Shared fixtures: a dict-backed stand-in for a redis.Redis client.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Union
from unittest.mock import patch

import pytest
import redis.exceptions


def _as_bytes(value: Union[str, bytes]) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else value


def _as_key(key: Union[str, bytes]) -> str:
    return key.decode("utf-8") if isinstance(key, bytes) else key


class FakeRedis:
    """
    Implements the handful of client calls RedisRecordStore makes.

    Replies are bytes, as redis-py returns them with `decode_responses=False`.
    `data` maps key to stored bytes; tests may plant arbitrary bytes there.

    Set `fail_with` to an exception instance to make every data call raise it.
    Set `scan_repeats` above 1 to have SCAN report every key that many times,
    which real Redis is allowed to do.
    """

    def __init__(self) -> None:
        self.data: Dict[str, bytes] = {}
        self.fail_with: Optional[Exception] = None
        self.ping_error: Optional[Exception] = None
        self.close_calls = 0
        self.scan_patterns: List[str] = []
        self.scan_repeats = 1
        self.mget_calls: List[List[bytes]] = []

    def _check(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    def ping(self) -> bool:
        if self.ping_error is not None:
            raise self.ping_error
        return True

    def get(self, key) -> Optional[bytes]:
        self._check()
        return self.data.get(_as_key(key))

    def set(self, key, value) -> bool:
        self._check()
        self.data[_as_key(key)] = _as_bytes(value)
        return True

    def delete(self, *keys) -> int:
        self._check()
        removed = 0
        for key in keys:
            if self.data.pop(_as_key(key), None) is not None:
                removed += 1
        return removed

    def mget(self, keys) -> List[Optional[bytes]]:
        self._check()
        self.mget_calls.append(list(keys))
        return [self.data.get(_as_key(k)) for k in keys]

    def scan_iter(self, match: str = "*", count: Optional[int] = None):
        self._check()
        self.scan_patterns.append(match)
        assert match.endswith("*")
        prefix = match[:-1].replace("\\", "")
        for _ in range(self.scan_repeats):
            for key in list(self.data):
                if key.startswith(prefix):
                    yield key.encode("utf-8")

    def close(self) -> None:
        self.close_calls += 1


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def redis_store(fake_redis):
    from stores.redis_store import RedisRecordStore

    with patch("redis.Redis.from_url", return_value=fake_redis):
        store = RedisRecordStore(["localhost:6379"], prefix="/ns", timeout_seconds=2.0)
    yield store
    store.close()


@pytest.fixture
def unreachable_error():
    return redis.exceptions.ConnectionError("Error 111 connecting to localhost:6379. Connection refused.")
