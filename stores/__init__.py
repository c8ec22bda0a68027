"""
Record store implementations.

This package provides one contract with two interchangeable backends:
- In-memory (default, single-process, lost on restart)
- Redis (distributed, shared across processes)

The backend is chosen once at startup by `get_record_store(StoreConfig(...))`:
- no endpoints configured: in-memory
- endpoints configured: Redis, falling back to in-memory if unreachable
"""

from .base import DEFAULT_KEY_PREFIX, RecordStore, StoreConfig, get_record_store, parse_endpoints
from .memory_store import InMemoryRecordStore
from .record import DEFAULT_RECORD_TYPE, DEFAULT_TTL_SECONDS, Record

# The Redis backend is imported on first use so processes running the
# in-memory backend never load the redis client.
_LAZY_EXPORTS = {"RedisRecordStore", "record_key"}


def __getattr__(name):
    if name in _LAZY_EXPORTS:
        from . import redis_store

        return getattr(redis_store, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "DEFAULT_KEY_PREFIX",
    "DEFAULT_RECORD_TYPE",
    "DEFAULT_TTL_SECONDS",
    "InMemoryRecordStore",
    "Record",
    "RecordStore",
    "RedisRecordStore",
    "StoreConfig",
    "get_record_store",
    "parse_endpoints",
    "record_key",
]
