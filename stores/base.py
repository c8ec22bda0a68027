"""
Base record store interface and the startup-time backend selector.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Tuple

from errors import ConnectionSetupError
from observability import build_log_context, log_event

from .record import Record

logger = logging.getLogger(__name__)

DEFAULT_KEY_PREFIX = "/polycloud/records"
DEFAULT_TIMEOUT_SECONDS = 5.0


class RecordStore(ABC):
    """
    Abstract base class for record store backends.

    Implementations are thread-safe and blocking; callers may issue operations
    concurrently without extra locking. "Not there" is never an error:
    `get` returns None and `delete` of an absent name succeeds.
    """

    @abstractmethod
    def list(self) -> List[Record]:
        """Return a snapshot of all records, in no particular order."""
        pass

    @abstractmethod
    def get(self, name: str) -> Optional[Record]:
        """Return the record stored under `name`, or None."""
        pass

    @abstractmethod
    def put(self, record: Record) -> None:
        """Insert or wholesale replace the record keyed by `record.name`."""
        pass

    @abstractmethod
    def delete(self, name: str) -> None:
        """Remove the record if present."""
        pass

    # Health check
    @abstractmethod
    def ping(self) -> bool:
        """Check if store is healthy."""
        pass

    def close(self) -> None:
        """Release backend resources. Safe to call more than once."""
        pass

    def __enter__(self) -> "RecordStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


@dataclass(frozen=True)
class StoreConfig:
    """
    Everything the selector needs to pick a backend.

    An empty `endpoints` tuple selects the in-memory store.
    """

    endpoints: Tuple[str, ...] = ()
    prefix: str = DEFAULT_KEY_PREFIX
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS


def parse_endpoints(raw: Optional[str]) -> Tuple[str, ...]:
    """Split a comma-delimited endpoint list, trimming whitespace and dropping blanks."""
    if not raw:
        return ()
    return tuple(part.strip() for part in raw.split(",") if part.strip())


def get_record_store(config: StoreConfig) -> RecordStore:
    """
    Build the record store the rest of the process will use.

    - No endpoints: in-memory store.
    - Endpoints: Redis-backed store. If no endpoint answers at startup, fall
      back to the in-memory store and keep running. The fallback is logged at
      WARNING and emitted as a `record_store_fallback` event.
    """
    from .memory_store import InMemoryRecordStore

    ctx = build_log_context(tool="store_selector")

    if not config.endpoints:
        logger.info("STORE_ENDPOINTS not set, using in-memory record store")
        log_event("record_store_selected", ctx=ctx, data={"backend": "memory"})
        return InMemoryRecordStore()

    from .redis_store import RedisRecordStore

    logger.info(f"Connecting to record backend at {list(config.endpoints)} with prefix {config.prefix}")
    try:
        store = RedisRecordStore(
            list(config.endpoints),
            prefix=config.prefix,
            timeout_seconds=config.timeout_seconds,
        )
    except ConnectionSetupError as e:
        logger.warning(f"Record backend unreachable, falling back to in-memory store (data will not persist): {e}")
        log_event(
            "record_store_fallback",
            ctx=ctx,
            data={
                "backend": "memory",
                "endpoints": list(config.endpoints),
                "error": e.to_dict(),
            },
        )
        return InMemoryRecordStore()

    log_event(
        "record_store_selected",
        ctx=ctx,
        data={"backend": "redis", "endpoint": store.endpoint, "prefix": store.prefix},
    )
    return store
