"""
Redis record store implementation for distributed deployments.

Every record lives at `<prefix>/<name>` as its JSON wire form, one key per
record and no secondary indexes. The client hands back raw bytes; decoding
happens per record so one bad value cannot fail a whole listing.
"""

from __future__ import annotations

import logging
import threading
from typing import List, Optional, Sequence

import redis
from redis.backoff import NoBackoff
from redis.exceptions import RedisError
from redis.retry import Retry

from errors import BackendUnavailableError, ConnectionSetupError, SerializationError
from observability.tracing import traced

from .base import DEFAULT_KEY_PREFIX, DEFAULT_TIMEOUT_SECONDS, RecordStore
from .record import Record

logger = logging.getLogger(__name__)

KEY_SEPARATOR = "/"

# SCAN batch size hint
_SCAN_COUNT = 500

_GLOB_SPECIAL = "\\*?[]"


def record_key(prefix: str, name: str) -> str:
    """
    Derive the remote key for a record name.

    The separator appears exactly once between prefix and name, whether or
    not the configured prefix already ends with one.
    """
    return prefix.rstrip(KEY_SEPARATOR) + KEY_SEPARATOR + name


def _escape_glob(value: str) -> str:
    return "".join("\\" + ch if ch in _GLOB_SPECIAL else ch for ch in value)


def _key_text(raw_key) -> str:
    """Keys come back from SCAN as bytes; they are only used in log lines and errors."""
    if isinstance(raw_key, bytes):
        return raw_key.decode("utf-8", errors="backslashreplace")
    return raw_key


def _endpoint_url(endpoint: str) -> str:
    """Accept bare `host:port` as well as full redis URLs."""
    if "://" in endpoint:
        return endpoint
    return f"redis://{endpoint}"


class RedisRecordStore(RecordStore):
    """
    Redis-backed record store for distributed deployments.

    - Connects at construction time; the first endpoint that answers PING wins
    - Each remote call is bounded by `timeout_seconds` and never retried here
    - Concurrent puts to one name: last write accepted by Redis wins
    - The client is released exactly once by `close()`

    Requires: redis package (pip install redis)
    """

    def __init__(
        self,
        endpoints: Sequence[str],
        prefix: str = DEFAULT_KEY_PREFIX,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        endpoints = list(endpoints)
        if not endpoints:
            raise ConnectionSetupError(endpoints, "no endpoints configured")

        self._prefix = prefix
        self._close_lock = threading.Lock()
        self._closed = False
        self._client: Optional[redis.Redis] = None
        self._endpoint: Optional[str] = None

        failures = []
        for endpoint in endpoints:
            client = None
            try:
                client = redis.Redis.from_url(
                    _endpoint_url(endpoint),
                    decode_responses=False,
                    socket_timeout=timeout_seconds,
                    socket_connect_timeout=timeout_seconds,
                    retry_on_timeout=False,
                    retry=Retry(NoBackoff(), 0),
                )
                client.ping()
            except (RedisError, ValueError) as e:
                logger.warning(f"Record backend endpoint {endpoint} unavailable: {e}")
                failures.append(f"{endpoint}: {e}")
                if client is not None:
                    client.close()
                continue

            self._client = client
            self._endpoint = endpoint
            break

        if self._client is None:
            logger.error(f"Failed to connect to any record backend endpoint: {endpoints}")
            raise ConnectionSetupError(endpoints, "; ".join(failures))

        logger.info(f"Connected to record backend at {self._endpoint} (prefix {self._prefix})")

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def endpoint(self) -> Optional[str]:
        return self._endpoint

    def _key(self, name: str) -> str:
        return record_key(self._prefix, name)

    def _scan_pattern(self) -> str:
        return _escape_glob(self._prefix.rstrip(KEY_SEPARATOR) + KEY_SEPARATOR) + "*"

    @traced("record_store.list", attributes={"backend": "redis"})
    def list(self) -> List[Record]:
        try:
            # SCAN may yield the same key more than once
            raw_keys = list(dict.fromkeys(self._client.scan_iter(match=self._scan_pattern(), count=_SCAN_COUNT)))
            raw_values = self._client.mget(raw_keys) if raw_keys else []
        except RedisError as e:
            raise BackendUnavailableError("list", str(e), key=self._prefix) from e

        records: List[Record] = []
        for raw_key, raw in zip(raw_keys, raw_values):
            if raw is None:
                # deleted between SCAN and MGET
                continue
            key = _key_text(raw_key)
            try:
                records.append(Record.from_json(raw, key=key))
            except SerializationError as e:
                logger.warning(f"Skipping undecodable record at {key}: {e.message}")
        return records

    @traced("record_store.get", attributes={"backend": "redis"})
    def get(self, name: str) -> Optional[Record]:
        key = self._key(name)
        try:
            raw = self._client.get(key)
        except RedisError as e:
            raise BackendUnavailableError("get", str(e), key=key) from e

        if raw is None:
            return None
        return Record.from_json(raw, key=key)

    @traced("record_store.put", attributes={"backend": "redis"})
    def put(self, record: Record) -> None:
        key = self._key(record.name)
        try:
            self._client.set(key, record.to_json())
        except RedisError as e:
            raise BackendUnavailableError("put", str(e), key=key) from e

    @traced("record_store.delete", attributes={"backend": "redis"})
    def delete(self, name: str) -> None:
        key = self._key(name)
        try:
            self._client.delete(key)
        except RedisError as e:
            raise BackendUnavailableError("delete", str(e), key=key) from e

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except RedisError:
            return False

    def close(self) -> None:
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
        try:
            self._client.close()
            logger.info(f"Closed record backend connection to {self._endpoint}")
        except RedisError as e:
            logger.error(f"Redis close error: {e}")
