"""
Tests for the Redis-backed record store, using an in-process client double.
"""

from __future__ import annotations

import logging
from unittest.mock import patch

import pytest
import redis.exceptions

from errors import BackendUnavailableError, ConnectionSetupError, SerializationError
from stores import Record


def _record(name: str, *values: str) -> Record:
    return Record(name=name, type="A", values=list(values or ("10.0.0.1",)), ttl=60)


class TestRecordKey:
    @pytest.mark.parametrize("prefix", ["/ns", "/ns/", "/ns//"])
    def test_single_separator(self, prefix):
        from stores.redis_store import record_key

        assert record_key(prefix, "a.b") == "/ns/a.b"

    def test_default_prefix(self):
        from stores.base import DEFAULT_KEY_PREFIX
        from stores.redis_store import record_key

        assert record_key(DEFAULT_KEY_PREFIX, "web.local") == "/polycloud/records/web.local"


class TestRedisRecordStore:
    def test_put_writes_wire_form_under_prefix(self, redis_store, fake_redis):
        redis_store.put(Record(name="a.b", type="A", values=["10.0.0.1"], ttl=300))

        assert fake_redis.data == {"/ns/a.b": b'{"name":"a.b","type":"A","values":["10.0.0.1"],"ttl":300}'}

    def test_put_get_round_trip(self, redis_store):
        record = Record(name="web.local", type="A", values=["10.0.0.1", "10.0.0.2"], ttl=300)
        redis_store.put(record)
        assert redis_store.get("web.local") == record

    def test_get_missing_returns_none(self, redis_store):
        assert redis_store.get("missing") is None

    def test_put_replaces_wholesale(self, redis_store):
        redis_store.put(Record(name="web", type="A", values=["10.0.0.1", "10.0.0.2"], ttl=300))
        redis_store.put(Record(name="web", type="A", values=["10.0.0.3"], ttl=300))

        assert redis_store.get("web").values == ("10.0.0.3",)

    def test_list_only_returns_keys_under_prefix(self, redis_store, fake_redis):
        for name in ("a", "b", "c"):
            redis_store.put(_record(name))
        fake_redis.data["/other/x"] = _record("x").to_json().encode()
        fake_redis.data["/nsx/y"] = _record("y").to_json().encode()

        records = redis_store.list()

        assert sorted(r.name for r in records) == ["a", "b", "c"]
        assert fake_redis.scan_patterns == ["/ns/*"]

    def test_list_skips_corrupt_entry(self, redis_store, fake_redis, caplog):
        redis_store.put(_record("good1"))
        redis_store.put(_record("good2"))
        fake_redis.data["/ns/bad"] = b"{not json"

        with caplog.at_level(logging.WARNING, logger="stores.redis_store"):
            records = redis_store.list()

        assert sorted(r.name for r in records) == ["good1", "good2"]
        assert any("/ns/bad" in r.getMessage() for r in caplog.records)

    def test_list_empty(self, redis_store):
        assert redis_store.list() == []

    def test_get_corrupt_entry_raises(self, redis_store, fake_redis):
        fake_redis.data["/ns/bad"] = b"{not json"

        with pytest.raises(SerializationError) as exc_info:
            redis_store.get("bad")
        assert exc_info.value.data["key"] == "/ns/bad"

    def test_list_skips_non_utf8_value(self, redis_store, fake_redis, caplog):
        redis_store.put(_record("a"))
        redis_store.put(_record("b"))
        fake_redis.data["/ns/bad"] = b"\xff\xfe\x00garbage"

        with caplog.at_level(logging.WARNING, logger="stores.redis_store"):
            records = redis_store.list()

        assert sorted(r.name for r in records) == ["a", "b"]
        assert any("/ns/bad" in r.getMessage() and "utf-8" in r.getMessage() for r in caplog.records)

    def test_get_non_utf8_value_raises_serialization_error(self, redis_store, fake_redis):
        fake_redis.data["/ns/bad"] = b"\xff\xfe\x00garbage"

        with pytest.raises(SerializationError) as exc_info:
            redis_store.get("bad")
        assert exc_info.value.code == "STORE_302"
        assert exc_info.value.data["key"] == "/ns/bad"

    def test_list_returns_each_record_once_when_scan_repeats_keys(self, redis_store, fake_redis):
        redis_store.put(_record("only"))
        fake_redis.scan_repeats = 2

        records = redis_store.list()

        assert [r.name for r in records] == ["only"]
        assert fake_redis.mget_calls == [[b"/ns/only"]]

    def test_decoded_record_is_not_defaulted(self, redis_store, fake_redis):
        fake_redis.data["/ns/bare"] = b'{"name":"bare","values":["1.1.1.1"]}'

        record = redis_store.get("bare")
        assert record.type == ""
        assert record.ttl == 0

    def test_delete_is_idempotent(self, redis_store, fake_redis):
        redis_store.delete("never-stored")

        redis_store.put(_record("gone"))
        redis_store.delete("gone")
        redis_store.delete("gone")
        assert "/ns/gone" not in fake_redis.data

    @pytest.mark.parametrize(
        "call",
        [
            lambda s: s.list(),
            lambda s: s.get("x"),
            lambda s: s.put(Record(name="x", type="A", values=["1.1.1.1"], ttl=60)),
            lambda s: s.delete("x"),
        ],
    )
    def test_remote_failure_raises_backend_unavailable(self, redis_store, fake_redis, call):
        fake_redis.fail_with = redis.exceptions.TimeoutError("Timeout reading from socket")

        with pytest.raises(BackendUnavailableError) as exc_info:
            call(redis_store)
        assert exc_info.value.code == "STORE_301"

    def test_failure_does_not_stick(self, redis_store, fake_redis):
        fake_redis.fail_with = redis.exceptions.ConnectionError("reset by peer")
        with pytest.raises(BackendUnavailableError):
            redis_store.get("x")

        fake_redis.fail_with = None
        assert redis_store.get("x") is None

    def test_ping(self, redis_store, fake_redis, unreachable_error):
        assert redis_store.ping() is True
        fake_redis.ping_error = unreachable_error
        assert redis_store.ping() is False

    def test_close_releases_client_once(self, redis_store, fake_redis):
        redis_store.close()
        redis_store.close()
        assert fake_redis.close_calls == 1

    def test_context_manager_closes(self, fake_redis):
        from stores.redis_store import RedisRecordStore

        with patch("redis.Redis.from_url", return_value=fake_redis):
            with RedisRecordStore(["localhost:6379"], prefix="/ns") as store:
                store.put(_record("x"))
        assert fake_redis.close_calls == 1


class TestRedisRecordStoreConstruction:
    def test_client_options(self, fake_redis):
        from stores.redis_store import RedisRecordStore

        with patch("redis.Redis.from_url", return_value=fake_redis) as from_url:
            store = RedisRecordStore(["redis-a:6379"], prefix="/ns", timeout_seconds=3.0)

        url = from_url.call_args.args[0]
        kwargs = from_url.call_args.kwargs
        assert url == "redis://redis-a:6379"
        assert kwargs["socket_timeout"] == 3.0
        assert kwargs["socket_connect_timeout"] == 3.0
        assert kwargs["retry_on_timeout"] is False
        assert kwargs["decode_responses"] is False
        store.close()

    def test_full_url_is_passed_through(self, fake_redis):
        from stores.redis_store import RedisRecordStore

        with patch("redis.Redis.from_url", return_value=fake_redis) as from_url:
            store = RedisRecordStore(["rediss://cache.internal:6380/2"])

        assert from_url.call_args.args[0] == "rediss://cache.internal:6380/2"
        store.close()

    def test_first_reachable_endpoint_wins(self, fake_redis, unreachable_error):
        from stores.redis_store import RedisRecordStore

        dead = type(fake_redis)()
        dead.ping_error = unreachable_error

        with patch("redis.Redis.from_url", side_effect=[dead, fake_redis]):
            store = RedisRecordStore(["redis-a:6379", "redis-b:6379"])

        assert store.endpoint == "redis-b:6379"
        assert dead.close_calls == 1
        store.close()

    def test_all_endpoints_unreachable_raises_and_releases(self, fake_redis, unreachable_error):
        from stores.redis_store import RedisRecordStore

        fake_redis.ping_error = unreachable_error

        with patch("redis.Redis.from_url", return_value=fake_redis):
            with pytest.raises(ConnectionSetupError) as exc_info:
                RedisRecordStore(["redis-a:6379", "redis-b:6379"])

        assert exc_info.value.data["endpoints"] == ["redis-a:6379", "redis-b:6379"]
        assert fake_redis.close_calls == 2

    def test_invalid_url_raises_connection_setup_error(self):
        from stores.redis_store import RedisRecordStore

        with pytest.raises(ConnectionSetupError):
            RedisRecordStore(["ftp://nowhere"])

    def test_no_endpoints_raises(self):
        from stores.redis_store import RedisRecordStore

        with pytest.raises(ConnectionSetupError):
            RedisRecordStore([])
