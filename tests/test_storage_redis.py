"""Tests for zapit.storage.redis_store — Redis backend behavior with a fake client."""
import os
import uuid

import pytest
import redis

from zapit.exceptions import ConfigurationError, SerializationError, StorageUnavailableError
from zapit.models import URLInfo
from zapit.storage import redis_store
from zapit.storage.redis_store import RedisDatabase


class FakeRedis:
    """Just enough of redis.Redis for the backend; ops in ``fail_on`` raise."""

    def __init__(self, fail_on=(), **kwargs):
        self.kwargs = kwargs
        self.data = {}
        self.fail_on = set(fail_on)
        self.closed = False

    def _check(self, op):
        if op in self.fail_on:
            raise redis.exceptions.ConnectionError(f"Error connecting: {op} refused")

    def ping(self):
        self._check("ping")
        return True

    def get(self, key):
        self._check("get")
        return self.data.get(key)

    def set(self, key, value):
        self._check("set")
        self.data[key] = value.encode("utf-8") if isinstance(value, str) else value
        return True

    def close(self):
        self._check("close")
        self.closed = True


class TestConstruction:

    def test_tcp_builds_client_with_connect_timeout(self, monkeypatch):
        created = []

        def factory(**kwargs):
            c = FakeRedis(**kwargs)
            created.append(c)
            return c

        monkeypatch.setattr(redis_store.redis, "Redis", factory)
        RedisDatabase("db:6379", protocol="tcp", timeout=2.0)
        assert created[0].kwargs == {"host": "db", "port": 6379, "socket_connect_timeout": 2.0}

    def test_unix_socket(self, monkeypatch):
        created = []
        monkeypatch.setattr(redis_store.redis, "Redis", lambda **kw: created.append(FakeRedis(**kw)) or created[-1])
        RedisDatabase("/var/run/redis.sock", protocol="unix", timeout=0.5)
        assert created[0].kwargs == {"unix_socket_path": "/var/run/redis.sock", "socket_connect_timeout": 0.5}

    def test_unsupported_protocol(self):
        with pytest.raises(ConfigurationError):
            RedisDatabase("db:6379", protocol="udp", client=FakeRedis())

    @pytest.mark.parametrize("address", ["db", ":6379", "db:port"])
    def test_bad_address(self, address):
        with pytest.raises(ConfigurationError):
            RedisDatabase(address)

    def test_ping_failure_fails_fast(self):
        with pytest.raises(StorageUnavailableError) as ei:
            RedisDatabase("db:6379", client=FakeRedis(fail_on={"ping"}))
        assert ei.value.operation == "connect"

    def test_unreachable_server(self):
        # nothing listens on port 1; the connect timeout bounds the wait
        with pytest.raises(StorageUnavailableError):
            RedisDatabase("127.0.0.1:1", timeout=0.5)


class TestOperations:

    def test_miss_returns_none(self):
        db = RedisDatabase("db:6379", client=FakeRedis())
        assert db.get("http://example.com") is None

    def test_put_uses_prefixed_key_and_json(self):
        client = FakeRedis()
        db = RedisDatabase("db:6379", client=client, key_prefix="t:")
        db.put("http://example.com", URLInfo("http://example.com", True))
        assert client.data == {"t:http://example.com": b'{"url": "http://example.com", "malicious": true}'}
        assert db.get("http://example.com") == URLInfo("http://example.com", True)

    def test_get_failure(self):
        db = RedisDatabase("db:6379", client=FakeRedis(fail_on={"get"}))
        with pytest.raises(StorageUnavailableError) as ei:
            db.get("k")
        assert ei.value.operation == "get"
        assert isinstance(ei.value.__cause__, redis.exceptions.ConnectionError)

    def test_put_failure_is_not_silent(self):
        db = RedisDatabase("db:6379", client=FakeRedis(fail_on={"set"}))
        with pytest.raises(StorageUnavailableError):
            db.put("k", URLInfo("k", False))

    def test_corrupt_record(self):
        client = FakeRedis()
        client.data["zapit:urlinfo:k"] = b"garbage"
        db = RedisDatabase("db:6379", client=client)
        with pytest.raises(SerializationError):
            db.get("k")

    def test_close_once(self):
        client = FakeRedis()
        db = RedisDatabase("db:6379", client=client)
        db.close()
        client.fail_on.add("close")
        db.close()  # second close does not touch the client
        assert client.closed is True

    def test_close_failure(self):
        db = RedisDatabase("db:6379", client=FakeRedis(fail_on={"close"}))
        with pytest.raises(StorageUnavailableError):
            db.close()

    def test_ping_reports_false_on_error(self):
        client = FakeRedis()
        db = RedisDatabase("db:6379", client=client)
        client.fail_on.add("ping")
        assert db.ping() is False


requires_redis = pytest.mark.skipif(
    not os.environ.get("ZAPIT_TEST_REDIS_ADDRESS"),
    reason="ZAPIT_TEST_REDIS_ADDRESS (host:port) must point at a live Redis",
)


@requires_redis
def test_live_redis_roundtrip():
    prefix = f"zapit-test-{uuid.uuid4().hex[:8]}:"
    db = RedisDatabase(os.environ["ZAPIT_TEST_REDIS_ADDRESS"], key_prefix=prefix)
    try:
        assert db.get("http://example.com") is None
        db.put("http://example.com", URLInfo("http://example.com", False))
        assert db.get("http://example.com") == URLInfo("http://example.com", False)
    finally:
        db._client.delete(f"{prefix}http://example.com")
        db.close()
