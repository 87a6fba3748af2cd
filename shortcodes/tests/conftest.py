import threading

import pytest

from shortcodes.storage import redis_store


class FakeRedis:
    """Just enough of redis-py for WATCH/MULTI/EXEC with bytes replies."""

    def __init__(self, watch_error: type[Exception]) -> None:
        self.strings: dict[str, bytes] = {}
        self.hashes: dict[str, dict[str, bytes]] = {}
        self.version = 0
        self.interfere = 0
        self.watch_error = watch_error
        self.lock = threading.Lock()

    def get(self, key):
        with self.lock:
            return self.strings.get(key)

    def hget(self, key, field):
        with self.lock:
            return self.hashes.get(key, {}).get(field)

    def hexists(self, key, field):
        with self.lock:
            return field in self.hashes.get(key, {})

    def hlen(self, key):
        with self.lock:
            return len(self.hashes.get(key, {}))

    def pipeline(self):
        return FakePipeline(self)


class FakePipeline:
    def __init__(self, client: FakeRedis) -> None:
        self.client = client
        self.watched_version: int | None = None
        self.queued: list[tuple] | None = None

    def watch(self, *keys):
        with self.client.lock:
            self.watched_version = self.client.version

    def hexists(self, key, field):
        return self.client.hexists(key, field)

    def get(self, key):
        return self.client.get(key)

    def multi(self):
        self.queued = []

    def set(self, key, value):
        self.queued.append(("set", key, value))

    def hset(self, key, field, value):
        self.queued.append(("hset", key, field, value))

    def execute(self):
        client = self.client
        with client.lock:
            if client.interfere:
                client.interfere -= 1
                client.version += 1
            if self.watched_version != client.version:
                raise client.watch_error("watched key changed")
            for op in self.queued:
                if op[0] == "set":
                    client.strings[op[1]] = str(op[2]).encode("utf-8")
                else:
                    client.hashes.setdefault(op[1], {})[op[2]] = op[3].encode("utf-8")
            client.version += 1
            return [True] * len(self.queued)

    def reset(self):
        self.watched_version = None
        self.queued = None


@pytest.fixture
def fake_redis(monkeypatch):
    redis = pytest.importorskip("redis")
    client = FakeRedis(redis.WatchError)
    monkeypatch.setattr(redis_store.redis.Redis, "from_url", staticmethod(lambda url, decode_responses=False: client))
    return client
