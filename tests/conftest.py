import threading
import time
from collections import defaultdict

import pytest
import redis

from vanityqueue.settings import Settings

class FakeRedis:
    """In-memory stand-in for the handful of list/key commands the worker uses.

    fail_* counters make the next N calls of that command raise ConnectionError.
    """

    def __init__(self):
        self.lists = defaultdict(list)
        self.values = {}
        self.ttls = {}
        self.setex_calls = 0
        self.ping_calls = 0
        self.fail_lpush = 0
        self.fail_brpop = 0
        self.fail_setex = 0
        self.fail_ping = 0
        self._cond = threading.Condition()

    def _maybe_fail(self, name):
        counter = f"fail_{name}"
        if getattr(self, counter) > 0:
            setattr(self, counter, getattr(self, counter) - 1)
            raise redis.ConnectionError(f"{name} refused")

    def lpush(self, key, *values):
        with self._cond:
            self._maybe_fail("lpush")
            for v in values:
                self.lists[key].insert(0, v)
            self._cond.notify_all()
            return len(self.lists[key])

    def brpop(self, keys, timeout=0):
        with self._cond:
            self._maybe_fail("brpop")
            deadline = time.monotonic() + timeout
            while True:
                for key in keys:
                    if self.lists[key]:
                        return key, self.lists[key].pop()
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return None
                self._cond.wait(remaining)

    def setex(self, name, time, value):
        with self._cond:
            self._maybe_fail("setex")
            self.setex_calls += 1
            self.values[name] = value
            self.ttls[name] = time
            return True

    def ping(self):
        self.ping_calls += 1
        self._maybe_fail("ping")
        return True

def wait_for(predicate, timeout=5.0, interval=0.01):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()

@pytest.fixture
def fake_redis():
    return FakeRedis()

@pytest.fixture
def cfg(tmp_path):
    template = tmp_path / "profanity.txt"
    template.write_text("TTTTTTTTTTTTTTTTTTTTTTTTTTTTT88888\n")
    return Settings(
        _env_file=None,
        redis_url="redis://localhost:6379/0",
        poll_timeout=1,
        error_backoff=0.01,
        task_timeout=5.0,
        heartbeat_interval=0.05,
        publish_backoff=0.0,
        template_file=str(template),
        engine_dir=str(tmp_path),
        num_workers=2,
    )
