import logging
import threading

import redis

log = logging.getLogger("heartbeat")

class Heartbeat:
    """
    Keeps `key` alive (SETEX key ttl "1") every `interval` seconds while the
    worker runs. Failures are logged and retried on the next tick.
    """

    def __init__(self, r: redis.Redis, key: str, interval: float = 30.0, ttl: int = 60):
        self.r = r
        self.key = key
        self.interval = interval
        self.ttl = ttl
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def beat(self) -> bool:
        try:
            self.r.setex(self.key, self.ttl, "1")
            return True
        except redis.RedisError:
            log.warning("heartbeat update failed", extra={"event": "heartbeat_failed"}, exc_info=True)
            return False

    def _run(self) -> None:
        self.beat()
        while not self._stop.wait(self.interval):
            self.beat()

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError("heartbeat already started")
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, daemon=True, name="heartbeat")
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
