import logging
import time
from typing import Callable

import redis

from .errors import PublishError
from .schemas import JobOutcome

log = logging.getLogger("publisher")

class ResultPublisher:
    """
    LPUSH outcomes to the output list.
    best-effort: after `retries` failed pushes the outcome is logged and dropped,
    attempt i waits i * backoff seconds before the next one.
    """

    def __init__(
        self,
        r: redis.Redis,
        queue_out: str,
        retries: int = 3,
        backoff: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.r = r
        self.queue_out = queue_out
        self.retries = retries
        self.backoff = backoff
        self.sleep = sleep

    def _push(self, payload: str) -> None:
        try:
            self.r.lpush(self.queue_out, payload)
        except redis.RedisError as e:
            raise PublishError(str(e)) from e

    def publish(self, outcome: JobOutcome) -> bool:
        payload = outcome.to_json()
        extra = {"task_id": outcome.task_id}

        for attempt in range(1, self.retries + 1):
            try:
                self._push(payload)
            except PublishError as e:
                log.warning(
                    f"push to {self.queue_out} failed (attempt {attempt}/{self.retries}): {e}",
                    extra={**extra, "event": "publish_retry", "attempt": attempt},
                )
                if attempt < self.retries:
                    self.sleep(attempt * self.backoff)
                continue

            log.info(
                f"{outcome.status.value} outcome pushed to {self.queue_out}",
                extra={**extra, "event": "outcome_published"},
            )
            return True

        log.error(
            f"dropping {outcome.status.value} outcome after {self.retries} attempts",
            extra={**extra, "event": "publish_gave_up"},
        )
        return False
