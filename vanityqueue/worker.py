import logging
import threading

import redis
from pydantic import ValidationError

from .classifier import classify
from .engines import BruteForceSearcher, ExternalEngine
from .errors import ClassificationError, EngineError, QueueError
from .heartbeat import Heartbeat
from .publisher import ResultPublisher
from .schemas import Job, JobOutcome
from .settings import Settings

log = logging.getLogger("worker")

def pop_job(r: redis.Redis, queue_in: str, timeout: int = 5) -> str | None:
    """
    BRPOP with a short timeout.
    None means the poll timed out, which is not an error, or the
    popped item was not valid utf-8 and has been dropped.
    """
    try:
        item = r.brpop([queue_in], timeout=timeout)
    except redis.RedisError as e:
        raise QueueError(str(e)) from e
    except UnicodeDecodeError as e:
        # the item is already popped, it cannot be answered without a task id
        log.warning(f"dropping job that is not valid utf-8: {e}", extra={"event": "job_decode_failed"})
        return None
    if item is None:
        return None
    _key, raw = item
    return raw

def decode_job(raw: str) -> Job | None:
    # malformed jobs get no reply, they are only logged
    try:
        return Job.model_validate_json(raw)
    except ValidationError as e:
        log.warning(
            f"dropping undecodable job: {e.error_count()} error(s), payload: {raw!r}",
            extra={"event": "job_decode_failed"},
        )
        return None

def handle_job(job: Job, engine: ExternalEngine | BruteForceSearcher, template_file: str) -> JobOutcome:
    extra = {"task_id": job.task_id}

    try:
        spec = classify(job, template_file)
    except ClassificationError as e:
        log.warning(f"classification failed: {e}", extra={**extra, "event": "job_failed"})
        return JobOutcome.failed(job.task_id, f"classification failed: {e}")

    log.info(
        f"searching matching={spec.template} prefix_count={spec.prefix_count} suffix_count={spec.suffix_count}",
        extra={**extra, "event": "search_start"},
    )
    try:
        result = engine.search(spec)
    except EngineError as e:
        log.error(f"search failed: {e}", extra={**extra, "event": "job_failed"})
        return JobOutcome.failed(job.task_id, str(e))

    log.info(
        f"{spec.template} -> {result.address}, ~{result.total_generated} keys",
        extra={**extra, "event": "job_completed"},
    )
    return JobOutcome.completed(job.task_id, result)

class Worker:
    """
    Owns everything the server command runs: the dispatch loop, the
    heartbeat thread and the matching engine.

    Jobs are processed one at a time. Each one runs on its own thread so the
    loop can give up on it after cfg.task_timeout; the thread itself is not
    killed and still publishes whatever it ends with.
    """

    def __init__(
        self,
        r: redis.Redis,
        engine: ExternalEngine | BruteForceSearcher,
        cfg: Settings,
        publisher: ResultPublisher | None = None,
        heartbeat: Heartbeat | None = None,
    ):
        self.r = r
        self.engine = engine
        self.cfg = cfg
        self.publisher = publisher or ResultPublisher(
            r, cfg.queue_out, retries=cfg.publish_retries, backoff=cfg.publish_backoff
        )
        self.heartbeat = heartbeat or Heartbeat(
            r, cfg.heartbeat_key, interval=cfg.heartbeat_interval, ttl=cfg.heartbeat_ttl
        )
        self._stop = threading.Event()

    def run_job(self, job: Job, done: threading.Event, abandoned: threading.Event) -> None:
        extra = {"task_id": job.task_id}
        try:
            try:
                outcome = handle_job(job, self.engine, self.cfg.template_file)
            except Exception as e:
                log.error("job crashed", extra={**extra, "event": "job_crashed"}, exc_info=True)
                outcome = JobOutcome.failed(job.task_id, f"crash: {e!r}")

            if abandoned.is_set():
                log.warning(
                    f"job ended after its deadline with status {outcome.status.value}, publishing anyway",
                    extra={**extra, "event": "late_outcome"},
                )
            self.publisher.publish(outcome)
        except Exception:
            log.error("publishing outcome crashed", extra={**extra, "event": "job_crashed"}, exc_info=True)
        finally:
            done.set()

    def process(self, raw: str) -> bool:
        """Run one raw queue item to its outcome. False if it was discarded."""
        job = decode_job(raw)
        if job is None:
            return False

        log.info(
            f"received task type={job.task_type} format={job.custom_format!r}",
            extra={"task_id": job.task_id, "event": "job_received"},
        )
        done = threading.Event()
        abandoned = threading.Event()
        t = threading.Thread(
            target=self.run_job,
            args=(job, done, abandoned),
            daemon=True,
            name=f"job-{job.task_id}",
        )
        t.start()

        if done.wait(self.cfg.task_timeout):
            return True

        abandoned.set()
        log.error(
            f"task timed out after {self.cfg.task_timeout}s",
            extra={"task_id": job.task_id, "event": "job_timeout"},
        )
        self.publisher.publish(JobOutcome.failed(job.task_id, "timeout"))
        return True

    def probe(self) -> bool:
        try:
            self.r.ping()
            return True
        except redis.RedisError as e:
            log.warning(f"redis still unreachable: {e}", extra={"event": "queue_error"})
            return False

    def run(self) -> None:
        log.info(f"listening on {self.cfg.queue_in}", extra={"event": "worker_start"})
        self.heartbeat.start()
        try:
            while not self._stop.is_set():
                try:
                    raw = pop_job(self.r, self.cfg.queue_in, timeout=self.cfg.poll_timeout)
                    if raw is None:
                        continue
                    self.process(raw)

                except QueueError as e:
                    log.error(
                        f"dequeue failed: {e}, retrying in {self.cfg.error_backoff}s",
                        extra={"event": "queue_error"},
                    )
                    if self._stop.wait(self.cfg.error_backoff):
                        break
                    self.probe()

                except Exception:
                    log.error("worker loop error", extra={"event": "worker_loop_error"}, exc_info=True)
                    if self._stop.wait(2):
                        break
        finally:
            self.shutdown()

    def stop(self) -> None:
        """Ask the loop to exit; the job in progress is finished first."""
        self._stop.set()

    def shutdown(self) -> None:
        self.heartbeat.stop()
        self.engine.close()
        log.info("worker stopped", extra={"event": "worker_stop"})
