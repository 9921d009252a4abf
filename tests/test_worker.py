import json
import threading

from conftest import wait_for

from vanityqueue.errors import EngineError
from vanityqueue.models import JobStatus
from vanityqueue.schemas import Job, JobOutcome, MatchResult
from vanityqueue.worker import Worker, decode_job, handle_job, pop_job

class StubEngine:
    def __init__(self, search):
        self._search = search
        self.specs = []
        self.closed = False

    def search(self, spec):
        self.specs.append(spec)
        return self._search(spec)

    def close(self):
        self.closed = True

class RecordingPublisher:
    def __init__(self):
        self.outcomes = []

    def publish(self, outcome: JobOutcome) -> bool:
        self.outcomes.append(outcome)
        return True

def found(spec):
    return MatchResult(private_key="ab" * 32, address="TABC" + "x" * 26 + "8888", total_generated=7)

def payload(task_id="t-1", task_type="custom_address", custom_format="TABC-8888"):
    return json.dumps({"taskId": task_id, "taskType": task_type, "customFormat": custom_format})

def test_decode_job():
    job = decode_job(payload())
    assert job == Job(task_id="t-1", task_type="custom_address", custom_format="TABC-8888")
    assert decode_job("{not json") is None
    assert decode_job(json.dumps({"taskType": "5a"})) is None

    fixed = decode_job(json.dumps({"taskId": "t-2", "taskType": "5a", "customFormat": None}))
    assert fixed == Job(task_id="t-2", task_type="5a", custom_format="")

def test_pop_job_timeout_is_not_an_error(fake_redis):
    assert pop_job(fake_redis, "in", timeout=0) is None
    fake_redis.lpush("in", "a", "b")
    assert pop_job(fake_redis, "in", timeout=0) == "a"

def test_handle_job_success(cfg):
    engine = StubEngine(found)
    outcome = handle_job(decode_job(payload()), engine, cfg.template_file)
    assert outcome.status is JobStatus.completed
    assert outcome.result.total_generated == 7
    assert engine.specs[0].template.startswith("TABC")

def test_handle_job_classification_error(cfg):
    engine = StubEngine(found)
    outcome = handle_job(decode_job(payload(custom_format="XABC-8888")), engine, cfg.template_file)
    assert outcome.status is JobStatus.failed
    assert outcome.result == MatchResult()
    assert engine.specs == []

def test_handle_job_engine_error(cfg):
    def broken(spec):
        raise EngineError("engine executable not found: ./profanity.x64")

    outcome = handle_job(decode_job(payload(task_type="6a")), StubEngine(broken), cfg.template_file)
    assert outcome.status is JobStatus.failed
    assert "not found" in outcome.error

def test_crash_becomes_failure(fake_redis, cfg):
    def crash(spec):
        raise ZeroDivisionError("division by zero")

    pub = RecordingPublisher()
    worker = Worker(fake_redis, StubEngine(crash), cfg, publisher=pub)
    assert worker.process(payload()) is True
    [outcome] = pub.outcomes
    assert outcome.status is JobStatus.failed
    assert outcome.error.startswith("crash: ZeroDivisionError")

def test_timeout_publishes_failure_then_late_outcome(fake_redis, cfg):
    release = threading.Event()

    def slow(spec):
        release.wait(5)
        return found(spec)

    pub = RecordingPublisher()
    worker = Worker(fake_redis, StubEngine(slow), cfg.model_copy(update={"task_timeout": 0.1}), publisher=pub)
    assert worker.process(payload()) is True

    [timeout] = pub.outcomes
    assert timeout.status is JobStatus.failed
    assert timeout.error == "timeout"

    release.set()
    assert wait_for(lambda: len(pub.outcomes) == 2)
    assert pub.outcomes[1].status is JobStatus.completed
    assert pub.outcomes[1].task_id == "t-1"

def test_undecodable_job_is_discarded(fake_redis, cfg):
    pub = RecordingPublisher()
    worker = Worker(fake_redis, StubEngine(found), cfg, publisher=pub)
    assert worker.process("garbage") is False
    assert pub.outcomes == []

def run_in_thread(worker):
    t = threading.Thread(target=worker.run, daemon=True)
    t.start()
    return t

def test_loop_skips_bad_job_and_serves_next(fake_redis, cfg):
    engine = StubEngine(found)
    worker = Worker(fake_redis, engine, cfg)
    fake_redis.lpush(cfg.queue_in, "garbage")
    fake_redis.lpush(cfg.queue_in, payload(task_id="t-2"))

    t = run_in_thread(worker)
    try:
        assert wait_for(lambda: len(fake_redis.lists[cfg.queue_out]) == 1)
    finally:
        worker.stop()
        t.join(5)

    assert not t.is_alive()
    [raw] = fake_redis.lists[cfg.queue_out]
    out = json.loads(raw)
    assert out["taskId"] == "t-2"
    assert out["status"] == "completed"
    assert fake_redis.values[cfg.heartbeat_key] == "1"
    assert engine.closed
    assert not worker.heartbeat.is_running

def test_loop_survives_queue_errors(fake_redis, cfg):
    fake_redis.fail_brpop = 2
    fake_redis.fail_ping = 1
    worker = Worker(fake_redis, StubEngine(found), cfg)
    fake_redis.lpush(cfg.queue_in, payload(task_id="t-3"))

    t = run_in_thread(worker)
    try:
        assert wait_for(lambda: len(fake_redis.lists[cfg.queue_out]) == 1)
    finally:
        worker.stop()
        t.join(5)
    assert json.loads(fake_redis.lists[cfg.queue_out][0])["taskId"] == "t-3"
    # probed once after each failed dequeue, the first probe failing
    assert fake_redis.fail_ping == 0
    assert fake_redis.ping_calls >= 2

def test_null_custom_format_job_gets_an_outcome(fake_redis, cfg):
    pub = RecordingPublisher()
    worker = Worker(fake_redis, StubEngine(found), cfg, publisher=pub)
    raw = json.dumps({"taskId": "t-4", "taskType": "5a", "customFormat": None})
    assert worker.process(raw) is True
    [outcome] = pub.outcomes
    assert outcome.task_id == "t-4"
    assert outcome.status is JobStatus.completed

def test_pop_job_drops_invalid_utf8(fake_redis, caplog):
    class BadBytesRedis(type(fake_redis)):
        def brpop(self, keys, timeout=0):
            raise UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")

    assert pop_job(BadBytesRedis(), "in", timeout=0) is None
    assert any(getattr(r, "event", None) == "job_decode_failed" for r in caplog.records)

def test_stop_interrupts_loop_error_backoff(fake_redis, cfg, monkeypatch):
    worker = Worker(fake_redis, StubEngine(found), cfg)
    attempts = []

    def broken_process(raw):
        attempts.append(raw)
        raise RuntimeError("unexpected")

    monkeypatch.setattr(worker, "process", broken_process)
    fake_redis.lpush(cfg.queue_in, payload(task_id="t-5"))

    t = run_in_thread(worker)
    assert wait_for(lambda: attempts)
    worker.stop()
    # the loop error backoff is 2s, stop() must cut it short
    t.join(1.0)
    assert not t.is_alive()
