import json
import logging
import sys
import time
from typing import TextIO

# extra={...} keys copied into the JSON line when a record carries them
EXTRA_FIELDS = ("task_id", "event", "attempt")

class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        line = {
            "ts": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            # jobs and search workers run on their own threads
            "thread": record.threadName,
            "msg": record.getMessage(),
        }
        for k in EXTRA_FIELDS:
            if hasattr(record, k):
                line[k] = getattr(record, k)
        if record.exc_info:
            line["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(line, ensure_ascii=False, default=str)

def setup_logging(level: str = "INFO", stream: TextIO | None = None) -> None:
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JsonFormatter())

    root.handlers.clear()
    root.addHandler(handler)
    # requests' connection pool chatter drowns out the upload lines
    logging.getLogger("urllib3").setLevel(logging.WARNING)
