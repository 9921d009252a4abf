from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file="config.env", extra="ignore")

    # required by the server command only; the one-shot build never touches redis
    redis_url: str | None = None
    redis_password: str | None = None
    redis_db: int = 0
    redis_pool_size: int = 10
    redis_dial_timeout: float = 5.0
    redis_read_timeout: float = 10.0
    redis_write_timeout: float = 5.0

    queue_in: str = "address_producer"
    queue_out: str = "address_consumer"
    heartbeat_key: str = "is_worker_alive"

    poll_timeout: int = 5
    error_backoff: float = 5.0
    task_timeout: float = 30 * 60

    heartbeat_interval: float = 30.0
    heartbeat_ttl: int = 60

    publish_retries: int = 3
    publish_backoff: float = 1.0

    engine: Literal["external", "bruteforce"] = "external"
    engine_dir: str = "."
    quit_count: int = 1
    template_file: str = "./profanity.txt"
    num_workers: int = 0

    post_url: str | None = None

    log_level: str = "INFO"

settings = Settings()
