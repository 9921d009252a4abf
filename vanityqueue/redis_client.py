import redis

from .settings import Settings

def get_redis(cfg: Settings) -> redis.Redis:
    """
    One client for the whole process: the dispatcher and the heartbeat
    thread share it, redis-py's pool makes that safe.
    """
    pool = redis.ConnectionPool.from_url(
        cfg.redis_url,
        password=cfg.redis_password,
        db=cfg.redis_db,
        max_connections=cfg.redis_pool_size,
        socket_connect_timeout=cfg.redis_dial_timeout,
        # BRPOP holds the socket for poll_timeout seconds, keep headroom above it
        socket_timeout=max(cfg.redis_read_timeout, cfg.redis_write_timeout, cfg.poll_timeout + 1),
        decode_responses=True,
    )
    return redis.Redis(connection_pool=pool)
