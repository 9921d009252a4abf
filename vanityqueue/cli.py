"""
Command-line interface.

Usage:
    vanityqueue server
    vanityqueue build <template> <prefix_count> <suffix_count> <quit_count>

Examples:
    # first character T, last three 8s, stop after one address
    vanityqueue build TTTCqtavqZiKEMVYgEQSN2b91h88888888 1 3 1

    # same search with the in-process searcher
    vanityqueue build TTTCqtavqZiKEMVYgEQSN2b91h66666666 1 4 5 --engine bruteforce
"""

import argparse
import logging
import os
import signal
import sys

import redis
import requests

from . import __version__
from .engines import build_engine
from .errors import EngineError
from .logging_utils import setup_logging
from .models import PatternSpec
from .redis_client import get_redis
from .settings import Settings, settings
from .worker import Worker

log = logging.getLogger("cli")


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vanityqueue",
        description="Tron vanity address generator",
        epilog=(
            "Examples:\n"
            "  vanityqueue server\n"
            "  vanityqueue build TTTCqtavqZiKEMVYgEQSN2b91h88888888 1 3 1\n"
            "  vanityqueue build TTTCqtavqZiKEMVYgEQSN2b91h66666666 1 4 5\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--version", action="version", version=f"vanityqueue {__version__}"
    )
    sub = parser.add_subparsers(dest="command")

    server = sub.add_parser("server", help="Consume jobs from the redis queue")
    server.add_argument(
        "--engine", choices=("external", "bruteforce"),
        help="Matching engine (default: ENGINE setting)",
    )

    build = sub.add_parser("build", help="Generate vanity addresses directly")
    build.add_argument("template", help="Target address template, or a template list file")
    build.add_argument("prefix_count", type=int, help="Leading characters that must match")
    build.add_argument("suffix_count", type=int, help="Trailing characters that must match")
    build.add_argument("quit_count", type=int, help="Number of addresses to generate")
    build.add_argument(
        "--engine", choices=("external", "bruteforce"),
        help="Matching engine (default: ENGINE setting)",
    )

    sub.add_parser("help", help="Show this help")
    return parser


def upload(url: str, private_key: str, address: str) -> bool:
    try:
        resp = requests.post(
            url, json={"address": address, "private_key": private_key}, timeout=10
        )
    except requests.RequestException as e:
        log.error(f"upload to {url} failed: {e}", extra={"event": "upload_failed"})
        return False

    if resp.status_code == 200:
        log.info(f"uploaded {address} to {url}", extra={"event": "uploaded"})
        return True
    log.warning(
        f"upload to {url} returned status {resp.status_code}",
        extra={"event": "upload_failed"},
    )
    return False


def run_build(
    cfg: Settings,
    template: str,
    prefix_count: int,
    suffix_count: int,
    quit_count: int,
    engine_name: str | None = None,
) -> int:
    try:
        spec = PatternSpec(
            prefix_count=prefix_count,
            suffix_count=suffix_count,
            template=template,
            template_list=os.path.isfile(template),
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    engine = build_engine(cfg, engine_name)
    try:
        for _ in range(quit_count):
            try:
                result = engine.search(spec)
            except EngineError as e:
                log.error(f"generating address failed: {e}", extra={"event": "build_failed"})
                return 1

            log.info(
                f"{result.address} (~{result.total_generated} keys)",
                extra={"event": "build_match"},
            )
            print(f"{result.private_key} {result.address}")

            if cfg.post_url:
                upload(cfg.post_url, result.private_key, result.address)
    finally:
        engine.close()
    return 0


def run_server(cfg: Settings, engine_name: str | None = None) -> int:
    if not cfg.redis_url:
        log.error("REDIS_URL is not configured", extra={"event": "config_error"})
        return 1

    r = get_redis(cfg)
    try:
        r.ping()
    except redis.RedisError as e:
        log.error(
            f"cannot connect to redis, check the address and allow-list: {e}",
            extra={"event": "redis_unreachable"},
        )
        return 1
    log.info("redis connected", extra={"event": "redis_connected"})

    worker = Worker(r, build_engine(cfg, engine_name), cfg)

    def _on_signal(signum, frame):
        log.info(f"signal {signum} received, stopping", extra={"event": "worker_signal"})
        worker.stop()

    signal.signal(signal.SIGINT, _on_signal)
    signal.signal(signal.SIGTERM, _on_signal)

    worker.run()
    return 0


def main(argv: list[str] | None = None, cfg: Settings | None = None) -> int:
    cfg = cfg or settings
    setup_logging(cfg.log_level)

    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command == "server":
        return run_server(cfg, args.engine)
    if args.command == "build":
        return run_build(
            cfg, args.template, args.prefix_count, args.suffix_count, args.quit_count, args.engine
        )

    parser.print_help()
    return 0
