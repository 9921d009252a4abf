"""Tron vanity address worker: consumes search jobs from redis and publishes keys."""

__version__ = "0.1.0"
