"""Expiring key/value cache used by the dashboards.

The cache is a read accelerator only: entries expire on their own, nothing
is ever written back to the database, and a failing backend degrades to
computing the value directly.
"""

import json
import logging
import threading
import time

import redis

logger = logging.getLogger(__name__)

_MISSING = object()


class CacheUnavailable(Exception):
    """The cache backend could not be reached."""


class Cache:
    """Get-or-compute port with a per-key time-to-live (seconds)."""

    def get(self, key: str):
        raise NotImplementedError

    def set(self, key: str, value, ttl: int) -> None:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError

    def fetch(self, key: str, ttl: int, compute):
        """Return the cached value for *key*, computing and storing it on a miss."""
        try:
            value = self.get(key)
        except CacheUnavailable as exc:
            logger.warning("Cache read failed for %s: %s", key, exc)
            return compute()

        if value is not _MISSING:
            return value

        value = compute()
        try:
            self.set(key, value, ttl)
        except CacheUnavailable as exc:
            logger.warning("Cache write failed for %s: %s", key, exc)
        return value


class MemoryCache(Cache):
    """In-process cache; entries live in a dict guarded by a lock."""

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._entries = {}
        self._lock = threading.Lock()

    def get(self, key):
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return _MISSING
            expires_at, value = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return _MISSING
            return value

    def set(self, key, value, ttl):
        with self._lock:
            self._entries[key] = (self._clock() + ttl, value)

    def clear(self):
        with self._lock:
            self._entries.clear()


class RedisCache(Cache):
    """Redis-backed cache storing JSON values under a key prefix."""

    def __init__(self, client, prefix: str = "library:"):
        self.client = client
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str, **kwargs):
        client = redis.Redis.from_url(url, socket_connect_timeout=1, socket_timeout=1)
        return cls(client, **kwargs)

    def get(self, key):
        try:
            raw = self.client.get(self.prefix + key)
        except redis.RedisError as exc:
            raise CacheUnavailable(str(exc)) from exc
        if raw is None:
            return _MISSING
        return json.loads(raw)

    def set(self, key, value, ttl):
        try:
            self.client.setex(self.prefix + key, int(ttl), json.dumps(value))
        except redis.RedisError as exc:
            raise CacheUnavailable(str(exc)) from exc

    def clear(self):
        try:
            keys = list(self.client.scan_iter(match=self.prefix + "*"))
            if keys:
                self.client.delete(*keys)
        except redis.RedisError as exc:
            raise CacheUnavailable(str(exc)) from exc


def build_cache(url: str) -> Cache:
    if url and url.startswith(("redis://", "rediss://", "unix://")):
        return RedisCache.from_url(url)
    return MemoryCache()


def init_app(app) -> None:
    """Create the application's cache from ``CACHE_URL``."""
    cache = build_cache(app.config.get("CACHE_URL", ""))
    app.extensions["cache"] = cache
    logger.info("Dashboard cache: %s", type(cache).__name__)


def get_cache() -> Cache:
    from flask import current_app
    return current_app.extensions["cache"]
