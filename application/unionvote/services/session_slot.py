"""
Durable session slots: one named entry holding a serialized Identity.

A slot survives process restarts so a session can be restored without
re-verification. Slots store text and never interpret it; parsing and
validation belong to the session manager.
"""
import os
import re
import tempfile
import time
from abc import ABC, abstractmethod
from typing import Optional

import redis

from unionvote.config.settings import VotingConfigs
from unionvote.connections.redis_wrapper import RedisJSONWrapper, safe_key_part
from unionvote.core.constants import SESSION_CACHE_PREFIX
from unionvote.core.exceptions import StoreUnavailable
from unionvote.logging.utils import get_app_logger

logger = get_app_logger("unionvote.session_slot")

SLOT_SUFFIX = ".json"
DEFAULT_SESSION_TTL_SECONDS = 7 * 24 * 3600


def _is_stale(path: str, ttl_seconds: int, now: float) -> bool:
    return ttl_seconds > 0 and now - os.path.getmtime(path) > ttl_seconds


class SessionSlot(ABC):

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    def read(self) -> Optional[str]:
        pass

    @abstractmethod
    def write(self, payload: str) -> None:
        pass

    @abstractmethod
    def clear(self) -> None:
        """Remove the entry; clearing an empty slot is not an error."""


class FileSessionSlot(SessionSlot):
    """
    JSON file ``<directory>/<name>.json``, replaced atomically on write.

    The file's mtime is the last time the session was used: a read past
    ``ttl_seconds`` removes the file and reports the slot empty, any other
    read touches it, so the TTL slides like the Redis one.
    """

    def __init__(self, directory: str, name: str, ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS):
        super().__init__(name)
        self.directory = directory
        self.ttl_seconds = ttl_seconds
        self.path = os.path.join(directory, f"{re.sub(r'[^A-Za-z0-9_.-]', '_', name)}{SLOT_SUFFIX}")

    def read(self) -> Optional[str]:
        try:
            if _is_stale(self.path, self.ttl_seconds, time.time()):
                logger.info(f"session_slot_expired | ttl_seconds={self.ttl_seconds}")
                self.clear()
                return None
            with open(self.path, encoding="utf-8") as fh:
                payload = fh.read()
            os.utime(self.path)
            return payload
        except FileNotFoundError:
            return None

    def write(self, payload: str) -> None:
        os.makedirs(self.directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=".slot-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def clear(self) -> None:
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass


class RedisSessionSlot(SessionSlot):
    """Redis key ``session:<name>`` with a sliding TTL refreshed on every read and write"""

    def __init__(self, wrapper: RedisJSONWrapper, name: str, ttl_seconds: int):
        super().__init__(name)
        self.redis = wrapper
        self.key = f"{SESSION_CACHE_PREFIX}{safe_key_part(name)}"
        self.ttl_seconds = ttl_seconds

    def read(self) -> Optional[str]:
        try:
            value = self.redis.redis_client.getex(self.key, ex=self.ttl_seconds)
        except redis.exceptions.RedisError as e:
            raise StoreUnavailable("Session store unavailable") from e
        if value is None:
            return None
        return value.decode("utf-8") if isinstance(value, bytes) else value

    def write(self, payload: str) -> None:
        try:
            self.redis.redis_client.setex(self.key, self.ttl_seconds, payload)
        except redis.exceptions.RedisError as e:
            raise StoreUnavailable("Session store unavailable") from e

    def clear(self) -> None:
        try:
            self.redis.redis_client.delete(self.key)
        except redis.exceptions.RedisError as e:
            raise StoreUnavailable("Session store unavailable") from e


class SessionSlotFactory:
    """Builds the slot for a given name from SESSION_BACKEND."""

    def __init__(self, configs: VotingConfigs, redis_wrapper: Optional[RedisJSONWrapper] = None):
        self.backend = configs.SESSION_BACKEND
        self.directory = configs.SESSION_DIR
        self.default_name = configs.SESSION_SLOT_NAME
        self.ttl_seconds = configs.SESSION_TTL_SECONDS
        self.redis_wrapper = redis_wrapper
        if self.backend == "redis" and self.redis_wrapper is None:
            self.redis_wrapper = RedisJSONWrapper(configs.REDIS_URL, database=configs.REDIS_DB)
        if self.backend not in ("file", "redis"):
            raise ValueError(f"Unsupported SESSION_BACKEND: {self.backend}")

    def __call__(self, name: Optional[str] = None) -> SessionSlot:
        name = name or self.default_name
        if self.backend == "redis":
            return RedisSessionSlot(self.redis_wrapper, name, self.ttl_seconds)
        return FileSessionSlot(self.directory, name, self.ttl_seconds)

    def purge_expired(self) -> int:
        """Remove abandoned file slots. Redis expires its keys itself."""
        if self.backend != "file" or not os.path.isdir(self.directory):
            return 0
        now = time.time()
        removed = 0
        for entry in os.scandir(self.directory):
            if not entry.is_file() or not entry.name.endswith(SLOT_SUFFIX):
                continue
            try:
                if _is_stale(entry.path, self.ttl_seconds, now):
                    os.remove(entry.path)
                    removed += 1
            except FileNotFoundError:
                continue
        logger.info(f"purge_expired_sessions | removed={removed}")
        return removed

    def close(self):
        if self.redis_wrapper is not None:
            self.redis_wrapper.close()
